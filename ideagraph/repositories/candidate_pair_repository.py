from typing import List, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ideagraph.repositories.base_repository import BaseRepository
from ideagraph.database.models import CandidatePair


class CandidatePairRepository(BaseRepository[CandidatePair]):
    """Pending classification work of a linking job, keyed by (job_id, batch_index)."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, CandidatePair)

    async def save_pairs(self, job_id: UUID, pairs: Sequence[dict]) -> int:
        """Persist ranked pairs (dicts with source/target ids, similarity, batch_index)."""
        return await self.create_many([{"job_id": job_id, **pair} for pair in pairs])

    async def get_batch(self, job_id: UUID, batch_index: int) -> List[CandidatePair]:
        return await self.list_where(
            {"job_id": job_id, "batch_index": batch_index},
            order_by=CandidatePair.similarity.desc(),
        )

    async def clear_for_job(self, job_id: UUID) -> int:
        return await self.delete_where(CandidatePair.job_id == job_id)
