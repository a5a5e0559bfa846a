from typing import Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ideagraph.repositories.base_repository import BaseRepository
from ideagraph.database.models import EvidenceRef, IdeaNode
from ideagraph.utils.logging import get_logger

LOGGER = get_logger(__name__)


class IdeaNodeRepository(BaseRepository[IdeaNode]):
    """Repository for idea nodes and their embeddings."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, IdeaNode)

    async def create_node(
        self,
        project_id: UUID,
        label: str,
        summary: str,
        tags: Sequence[str],
        confidence: Optional[float] = None,
    ) -> IdeaNode:
        return await self.create(
            project_id=project_id,
            label=label,
            summary=summary,
            tags=list(tags),
            confidence=confidence,
        )

    async def list_by_project(self, project_id: UUID) -> List[IdeaNode]:
        """List a project's nodes in creation order.

        Creation order is the iteration order used by deduplication.
        """
        return await self.list_where(
            {"project_id": project_id}, order_by=IdeaNode.created_at
        )

    async def save_embeddings(self, embeddings: Dict[UUID, List[float]]) -> int:
        """Persist one embedding per node id; returns how many were written."""
        written = 0
        for node_id, vector in embeddings.items():
            if await self.patch(node_id, embedding=list(vector)) is not None:
                written += 1
        return written

    async def delete_node(self, node_id: UUID) -> bool:
        """Delete a node together with its evidence refs."""
        await self.session.execute(
            EvidenceRef.__table__.delete().where(EvidenceRef.node_id == node_id)
        )
        deleted = await self.delete_where(IdeaNode.id == node_id)
        if deleted:
            LOGGER.debug("Deleted idea node", extra={"node_id": str(node_id)})
        return deleted > 0
