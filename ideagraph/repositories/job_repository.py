from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ideagraph.repositories.base_repository import BaseRepository
from ideagraph.database.models import Job
from ideagraph.schemas.jobs import JobStatus, JobType


class JobRepository(BaseRepository[Job]):
    """Raw job records. Transition rules live in ``JobService``."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Job)

    async def create_job(self, project_id: UUID, type: JobType) -> Job:
        return await self.create(
            project_id=project_id, type=type.value, status=JobStatus.PENDING.value
        )

    async def get_latest_by_type(
        self,
        project_id: UUID,
        type: JobType,
        statuses: Optional[Sequence[JobStatus]] = None,
    ) -> Optional[Job]:
        query = (
            select(Job)
            .where(Job.project_id == project_id)
            .where(Job.type == type.value)
        )
        if statuses:
            query = query.where(Job.status.in_([s.value for s in statuses]))
        query = query.order_by(Job.created_at.desc()).limit(1)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()
