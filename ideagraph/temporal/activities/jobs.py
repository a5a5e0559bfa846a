from uuid import UUID

from temporalio import activity

from ideagraph.core.database import async_session_maker
from ideagraph.repositories.candidate_pair_repository import CandidatePairRepository
from ideagraph.services.jobs.job_service import JobService
from ideagraph.temporal.core.activity_registry import ActivityRegistry


@ActivityRegistry.register("jobs", "fail_job")
@activity.defn
async def fail_job(job_id: str, error: str) -> None:
    """Record a failure the workflow observed itself, such as an activity timeout.

    Candidate pairs only exist for linking jobs; a failed job never resumes,
    so its pairs are dropped here too.
    """
    async with async_session_maker() as session:
        await JobService(session).mark_failed(UUID(job_id), error)
        await CandidatePairRepository(session).clear_for_job(UUID(job_id))
