"""Job state machine shared by extraction, linking and locator backfill.

Status only moves forward::

    pending -> running -> completed
    pending -> failed
    running -> failed

Re-entering the current status is a no-op so that a retried step can
repeat its bookkeeping safely. Progress is merged field by field and
every write refreshes ``last_progress_at``.

Staleness is a read-time projection: an active job whose last progress
(or creation, if it never reported any) is older than the timeout is
presented as failed, but its stored status is left alone.
"""

from datetime import datetime, timezone
from typing import Dict, FrozenSet, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ideagraph.core.config import settings
from ideagraph.core.exceptions import InvalidJobTransitionError, JobNotFoundError
from ideagraph.database.models import Job
from ideagraph.repositories.job_repository import JobRepository
from ideagraph.schemas.jobs import JobProgress, JobRead, JobStatus, JobType
from ideagraph.utils.logging import get_logger

LOGGER = get_logger(__name__)

ALLOWED_TRANSITIONS: Dict[JobStatus, FrozenSet[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.RUNNING, JobStatus.FAILED}),
    JobStatus.RUNNING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}

MAX_ERROR_LENGTH = 500


def stale_error_message(timeout_seconds: int) -> str:
    minutes = max(1, timeout_seconds // 60)
    return f"Job timed out — no progress for {minutes} minutes"


def error_message(error: BaseException) -> str:
    """Short, user-facing description of an exception."""
    message = str(error).strip() or type(error).__name__
    if len(message) > MAX_ERROR_LENGTH:
        message = message[: MAX_ERROR_LENGTH - 1] + "…"
    return message


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_stale(job: Job, now: datetime, timeout_seconds: int) -> bool:
    if not JobStatus(job.status).is_active:
        return False
    reference = job.last_progress_at or job.created_at
    if reference is None:
        return False
    return (_as_utc(now) - _as_utc(reference)).total_seconds() > timeout_seconds


def project_staleness(
    job: Job,
    now: Optional[datetime] = None,
    timeout_seconds: Optional[int] = None,
) -> JobRead:
    """Job as presented to callers, with the staleness rule applied."""
    now = now or datetime.now(timezone.utc)
    if timeout_seconds is None:
        timeout_seconds = settings.pipeline.stale_job_timeout_seconds

    read = JobRead.model_validate(job)
    if is_stale(job, now, timeout_seconds):
        return read.model_copy(
            update={"status": JobStatus.FAILED, "error": stale_error_message(timeout_seconds)}
        )
    return read


class JobService:
    """Creates jobs, applies transitions and serves projected reads."""

    def __init__(
        self,
        session: Optional[AsyncSession] = None,
        job_repository: Optional[JobRepository] = None,
        stale_timeout_seconds: Optional[int] = None,
    ):
        self.job_repository = job_repository or JobRepository(session)
        self.stale_timeout_seconds = (
            stale_timeout_seconds
            if stale_timeout_seconds is not None
            else settings.pipeline.stale_job_timeout_seconds
        )

    async def create_job(self, project_id: UUID, job_type: JobType) -> Job:
        job = await self.job_repository.create_job(project_id, job_type)
        LOGGER.info(
            f"Created {job_type.value} job",
            extra={"job_id": str(job.id), "project_id": str(project_id)}
        )
        return job

    async def _load(self, job_id: UUID) -> Job:
        job = await self.job_repository.get_by_id(job_id)
        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        return job

    async def get_job(self, job_id: UUID, now: Optional[datetime] = None) -> JobRead:
        job = await self._load(job_id)
        return project_staleness(job, now, self.stale_timeout_seconds)

    async def get_latest_by_type(
        self,
        project_id: UUID,
        job_type: JobType,
        statuses: Optional[Sequence[JobStatus]] = None,
        now: Optional[datetime] = None,
    ) -> Optional[JobRead]:
        """Most recent job of a type for a project, optionally filtered by stored status."""
        job = await self.job_repository.get_latest_by_type(project_id, job_type, statuses)
        if job is None:
            return None
        return project_staleness(job, now, self.stale_timeout_seconds)

    async def update_progress(self, job_id: UUID, progress: JobProgress) -> Job:
        """Merge-patch progress fields; only provided fields are overwritten."""
        await self._load(job_id)
        return await self.job_repository.patch(
            job_id, last_progress_at=datetime.now(timezone.utc), **progress.to_columns()
        )

    async def transition(
        self,
        job_id: UUID,
        status: JobStatus,
        progress: Optional[JobProgress] = None,
        error: Optional[str] = None,
    ) -> Job:
        job = await self._load(job_id)
        current = JobStatus(job.status)
        now = datetime.now(timezone.utc)

        columns = progress.to_columns() if progress else {}
        columns["last_progress_at"] = now

        if current != status:
            if status not in ALLOWED_TRANSITIONS[current]:
                raise InvalidJobTransitionError(
                    f"Cannot move job {job_id} from {current.value} to {status.value}"
                )
            columns["status"] = status.value
            if status in (JobStatus.COMPLETED, JobStatus.FAILED):
                columns["completed_at"] = now
            if error is not None:
                columns["error"] = error
        elif not current.is_active:
            LOGGER.debug(
                "Job already in terminal state",
                extra={"job_id": str(job_id), "status": current.value}
            )
            return job

        LOGGER.info(
            f"Job {job_id} -> {status.value}",
            extra={"job_id": str(job_id), "from_status": current.value, "to_status": status.value}
        )
        return await self.job_repository.patch(job_id, **columns)

    async def mark_running(self, job_id: UUID, progress: Optional[JobProgress] = None) -> Job:
        return await self.transition(job_id, JobStatus.RUNNING, progress)

    async def mark_completed(self, job_id: UUID, progress: Optional[JobProgress] = None) -> Job:
        return await self.transition(job_id, JobStatus.COMPLETED, progress)

    async def mark_failed(self, job_id: UUID, error: str) -> Job:
        return await self.transition(job_id, JobStatus.FAILED, error=error)

    def tracker(self, job_id: UUID) -> "JobTracker":
        return JobTracker(self, job_id)


class JobTracker:
    """Progress handle for one job, passed down the orchestration call chain.

    All writes go through the owning ``JobService`` so the merge rules and
    transition checks are applied in one place.
    """

    def __init__(self, service: JobService, job_id: UUID):
        self.service = service
        self.job_id = job_id

    async def start(self, **fields) -> Job:
        return await self.service.mark_running(self.job_id, JobProgress(**fields))

    async def update(self, **fields) -> Job:
        return await self.service.update_progress(self.job_id, JobProgress(**fields))

    async def complete(self, **fields) -> Job:
        return await self.service.mark_completed(self.job_id, JobProgress(**fields))

    async def fail(self, error: BaseException) -> Job:
        message = error_message(error)
        LOGGER.error(
            f"Job {self.job_id} failed: {message}",
            extra={"job_id": str(self.job_id), "error_type": type(error).__name__}
        )
        return await self.service.mark_failed(self.job_id, message)
