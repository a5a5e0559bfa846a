"""Creates jobs and hands them to Temporal."""

from typing import Awaitable, Callable, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from temporalio.client import Client as TemporalClient

from ideagraph.core.config import settings
from ideagraph.core.exceptions import DocumentNotFoundError, PipelineError, ProjectNotFoundError
from ideagraph.core.temporal_client import get_temporal_client
from ideagraph.repositories.document_repository import DocumentRepository, ProjectRepository
from ideagraph.schemas.jobs import JobStartedResponse, JobStatus, JobType
from ideagraph.services.jobs.job_service import JobService, error_message
from ideagraph.temporal.workflows.evidence import BackfillLocatorsWorkflow
from ideagraph.temporal.workflows.extraction import ExtractIdeasWorkflow
from ideagraph.temporal.workflows.linking import LinkIdeasWorkflow
from ideagraph.utils.logging import get_logger

LOGGER = get_logger(__name__)

_WORKFLOWS = {
    JobType.EXTRACTION: ExtractIdeasWorkflow,
    JobType.LINKING: LinkIdeasWorkflow,
    JobType.LOCATOR_BACKFILL: BackfillLocatorsWorkflow,
}


class PipelineService:
    """Entry point for starting extraction, linking and backfill jobs."""

    def __init__(
        self,
        session: Optional[AsyncSession] = None,
        job_service: Optional[JobService] = None,
        project_repository: Optional[ProjectRepository] = None,
        document_repository: Optional[DocumentRepository] = None,
        temporal_client_factory: Callable[[], Awaitable[TemporalClient]] = get_temporal_client,
    ):
        self.job_service = job_service or JobService(session)
        self.project_repository = project_repository or ProjectRepository(session)
        self.document_repository = document_repository or DocumentRepository(session)
        self.temporal_client_factory = temporal_client_factory

    async def _require_project(self, project_id: UUID) -> None:
        if await self.project_repository.get_by_id(project_id) is None:
            raise ProjectNotFoundError(f"Project {project_id} not found")

    async def _resolve_documents(
        self, project_id: UUID, document_ids: Optional[Sequence[UUID]]
    ) -> List[UUID]:
        documents = await self.document_repository.list_by_project(project_id)
        if not document_ids:
            return [document.id for document in documents]

        known = {document.id for document in documents}
        missing = [str(doc_id) for doc_id in document_ids if doc_id not in known]
        if missing:
            raise DocumentNotFoundError(
                f"Documents not found in project {project_id}: {', '.join(missing)}"
            )
        return list(document_ids)

    async def _start(self, project_id: UUID, job_type: JobType, payload: Dict) -> JobStartedResponse:
        job = await self.job_service.create_job(project_id, job_type)
        workflow_id = f"{job_type.value}-{job.id}"

        try:
            client = await self.temporal_client_factory()
            await client.start_workflow(
                _WORKFLOWS[job_type].run,
                {"job_id": str(job.id), "project_id": str(project_id), **payload},
                id=workflow_id,
                task_queue=settings.temporal_task_queue,
            )
        except Exception as e:
            LOGGER.error(
                f"Failed to start {job_type.value} workflow: {e}",
                exc_info=True,
                extra={"job_id": str(job.id)}
            )
            await self.job_service.mark_failed(job.id, f"Could not schedule job: {error_message(e)}")
            raise PipelineError(f"Could not schedule {job_type.value} job", original_error=e)

        LOGGER.info(
            f"Started {job_type.value} workflow",
            extra={"job_id": str(job.id), "workflow_id": workflow_id}
        )
        return JobStartedResponse(job_id=job.id, workflow_id=workflow_id, status=JobStatus.PENDING)

    async def start_extraction(
        self, project_id: UUID, document_ids: Optional[Sequence[UUID]] = None
    ) -> JobStartedResponse:
        """Extract the given documents, or every document of the project."""
        await self._require_project(project_id)
        ids = await self._resolve_documents(project_id, document_ids)
        return await self._start(
            project_id, JobType.EXTRACTION, {"document_ids": [str(doc_id) for doc_id in ids]}
        )

    async def start_linking(self, project_id: UUID) -> JobStartedResponse:
        await self._require_project(project_id)
        return await self._start(project_id, JobType.LINKING, {})

    async def start_locator_backfill(self, project_id: UUID) -> JobStartedResponse:
        await self._require_project(project_id)
        return await self._start(project_id, JobType.LOCATOR_BACKFILL, {})
