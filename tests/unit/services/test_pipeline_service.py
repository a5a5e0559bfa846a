from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from ideagraph.core.exceptions import DocumentNotFoundError, PipelineError, ProjectNotFoundError
from ideagraph.schemas.jobs import JobStatus, JobType
from ideagraph.services.pipeline_service import PipelineService
from ideagraph.temporal.workflows.evidence import BackfillLocatorsWorkflow
from ideagraph.temporal.workflows.extraction import ExtractIdeasWorkflow
from ideagraph.temporal.workflows.linking import LinkIdeasWorkflow


@pytest.fixture
def documents(project_id, document_factory):
    return [document_factory(project_id, filename=f"{n}.pdf") for n in range(3)]


@pytest.fixture
def temporal_client():
    client = Mock()
    client.start_workflow = AsyncMock()
    return client


@pytest.fixture
def service(job_service, documents, temporal_client):
    project_repository = AsyncMock()
    project_repository.get_by_id.return_value = Mock()

    document_repository = AsyncMock()
    document_repository.list_by_project.return_value = documents

    return PipelineService(
        job_service=job_service,
        project_repository=project_repository,
        document_repository=document_repository,
        temporal_client_factory=AsyncMock(return_value=temporal_client),
    )


@pytest.mark.asyncio
async def test_start_extraction_for_all_documents(service, temporal_client, job_repository, project_id, documents):
    response = await service.start_extraction(project_id)

    job = job_repository.jobs[response.job_id]
    assert job.type == JobType.EXTRACTION.value
    assert job.status == JobStatus.PENDING.value
    assert response.workflow_id == f"extraction-{job.id}"

    args, kwargs = temporal_client.start_workflow.await_args
    assert args[0] == ExtractIdeasWorkflow.run
    assert args[1] == {
        "job_id": str(job.id),
        "project_id": str(project_id),
        "document_ids": [str(d.id) for d in documents],
    }
    assert kwargs["id"] == response.workflow_id


@pytest.mark.asyncio
async def test_start_extraction_keeps_requested_order(service, temporal_client, project_id, documents):
    requested = [documents[2].id, documents[0].id]

    await service.start_extraction(project_id, requested)

    payload = temporal_client.start_workflow.await_args.args[1]
    assert payload["document_ids"] == [str(documents[2].id), str(documents[0].id)]


@pytest.mark.asyncio
async def test_unknown_document_is_rejected(service, temporal_client, job_repository, project_id):
    with pytest.raises(DocumentNotFoundError):
        await service.start_extraction(project_id, [uuid4()])

    assert job_repository.jobs == {}
    temporal_client.start_workflow.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_project_is_rejected(service, project_id):
    service.project_repository.get_by_id.return_value = None

    with pytest.raises(ProjectNotFoundError):
        await service.start_linking(project_id)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method,workflow,job_type",
    [
        ("start_linking", LinkIdeasWorkflow, JobType.LINKING),
        ("start_locator_backfill", BackfillLocatorsWorkflow, JobType.LOCATOR_BACKFILL),
    ],
)
async def test_project_jobs(service, temporal_client, job_repository, project_id, method, workflow, job_type):
    response = await getattr(service, method)(project_id)

    job = job_repository.jobs[response.job_id]
    assert job.type == job_type.value
    assert temporal_client.start_workflow.await_args.args[0] == workflow.run
    assert temporal_client.start_workflow.await_args.args[1] == {
        "job_id": str(job.id),
        "project_id": str(project_id),
    }


@pytest.mark.asyncio
async def test_scheduling_failure_fails_job(service, temporal_client, job_repository, project_id):
    temporal_client.start_workflow.side_effect = RuntimeError("temporal unreachable")

    with pytest.raises(PipelineError):
        await service.start_linking(project_id)

    (job,) = job_repository.jobs.values()
    assert job.status == JobStatus.FAILED.value
    assert job.error == "Could not schedule job: temporal unreachable"
