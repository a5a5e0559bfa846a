from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from ideagraph.api.v1.endpoints import jobs, projects
from ideagraph.core.exceptions import (
    DocumentNotFoundError,
    JobNotFoundError,
    PipelineError,
    ProjectNotFoundError,
)
from ideagraph.main import app
from ideagraph.schemas.graph import ProjectGraph
from ideagraph.schemas.jobs import JobRead, JobStartedResponse, JobStatus, JobType

API = "/api/v1"


def _job_read(job_id, project_id, status=JobStatus.RUNNING):
    return JobRead(
        id=job_id,
        project_id=project_id,
        type=JobType.EXTRACTION,
        status=status,
        progress_current=1,
        progress_total=3,
        progress_message="Reading \"a.pdf\"… (2 of 3)",
        created_at=datetime(2026, 3, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def job_service():
    service = Mock()
    service.get_job = AsyncMock()
    service.get_latest_by_type = AsyncMock()
    app.dependency_overrides[jobs.get_job_service] = lambda: service
    app.dependency_overrides[projects.get_job_service] = lambda: service
    return service


@pytest.fixture
def pipeline():
    service = Mock()
    service.start_extraction = AsyncMock()
    service.start_linking = AsyncMock()
    service.start_locator_backfill = AsyncMock()
    app.dependency_overrides[projects.get_pipeline_service] = lambda: service
    return service


class TestJobsEndpoint:

    def test_get_job(self, test_client, job_service):
        job_id, project_id = uuid4(), uuid4()
        job_service.get_job.return_value = _job_read(job_id, project_id)

        response = test_client.get(f"{API}/jobs/{job_id}")

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == str(job_id)
        assert body["status"] == "running"
        assert body["progress_total"] == 3

    def test_unknown_job_is_404(self, test_client, job_service):
        job_service.get_job.side_effect = JobNotFoundError("Job not found")

        response = test_client.get(f"{API}/jobs/{uuid4()}")

        assert response.status_code == 404

    def test_invalid_id_is_422(self, test_client, job_service):
        assert test_client.get(f"{API}/jobs/not-a-uuid").status_code == 422


class TestLatestJob:

    def test_latest_with_status_filter(self, test_client, job_service):
        project_id = uuid4()
        job_service.get_latest_by_type.return_value = _job_read(uuid4(), project_id, JobStatus.COMPLETED)

        response = test_client.get(
            f"{API}/projects/{project_id}/jobs/latest",
            params=[("type", "extraction"), ("status", "completed"), ("status", "failed")],
        )

        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        args = job_service.get_latest_by_type.await_args.args
        assert args[1] == JobType.EXTRACTION
        assert args[2] == [JobStatus.COMPLETED, JobStatus.FAILED]

    def test_no_job_returns_null(self, test_client, job_service):
        job_service.get_latest_by_type.return_value = None

        response = test_client.get(f"{API}/projects/{uuid4()}/jobs/latest", params={"type": "linking"})

        assert response.status_code == 200
        assert response.json() is None

    def test_type_is_required(self, test_client, job_service):
        assert test_client.get(f"{API}/projects/{uuid4()}/jobs/latest").status_code == 422


class TestStartJobs:

    def test_start_extraction_without_body(self, test_client, pipeline):
        project_id, job_id = uuid4(), uuid4()
        pipeline.start_extraction.return_value = JobStartedResponse(
            job_id=job_id, workflow_id=f"extraction-{job_id}"
        )

        response = test_client.post(f"{API}/projects/{project_id}/extract")

        assert response.status_code == 202
        assert response.json() == {
            "job_id": str(job_id),
            "workflow_id": f"extraction-{job_id}",
            "status": "pending",
        }
        pipeline.start_extraction.assert_awaited_once_with(project_id, None)

    def test_start_extraction_with_documents(self, test_client, pipeline):
        project_id, job_id, document_id = uuid4(), uuid4(), uuid4()
        pipeline.start_extraction.return_value = JobStartedResponse(
            job_id=job_id, workflow_id=f"extraction-{job_id}"
        )

        response = test_client.post(
            f"{API}/projects/{project_id}/extract",
            json={"document_ids": [str(document_id)]},
        )

        assert response.status_code == 202
        pipeline.start_extraction.assert_awaited_once_with(project_id, [document_id])

    def test_unknown_document_is_404(self, test_client, pipeline):
        pipeline.start_extraction.side_effect = DocumentNotFoundError("Documents not found")

        response = test_client.post(f"{API}/projects/{uuid4()}/extract")

        assert response.status_code == 404

    def test_start_linking(self, test_client, pipeline):
        job_id = uuid4()
        pipeline.start_linking.return_value = JobStartedResponse(job_id=job_id, workflow_id=f"linking-{job_id}")

        response = test_client.post(f"{API}/projects/{uuid4()}/link")

        assert response.status_code == 202
        assert response.json()["workflow_id"] == f"linking-{job_id}"

    def test_unknown_project_is_404(self, test_client, pipeline):
        pipeline.start_linking.side_effect = ProjectNotFoundError("Project not found")

        assert test_client.post(f"{API}/projects/{uuid4()}/link").status_code == 404

    def test_scheduler_unavailable_is_503(self, test_client, pipeline):
        pipeline.start_locator_backfill.side_effect = PipelineError("Could not schedule locator_backfill job")

        response = test_client.post(f"{API}/projects/{uuid4()}/backfill-locators")

        assert response.status_code == 503


def test_graph_endpoint(test_client):
    graph_service = Mock()
    graph_service.get_graph = AsyncMock(return_value=ProjectGraph(nodes=[], edges=[]))
    app.dependency_overrides[projects.get_graph_service] = lambda: graph_service

    response = test_client.get(f"{API}/projects/{uuid4()}/graph")

    assert response.status_code == 200
    assert response.json() == {"nodes": [], "edges": []}


def test_root(test_client):
    response = test_client.get("/")
    assert response.status_code == 200
    assert response.json()["message"] == "Server is running"
