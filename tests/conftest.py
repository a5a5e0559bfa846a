"""Pytest configuration and shared fixtures."""

import os

os.environ.setdefault("LLM_API_KEY", "test-key")
os.environ.setdefault("STORAGE_BACKEND", "local")

from datetime import datetime, timezone
from typing import Dict, Optional, Sequence
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from ideagraph.database.models import Document, EvidenceRef, IdeaNode, Job
from ideagraph.main import app
from ideagraph.schemas.jobs import JobStatus, JobType
from ideagraph.services.evidence.locator import PageText, TextRun
from ideagraph.services.jobs.job_service import JobService


class InMemoryJobRepository:
    """Job storage with the same surface as JobRepository."""

    def __init__(self):
        self.jobs: Dict[UUID, Job] = {}

    async def create_job(self, project_id: UUID, job_type: JobType) -> Job:
        job = make_job(project_id=project_id, job_type=job_type)
        self.jobs[job.id] = job
        return job

    def add(self, job: Job) -> Job:
        self.jobs[job.id] = job
        return job

    async def get_by_id(self, id: UUID) -> Optional[Job]:
        return self.jobs.get(id)

    async def patch(self, id: UUID, **fields) -> Optional[Job]:
        job = self.jobs.get(id)
        if job is None:
            return None
        for key, value in fields.items():
            setattr(job, key, value)
        return job

    async def get_latest_by_type(
        self,
        project_id: UUID,
        job_type: JobType,
        statuses: Optional[Sequence[JobStatus]] = None,
    ) -> Optional[Job]:
        wanted = {s.value for s in statuses} if statuses else None
        matches = [
            job for job in self.jobs.values()
            if job.project_id == project_id
            and job.type == job_type.value
            and (wanted is None or job.status in wanted)
        ]
        if not matches:
            return None
        return max(matches, key=lambda job: job.created_at)


def make_job(
    project_id: Optional[UUID] = None,
    job_type: JobType = JobType.EXTRACTION,
    status: JobStatus = JobStatus.PENDING,
    created_at: Optional[datetime] = None,
    last_progress_at: Optional[datetime] = None,
) -> Job:
    return Job(
        id=uuid4(),
        project_id=project_id or uuid4(),
        type=job_type.value,
        status=status.value,
        created_at=created_at or datetime.now(timezone.utc),
        last_progress_at=last_progress_at,
    )


def make_document(
    project_id: UUID,
    filename: str = "paper.pdf",
    source_handle: Optional[str] = "project/paper.pdf",
) -> Document:
    return Document(
        id=uuid4(),
        project_id=project_id,
        filename=filename,
        source_handle=source_handle,
        status="uploaded",
        size_bytes=1024,
        created_at=datetime.now(timezone.utc),
    )


def make_node(project_id: UUID, label: str, summary: str = "A summary.") -> IdeaNode:
    return IdeaNode(
        id=uuid4(),
        project_id=project_id,
        label=label,
        summary=summary,
        tags=["tag"],
        confidence=0.9,
        created_at=datetime.now(timezone.utc),
    )


def make_evidence(
    document_id: UUID,
    excerpt: str,
    node_id: Optional[UUID] = None,
    locator: Optional[str] = None,
) -> EvidenceRef:
    return EvidenceRef(
        id=uuid4(),
        node_id=node_id,
        document_id=document_id,
        excerpt=excerpt,
        locator=locator,
        created_at=datetime.now(timezone.utc),
    )


def words_to_runs(text: str, y: float = 700.0, size: float = 12.0) -> list:
    """One run per word laid out left to right on a single baseline."""
    runs = []
    x = 72.0
    for word in text.split():
        width = 6.0 * len(word)
        runs.append(TextRun(text=word, width=width, height=size, transform=(size, 0, 0, size, x, y)))
        x += width + 4.0
    return runs


@pytest.fixture
def test_client() -> TestClient:
    """Create FastAPI test client.

    Returns:
        TestClient: FastAPI test client instance
    """
    return TestClient(app)


@pytest.fixture(autouse=True)
def clear_dependency_overrides():
    """Ensure FastAPI dependency overrides are reset between tests."""
    app.dependency_overrides = {}
    yield
    app.dependency_overrides = {}


@pytest.fixture
def job_repository() -> InMemoryJobRepository:
    return InMemoryJobRepository()


@pytest.fixture
def job_service(job_repository) -> JobService:
    return JobService(job_repository=job_repository, stale_timeout_seconds=15 * 60)


@pytest.fixture
def project_id() -> UUID:
    return uuid4()


@pytest.fixture
def sample_page() -> PageText:
    """Single page with a short paragraph of word runs."""
    text = (
        "Attention mechanisms let a model weigh every input token when producing "
        "each output token, which removes the need for recurrence entirely."
    )
    return PageText(page_number=1, runs=words_to_runs(text), viewport_height=792.0)


@pytest.fixture
def job_factory():
    return make_job


@pytest.fixture
def document_factory():
    return make_document


@pytest.fixture
def node_factory():
    return make_node


@pytest.fixture
def evidence_factory():
    return make_evidence


@pytest.fixture
def runs_factory():
    return words_to_runs
