"""Extraction activities: one per suspension point of an extraction job."""

from typing import Dict
from uuid import UUID

from temporalio import activity

from ideagraph.core.database import async_session_maker
from ideagraph.services.extraction.extraction_orchestrator import ExtractionOrchestrator
from ideagraph.temporal.core.activity_registry import ActivityRegistry


@ActivityRegistry.register("extraction", "start_extraction")
@activity.defn
async def start_extraction(job_id: str, document_count: int) -> Dict:
    async with async_session_maker() as session:
        result = await ExtractionOrchestrator(session).start(UUID(job_id), document_count)
    return result.model_dump()


@ActivityRegistry.register("extraction", "extract_document")
@activity.defn
async def extract_document(
    job_id: str,
    project_id: str,
    document_id: str,
    index: int,
    total: int,
    ideas_so_far: int,
) -> Dict:
    """Extract one document and persist its ideas."""
    activity.logger.info(
        f"Extracting document {index + 1}/{total}",
        extra={"job_id": job_id, "document_id": document_id}
    )
    activity.heartbeat(f"document {index + 1} of {total}")

    async with async_session_maker() as session:
        result = await ExtractionOrchestrator(session).extract_document(
            UUID(job_id), UUID(project_id), UUID(document_id), index, total, ideas_so_far
        )
    return result.model_dump()


@ActivityRegistry.register("extraction", "finish_extraction")
@activity.defn
async def finish_extraction(job_id: str, document_count: int, ideas_extracted: int) -> Dict:
    async with async_session_maker() as session:
        result = await ExtractionOrchestrator(session).finish(
            UUID(job_id), document_count, ideas_extracted
        )
    return result.model_dump()
