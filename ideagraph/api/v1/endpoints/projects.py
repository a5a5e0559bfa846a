from typing import Annotated, List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ideagraph.core.database import get_async_session as get_session
from ideagraph.core.exceptions import DocumentNotFoundError, PipelineError, ProjectNotFoundError
from ideagraph.schemas.graph import ProjectGraph
from ideagraph.schemas.jobs import (
    ExtractionRequest,
    JobRead,
    JobStartedResponse,
    JobStatus,
    JobType,
)
from ideagraph.services.graph_service import GraphService
from ideagraph.services.jobs.job_service import JobService
from ideagraph.services.pipeline_service import PipelineService
from ideagraph.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()


async def get_pipeline_service(
    db_session: Annotated[AsyncSession, Depends(get_session)]
) -> PipelineService:
    return PipelineService(db_session)


async def get_job_service(
    db_session: Annotated[AsyncSession, Depends(get_session)]
) -> JobService:
    return JobService(db_session)


async def get_graph_service(
    db_session: Annotated[AsyncSession, Depends(get_session)]
) -> GraphService:
    return GraphService(db_session)


def _to_http_error(error: Exception) -> HTTPException:
    if isinstance(error, (ProjectNotFoundError, DocumentNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    LOGGER.error(f"Could not start job: {error}")
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(error))


@router.post(
    "/{project_id}/extract",
    response_model=JobStartedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Extract ideas from documents",
    operation_id="start_extraction",
)
async def start_extraction(
    project_id: UUID,
    pipeline: Annotated[PipelineService, Depends(get_pipeline_service)],
    payload: Annotated[Optional[ExtractionRequest], Body()] = None,
) -> JobStartedResponse:
    try:
        return await pipeline.start_extraction(
            project_id, payload.document_ids if payload else None
        )
    except (ProjectNotFoundError, DocumentNotFoundError, PipelineError) as e:
        raise _to_http_error(e)


@router.post(
    "/{project_id}/link",
    response_model=JobStartedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Rebuild relationships between ideas",
    operation_id="start_linking",
)
async def start_linking(
    project_id: UUID,
    pipeline: Annotated[PipelineService, Depends(get_pipeline_service)],
) -> JobStartedResponse:
    try:
        return await pipeline.start_linking(project_id)
    except (ProjectNotFoundError, PipelineError) as e:
        raise _to_http_error(e)


@router.post(
    "/{project_id}/backfill-locators",
    response_model=JobStartedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Locate evidence excerpts that have no locator",
    operation_id="start_locator_backfill",
)
async def start_locator_backfill(
    project_id: UUID,
    pipeline: Annotated[PipelineService, Depends(get_pipeline_service)],
) -> JobStartedResponse:
    try:
        return await pipeline.start_locator_backfill(project_id)
    except (ProjectNotFoundError, PipelineError) as e:
        raise _to_http_error(e)


@router.get(
    "/{project_id}/jobs/latest",
    response_model=Optional[JobRead],
    summary="Latest job of a type",
    operation_id="get_latest_job",
)
async def get_latest_job(
    project_id: UUID,
    job_service: Annotated[JobService, Depends(get_job_service)],
    type: JobType = Query(..., description="Job type"),
    job_status: Optional[List[JobStatus]] = Query(None, alias="status"),
) -> Optional[JobRead]:
    """Most recent job of ``type``, optionally restricted to stored statuses."""
    return await job_service.get_latest_by_type(project_id, type, job_status)


@router.get(
    "/{project_id}/graph",
    response_model=ProjectGraph,
    summary="Idea graph of a project",
    operation_id="get_project_graph",
)
async def get_project_graph(
    project_id: UUID,
    graph_service: Annotated[GraphService, Depends(get_graph_service)],
) -> ProjectGraph:
    return await graph_service.get_graph(project_id)
