from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ideagraph.core.database import get_async_session as get_session
from ideagraph.core.exceptions import JobNotFoundError
from ideagraph.schemas.jobs import JobRead
from ideagraph.services.jobs.job_service import JobService

router = APIRouter()


async def get_job_service(
    db_session: Annotated[AsyncSession, Depends(get_session)]
) -> JobService:
    return JobService(db_session)


@router.get(
    "/{job_id}",
    response_model=JobRead,
    summary="Get job status",
    operation_id="get_job",
)
async def get_job(
    job_id: UUID,
    job_service: Annotated[JobService, Depends(get_job_service)],
) -> JobRead:
    """Job record with the staleness rule applied."""
    try:
        return await job_service.get_job(job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
