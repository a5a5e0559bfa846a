"""Job state machine schemas."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class JobType(str, Enum):
    EXTRACTION = "extraction"
    LINKING = "linking"
    LOCATOR_BACKFILL = "locator_backfill"


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_active(self) -> bool:
        return self in (JobStatus.PENDING, JobStatus.RUNNING)


class JobProgress(BaseModel):
    """Partial progress update.

    Only the fields that are set are written; everything left as None keeps
    its stored value.
    """

    current: Optional[int] = Field(None, ge=0, description="Steps finished so far")
    total: Optional[int] = Field(None, ge=0, description="Total number of steps")
    message: Optional[str] = Field(None, description="Human-readable status line")
    ideas_extracted: Optional[int] = Field(None, ge=0)
    links_created: Optional[int] = Field(None, ge=0)
    locators_updated: Optional[int] = Field(None, ge=0)

    def to_columns(self) -> Dict[str, Any]:
        """Map the provided fields onto Job column names."""
        mapping = {
            "current": "progress_current",
            "total": "progress_total",
            "message": "progress_message",
            "ideas_extracted": "ideas_extracted",
            "links_created": "links_created",
            "locators_updated": "locators_updated",
        }
        return {
            mapping[key]: value
            for key, value in self.model_dump(exclude_none=True).items()
        }


class JobRead(BaseModel):
    """Job record as presented to callers (staleness projection applied)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    type: JobType
    status: JobStatus
    error: Optional[str] = None
    progress_current: Optional[int] = None
    progress_total: Optional[int] = None
    progress_message: Optional[str] = None
    ideas_extracted: Optional[int] = None
    links_created: Optional[int] = None
    locators_updated: Optional[int] = None
    created_at: datetime
    last_progress_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class JobStartedResponse(BaseModel):
    """Response returned when a job is queued."""

    job_id: UUID
    workflow_id: str
    status: JobStatus = JobStatus.PENDING


class ExtractionRequest(BaseModel):
    """Body of an extraction request; omit ``document_ids`` to extract every document."""

    document_ids: Optional[List[UUID]] = Field(None, description="Documents to extract, in order")
