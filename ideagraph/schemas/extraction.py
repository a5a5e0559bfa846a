"""Schemas for idea extraction results."""

from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, Field


class DocumentStatus(str, Enum):
    UPLOADED = "uploaded"
    EXTRACTING = "extracting"
    EXTRACTED = "extracted"


class ExtractedIdea(BaseModel):
    """One idea as returned by the extraction model."""

    label: str = Field(..., min_length=1, description="Concise title (5-10 words)")
    summary: str = Field(..., description="1-2 sentence explanation")
    tags: List[str] = Field(default_factory=list, description="2-5 topic tags")
    excerpts: List[str] = Field(default_factory=list, description="Direct quotes supporting the idea")
    confidence: float = Field(..., ge=0, le=1)


class ExtractionResult(BaseModel):
    """Structured output of the extraction model for one document."""

    document_summary: str = Field(..., alias="documentSummary")
    ideas: List[ExtractedIdea] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


EXTRACTION_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "required": ["documentSummary", "ideas"],
    "properties": {
        "documentSummary": {"type": "string"},
        "ideas": {
            "type": "array",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "required": ["label", "summary", "tags", "excerpts", "confidence"],
                "properties": {
                    "label": {"type": "string"},
                    "summary": {"type": "string"},
                    "tags": {"type": "array", "items": {"type": "string"}},
                    "excerpts": {"type": "array", "items": {"type": "string"}},
                    "confidence": {"type": "number"},
                },
            },
        },
    },
}


class ExtractionStepResult(BaseModel):
    """Outcome of one extraction step, handed to the next step by the scheduler."""

    status: str  # running | completed | failed
    ideas_extracted: int = 0
