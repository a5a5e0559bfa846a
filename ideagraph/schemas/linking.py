"""Schemas for relationship classification and linking checkpoints."""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class RelationshipType(str, Enum):
    """Closed set of relationship types between ideas."""

    SUPPORTS = "supports"
    CONTRADICTS = "contradicts"
    EXTENDS = "extends"
    SIMILAR = "similar"
    EXAMPLE_OF = "example_of"
    DEPENDS_ON = "depends_on"


class ClassifiedEdge(BaseModel):
    """One relationship returned by the classification model."""

    source_id: str = Field(..., alias="sourceId")
    target_id: str = Field(..., alias="targetId")
    type: RelationshipType
    confidence: float = Field(..., ge=0, le=1)
    evidence: str = ""
    reasoning: str = ""

    model_config = {"populate_by_name": True}


class LinkingBatchState(BaseModel):
    """Checkpoint handed from one linking step to the next.

    Everything a batch step needs beyond the persisted candidate pairs.
    """

    job_id: str
    project_id: str
    batch_index: int = Field(..., ge=0)
    total_batches: int = Field(..., ge=0)
    links_created: int = Field(0, ge=0)
    node_count: int = Field(0, ge=0)
    duplicates_removed: int = Field(0, ge=0)

    def advance(self, links_created: int) -> "LinkingBatchState":
        return self.model_copy(
            update={"batch_index": self.batch_index + 1, "links_created": links_created}
        )

    @property
    def is_last(self) -> bool:
        return self.batch_index + 1 >= self.total_batches


class BatchOutcome(BaseModel):
    """Result of one batch step: what the scheduler should run next, if anything."""

    status: str  # running | completed | failed
    links_created: int = 0
    next_state: Optional[LinkingBatchState] = None


CLASSIFICATION_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "required": ["edges"],
    "properties": {
        "edges": {
            "type": "array",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "required": ["sourceId", "targetId", "type", "confidence", "evidence", "reasoning"],
                "properties": {
                    "sourceId": {"type": "string"},
                    "targetId": {"type": "string"},
                    "type": {"type": "string", "enum": [t.value for t in RelationshipType]},
                    "confidence": {"type": "number"},
                    "evidence": {"type": "string"},
                    "reasoning": {"type": "string"},
                },
            },
        },
    },
}
