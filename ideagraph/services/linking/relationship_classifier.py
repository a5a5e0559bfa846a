"""Batch relationship classification between candidate idea pairs."""

from dataclasses import dataclass
from typing import Any, Collection, List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from ideagraph.core.config import settings
from ideagraph.core.llm_client import OpenAICompatibleClient
from ideagraph.prompts.system_prompts import (
    RELATIONSHIP_CLASSIFICATION_PROMPT,
    RELATIONSHIP_CLASSIFICATION_USER_PROMPT,
    VALID_RELATIONSHIP_TYPES,
)
from ideagraph.schemas.linking import CLASSIFICATION_RESPONSE_SCHEMA, ClassifiedEdge
from ideagraph.utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class PairDescription:
    """What the model sees about one candidate pair."""

    source_id: str
    source_label: str
    source_summary: str
    target_id: str
    target_label: str
    target_summary: str
    similarity: float

    def render(self) -> str:
        return (
            f"- Pair: \"{self.source_label}\" (ID: {self.source_id}) ↔ "
            f"\"{self.target_label}\" (ID: {self.target_id})\n"
            f"  Source summary: {self.source_summary}\n"
            f"  Target summary: {self.target_summary}\n"
            f"  Cosine similarity: {self.similarity:.3f}"
        )


def parse_classified_edges(raw: Any) -> List[ClassifiedEdge]:
    """Validate model output item by item; malformed edges are dropped."""
    items = raw.get("edges") if isinstance(raw, dict) else raw
    if not isinstance(items, list):
        LOGGER.warning("Classification reply has no edge list")
        return []

    edges = []
    for item in items:
        try:
            edges.append(ClassifiedEdge.model_validate(item))
        except PydanticValidationError as e:
            LOGGER.debug(
                "Dropping malformed classified edge",
                extra={"item": str(item)[:200], "errors": e.error_count()}
            )
    return edges


def filter_edges(
    edges: Sequence[ClassifiedEdge],
    batch_node_ids: Collection[str],
    min_confidence: float,
) -> List[ClassifiedEdge]:
    """Keep edges whose endpoints both belong to the batch and meet the confidence floor."""
    return [
        edge
        for edge in edges
        if edge.source_id in batch_node_ids
        and edge.target_id in batch_node_ids
        and edge.confidence >= min_confidence
    ]


class RelationshipClassifier:
    """One classification call per batch of pair descriptions."""

    def __init__(
        self,
        client: Optional[OpenAICompatibleClient] = None,
        min_confidence: Optional[float] = None,
    ):
        self.client = client or OpenAICompatibleClient(model=settings.llm.classification_model)
        self.min_confidence = (
            settings.pipeline.min_edge_confidence if min_confidence is None else min_confidence
        )
        self.system_prompt = RELATIONSHIP_CLASSIFICATION_PROMPT.format(
            relationship_types=", ".join(f"\"{t}\"" for t in VALID_RELATIONSHIP_TYPES)
        )

    async def classify(self, pairs: Sequence[PairDescription]) -> List[ClassifiedEdge]:
        """Classify a batch; returns only edges that pass the batch and confidence filters."""
        if not pairs:
            return []

        description = "\n\n".join(pair.render() for pair in pairs)
        raw = await self.client.generate_json(
            system_instruction=self.system_prompt,
            parts=[RELATIONSHIP_CLASSIFICATION_USER_PROMPT.format(pairs=description)],
            json_schema=CLASSIFICATION_RESPONSE_SCHEMA,
            schema_name="classification_result",
        )

        edges = parse_classified_edges(raw)
        batch_node_ids = {pair.source_id for pair in pairs} | {pair.target_id for pair in pairs}

        kept = filter_edges(edges, batch_node_ids, self.min_confidence)
        LOGGER.info(
            f"Classified {len(pairs)} pairs",
            extra={"edges_returned": len(edges), "edges_kept": len(kept)}
        )
        return kept
