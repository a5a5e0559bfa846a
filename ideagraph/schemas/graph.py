"""Project graph read models."""

from typing import List, Optional

from pydantic import BaseModel

from ideagraph.schemas.locator import Locator


class EvidenceSource(BaseModel):
    document_id: str
    filename: str
    excerpt: str
    locator: Optional[Locator] = None


class GraphNode(BaseModel):
    id: str
    label: str
    summary: str
    tags: List[str]
    confidence: Optional[float] = None
    sources: List[EvidenceSource]
    document_id: Optional[str] = None


class GraphEdge(BaseModel):
    id: str
    source: str
    target: str
    type: str
    confidence: float
    reasoning: Optional[str] = None
    evidence: List[EvidenceSource]


class ProjectGraph(BaseModel):
    nodes: List[GraphNode]
    edges: List[GraphEdge]
