from ideagraph.database.models import (
    CandidatePair,
    Document,
    Edge,
    EvidenceRef,
    IdeaNode,
    Job,
    Project,
)

__all__ = [
    "CandidatePair",
    "Document",
    "Edge",
    "EvidenceRef",
    "IdeaNode",
    "Job",
    "Project",
]
