"""Read model of a project's idea graph."""

from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ideagraph.database.models import EvidenceRef
from ideagraph.repositories.document_repository import DocumentRepository
from ideagraph.repositories.edge_repository import EdgeRepository
from ideagraph.repositories.evidence_repository import EvidenceRefRepository
from ideagraph.repositories.idea_node_repository import IdeaNodeRepository
from ideagraph.schemas.graph import EvidenceSource, GraphEdge, GraphNode, ProjectGraph
from ideagraph.schemas.locator import Locator


class GraphService:
    """Assembles nodes and edges with their evidence for display."""

    def __init__(
        self,
        session: Optional[AsyncSession] = None,
        document_repository: Optional[DocumentRepository] = None,
        node_repository: Optional[IdeaNodeRepository] = None,
        edge_repository: Optional[EdgeRepository] = None,
        evidence_repository: Optional[EvidenceRefRepository] = None,
    ):
        self.document_repository = document_repository or DocumentRepository(session)
        self.node_repository = node_repository or IdeaNodeRepository(session)
        self.edge_repository = edge_repository or EdgeRepository(session)
        self.evidence_repository = evidence_repository or EvidenceRefRepository(session)

    def _sources(self, refs: List[EvidenceRef], filenames: Dict[UUID, str]) -> List[EvidenceSource]:
        return [
            EvidenceSource(
                document_id=str(ref.document_id),
                filename=filenames.get(ref.document_id, "Unknown"),
                excerpt=ref.excerpt,
                locator=Locator.from_json(ref.locator),
            )
            for ref in refs
        ]

    async def get_graph(self, project_id: UUID) -> ProjectGraph:
        documents = await self.document_repository.list_by_project(project_id)
        filenames = {document.id: document.filename for document in documents}

        nodes = []
        for node in await self.node_repository.list_by_project(project_id):
            refs = await self.evidence_repository.list_by_node(node.id)
            nodes.append(GraphNode(
                id=str(node.id),
                label=node.label,
                summary=node.summary,
                tags=list(node.tags or []),
                confidence=node.confidence,
                sources=self._sources(refs, filenames),
                document_id=str(refs[0].document_id) if refs else None,
            ))

        edges = []
        for edge in await self.edge_repository.list_by_project(project_id):
            refs = await self.evidence_repository.list_by_edge(edge.id)
            edges.append(GraphEdge(
                id=str(edge.id),
                source=str(edge.source_node_id),
                target=str(edge.target_node_id),
                type=edge.type,
                confidence=edge.confidence,
                reasoning=edge.reasoning,
                evidence=self._sources(refs, filenames),
            ))

        return ProjectGraph(nodes=nodes, edges=edges)
