from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ideagraph.repositories.base_repository import BaseRepository
from ideagraph.database.models import Edge, EvidenceRef
from ideagraph.utils.logging import get_logger

LOGGER = get_logger(__name__)


class EdgeRepository(BaseRepository[Edge]):
    """Repository for typed relationships between idea nodes."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Edge)

    async def create_edge(
        self,
        project_id: UUID,
        source_node_id: UUID,
        target_node_id: UUID,
        type: str,
        confidence: float,
        reasoning: Optional[str] = None,
    ) -> Edge:
        return await self.create(
            project_id=project_id,
            source_node_id=source_node_id,
            target_node_id=target_node_id,
            type=type,
            confidence=confidence,
            reasoning=reasoning,
        )

    async def list_by_project(self, project_id: UUID) -> List[Edge]:
        return await self.list_where({"project_id": project_id}, order_by=Edge.created_at)

    async def clear_for_project(self, project_id: UUID) -> int:
        """Delete every edge of a project and the evidence attached to them.

        Returns:
            Number of edges removed
        """
        edge_ids = select(Edge.id).where(Edge.project_id == project_id)
        await self.session.execute(
            EvidenceRef.__table__.delete().where(EvidenceRef.edge_id.in_(edge_ids))
        )
        removed = await self.delete_where(Edge.project_id == project_id)
        LOGGER.info(
            f"Cleared {removed} edges",
            extra={"project_id": str(project_id), "edges_removed": removed}
        )
        return removed
