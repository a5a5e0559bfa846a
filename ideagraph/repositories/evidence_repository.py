from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ideagraph.repositories.base_repository import BaseRepository
from ideagraph.database.models import EvidenceRef, IdeaNode
from ideagraph.utils.logging import get_logger

LOGGER = get_logger(__name__)


class EvidenceRefRepository(BaseRepository[EvidenceRef]):
    """Repository for evidence excerpts attached to nodes or edges."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, EvidenceRef)

    async def create_for_node(
        self,
        node_id: UUID,
        document_id: UUID,
        excerpt: str,
        locator: Optional[str] = None,
    ) -> EvidenceRef:
        return await self.create(
            node_id=node_id, document_id=document_id, excerpt=excerpt, locator=locator
        )

    async def create_for_edge(
        self,
        edge_id: UUID,
        document_id: UUID,
        excerpt: str,
        locator: Optional[str] = None,
    ) -> EvidenceRef:
        return await self.create(
            edge_id=edge_id, document_id=document_id, excerpt=excerpt, locator=locator
        )

    async def list_by_node(self, node_id: UUID) -> List[EvidenceRef]:
        return await self.list_where({"node_id": node_id}, order_by=EvidenceRef.created_at)

    async def list_by_edge(self, edge_id: UUID) -> List[EvidenceRef]:
        return await self.list_where({"edge_id": edge_id}, order_by=EvidenceRef.created_at)

    async def list_missing_locators(self, project_id: UUID) -> List[EvidenceRef]:
        """Node evidence of a project that has no locator yet."""
        query = (
            select(EvidenceRef)
            .join(IdeaNode, EvidenceRef.node_id == IdeaNode.id)
            .where(IdeaNode.project_id == project_id)
            .where(EvidenceRef.locator.is_(None))
            .order_by(EvidenceRef.document_id, EvidenceRef.created_at)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def set_locator(self, ref_id: UUID, locator: str) -> bool:
        return await self.patch(ref_id, locator=locator) is not None
