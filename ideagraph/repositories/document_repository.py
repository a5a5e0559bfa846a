from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ideagraph.repositories.base_repository import BaseRepository
from ideagraph.database.models import Document, Project
from ideagraph.schemas.extraction import DocumentStatus
from ideagraph.utils.logging import get_logger

LOGGER = get_logger(__name__)


class DocumentRepository(BaseRepository[Document]):
    """Repository for uploaded documents.

    Extraction is the only writer; linking never touches documents.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, Document)

    async def create_document(
        self,
        project_id: UUID,
        filename: str,
        source_handle: Optional[str] = None,
        size_bytes: int = 0,
    ) -> Document:
        return await self.create(
            project_id=project_id,
            filename=filename,
            source_handle=source_handle,
            size_bytes=size_bytes,
            status=DocumentStatus.UPLOADED.value,
        )

    async def list_by_project(self, project_id: UUID) -> List[Document]:
        return await self.list_where(
            {"project_id": project_id}, order_by=Document.created_at
        )

    async def update_status(self, document_id: UUID, status: DocumentStatus) -> bool:
        """Update document status.

        Returns:
            True if updated, False if not found
        """
        return await self.patch(document_id, status=status.value) is not None

    async def set_summary(self, document_id: UUID, summary: str) -> bool:
        return await self.patch(document_id, summary=summary) is not None


class ProjectRepository(BaseRepository[Project]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, Project)

    async def create_project(self, name: str) -> Project:
        return await self.create(name=name)
