"""Fill in missing locators on a project's node evidence."""

from collections import defaultdict
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ideagraph.database.models import Document, EvidenceRef
from ideagraph.repositories.document_repository import DocumentRepository
from ideagraph.repositories.evidence_repository import EvidenceRefRepository
from ideagraph.schemas.jobs import JobStatus
from ideagraph.schemas.locator import LocatorBackfillResult
from ideagraph.services.evidence.locator import locate_in_pages
from ideagraph.services.evidence.pdf_text_service import PdfTextService, readable_pages
from ideagraph.services.jobs.job_service import JobService
from ideagraph.services.progress_messages import format_job_message
from ideagraph.services.storage_service import StorageService
from ideagraph.utils.logging import get_logger

LOGGER = get_logger(__name__)


class LocatorBackfillService:
    """Locates every node excerpt that has no locator yet.

    Each source file is fetched at most once per run even when several
    documents share it. A file that cannot be fetched aborts the run with a
    ``SourceFileError``; locators written before that point are kept. A file
    that fetches but fails to parse only loses the pages from the bad one on.
    """

    def __init__(
        self,
        session: Optional[AsyncSession] = None,
        job_service: Optional[JobService] = None,
        document_repository: Optional[DocumentRepository] = None,
        evidence_repository: Optional[EvidenceRefRepository] = None,
        storage: Optional[StorageService] = None,
        pdf_text_service: Optional[PdfTextService] = None,
    ):
        self.job_service = job_service or JobService(session)
        self.document_repository = document_repository or DocumentRepository(session)
        self.evidence_repository = evidence_repository or EvidenceRefRepository(session)
        self.storage = storage or StorageService()
        self.pdf_text_service = pdf_text_service or PdfTextService()

    async def _pending_work(self, project_id: UUID) -> List[tuple]:
        documents = await self.document_repository.list_by_project(project_id)
        refs = await self.evidence_repository.list_missing_locators(project_id)

        by_document: Dict[UUID, List[EvidenceRef]] = defaultdict(list)
        for ref in refs:
            by_document[ref.document_id].append(ref)

        return [
            (document, by_document[document.id])
            for document in documents
            if document.source_handle and by_document.get(document.id)
        ]

    async def backfill(self, project_id: UUID, job_id: Optional[UUID] = None) -> int:
        """Locate missing excerpts; returns the number of evidence refs updated."""
        tracker = self.job_service.tracker(job_id) if job_id else None
        work = await self._pending_work(project_id)

        if tracker:
            await tracker.update(
                current=0,
                total=len(work),
                locators_updated=0,
                message=format_job_message(
                    "locator_backfill", "started", {"document_count": len(work)}
                ),
            )

        cache: Dict[str, bytes] = {}
        updated = 0
        for index, (document, missing) in enumerate(work):
            if tracker:
                await tracker.update(message=format_job_message(
                    "locator_backfill", "document", {"filename": document.filename}
                ))

            updated += await self._backfill_document(document, missing, cache)

            if tracker:
                await tracker.update(current=index + 1, locators_updated=updated)

        LOGGER.info(
            f"Backfilled {updated} locators",
            extra={"project_id": str(project_id), "documents": len(work), "files_fetched": len(cache)}
        )
        return updated

    async def _backfill_document(
        self, document: Document, missing: List[EvidenceRef], cache: Dict[str, bytes]
    ) -> int:
        pdf_bytes = cache.get(document.source_handle)
        if pdf_bytes is None:
            pdf_bytes = await self.storage.fetch(document.source_handle)
            cache[document.source_handle] = pdf_bytes

        locators = locate_in_pages(
            [ref.excerpt for ref in missing],
            readable_pages(self.pdf_text_service.iter_pages(pdf_bytes), document.filename),
        )

        updated = 0
        for ref in missing:
            locator = locators.get(ref.excerpt)
            if locator is None:
                continue
            await self.evidence_repository.set_locator(ref.id, locator.to_json())
            updated += 1

        LOGGER.debug(
            f"Located {updated}/{len(missing)} excerpts in {document.filename}",
            extra={"document_id": str(document.id)}
        )
        return updated

    async def run(self, job_id: UUID, project_id: UUID) -> LocatorBackfillResult:
        """Backfill under a locator_backfill job."""
        tracker = self.job_service.tracker(job_id)
        try:
            await tracker.start()
            updated = await self.backfill(project_id, job_id=job_id)
            await tracker.complete(
                locators_updated=updated,
                message=format_job_message(
                    "locator_backfill", "completed", {"updated_count": updated}
                ),
            )
        except Exception as e:
            LOGGER.error(
                f"Locator backfill failed: {e}",
                exc_info=True,
                extra={"job_id": str(job_id), "project_id": str(project_id)}
            )
            await tracker.fail(e)
            return LocatorBackfillResult(status=JobStatus.FAILED.value)
        return LocatorBackfillResult(status=JobStatus.COMPLETED.value, locators_updated=updated)
