"""Extraction orchestration: documents in, idea nodes and evidence out.

A run is split into ``start``, one ``extract_document`` step per document
and ``finish``. Each step persists everything it produces before
returning, so the scheduler can suspend between documents. ``run`` drives
the same steps in-process.
"""

from typing import Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ideagraph.core.config import settings
from ideagraph.core.exceptions import DocumentNotFoundError
from ideagraph.database.models import Document
from ideagraph.repositories.document_repository import DocumentRepository
from ideagraph.repositories.evidence_repository import EvidenceRefRepository
from ideagraph.repositories.idea_node_repository import IdeaNodeRepository
from ideagraph.schemas.extraction import DocumentStatus, ExtractedIdea, ExtractionStepResult
from ideagraph.schemas.jobs import JobStatus
from ideagraph.schemas.locator import Locator
from ideagraph.services.evidence.locator import locate_in_pages
from ideagraph.services.evidence.pdf_text_service import PdfTextService, readable_pages
from ideagraph.services.extraction.excerpt_rules import clean_excerpts
from ideagraph.services.extraction.idea_extractor import IdeaExtractor
from ideagraph.services.jobs.job_service import JobService
from ideagraph.services.progress_messages import format_job_message
from ideagraph.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ExtractionOrchestrator:
    """Runs extraction jobs and keeps document and job status in step."""

    def __init__(
        self,
        session: Optional[AsyncSession] = None,
        job_service: Optional[JobService] = None,
        document_repository: Optional[DocumentRepository] = None,
        node_repository: Optional[IdeaNodeRepository] = None,
        evidence_repository: Optional[EvidenceRefRepository] = None,
        extractor: Optional[IdeaExtractor] = None,
        pdf_text_service: Optional[PdfTextService] = None,
        locate_inline: Optional[bool] = None,
    ):
        self.job_service = job_service or JobService(session)
        self.document_repository = document_repository or DocumentRepository(session)
        self.node_repository = node_repository or IdeaNodeRepository(session)
        self.evidence_repository = evidence_repository or EvidenceRefRepository(session)
        self._extractor = extractor
        self.pdf_text_service = pdf_text_service or PdfTextService()
        self.locate_inline = (
            settings.pipeline.locate_evidence_inline if locate_inline is None else locate_inline
        )

    @property
    def extractor(self) -> IdeaExtractor:
        if self._extractor is None:
            self._extractor = IdeaExtractor()
        return self._extractor

    async def start(self, job_id: UUID, document_count: int) -> ExtractionStepResult:
        """Mark the job running and initialize its progress."""
        await self.job_service.tracker(job_id).start(
            current=0,
            total=document_count,
            ideas_extracted=0,
            message=format_job_message("extraction", "preparing", {"document_count": document_count}),
        )
        return ExtractionStepResult(status=JobStatus.RUNNING.value)

    async def extract_document(
        self,
        job_id: UUID,
        project_id: UUID,
        document_id: UUID,
        index: int,
        total: int,
        ideas_so_far: int = 0,
    ) -> ExtractionStepResult:
        """Extract one document; on any error the job is failed and the run halts."""
        tracker = self.job_service.tracker(job_id)
        try:
            ideas_extracted = await self._extract_document(
                job_id, project_id, document_id, index, total, ideas_so_far
            )
        except Exception as e:
            LOGGER.error(
                f"Extraction failed on document {document_id}: {e}",
                exc_info=True,
                extra={"job_id": str(job_id), "document_id": str(document_id)}
            )
            await tracker.fail(e)
            return ExtractionStepResult(status=JobStatus.FAILED.value, ideas_extracted=ideas_so_far)
        return ExtractionStepResult(status=JobStatus.RUNNING.value, ideas_extracted=ideas_extracted)

    async def _extract_document(
        self,
        job_id: UUID,
        project_id: UUID,
        document_id: UUID,
        index: int,
        total: int,
        ideas_so_far: int,
    ) -> int:
        tracker = self.job_service.tracker(job_id)

        document = await self.document_repository.get_by_id(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")

        await self.document_repository.update_status(document_id, DocumentStatus.EXTRACTING)

        if not document.source_handle:
            LOGGER.info(
                f"Document {document.filename} has no source file, skipping",
                extra={"document_id": str(document_id)}
            )
            await self.document_repository.update_status(document_id, DocumentStatus.EXTRACTED)
            return ideas_so_far

        await tracker.update(
            current=index,
            message=format_job_message(
                "extraction", "reading",
                {"filename": document.filename, "index": index + 1, "total": total},
            ),
        )

        extraction = await self.extractor.extract(document)
        ideas = extraction.result.ideas
        ideas_total = ideas_so_far + len(ideas)

        await tracker.update(
            ideas_extracted=ideas_total,
            message=format_job_message(
                "extraction", "saving",
                {"idea_count": len(ideas), "filename": document.filename},
            ),
        )

        await self.document_repository.set_summary(document_id, extraction.result.document_summary)
        await self.save_ideas(project_id, document, ideas, extraction.pdf_bytes)

        await self.document_repository.update_status(document_id, DocumentStatus.EXTRACTED)

        step = "document_done" if index + 1 < total else "all_done"
        await tracker.update(
            current=index + 1,
            message=format_job_message("extraction", step, {"filename": document.filename}),
        )
        return ideas_total

    async def save_ideas(
        self,
        project_id: UUID,
        document: Document,
        ideas: Sequence[ExtractedIdea],
        pdf_bytes: Optional[bytes] = None,
    ) -> int:
        """Persist one node per idea plus its cleaned excerpts.

        Returns:
            Number of evidence refs written
        """
        cleaned: List[List[str]] = [clean_excerpts(idea.excerpts) for idea in ideas]
        locators = self._locate(document, [e for excerpts in cleaned for e in excerpts], pdf_bytes)

        written = 0
        for idea, excerpts in zip(ideas, cleaned):
            node = await self.node_repository.create_node(
                project_id=project_id,
                label=idea.label,
                summary=idea.summary,
                tags=idea.tags,
                confidence=idea.confidence,
            )
            for excerpt in excerpts:
                locator = locators.get(excerpt)
                await self.evidence_repository.create_for_node(
                    node_id=node.id,
                    document_id=document.id,
                    excerpt=excerpt,
                    locator=locator.to_json() if locator else None,
                )
                written += 1

        LOGGER.info(
            f"Saved {len(ideas)} ideas from {document.filename}",
            extra={
                "document_id": str(document.id),
                "evidence_refs": written,
                "located": len(locators),
            }
        )
        return written

    def _locate(
        self, document: Document, excerpts: List[str], pdf_bytes: Optional[bytes]
    ) -> Dict[str, Locator]:
        if not self.locate_inline or not pdf_bytes or not excerpts:
            return {}
        # Unlocated excerpts are filled in later by a backfill run
        return locate_in_pages(
            excerpts,
            readable_pages(self.pdf_text_service.iter_pages(pdf_bytes), document.filename),
        )

    async def finish(
        self, job_id: UUID, document_count: int, ideas_extracted: int
    ) -> ExtractionStepResult:
        await self.job_service.tracker(job_id).complete(
            ideas_extracted=ideas_extracted,
            message=format_job_message(
                "extraction", "completed",
                {"idea_count": ideas_extracted, "document_count": document_count},
            ),
        )
        LOGGER.info(
            "Extraction job completed",
            extra={"job_id": str(job_id), "ideas_extracted": ideas_extracted}
        )
        return ExtractionStepResult(status=JobStatus.COMPLETED.value, ideas_extracted=ideas_extracted)

    async def run(
        self, job_id: UUID, project_id: UUID, document_ids: Sequence[UUID]
    ) -> ExtractionStepResult:
        """Execute every step of an extraction job in-process."""
        total = len(document_ids)
        try:
            await self.start(job_id, total)
        except Exception as e:
            await self.job_service.tracker(job_id).fail(e)
            return ExtractionStepResult(status=JobStatus.FAILED.value)

        ideas = 0
        for index, document_id in enumerate(document_ids):
            step = await self.extract_document(job_id, project_id, document_id, index, total, ideas)
            if step.status == JobStatus.FAILED.value:
                return step
            ideas = step.ideas_extracted

        return await self.finish(job_id, total, ideas)
