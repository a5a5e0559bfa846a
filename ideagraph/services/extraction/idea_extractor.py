"""Per-document idea extraction through the generative model."""

from dataclasses import dataclass
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from ideagraph.core.config import settings
from ideagraph.core.exceptions import ExtractionError
from ideagraph.core.llm_client import OpenAICompatibleClient, pdf_part
from ideagraph.database.models import Document
from ideagraph.prompts.system_prompts import IDEA_EXTRACTION_PROMPT, IDEA_EXTRACTION_USER_PROMPT
from ideagraph.schemas.extraction import EXTRACTION_RESPONSE_SCHEMA, ExtractionResult
from ideagraph.services.storage_service import StorageService
from ideagraph.utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass
class DocumentExtraction:
    """Validated model output plus the PDF it was produced from."""

    result: ExtractionResult
    pdf_bytes: bytes


class IdeaExtractor:
    """Sends one PDF to the model and validates the structured reply."""

    def __init__(
        self,
        client: Optional[OpenAICompatibleClient] = None,
        storage: Optional[StorageService] = None,
        max_ideas: Optional[int] = None,
    ):
        self.client = client or OpenAICompatibleClient(model=settings.llm.extraction_model)
        self.storage = storage or StorageService()
        self.max_ideas = max_ideas or settings.pipeline.max_ideas_per_document

    async def extract(self, document: Document) -> DocumentExtraction:
        """Extract ideas from a document that has a source file.

        Raises:
            SourceFileError: The PDF could not be fetched
            APIClientError: The model call failed
            ExtractionError: The reply did not match the extraction schema
        """
        pdf_bytes = await self.storage.fetch(document.source_handle)

        LOGGER.info(
            f"Extracting ideas from {document.filename}",
            extra={"document_id": str(document.id), "size_bytes": len(pdf_bytes)}
        )

        raw = await self.client.generate_json(
            system_instruction=IDEA_EXTRACTION_PROMPT.format(max_ideas=self.max_ideas),
            parts=[pdf_part(pdf_bytes, document.filename), IDEA_EXTRACTION_USER_PROMPT],
            json_schema=EXTRACTION_RESPONSE_SCHEMA,
            schema_name="extraction_result",
        )

        try:
            result = ExtractionResult.model_validate(raw)
        except PydanticValidationError as e:
            LOGGER.warning(
                "Extraction reply failed validation",
                extra={"document_id": str(document.id), "errors": e.error_count()}
            )
            raise ExtractionError(
                f"Model returned an invalid extraction result for \"{document.filename}\"",
                original_error=e,
            )

        if len(result.ideas) > self.max_ideas:
            LOGGER.info(
                f"Truncating {len(result.ideas)} ideas to {self.max_ideas}",
                extra={"document_id": str(document.id)}
            )
            result = result.model_copy(update={"ideas": result.ideas[: self.max_ideas]})

        return DocumentExtraction(result=result, pdf_bytes=pdf_bytes)
