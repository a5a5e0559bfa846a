"""Positioned text runs from PDF bytes via pdfplumber.

Every word becomes one run, so the token counting done by the locator
maps one-to-one onto runs.
"""

from io import BytesIO
from typing import Iterable, Iterator, List

from ideagraph.core.exceptions import SourceFileError
from ideagraph.services.evidence.locator import PageText, TextRun
from ideagraph.utils.logging import get_logger

LOGGER = get_logger(__name__)


class PdfTextService:
    """Reads word-level runs out of a PDF.

    Example usage:
        service = PdfTextService()
        for page in service.iter_pages(pdf_bytes):
            locator = locate(page.page_number, excerpt, page.runs, page.viewport_height)
    """

    def __init__(self, x_tolerance: float = 3, y_tolerance: float = 3):
        self.x_tolerance = x_tolerance
        self.y_tolerance = y_tolerance
        self._pdfplumber = None

    @property
    def pdfplumber(self):
        """Lazy-load pdfplumber to avoid import overhead."""
        if self._pdfplumber is None:
            import pdfplumber
            self._pdfplumber = pdfplumber
        return self._pdfplumber

    def iter_pages(self, pdf_bytes: bytes) -> Iterator[PageText]:
        """Yield pages one at a time so callers can stop early."""
        try:
            pdf = self.pdfplumber.open(BytesIO(pdf_bytes))
        except Exception as e:
            LOGGER.error(
                f"Failed to open PDF: {e}",
                extra={"error_type": type(e).__name__},
            )
            raise SourceFileError(f"Could not read PDF: {e}", original_error=e)

        with pdf:
            for page_num, page in enumerate(pdf.pages, start=1):
                try:
                    page_text = self._page_text(page_num, page)
                except Exception as e:
                    raise SourceFileError(
                        f"Could not read page {page_num}: {e}", original_error=e
                    )
                yield page_text

    def extract_pages(self, pdf_bytes: bytes) -> List[PageText]:
        return list(self.iter_pages(pdf_bytes))

    def _page_text(self, page_num: int, page) -> PageText:
        page_height = float(page.height)
        words = page.extract_words(
            keep_blank_chars=False,
            x_tolerance=self.x_tolerance,
            y_tolerance=self.y_tolerance,
            extra_attrs=["size"],
        )

        runs = []
        for word in words:
            size = float(word.get("size") or 0)
            bottom = float(word["bottom"])
            runs.append(TextRun(
                text=word["text"],
                width=float(word["x1"]) - float(word["x0"]),
                height=bottom - float(word["top"]),
                # Baseline origin converted from pdfplumber's top-left to bottom-left
                transform=(size, 0.0, 0.0, size, float(word["x0"]), page_height - bottom),
            ))

        return PageText(page_number=page_num, runs=runs, viewport_height=page_height)


def readable_pages(pages: Iterable[PageText], source: str) -> Iterator[PageText]:
    """Yield pages until one fails to parse, then stop with a warning.

    Pages yielded before the failure stay usable, so excerpts already
    located on them are kept.
    """
    page_number = 0
    try:
        for page in pages:
            page_number = page.page_number
            yield page
    except Exception as e:
        LOGGER.warning(
            f"Stopped reading {source} after page {page_number}: {e}",
            extra={"source": source, "error_type": type(e).__name__},
        )
