"""Re-anchor free-text excerpts onto positioned PDF text runs.

The page's runs are joined with single spaces into one page string. The
excerpt is searched in the normalized page string (strict first, loose as
a fallback), the match is projected back to the original page string, and
whitespace-delimited tokens before and inside the match select the runs
whose boxes make up the locator.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ideagraph.schemas.locator import BoundingBox, Locator
from ideagraph.services.text.normalizer import NormalizationMode, NormalizedText, normalize
from ideagraph.utils.logging import get_logger

LOGGER = get_logger(__name__)

Transform = Tuple[float, float, float, float, float, float]


@dataclass(frozen=True)
class TextRun:
    """Positioned text fragment on a page.

    ``transform`` is the PDF text matrix ``(a, b, c, d, e, f)``: ``e``/``f``
    are the baseline origin in bottom-left page space and ``d`` is the
    vertical scale.
    """

    text: str
    width: float
    height: float
    transform: Transform


@dataclass(frozen=True)
class PageText:
    """All runs of one page plus its viewport height at scale 1."""

    page_number: int  # 1-indexed
    runs: Sequence[TextRun]
    viewport_height: float


def _find(page: NormalizedText, excerpt: NormalizedText) -> int:
    if not excerpt.normalized:
        return -1
    return page.normalized.find(excerpt.normalized)


def match_excerpt(page_text: str, excerpt: str) -> Optional[Tuple[int, int]]:
    """Find ``excerpt`` in ``page_text``.

    Returns:
        Inclusive (start, end) offsets into ``page_text``, or None
    """
    for mode in (NormalizationMode.STRICT, NormalizationMode.LOOSE):
        normalized_page = normalize(page_text, mode)
        normalized_excerpt = normalize(excerpt, mode)
        index = _find(normalized_page, normalized_excerpt)
        if index != -1:
            if mode == NormalizationMode.LOOSE:
                LOGGER.debug("Excerpt matched in loose mode", extra={"excerpt": excerpt[:80]})
            return normalized_page.original_span(index, len(normalized_excerpt.normalized))
    return None


def run_range(page_text: str, start: int, end: int, run_count: int) -> Tuple[int, int]:
    """Map an inclusive character range of the joined page text to run indices."""
    prefix_tokens = len(page_text[: start + 1].split())
    range_tokens = len(page_text[start : end + 1].split())
    start_index = max(0, prefix_tokens - 1)
    end_index = min(run_count - 1, start_index + max(0, range_tokens - 1))
    return start_index, end_index


def run_box(run: TextRun, viewport_height: float) -> BoundingBox:
    """Box of one run in top-left origin page space."""
    _, _, _, d, e, f = run.transform
    height = abs(d) or run.height or 0
    return BoundingBox(
        x=e,
        y=viewport_height - f - height,
        width=run.width or 0,
        height=height,
    )


def locate(
    page_number: int,
    excerpt: str,
    runs: Sequence[TextRun],
    viewport_height: float,
) -> Optional[Locator]:
    """Locate ``excerpt`` on one page.

    Returns None when the excerpt is not on the page or none of the matched
    runs has a usable box.
    """
    if not excerpt or not runs:
        return None

    page_text = " ".join(run.text for run in runs)
    span = match_excerpt(page_text, excerpt)
    if span is None:
        return None

    start_index, end_index = run_range(page_text, span[0], span[1], len(runs))
    if start_index > end_index:
        return None

    boxes = [
        box
        for box in (run_box(run, viewport_height) for run in runs[start_index : end_index + 1])
        if box.width > 0 and box.height > 0
    ]
    if not boxes:
        return None
    return Locator(page=page_number, text=excerpt, boxes=boxes)


def locate_in_pages(excerpts: Iterable[str], pages: Iterable[PageText]) -> Dict[str, Locator]:
    """Locate every excerpt on the first page that contains it.

    Pages are scanned in order and the scan stops once every excerpt has a
    locator, so ``pages`` may be a lazy iterator over a large document.
    """
    wanted: List[str] = list(dict.fromkeys(excerpts))
    found: Dict[str, Locator] = {}
    if not wanted:
        return found

    for page in pages:
        for excerpt in wanted:
            if excerpt in found:
                continue
            locator = locate(page.page_number, excerpt, page.runs, page.viewport_height)
            if locator is not None:
                found[excerpt] = locator
        if len(found) == len(wanted):
            break

    LOGGER.debug(
        "Located excerpts",
        extra={"requested": len(wanted), "located": len(found)}
    )
    return found
