"""Validation rules for stored evidence excerpts."""

from typing import Iterable, List, Optional

from ideagraph.core.config import settings
from ideagraph.services.text.normalizer import normalize_excerpt


def clean_excerpts(
    excerpts: Iterable[str],
    min_length: Optional[int] = None,
    max_length: Optional[int] = None,
) -> List[str]:
    """Normalize, bound and de-duplicate the excerpts of one idea.

    Whitespace is collapsed first; excerpts outside ``[min_length,
    max_length]`` characters are dropped, as are case-insensitive repeats.
    Order is preserved.
    """
    if min_length is None:
        min_length = settings.pipeline.min_excerpt_length
    if max_length is None:
        max_length = settings.pipeline.max_excerpt_length

    seen = set()
    kept: List[str] = []
    for excerpt in excerpts:
        normalized = normalize_excerpt(excerpt)
        if not min_length <= len(normalized) <= max_length:
            continue
        key = normalized.lower()
        if key in seen:
            continue
        seen.add(key)
        kept.append(normalized)
    return kept
