"""Text canonicalization for excerpt matching.

Generated excerpts and the PDF text layer rarely agree character for
character: whitespace is reflowed and quotes or dashes get substituted.
Both sides are normalized before comparison, and every normalized
character keeps the offset of the original character it came from so a
match can be projected back onto the source text.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List

_LOOSE_KEEP = frozenset("abcdefghijklmnopqrstuvwxyz0123456789")


class NormalizationMode(str, Enum):
    STRICT = "strict"
    LOOSE = "loose"


@dataclass(frozen=True)
class NormalizedText:
    """Normalized string plus a map back to original offsets.

    ``char_map[i]`` is the index in the original string of the character
    that produced ``normalized[i]``. ``offset`` is how many leading
    characters were trimmed from the collapsed text.
    """

    normalized: str
    char_map: List[int]
    offset: int = 0

    def original_span(self, start: int, length: int) -> tuple:
        """Project a normalized ``[start, start + length)`` range onto the original.

        Returns:
            (original_start, original_end_inclusive)
        """
        return self.char_map[start], self.char_map[start + length - 1]


def _fold(ch: str) -> str:
    lowered = ch.lower()
    # Some characters lower to more than one code point; keep them as-is so
    # the one-to-one char map holds.
    return lowered if len(lowered) == 1 else ch


def normalize(raw: str, mode: NormalizationMode = NormalizationMode.STRICT) -> NormalizedText:
    """Collapse whitespace, lowercase and trim ``raw``.

    In loose mode every character outside ``[a-z0-9]`` and whitespace is
    dropped before whitespace is collapsed.
    """
    chars: List[str] = []
    positions: List[int] = []
    last_was_space = False

    for index, ch in enumerate(raw or ""):
        if ch.isspace():
            if not last_was_space:
                chars.append(" ")
                positions.append(index)
            last_was_space = True
            continue

        folded = _fold(ch)
        if mode == NormalizationMode.LOOSE and folded not in _LOOSE_KEEP:
            continue

        chars.append(folded)
        positions.append(index)
        last_was_space = False

    start = 0
    end = len(chars)
    while start < end and chars[start] == " ":
        start += 1
    while end > start and chars[end - 1] == " ":
        end -= 1

    return NormalizedText(
        normalized="".join(chars[start:end]),
        char_map=positions[start:end],
        offset=start,
    )


def normalize_excerpt(raw: str) -> str:
    """Collapse whitespace and trim, preserving case (stored excerpt form)."""
    return " ".join((raw or "").split())
