"""Evidence locator schemas.

A locator pins an excerpt to a PDF page with pixel-space boxes at scale 1,
origin top-left. Locators are persisted as a compact JSON string on
``EvidenceRef.locator``.
"""

import json
from typing import List, Optional, Union

from pydantic import BaseModel, Field


class BoundingBox(BaseModel):
    """Box in page space (top-left origin, PDF points at scale 1)."""

    x: float = Field(..., description="Left coordinate")
    y: float = Field(..., description="Top coordinate (flipped from PDF bottom-left origin)")
    width: float = Field(..., description="Box width")
    height: float = Field(..., description="Box height")


class Locator(BaseModel):
    """Page plus boxes pinpointing an excerpt inside a PDF."""

    page: int = Field(..., ge=1, description="1-indexed page number")
    text: str = Field(..., description="Excerpt that was located")
    boxes: List[BoundingBox] = Field(..., min_length=1)

    def to_json(self) -> str:
        """Serialize to the persisted wire format.

        Keys are emitted in the order page, text, boxes (x, y, width, height)
        with no whitespace; integral floats are written as integers.
        """
        payload = {
            "page": self.page,
            "text": self.text,
            "boxes": [
                {
                    "x": _json_number(box.x),
                    "y": _json_number(box.y),
                    "width": _json_number(box.width),
                    "height": _json_number(box.height),
                }
                for box in self.boxes
            ],
        }
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: Optional[str]) -> Optional["Locator"]:
        """Parse a persisted locator, returning None for empty or malformed values."""
        if not raw:
            return None
        try:
            return cls.model_validate_json(raw)
        except ValueError:
            return None


def _json_number(value: float) -> Union[int, float]:
    if float(value).is_integer():
        return int(value)
    return value


class LocatorBackfillResult(BaseModel):
    """Outcome of a locator backfill run."""

    status: str  # completed | failed
    locators_updated: int = 0
