import json
import re
from typing import Any, Dict, List, Union

from ideagraph.utils.logging import get_logger

LOGGER = get_logger(__name__)


def parse_json_safely(text: str) -> Union[Dict[str, Any], List[Any], None]:
    """Parse JSON from model output, tolerating common formatting issues.

    Handles:
    - Markdown code blocks (```json ... ```)
    - Leading/trailing whitespace
    - Trailing text after the first complete JSON value

    Args:
        text: The text containing JSON

    Returns:
        Parsed JSON value or None if parsing fails
    """
    if not text:
        return None

    cleaned_text = text.strip()
    if cleaned_text.startswith("```json"):
        cleaned_text = cleaned_text[7:]
    elif cleaned_text.startswith("```"):
        cleaned_text = cleaned_text[3:]

    if cleaned_text.endswith("```"):
        cleaned_text = cleaned_text[:-3]

    cleaned_text = cleaned_text.strip()

    try:
        return json.loads(cleaned_text)
    except json.JSONDecodeError as e:
        LOGGER.warning(f"Initial JSON parse failed: {e}, attempting repairs...")

        # Extra data after a complete value: keep the first value only
        if "Extra data" in str(e) and e.pos > 0:
            try:
                return json.loads(cleaned_text[:e.pos].strip())
            except json.JSONDecodeError:
                pass

        # Leading prose before the payload
        start = _first_json_start(cleaned_text)
        if start is not None and start > 0:
            try:
                value, _ = json.JSONDecoder().raw_decode(cleaned_text[start:])
                return value
            except json.JSONDecodeError:
                pass

        LOGGER.error(f"Failed to parse JSON: {e}")
        return None


def _first_json_start(text: str) -> Union[int, None]:
    match = re.search(r"[\{\[]", text)
    return match.start() if match else None
