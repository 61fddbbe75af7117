"""
Decoding of chapter lists returned by the generation service.
"""

import json
import logging

from .errors import MalformedGenerationOutput
from .models import Chapter

logger = logging.getLogger("subchapters")

# Key of the structured-output envelope requested from the generation service
ENVELOPE_KEY = "chapters"


def parse_chapter_response(raw: str) -> list[Chapter]:
    """Decode a JSON array of {timestamp, title} objects into chapters.

    The ``{"chapters": [...]}`` envelope is accepted as well. Any other shape,
    and any element whose timestamp or title is not a string, raises
    MalformedGenerationOutput, as does an empty list; a partial list is never
    returned.
    """
    if not isinstance(raw, str):
        raise MalformedGenerationOutput(
            f"Expected text from generation service, got {type(raw).__name__}", raw=repr(raw)
        )

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedGenerationOutput(f"Invalid JSON: {e}", raw=raw) from e

    if isinstance(data, dict) and set(data) == {ENVELOPE_KEY}:
        data = data[ENVELOPE_KEY]
    if not isinstance(data, list):
        raise MalformedGenerationOutput(
            f"Expected a JSON array of chapters, got {type(data).__name__}", raw=raw
        )
    if not data:
        raise MalformedGenerationOutput("Chapter list is empty", raw=raw)

    chapters: list[Chapter] = []
    for idx, item in enumerate(data):
        if not isinstance(item, dict):
            raise MalformedGenerationOutput(f"Chapter {idx} is not an object", raw=raw)
        timestamp = item.get("timestamp")
        title = item.get("title")
        if not isinstance(timestamp, str) or not isinstance(title, str):
            raise MalformedGenerationOutput(
                f"Chapter {idx} needs string 'timestamp' and 'title'", raw=raw
            )
        chapters.append(Chapter(timestamp=timestamp, title=title))

    logger.debug("Decoded %d chapters", len(chapters))
    return chapters


def chapters_to_json(chapters: list[Chapter]) -> str:
    """Serialize chapters to the JSON array form used for storage."""
    return json.dumps([c.to_dict() for c in chapters], ensure_ascii=False)
