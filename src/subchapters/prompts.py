"""
Prompt templates for chapter generation.
"""

DEFAULT_MIN_CHAPTERS = 5
DEFAULT_MAX_CHAPTERS = 10

CHAPTER_SYSTEM_PROMPT = (
    "You are a senior video editor. You split transcripts into logical chapters "
    "and answer with strict JSON only, without comments or markdown."
)

_CHAPTER_PROMPT = """Analyze the following video transcript and create a minimal set of logical chapters. Focus only on major topic transitions and key points.
{instruction}
Format the response as a JSON array of objects with 'timestamp' and 'title' properties.
Example format:
[
  {{"timestamp": "00:00", "title": "Introduction"}},
  {{"timestamp": "02:30", "title": "Main Topic"}},
  {{"timestamp": "05:45", "title": "Conclusion"}}
]
Guidelines:
- Create only essential chapters
- Use clear, concise titles
- Only include timestamps for significant topic changes
- Avoid creating too many small chapters
{limit}

Here's the transcript:

{transcript}"""


def parse_chapter_count(value) -> int | None:
    """Return value as a positive int, or None when absent or not usable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    try:
        count = int(str(value).strip())
    except ValueError:
        return None
    return count if count > 0 else None


def build_chapter_prompt(
    transcript: str,
    chapter_count=None,
    *,
    min_chapters: int = DEFAULT_MIN_CHAPTERS,
    max_chapters: int = DEFAULT_MAX_CHAPTERS,
) -> str:
    """Render the chapter generation instruction for a transcript.

    Args:
        transcript: Normalized transcript content
        chapter_count: Requested number of chapters; anything that is not a
            positive integer falls back to the min/max range
        min_chapters: Lower bound of the default range
        max_chapters: Upper bound of the default range

    Returns:
        The prompt string
    """
    count = parse_chapter_count(chapter_count)
    if count is not None:
        instruction = f"Create exactly {count} logical chapters."
        limit = f"- Create exactly {count} chapters"
    else:
        instruction = (
            f"Keep the number of chapters between {min_chapters}-{max_chapters}, "
            "only creating new chapters when there's a significant topic change."
        )
        limit = f"- Maximum {max_chapters} chapters"

    return _CHAPTER_PROMPT.format(instruction=instruction, limit=limit, transcript=transcript)
