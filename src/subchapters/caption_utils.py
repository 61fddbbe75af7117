"""
Caption parsing and transcript normalization utilities.

Raw WebVTT/SRT documents are scanned line by line into cues, then joined
into the timestamped transcript format stored and fed to chapter generation.
"""

import logging
import re

from .models import Cue

logger = logging.getLogger("subchapters")

TIME_RANGE_DELIMITER = "-->"

_SEQ_NUMBER_RE = re.compile(r"^\d+$")
_WHITESPACE_RE = re.compile(r"\s+")
_INLINE_TAG_RE = re.compile(r"<[^>]*>")


class ContinuationPolicy:
    """What to do with text lines after the first one of a cue."""

    DROP = "drop"
    JOIN = "join"

    ALL = (DROP, JOIN)


class _State:
    SEEKING = "seeking"
    HAVE_TIMESTAMP = "have_timestamp"


def collapse_whitespace(text: str) -> str:
    """Collapse runs of whitespace to one space and trim the edges."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def strip_inline_tags(text: str) -> str:
    """Remove inline caption markup such as <c>, <i> or <00:00:01.000>."""
    return _INLINE_TAG_RE.sub("", text)


def parse_cues(
    text: str,
    *,
    continuation: str = ContinuationPolicy.DROP,
    strip_tags: bool = False,
) -> list[Cue]:
    """Parse a caption document into an ordered list of cues.

    Only the first text line after a time range becomes the cue text. Any
    further lines of the same block are dropped, or appended to the cue when
    ``continuation`` is ``ContinuationPolicy.JOIN``. A blank line closes the
    block, so cue identifiers and NOTE or STYLE blocks are never joined. A
    time range that never receives text is not emitted. A document without
    any "-->" line yields an empty list.
    """
    if continuation not in ContinuationPolicy.ALL:
        raise ValueError(f"Unknown continuation policy: {continuation!r}")

    cues: list[Cue] = []
    state = _State.SEEKING
    pending: str | None = None
    # A cue block stays open for continuation lines until the next blank line
    block_open = False

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            block_open = False
            continue
        if strip_tags and TIME_RANGE_DELIMITER not in line:
            line = strip_inline_tags(line).strip()
        if not line or _SEQ_NUMBER_RE.match(line):
            continue

        if TIME_RANGE_DELIMITER in line:
            if pending is not None:
                logger.debug("Dropping cue without text: %s", pending)
            pending = line
            state = _State.HAVE_TIMESTAMP
            block_open = False
            continue

        if state == _State.HAVE_TIMESTAMP:
            cues.append(Cue(time_range=pending, text=collapse_whitespace(line)))
            pending = None
            state = _State.SEEKING
            block_open = True
        elif continuation == ContinuationPolicy.JOIN and block_open:
            last = cues[-1]
            last.text = f"{last.text} {collapse_whitespace(line)}"

    if pending is not None:
        logger.debug("Dropping trailing cue without text: %s", pending)

    logger.debug("Parsed %d cues", len(cues))
    return cues


def normalize_cues(cues: list[Cue]) -> str:
    """Join cues as "<time range>\\n<text>" blocks separated by a blank line."""
    return "\n\n".join(f"{c.time_range}\n{c.text}" for c in cues if c.text)


def flatten_cues(cues: list[Cue]) -> str:
    """Join cue texts into timestamp-free prose."""
    return collapse_whitespace(" ".join(c.text for c in cues))


def normalize_captions(
    text: str,
    *,
    continuation: str = ContinuationPolicy.DROP,
    strip_tags: bool = False,
) -> str:
    """Parse and normalize a raw caption document; "" when it has no cues."""
    return normalize_cues(parse_cues(text, continuation=continuation, strip_tags=strip_tags))
