"""
Video URL parsing.
"""

import logging
import re

from .errors import InvalidSourceUrl

logger = logging.getLogger("subchapters")

_ID = r"([a-zA-Z0-9_-]{11})(?![a-zA-Z0-9_-])"
_HOST = r"(?:https?://)?(?:www\.|m\.|music\.)?youtube(?:-nocookie)?\.com"

# Order matters only for speed; every form of the same video yields the same id.
VIDEO_URL_PATTERNS = [
    re.compile(_HOST + r"/watch\?v=" + _ID),
    re.compile(r"(?:https?://)?youtu\.be/" + _ID),
    re.compile(_HOST + r"/embed/" + _ID),
    re.compile(_HOST + r"/v/" + _ID),
    re.compile(_HOST + r"/shorts/" + _ID),
    re.compile(_HOST + r"/live/" + _ID),
    re.compile(_HOST + r"/watch\?(?:[^#\s]*&)?feature=player_embedded&v=" + _ID),
    re.compile(_HOST + r"/watch\?(?:[^#\s]*&)?v=" + _ID),
]


def extract_video_id(url: str) -> str | None:
    """Return the 11-character video id, or None if no pattern matches."""
    url = (url or "").strip()
    if not url:
        return None
    for pattern in VIDEO_URL_PATTERNS:
        m = pattern.search(url)
        if m:
            return m.group(1)
    return None


def resolve_video_id(url: str) -> str:
    """Resolve a video URL to its id; raises InvalidSourceUrl if unrecognized."""
    video_id = extract_video_id(url)
    if not video_id:
        raise InvalidSourceUrl(url)
    logger.debug("Resolved %s -> %s", url, video_id)
    return video_id

