"""
Transcript extraction: resolve a URL, fetch captions, normalize and store.
"""

import logging

from .caption_utils import ContinuationPolicy, normalize_cues, parse_cues
from .captions_fetch import CaptionSource
from .errors import CaptionsUnavailable, NotFound, Unauthenticated
from .models import Transcript
from .store import SQLiteStore
from .url_parse import resolve_video_id

logger = logging.getLogger("subchapters")

DEFAULT_LANGUAGE = "en"


def require_principal(principal: str | None) -> str:
    if not principal or not str(principal).strip():
        raise Unauthenticated("An authenticated principal is required", stage="identity")
    return str(principal).strip()


class TranscriptExtractor:
    """Create transcripts from video URLs, at most one per (video, user, language)."""

    def __init__(
        self,
        store: SQLiteStore,
        source: CaptionSource,
        *,
        continuation: str = ContinuationPolicy.DROP,
        strip_tags: bool = False,
    ):
        self.store = store
        self.source = source
        self.continuation = continuation
        self.strip_tags = strip_tags

    def _first_usable(self, documents: list[str]) -> str:
        """Normalized content of the first document that yields any cue."""
        for idx, doc in enumerate(documents):
            cues = parse_cues(doc or "", continuation=self.continuation, strip_tags=self.strip_tags)
            if cues:
                return normalize_cues(cues)
            logger.warning(f"Caption document {idx} has no cues, trying next format")
        return ""

    async def extract(
        self, url: str, principal: str, language: str = DEFAULT_LANGUAGE
    ) -> Transcript:
        """Return the stored transcript for a video, extracting it on first use."""
        user_id = require_principal(principal)
        video_id = resolve_video_id(url)
        language = language or DEFAULT_LANGUAGE

        existing = await self.store.find_transcript(video_id, user_id, language)
        if existing:
            logger.info(f"Using cached transcript {existing.id} for {video_id} ({language})")
            return existing

        bundle = await self.source.fetch(video_id, language)
        content = self._first_usable(bundle.documents)
        if not content:
            raise CaptionsUnavailable(video_id, language)

        transcript = await self.store.insert_transcript(
            video_id,
            user_id,
            language,
            content,
            video_title=bundle.video_title,
            is_auto_generated=bundle.is_auto_generated,
        )
        logger.info(f"Saved transcript {transcript.id} for {video_id} ({len(content)} chars)")
        return transcript

    async def get_transcript(self, transcript_id: str, principal: str) -> Transcript:
        user_id = require_principal(principal)
        transcript = await self.store.get_transcript(transcript_id, user_id)
        if transcript is None:
            raise NotFound(f"Transcript {transcript_id} not found", stage="fetch_transcript")
        return transcript

    async def list_videos(self, principal: str) -> list[Transcript]:
        """All transcripts of a principal, newest first."""
        return await self.store.list_transcripts(require_principal(principal))
