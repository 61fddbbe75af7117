"""
Chapter analysis of stored transcripts.

``analyze`` is a read-through cache keyed by transcript id: an existing
analysis is returned as is and generation is not called. ``regenerate``
always calls generation and replaces the stored chapters in place.

Chapters are persisted only after the generated text decoded cleanly, in a
single statement, so a failing stage never leaves a partial analysis behind.
Cancellation of the awaiting task propagates through the generation call
before anything is written.
"""

import logging

from .chapter_parse import parse_chapter_response
from .errors import NotFound
from .extraction import require_principal
from .generation import ChapterGenerator
from .models import Analysis, AnalysisSummary, Chapter, Transcript
from .prompts import DEFAULT_MAX_CHAPTERS, DEFAULT_MIN_CHAPTERS, build_chapter_prompt
from .store import SQLiteStore

logger = logging.getLogger("subchapters")


class AnalysisReconciler:
    """Create, reuse and replace the single analysis of each transcript."""

    def __init__(
        self,
        store: SQLiteStore,
        generator: ChapterGenerator,
        *,
        min_chapters: int = DEFAULT_MIN_CHAPTERS,
        max_chapters: int = DEFAULT_MAX_CHAPTERS,
    ):
        self.store = store
        self.generator = generator
        self.min_chapters = min_chapters
        self.max_chapters = max_chapters

    async def _owned_transcript(self, transcript_id: str, user_id: str) -> Transcript:
        transcript = await self.store.get_transcript(transcript_id, user_id)
        if transcript is None:
            # Foreign and missing transcripts look the same to the caller
            raise NotFound(f"Transcript {transcript_id} not found", stage="fetch_transcript")
        return transcript

    async def _generate_chapters(self, transcript: Transcript, chapter_count) -> list[Chapter]:
        prompt = build_chapter_prompt(
            transcript.content,
            chapter_count,
            min_chapters=self.min_chapters,
            max_chapters=self.max_chapters,
        )
        raw = await self.generator.generate(prompt)
        chapters = parse_chapter_response(raw)
        logger.info(f"Generated {len(chapters)} chapters for transcript {transcript.id}")
        return chapters

    async def analyze(self, transcript_id: str, principal: str, chapter_count=None) -> Analysis:
        """Return the transcript's analysis, generating it on first request."""
        user_id = require_principal(principal)
        transcript = await self._owned_transcript(transcript_id, user_id)

        existing = await self.store.get_analysis_for_transcript(transcript.id)
        if existing:
            logger.info(f"Using cached analysis {existing.id} for transcript {transcript.id}")
            return existing

        chapters = await self._generate_chapters(transcript, chapter_count)
        analysis = await self.store.insert_analysis_if_absent(transcript.id, user_id, chapters)
        if analysis.chapters != chapters:
            logger.info(
                f"Analysis for transcript {transcript.id} was stored concurrently; keeping {analysis.id}"
            )
        return analysis

    async def regenerate(self, transcript_id: str, principal: str, chapter_count=None) -> Analysis:
        """Generate chapters anew and store them, replacing any previous ones."""
        user_id = require_principal(principal)
        transcript = await self._owned_transcript(transcript_id, user_id)

        chapters = await self._generate_chapters(transcript, chapter_count)
        analysis = await self.store.upsert_analysis(transcript.id, user_id, chapters)
        logger.info(f"Stored analysis {analysis.id} (updated {analysis.updated_at})")
        return analysis

    async def get_analysis(self, analysis_id: str, principal: str) -> AnalysisSummary:
        user_id = require_principal(principal)
        summary = await self.store.get_analysis(analysis_id, user_id)
        if summary is None:
            raise NotFound(f"Analysis {analysis_id} not found", stage="fetch_analysis")
        return summary

    async def list_analyses(self, principal: str) -> list[AnalysisSummary]:
        return await self.store.list_analyses(require_principal(principal))
