"""
SQLite storage for transcripts and analyses.

Blocking sqlite3 calls run in a worker thread behind one lock. The
UNIQUE(transcript_id) index on analyses is what keeps a transcript at one
analysis even when two writers race past the existence check.
"""

import asyncio
import json
import logging
import sqlite3
import threading
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path

from .chapter_parse import chapters_to_json
from .errors import CollaboratorUnavailable
from .models import Analysis, AnalysisSummary, Chapter, Transcript

logger = logging.getLogger("subchapters")

_SCHEMA_VERSION = 1

_CREATE_TABLES = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS transcripts (
    id TEXT PRIMARY KEY,
    video_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    language TEXT NOT NULL,
    video_title TEXT,
    content TEXT NOT NULL,
    is_auto_generated INTEGER DEFAULT 0,
    created_at TEXT,
    updated_at TEXT,
    UNIQUE (video_id, user_id, language)
);

CREATE INDEX IF NOT EXISTS idx_transcripts_user ON transcripts(user_id, created_at DESC);

CREATE TABLE IF NOT EXISTS analyses (
    id TEXT PRIMARY KEY,
    transcript_id TEXT NOT NULL UNIQUE,
    user_id TEXT NOT NULL,
    chapters TEXT NOT NULL,
    created_at TEXT,
    updated_at TEXT,
    FOREIGN KEY (transcript_id) REFERENCES transcripts(id)
);

CREATE INDEX IF NOT EXISTS idx_analyses_user ON analyses(user_id, created_at DESC);
"""

_ANALYSIS_SUMMARY_SELECT = """
SELECT a.*, t.video_id AS t_video_id, t.video_title AS t_video_title,
       t.language AS t_language
FROM analyses a JOIN transcripts t ON t.id = a.transcript_id
"""


class SQLiteStore:
    """SQLite-backed store exposing async lookups, inserts and upserts."""

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        try:
            self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.execute("PRAGMA foreign_keys=ON")
            self._migrate()
        except sqlite3.Error as e:
            raise CollaboratorUnavailable(
                f"Cannot open database {self.db_path}: {e}", stage="open_store"
            ) from e

    def _migrate(self):
        with self.conn:
            self.conn.executescript(_CREATE_TABLES)
            self.conn.execute(
                "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
                (_SCHEMA_VERSION,),
            )

    def close(self):
        if self.conn:
            self.conn.close()

    # ── Helpers ───────────────────────────────────────────────────────

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat(timespec="microseconds")

    @classmethod
    def _later_than(cls, previous: str | None) -> str:
        """Current time, nudged past ``previous`` so updates stay ordered."""
        now = cls._now()
        if previous and now <= previous:
            bumped = datetime.fromisoformat(previous) + timedelta(microseconds=1)
            now = bumped.isoformat(timespec="microseconds")
        return now

    @staticmethod
    def _row_to_transcript(row: sqlite3.Row) -> Transcript:
        data = dict(row)
        data["is_auto_generated"] = bool(data["is_auto_generated"])
        return Transcript(**data)

    @staticmethod
    def _row_to_analysis(row: sqlite3.Row) -> Analysis:
        chapters = [Chapter(**c) for c in json.loads(row["chapters"])]
        return Analysis(
            id=row["id"],
            transcript_id=row["transcript_id"],
            user_id=row["user_id"],
            chapters=chapters,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @classmethod
    def _row_to_summary(cls, row: sqlite3.Row) -> AnalysisSummary:
        return AnalysisSummary(
            analysis=cls._row_to_analysis(row),
            video_id=row["t_video_id"],
            video_title=row["t_video_title"],
            language=row["t_language"],
        )

    async def _call(self, stage: str, fn, *args):
        def locked():
            with self._lock:
                return fn(*args)

        try:
            return await asyncio.to_thread(locked)
        except sqlite3.Error as e:
            logger.error("Storage error during %s: %s", stage, e)
            raise CollaboratorUnavailable(f"Storage error: {e}", stage=stage) from e

    # ── Transcripts ───────────────────────────────────────────────────

    def _find_transcript(self, video_id: str, user_id: str, language: str) -> Transcript | None:
        row = self.conn.execute(
            "SELECT * FROM transcripts WHERE video_id = ? AND user_id = ? AND language = ?",
            (video_id, user_id, language),
        ).fetchone()
        return self._row_to_transcript(row) if row else None

    def _get_transcript(self, transcript_id: str, user_id: str) -> Transcript | None:
        row = self.conn.execute(
            "SELECT * FROM transcripts WHERE id = ? AND user_id = ?",
            (transcript_id, user_id),
        ).fetchone()
        return self._row_to_transcript(row) if row else None

    def _insert_transcript(self, video_id, user_id, language, content, video_title,
                           is_auto_generated) -> Transcript:
        now = self._now()
        with self.conn:
            self.conn.execute(
                """INSERT INTO transcripts
                   (id, video_id, user_id, language, video_title, content,
                    is_auto_generated, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT (video_id, user_id, language) DO NOTHING""",
                (str(uuid.uuid4()), video_id, user_id, language, video_title, content,
                 int(is_auto_generated), now, now),
            )
        return self._find_transcript(video_id, user_id, language)

    def _list_transcripts(self, user_id: str) -> list[Transcript]:
        rows = self.conn.execute(
            "SELECT * FROM transcripts WHERE user_id = ? ORDER BY created_at DESC",
            (user_id,),
        ).fetchall()
        return [self._row_to_transcript(r) for r in rows]

    async def find_transcript(self, video_id: str, user_id: str, language: str) -> Transcript | None:
        return await self._call("find_transcript", self._find_transcript, video_id, user_id, language)

    async def get_transcript(self, transcript_id: str, user_id: str) -> Transcript | None:
        return await self._call("fetch_transcript", self._get_transcript, transcript_id, user_id)

    async def insert_transcript(
        self,
        video_id: str,
        user_id: str,
        language: str,
        content: str,
        *,
        video_title: str | None = None,
        is_auto_generated: bool = False,
    ) -> Transcript:
        """Insert a transcript; an existing row with the same natural key wins."""
        return await self._call(
            "persist_transcript", self._insert_transcript,
            video_id, user_id, language, content, video_title, is_auto_generated,
        )

    async def list_transcripts(self, user_id: str) -> list[Transcript]:
        return await self._call("list_transcripts", self._list_transcripts, user_id)

    # ── Analyses ──────────────────────────────────────────────────────

    def _analysis_for_transcript(self, transcript_id: str) -> Analysis | None:
        row = self.conn.execute(
            "SELECT * FROM analyses WHERE transcript_id = ?", (transcript_id,)
        ).fetchone()
        return self._row_to_analysis(row) if row else None

    def _insert_analysis_if_absent(self, transcript_id, user_id, chapters) -> Analysis:
        now = self._now()
        with self.conn:
            self.conn.execute(
                """INSERT INTO analyses
                   (id, transcript_id, user_id, chapters, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?)
                   ON CONFLICT (transcript_id) DO NOTHING""",
                (str(uuid.uuid4()), transcript_id, user_id, chapters_to_json(chapters), now, now),
            )
        return self._analysis_for_transcript(transcript_id)

    def _upsert_analysis(self, transcript_id, user_id, chapters) -> Analysis:
        existing = self._analysis_for_transcript(transcript_id)
        now = self._later_than(existing.updated_at if existing else None)
        with self.conn:
            self.conn.execute(
                """INSERT INTO analyses
                   (id, transcript_id, user_id, chapters, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?)
                   ON CONFLICT (transcript_id) DO UPDATE SET
                       chapters = excluded.chapters,
                       updated_at = excluded.updated_at""",
                (str(uuid.uuid4()), transcript_id, user_id, chapters_to_json(chapters), now, now),
            )
        return self._analysis_for_transcript(transcript_id)

    def _get_analysis(self, analysis_id: str, user_id: str) -> AnalysisSummary | None:
        row = self.conn.execute(
            _ANALYSIS_SUMMARY_SELECT + " WHERE a.id = ? AND a.user_id = ? AND t.user_id = ?",
            (analysis_id, user_id, user_id),
        ).fetchone()
        return self._row_to_summary(row) if row else None

    def _list_analyses(self, user_id: str) -> list[AnalysisSummary]:
        rows = self.conn.execute(
            _ANALYSIS_SUMMARY_SELECT + " WHERE a.user_id = ? ORDER BY a.created_at DESC",
            (user_id,),
        ).fetchall()
        return [self._row_to_summary(r) for r in rows]

    async def get_analysis_for_transcript(self, transcript_id: str) -> Analysis | None:
        return await self._call("fetch_analysis", self._analysis_for_transcript, transcript_id)

    async def insert_analysis_if_absent(
        self, transcript_id: str, user_id: str, chapters: list[Chapter]
    ) -> Analysis:
        """Create the analysis unless one exists; returns whichever row is stored."""
        return await self._call(
            "persist", self._insert_analysis_if_absent, transcript_id, user_id, chapters
        )

    async def upsert_analysis(
        self, transcript_id: str, user_id: str, chapters: list[Chapter]
    ) -> Analysis:
        """Create the analysis or replace its chapters and bump updated_at."""
        return await self._call(
            "persist", self._upsert_analysis, transcript_id, user_id, chapters
        )

    async def get_analysis(self, analysis_id: str, user_id: str) -> AnalysisSummary | None:
        return await self._call("fetch_analysis", self._get_analysis, analysis_id, user_id)

    async def list_analyses(self, user_id: str) -> list[AnalysisSummary]:
        return await self._call("list_analyses", self._list_analyses, user_id)
