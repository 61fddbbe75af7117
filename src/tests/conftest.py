"""
Shared fixtures and fake collaborators.
"""

import json

import pytest

from subchapters.models import CaptionBundle
from subchapters.store import SQLiteStore

SAMPLE_VTT = """WEBVTT
Kind: captions
Language: en

00:00:01.000 --> 00:00:03.000
Welcome to the show

00:00:03.000 --> 00:00:05.000
Today we talk about   caching
"""

SAMPLE_SRT = """1
00:00:01,000 --> 00:00:03,000
Welcome to the show

2
00:00:03,000 --> 00:00:05,000
Today we talk about caching
"""


def chapters_json(*titles: str) -> str:
    return json.dumps(
        [{"timestamp": f"{i:02d}:00", "title": t} for i, t in enumerate(titles)]
    )


class FakeGenerator:
    """Returns queued responses and records prompts."""

    def __init__(self, *responses: str):
        self.responses = list(responses)
        self.prompts: list[str] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


class FakeSource:
    """Caption source serving a fixed bundle."""

    def __init__(self, *documents: str, title: str = "Test video", auto: bool = True):
        self.bundle = CaptionBundle(video_title=title, is_auto_generated=auto, documents=list(documents))
        self.calls: list[tuple[str, str]] = []

    async def fetch(self, video_id: str, language: str) -> CaptionBundle:
        self.calls.append((video_id, language))
        return self.bundle


@pytest.fixture
def store(tmp_path):
    s = SQLiteStore(tmp_path / "test.db")
    yield s
    s.close()


def count_analyses(store: SQLiteStore, transcript_id: str) -> int:
    row = store.conn.execute(
        "SELECT COUNT(*) FROM analyses WHERE transcript_id = ?", (transcript_id,)
    ).fetchone()
    return row[0]
