"""
Tests for the command-line interface.
"""

import asyncio
import json

import pytest

from subchapters import cli
from subchapters.cli import EXIT_RETRYABLE, EXIT_USER_ERROR, main_async
from subchapters.errors import CollaboratorUnavailable, NotFound
from subchapters.models import CaptionBundle

from conftest import SAMPLE_VTT

GOOD_ID = "dQw4w9WgXcQ"
DOWN_ID = "aaaaaaaaaaa"
GONE_ID = "bbbbbbbbbbb"


class FlakySource:
    """Caption source that fails for some video ids."""

    async def fetch(self, video_id: str, language: str) -> CaptionBundle:
        if video_id == DOWN_ID:
            raise CollaboratorUnavailable("metadata fetch timed out", stage="fetch_captions")
        if video_id == GONE_ID:
            raise NotFound("video is private", stage="fetch_captions")
        return CaptionBundle(video_title="Good video", is_auto_generated=False, documents=[SAMPLE_VTT])


@pytest.fixture
def flaky_source(monkeypatch):
    monkeypatch.setattr(cli, "YtDlpCaptionSource", lambda **kwargs: FlakySource())


def _extract(tmp_path, *video_ids):
    urls = [f"https://youtu.be/{video_id}" for video_id in video_ids]
    return asyncio.run(main_async(["--db", str(tmp_path / "db.sqlite"), "--user", "alice", "extract", *urls]))


def test_normalize_command(tmp_path, capsys):
    path = tmp_path / "captions.vtt"
    path.write_text(SAMPLE_VTT, encoding="utf-8")

    assert asyncio.run(main_async(["normalize", str(path)])) == 0
    out = capsys.readouterr().out
    assert out.startswith("00:00:01.000 --> 00:00:03.000\nWelcome to the show\n\n")

    assert asyncio.run(main_async(["normalize", "--plain", str(path)])) == 0
    assert capsys.readouterr().out.strip() == "Welcome to the show Today we talk about caching"


def test_normalize_without_cues(tmp_path):
    path = tmp_path / "empty.vtt"
    path.write_text("WEBVTT\n", encoding="utf-8")

    assert asyncio.run(main_async(["normalize", str(path)])) == EXIT_USER_ERROR


def test_missing_user_is_rejected(tmp_path, monkeypatch):
    monkeypatch.delenv("SUBCHAPTERS_USER", raising=False)

    code = asyncio.run(main_async(["--db", str(tmp_path / "db.sqlite"), "show", "abc"]))

    assert code == EXIT_USER_ERROR


def test_analyses_and_unknown_transcript(tmp_path, capsys):
    code = asyncio.run(main_async(["--db", str(tmp_path / "db.sqlite"), "--user", "alice", "analyses"]))

    assert code == 0
    assert json.loads(capsys.readouterr().out) == []
    assert asyncio.run(main_async(["--db", str(tmp_path / "db.sqlite"), "--user", "alice", "show", "abc"])) == EXIT_USER_ERROR


def test_extract_batch_reports_every_url(tmp_path, capsys, flaky_source):
    code = _extract(tmp_path, DOWN_ID, GOOD_ID)

    results = {r["url"]: r for r in json.loads(capsys.readouterr().out)}
    assert code == EXIT_RETRYABLE
    assert results[f"https://youtu.be/{DOWN_ID}"]["error"] == "ERR_COLLABORATOR_UNAVAILABLE"
    assert results[f"https://youtu.be/{DOWN_ID}"]["retryable"] is True
    assert results[f"https://youtu.be/{GOOD_ID}"]["videoId"] == GOOD_ID
    assert results[f"https://youtu.be/{GOOD_ID}"]["videoTitle"] == "Good video"


def test_extract_batch_with_permanent_failure(tmp_path, capsys, flaky_source):
    code = _extract(tmp_path, DOWN_ID, GONE_ID, GOOD_ID)

    results = json.loads(capsys.readouterr().out)
    assert code == EXIT_USER_ERROR
    assert len(results) == 3
    assert sorted(r.get("error", "") for r in results) == ["", "ERR_COLLABORATOR_UNAVAILABLE", "ERR_NOT_FOUND"]
