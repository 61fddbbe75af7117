"""
Tests for the SQLite store.
"""

import asyncio

from subchapters.models import Chapter
from subchapters.store import SQLiteStore

from conftest import count_analyses


def _insert(store, video_id="dQw4w9WgXcQ", user="alice", language="en", content="text"):
    return asyncio.run(store.insert_transcript(video_id, user, language, content, video_title="T"))


def test_transcript_natural_key_is_unique(store):
    """A second insert with the same key returns the first row."""
    first = _insert(store, content="first")
    second = _insert(store, content="second")

    assert second.id == first.id
    assert second.content == "first"
    assert _insert(store, language="de").id != first.id
    assert _insert(store, user="bob").id != first.id


def test_transcript_lookup_is_owner_scoped(store):
    transcript = _insert(store)

    assert asyncio.run(store.get_transcript(transcript.id, "alice")) == transcript
    assert asyncio.run(store.get_transcript(transcript.id, "bob")) is None
    assert asyncio.run(store.find_transcript("dQw4w9WgXcQ", "alice", "en")) == transcript
    assert [t.id for t in asyncio.run(store.list_transcripts("alice"))] == [transcript.id]
    assert asyncio.run(store.list_transcripts("bob")) == []


def test_insert_analysis_if_absent_keeps_first(store):
    transcript = _insert(store)

    first = asyncio.run(store.insert_analysis_if_absent(transcript.id, "alice", [Chapter("00:00", "A")]))
    second = asyncio.run(store.insert_analysis_if_absent(transcript.id, "alice", [Chapter("00:00", "B")]))

    assert second.id == first.id
    assert second.chapters == [Chapter("00:00", "A")]
    assert count_analyses(store, transcript.id) == 1


def test_upsert_replaces_in_place(store):
    """Upsert keeps one row, replaces chapters and advances updated_at."""
    transcript = _insert(store)

    first = asyncio.run(store.upsert_analysis(transcript.id, "alice", [Chapter("00:00", "A")]))
    second = asyncio.run(store.upsert_analysis(transcript.id, "alice", [Chapter("01:00", "B")]))

    assert second.id == first.id
    assert second.created_at == first.created_at
    assert second.updated_at > first.updated_at
    assert second.chapters == [Chapter("01:00", "B")]
    assert count_analyses(store, transcript.id) == 1


def test_updated_at_advances_past_clock(store, monkeypatch):
    """Two writes within the same clock tick still order strictly."""
    transcript = _insert(store)
    monkeypatch.setattr(SQLiteStore, "_now", staticmethod(lambda: "2026-01-01T00:00:00.000000+00:00"))

    first = asyncio.run(store.upsert_analysis(transcript.id, "alice", []))
    second = asyncio.run(store.upsert_analysis(transcript.id, "alice", []))

    assert first.updated_at == "2026-01-01T00:00:00.000000+00:00"
    assert second.updated_at == "2026-01-01T00:00:00.000001+00:00"


def test_analysis_summaries(store):
    transcript = _insert(store)
    analysis = asyncio.run(store.upsert_analysis(transcript.id, "alice", [Chapter("00:00", "A")]))

    summary = asyncio.run(store.get_analysis(analysis.id, "alice"))

    assert summary.analysis == analysis
    assert summary.video_id == "dQw4w9WgXcQ"
    assert summary.video_title == "T"
    assert summary.language == "en"
    assert asyncio.run(store.get_analysis(analysis.id, "bob")) is None
    assert [s.analysis.id for s in asyncio.run(store.list_analyses("alice"))] == [analysis.id]
    assert asyncio.run(store.list_analyses("bob")) == []


def test_data_survives_reopen(tmp_path):
    path = tmp_path / "nested" / "db.sqlite"
    store = SQLiteStore(path)
    transcript = _insert(store)
    store.close()

    reopened = SQLiteStore(path)
    try:
        assert asyncio.run(reopened.get_transcript(transcript.id, "alice")) == transcript
    finally:
        reopened.close()
