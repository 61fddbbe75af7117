"""
Data models for the subtitle chapters pipeline.
"""

from dataclasses import dataclass, field


@dataclass
class Cue:
    """A single caption unit with its time range line and text."""

    time_range: str  # the "-->" line as found in the document
    text: str


@dataclass
class Chapter:
    """A chapter marker with display timestamp and title."""

    timestamp: str  # MM:SS or HH:MM:SS
    title: str

    def to_dict(self) -> dict[str, str]:
        return {"timestamp": self.timestamp, "title": self.title}


@dataclass
class Transcript:
    """Normalized captions of one video, language and user."""

    id: str
    video_id: str
    user_id: str
    language: str
    content: str
    video_title: str | None = None
    is_auto_generated: bool = False
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class Analysis:
    """The chapter outline stored for a transcript."""

    id: str
    transcript_id: str
    user_id: str
    chapters: list[Chapter] = field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class AnalysisSummary:
    """An analysis joined with the video it was derived from."""

    analysis: Analysis
    video_id: str
    video_title: str | None
    language: str


@dataclass
class CaptionBundle:
    """Raw caption documents for one video, in preference order."""

    video_title: str | None
    is_auto_generated: bool
    documents: list[str] = field(default_factory=list)
