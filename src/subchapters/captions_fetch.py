"""
Caption fetching: track discovery with yt-dlp, downloads with httpx.
"""

import asyncio
import logging
import re
from typing import Protocol

import httpx
import yt_dlp

from .errors import CollaboratorUnavailable, NotFound
from .models import CaptionBundle

logger = logging.getLogger("subchapters")

# Preferred caption formats, best first
CAPTION_FORMATS = ("vtt", "srt")

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"

# yt-dlp messages for videos that are gone or private
_VIDEO_GONE_RE = re.compile(
    r"video unavailable|private video|has been removed|no longer available|does not exist",
    re.IGNORECASE,
)


class CaptionSource(Protocol):
    """Anything that can fetch raw caption documents for a video."""

    async def fetch(self, video_id: str, language: str) -> CaptionBundle: ...


def _tracks_for_language(tracks: dict, language: str) -> list[dict]:
    """Tracks for an exact language key, else for its first regional variant."""
    if not tracks:
        return []
    if language in tracks:
        return tracks[language] or []
    for key in sorted(tracks):
        if key.startswith(f"{language}-"):
            return tracks[key] or []
    return []


def select_caption_tracks(info: dict, language: str) -> tuple[list[str], bool]:
    """Pick caption URLs from yt-dlp metadata in format preference order.

    Creator-provided subtitles are preferred over automatic captions.

    Returns:
        (urls, is_auto_generated); urls is empty when nothing matches
    """
    for key, is_auto in (("subtitles", False), ("automatic_captions", True)):
        tracks = _tracks_for_language(info.get(key) or {}, language)
        urls = []
        for fmt in CAPTION_FORMATS:
            for track in tracks:
                if track.get("ext") == fmt and track.get("url"):
                    urls.append(track["url"])
                    break
        if urls:
            return urls, is_auto
    return [], False


class YtDlpCaptionSource:
    """Fetch captions of a video through yt-dlp metadata and plain HTTP."""

    def __init__(self, http_client: httpx.AsyncClient | None = None, cookies_path: str | None = None):
        self.http_client = http_client
        self.cookies_path = cookies_path

    def _extract_info(self, video_id: str) -> dict:
        opts = {
            "quiet": True,
            "no_warnings": True,
            "skip_download": True,
            "noplaylist": True,
        }
        if self.cookies_path:
            opts["cookiefile"] = self.cookies_path
        with yt_dlp.YoutubeDL(opts) as ydl:
            return ydl.extract_info(WATCH_URL.format(video_id=video_id), download=False)

    async def _download(self, client: httpx.AsyncClient, url: str) -> str:
        resp = await client.get(url, follow_redirects=True)
        resp.raise_for_status()
        return resp.text

    async def fetch(self, video_id: str, language: str) -> CaptionBundle:
        logger.info(f"Fetching caption tracks for {video_id} ({language}) …")
        try:
            info = await asyncio.to_thread(self._extract_info, video_id)
        except yt_dlp.utils.DownloadError as e:
            if _VIDEO_GONE_RE.search(str(e)):
                raise NotFound(f"Video {video_id} is unavailable: {e}", stage="fetch_captions") from e
            raise CollaboratorUnavailable(
                f"Metadata fetch failed for {video_id}: {e}", stage="fetch_captions"
            ) from e

        urls, is_auto = select_caption_tracks(info or {}, language)
        title = (info or {}).get("title")
        if not urls:
            logger.info(f"No caption tracks for {video_id} in {language}")
            return CaptionBundle(video_title=title, is_auto_generated=False, documents=[])

        client = self.http_client or httpx.AsyncClient(timeout=30.0)
        try:
            documents = [await self._download(client, url) for url in urls]
        except httpx.HTTPError as e:
            raise CollaboratorUnavailable(
                f"Caption download failed for {video_id}: {e}", stage="fetch_captions"
            ) from e
        finally:
            if client is not self.http_client:
                await client.aclose()

        logger.info(
            f"Fetched {len(documents)} caption document(s) for {video_id} "
            f"({'automatic' if is_auto else 'creator'})"
        )
        return CaptionBundle(video_title=title, is_auto_generated=is_auto, documents=documents)
