"""Configuration management and environment variable loading."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .caption_utils import ContinuationPolicy
from .generation import DEFAULT_MODEL
from .prompts import DEFAULT_MAX_CHAPTERS, DEFAULT_MIN_CHAPTERS

logger = logging.getLogger("subchapters")


def _env_int(env: dict, key: str, default: int) -> int:
    value = env.get(key)
    if value in (None, ""):
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Invalid %s %r, using default %s", key, value, default)
        return default


def _env_float(env: dict, key: str, default: float) -> float:
    value = env.get(key)
    if value in (None, ""):
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("Invalid %s %r, using default %s", key, value, default)
        return default


def _env_bool(env: dict, key: str, default: bool) -> bool:
    value = env.get(key)
    if value in (None, ""):
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Application settings."""

    openai_api_key: str = ""
    model: str = DEFAULT_MODEL
    db_path: Path = Path("subchapters.db")
    language: str = "en"
    min_chapters: int = DEFAULT_MIN_CHAPTERS
    max_chapters: int = DEFAULT_MAX_CHAPTERS
    continuation: str = ContinuationPolicy.DROP
    strip_tags: bool = False
    openai_timeout: float = 120.0
    max_concurrent: int = 4
    user: str | None = None
    cookies_path: str | None = None

    @classmethod
    def from_env(cls, env: dict | None = None, *, dotenv: bool = True) -> "Settings":
        """Build settings from environment variables (and a .env file)."""
        if env is None:
            if dotenv:
                # Don't override variables already set in the environment
                load_dotenv(override=False)
            env = dict(os.environ)

        min_chapters = max(1, _env_int(env, "SUBCHAPTERS_MIN_CHAPTERS", DEFAULT_MIN_CHAPTERS))
        max_chapters = max(1, _env_int(env, "SUBCHAPTERS_MAX_CHAPTERS", DEFAULT_MAX_CHAPTERS))
        if min_chapters > max_chapters:
            logger.warning("Chapter range %d-%d is inverted, swapping", min_chapters, max_chapters)
            min_chapters, max_chapters = max_chapters, min_chapters

        continuation = env.get("SUBCHAPTERS_CONTINUATION", ContinuationPolicy.DROP).strip().lower()
        if continuation not in ContinuationPolicy.ALL:
            logger.warning("Invalid SUBCHAPTERS_CONTINUATION %r, using drop", continuation)
            continuation = ContinuationPolicy.DROP

        return cls(
            openai_api_key=env.get("OPENAI_API_KEY", ""),
            model=env.get("SUBCHAPTERS_MODEL") or DEFAULT_MODEL,
            db_path=Path(env.get("SUBCHAPTERS_DB_PATH") or "subchapters.db"),
            language=env.get("SUBCHAPTERS_LANGUAGE") or "en",
            min_chapters=min_chapters,
            max_chapters=max_chapters,
            continuation=continuation,
            strip_tags=_env_bool(env, "SUBCHAPTERS_STRIP_TAGS", False),
            openai_timeout=_env_float(env, "SUBCHAPTERS_OPENAI_TIMEOUT", 120.0),
            max_concurrent=max(1, _env_int(env, "SUBCHAPTERS_MAX_CONCURRENT", 4)),
            user=env.get("SUBCHAPTERS_USER") or None,
            cookies_path=env.get("SUBCHAPTERS_COOKIES") or None,
        )
