"""
Asynchronous command-line interface for the subtitle chapters pipeline.
"""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

from tqdm.asyncio import tqdm

from .caption_utils import flatten_cues, normalize_cues, parse_cues
from .captions_fetch import YtDlpCaptionSource
from .config import Settings
from .errors import (
    CaptionsUnavailable,
    InvalidSourceUrl,
    NotFound,
    SubchaptersError,
    Unauthenticated,
)
from .extraction import TranscriptExtractor
from .generation import make_openai_generator
from .reconciler import AnalysisReconciler
from .store import SQLiteStore

logger = logging.getLogger("subchapters")

EXIT_ERROR = 1
EXIT_USER_ERROR = 2
EXIT_RETRYABLE = 3


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    ap = argparse.ArgumentParser(description="Video captions to transcripts and chapters")
    ap.add_argument("--user", default=None, help="Principal id (default: SUBCHAPTERS_USER)")
    ap.add_argument("--db", default=None, help="SQLite database path (default: SUBCHAPTERS_DB_PATH)")
    ap.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("extract", help="Extract and store transcripts for one or more URLs")
    p.add_argument("urls", nargs="+")
    p.add_argument("--lang", default=None, help="Caption language (default: SUBCHAPTERS_LANGUAGE)")

    sub.add_parser("videos", help="List stored transcripts")

    p = sub.add_parser("show", help="Print a stored transcript")
    p.add_argument("transcript_id")

    for name, help_text in (
        ("analyze", "Return the chapters of a transcript, generating them once"),
        ("regenerate", "Generate chapters again, replacing the stored ones"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("transcript_id")
        p.add_argument("--chapters", default=None, help="Exact number of chapters to create")

    sub.add_parser("analyses", help="List stored analyses")

    p = sub.add_parser("analysis", help="Print one stored analysis")
    p.add_argument("analysis_id")

    p = sub.add_parser("normalize", help="Normalize a local caption file (offline)")
    p.add_argument("path")
    p.add_argument("--plain", action="store_true", help="Print prose without timestamps")

    return ap.parse_args(argv)


def _print_json(data) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


async def _extract_many(extractor: TranscriptExtractor, urls: list[str], user: str,
                        language: str, max_concurrent: int) -> list[dict]:
    """Extract several URLs concurrently with a progress bar."""
    semaphore = asyncio.Semaphore(max_concurrent)

    async def process_single(url: str) -> dict:
        async with semaphore:
            try:
                transcript = await extractor.extract(url, user, language)
            except SubchaptersError as e:
                logger.warning(f"{url}: {e}")
                return {"url": url, "error": e.code, "message": e.message, "retryable": e.retryable}
            return {"url": url, "id": transcript.id, "videoId": transcript.video_id,
                    "videoTitle": transcript.video_title}

    tasks = [process_single(url) for url in urls]
    results = []
    for result in tqdm.as_completed(tasks, desc="Extracting", disable=len(urls) < 2):
        results.append(await result)
    return results


def _batch_exit_code(results: list[dict]) -> int:
    """0 when every URL succeeded; retryable only when every failure is."""
    failures = [r for r in results if "error" in r]
    if not failures:
        return 0
    return EXIT_RETRYABLE if all(r["retryable"] for r in failures) else EXIT_USER_ERROR


async def run_command(args: argparse.Namespace, settings: Settings) -> int:
    """Dispatch a parsed command; returns the process exit code."""
    if args.command == "normalize":
        raw = Path(args.path).read_text(encoding="utf-8", errors="replace")
        cues = parse_cues(raw, continuation=settings.continuation, strip_tags=settings.strip_tags)
        print(flatten_cues(cues) if args.plain else normalize_cues(cues))
        return 0 if cues else EXIT_USER_ERROR

    user = args.user or settings.user
    store = SQLiteStore(args.db or settings.db_path)
    try:
        extractor = TranscriptExtractor(
            store,
            YtDlpCaptionSource(cookies_path=settings.cookies_path),
            continuation=settings.continuation,
            strip_tags=settings.strip_tags,
        )

        if args.command == "extract":
            results = await _extract_many(
                extractor, args.urls, user, args.lang or settings.language, settings.max_concurrent
            )
            _print_json(results)
            return _batch_exit_code(results)

        if args.command == "videos":
            videos = await extractor.list_videos(user)
            _print_json([{k: v for k, v in asdict(t).items() if k != "content"} for t in videos])
            return 0

        if args.command == "show":
            transcript = await extractor.get_transcript(args.transcript_id, user)
            _print_json(asdict(transcript))
            return 0

        if args.command in ("analyses", "analysis"):
            reconciler = AnalysisReconciler(store, generator=None)
            if args.command == "analyses":
                _print_json([asdict(s) for s in await reconciler.list_analyses(user)])
            else:
                _print_json(asdict(await reconciler.get_analysis(args.analysis_id, user)))
            return 0

        generator = make_openai_generator(
            settings.openai_api_key, model=settings.model, timeout=settings.openai_timeout
        )
        reconciler = AnalysisReconciler(
            store,
            generator,
            min_chapters=settings.min_chapters,
            max_chapters=settings.max_chapters,
        )
        operation = reconciler.analyze if args.command == "analyze" else reconciler.regenerate
        analysis = await operation(args.transcript_id, user, args.chapters)
        _print_json(asdict(analysis))
        return 0
    finally:
        store.close()


async def main_async(argv: list[str] | None = None) -> int:
    """Main async CLI entry point."""
    args = parse_args(argv)
    setup_logging(args.verbose)
    settings = Settings.from_env()

    try:
        return await run_command(args, settings)
    except (InvalidSourceUrl, CaptionsUnavailable, NotFound, Unauthenticated) as e:
        logger.error(str(e))
        return EXIT_USER_ERROR
    except SubchaptersError as e:
        logger.error(str(e))
        if getattr(e, "raw", None):
            logger.debug("Raw generation output: %s", e.raw)
        return EXIT_RETRYABLE if e.retryable else EXIT_ERROR
    except OSError as e:
        logger.error(f"Cannot read input: {e}")
        return EXIT_USER_ERROR
    except RuntimeError as e:
        logger.error(str(e))
        return EXIT_ERROR


def main() -> None:
    """Main CLI entry point."""
    sys.exit(asyncio.run(main_async()))


if __name__ == "__main__":
    main()
