"""Summer wrapped pipeline: export text in, story payload out.

Runs pre-flight checks on the raw export, decodes it, and chains the
normalize -> metrics -> slides stages.  Any unexpected failure inside a stage
is reported as one ``PipelineStageError`` naming that stage.

Usage:
    python summer_wrapped.py [json_file] [--year 2024] [--alias NAME ...]
                             [--output story.json] [--charts DIR] [--quiet]
"""

from __future__ import annotations

import argparse
import json
import logging
import re
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Iterable

from chat_gpt_normalize import normalize_export
from summer_metrics import compute_summer_metrics
from summer_slides import build_summer_slides

logger = logging.getLogger(__name__)

ZIP_MESSAGE = "Looks like a ZIP. Unzip your export first, then select conversations.json."
HTML_MESSAGE = "This looks like HTML, not JSON. Pick conversations.json from the unzipped export."
EMPTY_MESSAGE = "The export file is empty. Pick conversations.json from the unzipped export."
ENCODING_MESSAGE = "The export is not valid UTF-8 text. Pick conversations.json from the unzipped export."

_HEAD_CHARS = 200
_HTML_HEAD_RE = re.compile(r"^\s*(<!doctype html|<html)", re.I)


class ExportParseError(ValueError):
    """The export could not be read as a JSON document at all."""


class PipelineStageError(RuntimeError):
    """A pipeline stage failed unexpectedly.

    Attributes:
        stage: ``"normalize"``, ``"metrics"`` or ``"slides"``.
    """

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(f"{stage} stage failed: {message}")
        self.stage = stage


# ---------------------------------------------------------------------------
# Pre-flight and decoding
# ---------------------------------------------------------------------------

def check_export_text(text: str) -> str:
    """Reject inputs that are obviously not a JSON export.

    Args:
        text: Raw export text.

    Returns:
        The text with any leading byte-order mark removed.

    Raises:
        ExportParseError: For ZIP archives, HTML pages, and blank input.
    """
    clean = text[1:] if text.startswith("\ufeff") else text
    head = clean[:_HEAD_CHARS]
    if head.startswith("PK"):
        raise ExportParseError(ZIP_MESSAGE)
    if _HTML_HEAD_RE.match(head):
        raise ExportParseError(HTML_MESSAGE)
    if not clean.strip():
        raise ExportParseError(EMPTY_MESSAGE)
    return clean


def parse_export_text(text: str) -> Any:
    """Run the pre-flight checks and decode the export as JSON.

    Raises:
        ExportParseError: When the checks fail or the JSON is malformed.
            The message carries the line and column of the syntax error.
            Oversized integers and very deep nesting are reported too.
    """
    clean = check_export_text(text)
    try:
        return json.loads(clean)
    except json.JSONDecodeError as e:
        raise ExportParseError(
            f"Invalid JSON at line {e.lineno}, column {e.colno}: {e.msg}"
        ) from e
    except (ValueError, RecursionError) as e:
        # Oversized integers and very deep nesting
        raise ExportParseError(f"Could not decode JSON: {e}") from e


def decode_export_bytes(data: bytes) -> str:
    """Decode raw export bytes as UTF-8 (an optional BOM is dropped).

    ZIP archives are detected on the bytes, before decoding is attempted.
    """
    if data[:2] == b"PK":
        raise ExportParseError(ZIP_MESSAGE)
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ExportParseError(ENCODING_MESSAGE) from e


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def _run_stage(stage: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    try:
        return func(*args, **kwargs)
    except Exception as e:
        logger.exception("Summer wrapped %s stage failed", stage)
        raise PipelineStageError(stage, f"{type(e).__name__}: {e}") from e


def run_pipeline(
    raw: Any,
    year: int | None = None,
    aliases: Iterable[str] | None = None,
    reference_date: date | str | None = None,
) -> tuple[dict, dict, list[dict]]:
    """Normalize a decoded export, compute metrics, and build slides.

    Args:
        raw: Any decoded JSON value.
        year: Optional summer year to pin.
        aliases: Optional terms to boost in keyword ranking.
        reference_date: Optional "today" for the empty state.

    Returns:
        Tuple of (normalized export, metrics, slides).

    Raises:
        PipelineStageError: If a stage raised unexpectedly.
    """
    normalized = _run_stage("normalize", normalize_export, raw)
    metrics = _run_stage(
        "metrics",
        compute_summer_metrics,
        normalized["threads"],
        year=year,
        aliases=list(aliases or []),
        reference_date=reference_date,
    )
    slides = _run_stage("slides", build_summer_slides, metrics)
    return normalized, metrics, slides


def _generated_at(reference_date: date | str | None) -> str:
    if isinstance(reference_date, datetime):
        return reference_date.isoformat()
    if isinstance(reference_date, date):
        return f"{reference_date.isoformat()}T00:00:00"
    if reference_date:
        return f"{str(reference_date)[:10]}T00:00:00"
    return datetime.now().isoformat()


def build_story_payload(
    metrics: dict,
    slides: list[dict],
    thread_count: int,
    shape: str,
    generated_at: str | None = None,
) -> dict[str, Any]:
    """Assemble the story payload handed to the presentation layer.

    Returns:
        Dict with keys generated_at, start_date, end_date, thread_count,
        shape, metrics, slides.
    """
    return {
        "generated_at": generated_at or datetime.now().isoformat(),
        "start_date": metrics["start_iso"],
        "end_date": metrics["end_iso"],
        "thread_count": thread_count,
        "shape": shape,
        "metrics": metrics,
        "slides": slides,
    }


def wrap_export_text(
    text: str,
    year: int | None = None,
    aliases: Iterable[str] | None = None,
    reference_date: date | str | None = None,
) -> dict[str, Any]:
    """One-call entry point: raw export text to story payload.

    Args:
        text: Contents of ``conversations.json`` (or a shared conversation).
        year: Pin the summer year instead of auto-selecting it.
        aliases: Terms that get boosted keyword weight.
        reference_date: Pins "today"; also used for ``generated_at``.

    Returns:
        The story payload (see ``build_story_payload``).

    Raises:
        ExportParseError: The text is not a JSON export.
        PipelineStageError: A stage failed unexpectedly.
    """
    raw = parse_export_text(text)
    normalized, metrics, slides = run_pipeline(
        raw, year=year, aliases=aliases, reference_date=reference_date,
    )
    logger.info(
        "Built %d slides for summer %d from %d threads",
        len(slides), metrics["year"], len(normalized["threads"]),
    )
    return build_story_payload(
        metrics,
        slides,
        thread_count=len(normalized["threads"]),
        shape=normalized["shape"],
        generated_at=_generated_at(reference_date),
    )


def wrap_export_bytes(data: bytes, **kwargs: Any) -> dict[str, Any]:
    """Like ``wrap_export_text`` for undecoded bytes (uploads, files)."""
    return wrap_export_text(decode_export_bytes(data), **kwargs)


def wrap_export_file(path: str | Path, **kwargs: Any) -> dict[str, Any]:
    """Read an export file and run the full pipeline on it.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ExportParseError: The file is not a JSON export.
        PipelineStageError: A stage failed unexpectedly.
    """
    return wrap_export_bytes(Path(path).read_bytes(), **kwargs)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def print_wrapped_report(payload: dict[str, Any]) -> None:
    """Print a plain-text summary of a story payload to stdout."""
    metrics = payload["metrics"]

    print(f"\n{'=' * 60}")
    print(f"ChatGPT Summer Wrapped {metrics['year']}")
    print(f"{'=' * 60}")
    print(f"Window: {payload['start_date']} to {payload['end_date']}")
    print(f"Threads in export: {payload['thread_count']:,}")
    print(f"Total Prompts: {metrics['total_prompts']:,}")
    print(f"Active Days: {metrics['unique_days']:,}")
    print(f"Longest Streak: {metrics['longest_streak']} days")

    busiest = metrics.get("busiest_day")
    if busiest:
        print(f"Busiest Day: {busiest['date']} ({busiest['count']:,} prompts)")

    if metrics["topics"]:
        print("\nTop Topics:")
        for topic in metrics["topics"][:5]:
            print(f"  {topic['name']}: {topic['value']:,}")

    if metrics["keywords"]:
        print("\nTop Keywords:")
        for keyword in metrics["keywords"][:5]:
            print(f"  {keyword['name']}: {keyword['value']:,}")

    saved = metrics["time_saved"]
    if saved["total_minutes"]:
        print(f"\nEstimated Time Saved: {saved['total_minutes']:,} minutes ({saved['hours']} hours)")

    print(f"\n{metrics['persona']['blurb']}")
    print(f"{'=' * 60}")
    print(f"{len(payload['slides'])} slides generated.")


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for building a summer wrapped story from an export."""
    parser = argparse.ArgumentParser(description="Build a summer wrapped story from a ChatGPT export")
    parser.add_argument("json_file", nargs="?", default="conversations.json",
                        help="Path to the conversations JSON file (default: conversations.json)")
    parser.add_argument("--year", "-y", type=int,
                        help="Summer year to report on (default: the busiest summer)")
    parser.add_argument("--alias", "-a", action="append", default=[],
                        help="Name or project term to boost in keywords (repeatable)")
    parser.add_argument("--output", "-o", help="Write the story payload as JSON to this file")
    parser.add_argument("--charts", "-c", metavar="DIR",
                        help="Also save weekly activity and mood charts as PNGs in DIR")
    parser.add_argument("--quiet", "-q", action="store_true",
                        help="Only log warnings and skip the printed report")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        payload = wrap_export_file(args.json_file, year=args.year, aliases=args.alias)
    except FileNotFoundError:
        print(f"Error: File '{args.json_file}' not found.", file=sys.stderr)
        sys.exit(1)
    except (ExportParseError, PipelineStageError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
        logger.info("Story payload written to %s", args.output)

    if args.charts:
        from summer_viz import save_summer_charts

        for chart_path in save_summer_charts(payload["metrics"], args.charts):
            logger.info("Chart saved to %s", chart_path)

    if not args.quiet:
        print_wrapped_report(payload)


if __name__ == "__main__":
    main()
