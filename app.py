"""FastAPI service for ChatGPT Summer Wrapped.

Serves the story payload for a configured export file (cached, 1-hour TTL
since the export only changes when a new one is downloaded) and builds
stories on demand from uploaded exports.

Deployment: uvicorn app:app --host 127.0.0.1 --port 8204
"""

from __future__ import annotations

import logging
import os
import threading
import time
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool

from summer_wrapped import (
    ExportParseError,
    PipelineStageError,
    wrap_export_bytes,
    wrap_export_file,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------
EXPORT_PATH = Path(
    os.environ.get("SUMMER_WRAPPED_EXPORT", Path(__file__).parent / "conversations.json")
)
CACHE_TTL_SECONDS = 3600  # 1 hour

# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(
    title="ChatGPT Summer Wrapped",
    root_path="/summer_wrapped",
)

# ---------------------------------------------------------------------------
# Thread-safe cache
# ---------------------------------------------------------------------------
_cache_lock = threading.Lock()
_cache: dict[str, Any] = {
    "data": None,
    "built_at": 0.0,
}


def _http_error(exc: ExportParseError | PipelineStageError) -> HTTPException:
    if isinstance(exc, PipelineStageError):
        return HTTPException(
            status_code=500, detail=f"Story build failed in the {exc.stage} stage",
        )
    return HTTPException(status_code=422, detail=str(exc))


def _build_file_payload() -> dict[str, Any]:
    """Run the pipeline on the configured export, mapping errors to HTTP."""
    try:
        return wrap_export_file(EXPORT_PATH)
    except FileNotFoundError as e:
        logger.warning("Export file not found: %s", EXPORT_PATH)
        raise HTTPException(status_code=503, detail="Export file not available") from e
    except (ExportParseError, PipelineStageError) as e:
        raise _http_error(e) from e


def _get_cached_data(force_refresh: bool = False) -> dict[str, Any]:
    """Return the cached story payload, rebuilding if stale or forced."""
    now = time.monotonic()
    with _cache_lock:
        if (
            not force_refresh
            and _cache["data"] is not None
            and (now - _cache["built_at"]) < CACHE_TTL_SECONDS
        ):
            return _cache["data"]

    data = _build_file_payload()

    with _cache_lock:
        _cache["data"] = data
        _cache["built_at"] = time.monotonic()

    return data


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/health")
@app.get("/healthz")
def healthz():
    return {"status": "ok"}


@app.get("/api/wrapped")
def api_wrapped():
    """Return the full story payload for the configured export."""
    return _get_cached_data()


@app.get("/api/slides")
def api_slides():
    """Return only the slide list, with the window it covers."""
    data = _get_cached_data()
    return {
        "start_date": data["start_date"],
        "end_date": data["end_date"],
        "slides": data["slides"],
    }


@app.get("/api/refresh")
def api_refresh():
    """Force a cache rebuild and return a short status."""
    data = _get_cached_data(force_refresh=True)
    return {
        "status": "refreshed",
        "generated_at": data["generated_at"],
        "slide_count": len(data["slides"]),
    }


@app.post("/api/wrapped")
async def api_wrapped_upload(
    request: Request,
    year: int | None = None,
    alias: list[str] = Query(default=[]),
):
    """Build a story from an export sent as the raw request body.

    Uploaded exports are never cached.
    """
    body = await request.body()
    try:
        return await run_in_threadpool(wrap_export_bytes, body, year=year, aliases=alias)
    except (ExportParseError, PipelineStageError) as e:
        raise _http_error(e) from e
