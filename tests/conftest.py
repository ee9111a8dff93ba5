"""Shared fixtures for summer wrapped tests."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient


# ── Minimal story payload for app.py tests ──


def _minimal_story_payload() -> dict:
    """Return a minimal payload matching wrap_export_text() shape.

    Keys and structure must exactly match the dict returned by
    ``summer_wrapped.build_story_payload``.
    """
    return {
        "generated_at": "2024-09-01T00:00:00",
        "start_date": "2024-06-01",
        "end_date": "2024-08-31",
        "thread_count": 1,
        "shape": "full_export",
        "metrics": {
            "year": 2024,
            "start_iso": "2024-06-01",
            "end_iso": "2024-08-31",
            "empty": False,
            "total_prompts": 1,
            "total_assistant": 0,
            "unique_days": 1,
            "longest_streak": 1,
            "busiest_day": {"date": "2024-07-02", "count": 1, "all": 1},
            "topics": [{"name": "General", "value": 1}],
            "week_buckets": [{"activity": "Week of 07-01", "count": 1}],
            "keywords": [],
            "emotions": {"daily_scores": [], "panic_count": 0, "lol_count": 0},
            "longest_thread": {"id": "c1", "title": "Hi", "turns": 1},
            "time_saved": {
                "total_minutes": 4,
                "hours": 0.1,
                "daily_cap": 60,
                "capped_days": 0,
                "by_day": [{"date": "2024-07-02", "minutes": 4}],
            },
            "accomplishments": [],
            "persona": {"blurb": "You kept it all General this summer.", "tags": []},
            "roast": "Roast.",
        },
        "slides": [
            {"id": "cover", "title": "Your GPT Summer Wrapped", "type": "full-cover"},
            {"id": "outro", "title": "Nice work", "type": "text"},
        ],
    }


@pytest.fixture()
def mock_payload():
    """Return the minimal story payload dict."""
    return _minimal_story_payload()


@pytest.fixture()
def client(mock_payload):
    """TestClient for app.py with a mocked export pipeline.

    Patches wrap_export_file so no conversations.json is needed.
    Resets the module-level cache between tests.
    """
    import app as app_module

    with patch.object(
        app_module, "_cache", {"data": None, "built_at": 0.0}
    ):
        with patch(
            "app.wrap_export_file", return_value=mock_payload
        ):
            with TestClient(app_module.app) as tc:
                yield tc
