"""Project summer metrics onto an ordered list of story slide descriptors.

Slides are plain dicts with presentation-defined keys (``id``, ``title``,
``type`` and optionally ``content``, ``subtext``, ``items``, ``chartData``,
``image``, ``videoUrl``).  Nothing here computes statistics; it only formats
what ``summer_metrics.compute_summer_metrics`` produced.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from summer_metrics import SUMMER_DAYS

MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

COVER_IMAGE = "https://images.pexels.com/photos/3052361/pexels-photo-3052361.jpeg"

MAX_TOPIC_ITEMS = 6
MAX_KEYWORD_ITEMS = 10
MAX_VIBE_ITEMS = 5


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def _as_date(iso_day: str) -> date:
    return date.fromisoformat(iso_day[:10])


def format_month_day(iso_day: str) -> str:
    """``"2024-06-02"`` -> ``"Jun 2"``."""
    d = _as_date(iso_day)
    return f"{MONTHS[d.month - 1]} {d.day}"


def format_month_day_year(iso_day: str) -> str:
    """``"2024-06-02"`` -> ``"Jun 2, 2024"``."""
    d = _as_date(iso_day)
    return f"{MONTHS[d.month - 1]} {d.day}, {d.year}"


def format_weekday_month_day(iso_day: str) -> str:
    """``"2024-06-02"`` -> ``"Sun, Jun 2"``."""
    d = _as_date(iso_day)
    return f"{WEEKDAYS[d.weekday()]}, {MONTHS[d.month - 1]} {d.day}"


def pluralize(count: int, noun: str, plural: str | None = None) -> str:
    """Return ``"1 day"`` / ``"3 days"`` with thousands separators."""
    word = noun if count == 1 else (plural or f"{noun}s")
    return f"{count:,} {word}"


def _percent_of(value: int, total: int) -> int:
    if total <= 0:
        return 0
    return round(value * 100 / total)


def _subrange(start_iso: str, end_iso: str) -> str:
    return f"{format_month_day(start_iso)} - {format_month_day(end_iso)}, {_as_date(end_iso).year}"


def _format_minutes(total_minutes: int, hours: float) -> str:
    if total_minutes < 60:
        return f"~{pluralize(total_minutes, 'minute')}"
    word = "hour" if hours == 1 else "hours"
    return f"~{hours:g} {word}"


# ---------------------------------------------------------------------------
# Slides
# ---------------------------------------------------------------------------

def _cover_slide(metrics: dict, subrange: str) -> dict:
    if metrics.get("total_prompts", 0) > 0:
        content = f"A quick look at how you used ChatGPT this summer.<br/><small>{subrange}</small>"
    else:
        content = f"We didn't find summer prompts in your export.<br/><small>{subrange}</small>"
    return {
        "id": "cover",
        "title": "Your GPT Summer Wrapped",
        "type": "full-cover",
        "image": COVER_IMAGE,
        "content": content,
    }


def _core_stat_slides(metrics: dict, subrange: str) -> list[dict]:
    unique_days = metrics.get("unique_days", 0)
    return [
        {
            "id": "prompts",
            "title": "Total Prompts",
            "type": "stat",
            "content": f"{metrics.get('total_prompts', 0):,}",
            "subtext": f"You + ChatGPT, {subrange}",
        },
        {
            "id": "active-days",
            "title": "Active Days",
            "type": "stat",
            "content": f"{unique_days:,}",
            "subtext": f"Days you used ChatGPT, out of {SUMMER_DAYS} this summer",
        },
        {
            "id": "streak",
            "title": "Longest Streak",
            "type": "stat",
            "content": pluralize(metrics.get("longest_streak", 0), "day"),
            "subtext": "Consecutive days you showed up",
        },
    ]


def _busiest_slides(metrics: dict) -> list[dict]:
    busiest = metrics.get("busiest_day")
    if not busiest:
        return []
    return [{
        "id": "busiest",
        "title": "Busiest Day",
        "type": "stat",
        "content": pluralize(busiest["count"], "prompt"),
        "subtext": f"on {format_weekday_month_day(busiest['date'])}",
    }]


def _topic_slides(metrics: dict) -> list[dict]:
    topics = metrics.get("topics") or []
    if not topics:
        return []
    total = metrics.get("total_prompts", 0)
    return [
        {
            "id": "topics-pie",
            "title": "What You Worked On",
            "type": "pie",
            "subtext": "Topic distribution",
            "items": [dict(t) for t in topics],
        },
        {
            "id": "topics-list",
            "title": "Top Topics",
            "type": "list",
            "items": [
                {"name": t["name"], "count": f"{t['value']}x ({_percent_of(t['value'], total)}%)"}
                for t in topics[:MAX_TOPIC_ITEMS]
            ],
            "subtext": "Share of your summer prompts",
        },
    ]


def _keyword_slides(metrics: dict) -> list[dict]:
    keywords = metrics.get("keywords") or []
    if not keywords:
        return []
    return [
        {
            "id": "keywords-pie",
            "title": "Most-used Keywords",
            "type": "pie",
            "subtext": "What you brought up the most",
            "items": [dict(k) for k in keywords],
        },
        {
            "id": "keywords-list",
            "title": "Top Keywords",
            "type": "list",
            "items": [
                {"name": k["name"], "count": f"{k['value']}x"}
                for k in keywords[:MAX_KEYWORD_ITEMS]
            ],
            "subtext": "Based on your summer prompts",
        },
    ]


def _weekly_slides(metrics: dict, start_iso: str, end_iso: str) -> list[dict]:
    buckets = metrics.get("week_buckets") or []
    if not buckets:
        return []
    return [{
        "id": "weekly",
        "title": "Weekly Activity",
        "type": "chart",
        "chartData": [dict(b) for b in buckets],
        "content": (
            f"Your prompt volume by week ({format_month_day_year(start_iso)}"
            f" to {format_month_day_year(end_iso)})"
        ),
    }]


def _mood_slides(metrics: dict) -> list[dict]:
    scores = (metrics.get("emotions") or {}).get("daily_scores") or []
    if not scores:
        return []
    return [{
        "id": "mood",
        "title": "Your Summer Mood",
        "type": "chart",
        "chartData": [
            {"activity": format_month_day(s["date"]), "count": s["score"]} for s in scores
        ],
        "content": "Daily mood score from your prompts (positive minus negative words)",
    }]


def _vibes_slides(metrics: dict) -> list[dict]:
    emotions = metrics.get("emotions") or {}
    panic = emotions.get("panic_count", 0)
    lol = emotions.get("lol_count", 0)
    if not panic and not lol:
        return []

    scores = emotions.get("daily_scores") or []
    items = [
        {"name": "Panic moments", "count": f"{panic}x"},
        {"name": "LOL moments", "count": f"{lol}x"},
    ]
    if scores:
        best = max(scores, key=lambda s: s["score"])
        worst = min(scores, key=lambda s: s["score"])
        if best["score"] > 0:
            items.append({"name": "Happiest day", "count": format_month_day(best["date"])})
        if worst["score"] < 0:
            items.append({"name": "Roughest day", "count": format_month_day(worst["date"])})
    return [{
        "id": "vibes",
        "title": "Summer Vibes",
        "type": "list",
        "items": items[:MAX_VIBE_ITEMS],
        "subtext": "Counted from how your prompts were worded",
    }]


def _time_saved_slides(metrics: dict) -> list[dict]:
    saved = metrics.get("time_saved") or {}
    total_minutes = saved.get("total_minutes", 0)
    if not total_minutes:
        return []
    subtext = f"Rough estimate, capped at {saved.get('daily_cap', 0)} minutes a day"
    capped = saved.get("capped_days", 0)
    if capped:
        subtext += f" ({pluralize(capped, 'day')} hit the cap)"
    return [{
        "id": "time-saved",
        "title": "Time Saved",
        "type": "stat",
        "content": _format_minutes(total_minutes, saved.get("hours", 0.0)),
        "subtext": subtext,
    }]


def _wins_slides(metrics: dict) -> list[dict]:
    wins = metrics.get("accomplishments") or []
    if not wins:
        return []
    return [{
        "id": "wins",
        "title": "Summer Wins",
        "type": "list",
        "items": [{"name": w["text"], "count": format_month_day(w["date"])} for w in wins],
        "subtext": "Things you shipped, fixed, or landed",
    }]


def _thread_slides(metrics: dict) -> list[dict]:
    thread = metrics.get("longest_thread")
    if not thread:
        return []
    return [{
        "id": "thread",
        "title": "Deepest Dive",
        "type": "list",
        "items": [{"name": thread["title"], "count": pluralize(thread["turns"], "turn")}],
        "subtext": "Your longest summer thread",
    }]


def _persona_slide(metrics: dict) -> dict:
    persona = metrics.get("persona") or {}
    tags = "  ".join(f"#{tag}" for tag in persona.get("tags") or [])
    return {
        "id": "persona",
        "title": "Your Summer Persona",
        "type": "text",
        "content": f"{persona.get('blurb', '')}<br/><br/>{tags}",
        "subtext": "Shareable vibe snapshot",
    }


def _roast_slides(metrics: dict) -> list[dict]:
    if metrics.get("empty") or not metrics.get("roast"):
        return []
    return [{
        "id": "roast",
        "title": "The Roast",
        "type": "text",
        "content": metrics["roast"],
        "subtext": "All in good fun",
    }]


def _outro_slide() -> dict:
    return {
        "id": "outro",
        "title": "Nice work",
        "type": "text",
        "content": "Export this as a clip or keep iterating with more inputs (Slack, calendar, code).",
        "subtext": "All processing stayed on your machine.",
    }


def build_summer_slides(metrics: dict[str, Any]) -> list[dict]:
    """Build the story slides for one metrics dict.

    The order is fixed: cover, prompts, active-days, streak, busiest,
    topics-pie, topics-list, keywords-pie, keywords-list, weekly, mood,
    vibes, time-saved, wins, thread, persona, roast, outro.  Cover, the three
    core stats, persona and outro are always present; every other slide is
    dropped when the metric behind it is empty.

    Args:
        metrics: Output of ``compute_summer_metrics``.  Not modified.

    Returns:
        List of slide descriptor dicts.
    """
    year = metrics.get("year")
    start_iso = metrics.get("start_iso") or f"{year}-06-01"
    end_iso = metrics.get("end_iso") or f"{year}-08-31"
    subrange = _subrange(start_iso, end_iso)

    return [
        _cover_slide(metrics, subrange),
        *_core_stat_slides(metrics, subrange),
        *_busiest_slides(metrics),
        *_topic_slides(metrics),
        *_keyword_slides(metrics),
        *_weekly_slides(metrics, start_iso, end_iso),
        *_mood_slides(metrics),
        *_vibes_slides(metrics),
        *_time_saved_slides(metrics),
        *_wins_slides(metrics),
        *_thread_slides(metrics),
        _persona_slide(metrics),
        *_roast_slides(metrics),
        _outro_slide(),
    ]
