"""Summer (June 1 - August 31, UTC) usage metrics from normalized threads.

Consumes the thread list produced by ``chat_gpt_normalize.normalize_export``
and returns one plain metrics dict.  Used by the CLI (summer_wrapped.py) and
the web service (app.py).
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterable

from chat_gpt_normalize import format_utc, parse_utc
from lexicons import (
    ACCOMPLISHMENT_LABEL_CHARS,
    ACCOMPLISHMENT_PATTERNS,
    DAILY_MINUTES_CAP,
    DEFAULT_TOP_KEYWORDS,
    GENERAL_TOPIC,
    LONG_MESSAGE_BONUS,
    LONG_MESSAGE_TOKENS,
    MAX_ACCOMPLISHMENTS,
    PANIC_PATTERNS,
    TOPIC_MINUTES,
    URGENCY_BONUS,
)
from text_analysis import (
    analyze_emotions,
    best_topic,
    classify_topics,
    extract_keywords,
    matches_any,
    tokenize,
)

logger = logging.getLogger(__name__)

SUMMER_DAYS = 92

NO_DATA_BLURB = "No timestamped messages found in this export."
NO_SUMMER_BLURB = "No summer data found for Jun 1 - Aug 31, {year}."
LOW_VOLUME_BLURB = "Your summer usage was low-volume but eclectic."
EMPTY_ROAST = "Nothing to roast yet. Come back after a busier summer."

ROAST_TOPIC_LINES = {
    "Coding/Debugging": "{count} of your prompts were about code. The bugs had a rough summer, and so did you.",
    "Writing/Comms": "{count} writing requests. Your emails have never sounded more like someone else.",
    "Data/Analysis": "{count} data questions. Somewhere a CSV is still waiting for you to open it.",
    "Research": "{count} research prompts. Citation needed, as always.",
    "Math/Stats": "{count} math prompts. The variance in your sleep schedule was also significant.",
    GENERAL_TOPIC: "{count} prompts about a little bit of everything. Hard to roast a generalist.",
}


def summer_window(year: int) -> tuple[datetime, datetime]:
    """Return the inclusive UTC bounds of the summer window for *year*.

    The window always runs from June 1 00:00:00.000 to August 31
    23:59:59.999, 92 days in every year.
    """
    return (
        datetime(year, 6, 1, tzinfo=timezone.utc),
        datetime(year, 8, 31, 23, 59, 59, 999000, tzinfo=timezone.utc),
    )


def _reference_day(reference_date: date | str | None) -> date:
    if isinstance(reference_date, date):
        return reference_date
    if reference_date:
        return date.fromisoformat(reference_date[:10])
    return date.today()


def _empty_metrics(year: int, blurb: str) -> dict[str, Any]:
    """Build the zero-valued metrics dict for exports with nothing to show.

    Args:
        year: Year the (empty) window is tagged with.
        blurb: Explanation shown in place of the persona blurb.

    Returns:
        A metrics dict with every key present, ``empty`` set to True, and
        zero/None/empty values throughout.
    """
    start, end = summer_window(year)
    return {
        "year": year,
        "start_iso": start.date().isoformat(),
        "end_iso": end.date().isoformat(),
        "empty": True,
        "total_prompts": 0,
        "total_assistant": 0,
        "unique_days": 0,
        "longest_streak": 0,
        "busiest_day": None,
        "topics": [],
        "week_buckets": [],
        "keywords": [],
        "emotions": {"daily_scores": [], "panic_count": 0, "lol_count": 0},
        "longest_thread": None,
        "time_saved": {
            "total_minutes": 0,
            "hours": 0.0,
            "daily_cap": DAILY_MINUTES_CAP,
            "capped_days": 0,
            "by_day": [],
        },
        "accomplishments": [],
        "persona": {"blurb": blurb, "tags": []},
        "roast": EMPTY_ROAST,
    }


# ---------------------------------------------------------------------------
# Flattening and window selection
# ---------------------------------------------------------------------------

def _flatten_threads(threads: Iterable[dict]) -> list[dict]:
    """Flatten threads into one list of timestamped, thread-tagged messages.

    Messages whose ``created_at`` does not parse are dropped.  Timestamps are
    truncated to milliseconds so window membership matches the ISO form.

    Args:
        threads: Thread dicts as produced by ``normalize_export``.

    Returns:
        List of dicts with keys role, text, created_at (ISO string),
        timestamp (aware UTC datetime), day (date), thread_id, thread_title.
    """
    flat: list[dict] = []
    for index, thread in enumerate(threads or [], 1):
        if not isinstance(thread, dict):
            continue
        messages = thread.get("messages")
        if not isinstance(messages, list):
            continue
        thread_id = str(thread.get("id") or f"conv-{index}")
        thread_title = str(thread.get("title") or "Conversation")

        for message in messages:
            if not isinstance(message, dict):
                continue
            timestamp = parse_utc(message.get("created_at"))
            if timestamp is None:
                continue
            timestamp = timestamp.replace(microsecond=timestamp.microsecond // 1000 * 1000)
            text = message.get("text")
            flat.append({
                "role": str(message.get("role") or "").lower(),
                "text": text if isinstance(text, str) else "",
                "created_at": format_utc(timestamp),
                "timestamp": timestamp,
                "day": timestamp.date(),
                "thread_id": thread_id,
                "thread_title": thread_title,
            })
    return flat


def resolve_summer_year(messages: list[dict], year: int | None = None) -> int:
    """Pick the year whose summer window the metrics will cover.

    An explicit *year* always wins.  Otherwise the year with the most
    June-August messages is chosen, ties going to the earliest year.  If no
    message falls in any June-August, the year of the earliest message is
    used.

    Args:
        messages: Flattened messages (from ``_flatten_threads``), non-empty.
        year: Optional year pinned by the caller.

    Returns:
        The resolved calendar year.
    """
    if year is not None:
        return int(year)

    by_year: dict[int, int] = {}
    for m in messages:
        ts = m["timestamp"]
        if 6 <= ts.month <= 8:
            by_year[ts.year] = by_year.get(ts.year, 0) + 1

    if by_year:
        return min(by_year.items(), key=lambda item: (-item[1], item[0]))[0]
    return min(m["timestamp"] for m in messages).year


# ---------------------------------------------------------------------------
# Daily statistics
# ---------------------------------------------------------------------------

def _build_daily_counts(messages: list[dict]) -> dict[date, dict[str, int]]:
    """Count user and all-role messages per UTC calendar day."""
    daily: dict[date, dict[str, int]] = {}
    for m in messages:
        counts = daily.setdefault(m["day"], {"user": 0, "all": 0})
        counts["all"] += 1
        if m["role"] == "user":
            counts["user"] += 1
    return daily


def _find_busiest_day(daily: dict[date, dict[str, int]]) -> dict | None:
    """Find the day with the most user messages.

    Ties go to the day with more messages overall, then to the earliest
    date.  Days without user messages never qualify.

    Returns:
        Dict with keys date (ISO string), count (user messages), all
        (messages from every role), or None.
    """
    busiest = None
    for day in sorted(daily):
        counts = daily[day]
        if counts["user"] == 0:
            continue
        if busiest is None or (counts["user"], counts["all"]) > (busiest["count"], busiest["all"]):
            busiest = {"date": day.isoformat(), "count": counts["user"], "all": counts["all"]}
    return busiest


def compute_longest_streak(active_days: Iterable[date]) -> int:
    """Return the longest run of consecutive calendar days in *active_days*.

    Args:
        active_days: Dates that each had at least one user message.  Need
            not be sorted or unique.

    Returns:
        Length of the longest run with exactly one day between neighbours,
        0 for no days.
    """
    longest = 0
    current = 0
    previous: date | None = None
    for day in sorted(set(active_days)):
        if previous is not None and (day - previous).days == 1:
            current += 1
        else:
            current = 1
        longest = max(longest, current)
        previous = day
    return longest


def _build_week_buckets(user_messages: list[dict]) -> list[dict]:
    """Bucket user messages into Monday-aligned weeks.

    Returns:
        List of ``{"activity": "Week of MM-DD", "count"}`` sorted by label.
    """
    weekly: dict[str, int] = {}
    for m in user_messages:
        day = m["day"]
        monday = day - timedelta(days=day.weekday())
        label = f"Week of {monday:%m-%d}"
        weekly[label] = weekly.get(label, 0) + 1
    return [{"activity": label, "count": weekly[label]} for label in sorted(weekly)]


def _find_longest_thread(messages: list[dict]) -> dict | None:
    threads: dict[str, dict] = {}
    for m in messages:
        entry = threads.setdefault(
            m["thread_id"], {"id": m["thread_id"], "title": m["thread_title"], "turns": 0},
        )
        entry["turns"] += 1
    if not threads:
        return None
    return max(threads.values(), key=lambda t: t["turns"])


def _rank_topics(token_lists: list[list[str]]) -> list[dict]:
    counts: dict[str, int] = {}
    for tokens in token_lists:
        for label in classify_topics(tokens):
            counts[label] = counts.get(label, 0) + 1
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [{"name": name, "value": value} for name, value in ranked]


# ---------------------------------------------------------------------------
# Time saved and accomplishments
# ---------------------------------------------------------------------------

def estimate_time_saved(
    user_messages: list[dict],
    token_lists: list[list[str]] | None = None,
    topic_minutes: dict[str, int] = TOPIC_MINUTES,
    daily_cap: int = DAILY_MINUTES_CAP,
) -> dict[str, Any]:
    """Estimate the minutes ChatGPT saved across the user's prompts.

    Each prompt is worth the base minutes of its best-matching topic, plus
    ``LONG_MESSAGE_BONUS`` when it has more than ``LONG_MESSAGE_TOKENS``
    tokens and ``URGENCY_BONUS`` when it matches a panic pattern.  Minutes
    are summed per day and each day is capped at *daily_cap* before the
    total is taken.

    Args:
        user_messages: Flattened user messages (need ``text`` and ``day``).
        token_lists: Pre-computed tokens for each message, parallel to
            *user_messages*.  Tokenized on the fly when omitted.
        topic_minutes: Base minutes per topic label.
        daily_cap: Maximum minutes any single day can contribute.

    Returns:
        Dict with keys total_minutes, hours (1dp), daily_cap, capped_days
        (days whose raw estimate reached the cap), and by_day (list of
        ``{"date", "minutes"}`` with capped minutes, ascending).
    """
    if token_lists is None:
        token_lists = [tokenize(m["text"]) for m in user_messages]

    per_day: dict[date, int] = {}
    for message, tokens in zip(user_messages, token_lists):
        minutes = topic_minutes.get(best_topic(tokens), topic_minutes.get(GENERAL_TOPIC, 0))
        if len(tokens) > LONG_MESSAGE_TOKENS:
            minutes += LONG_MESSAGE_BONUS
        if matches_any(message["text"], PANIC_PATTERNS):
            minutes += URGENCY_BONUS
        per_day[message["day"]] = per_day.get(message["day"], 0) + minutes

    by_day = [
        {"date": day.isoformat(), "minutes": min(per_day[day], daily_cap)}
        for day in sorted(per_day)
    ]
    total = sum(entry["minutes"] for entry in by_day)
    return {
        "total_minutes": total,
        "hours": round(total / 60, 1),
        "daily_cap": daily_cap,
        "capped_days": sum(1 for minutes in per_day.values() if minutes >= daily_cap),
        "by_day": by_day,
    }


def _accomplishment_label(text: str, limit: int) -> str:
    """First non-blank line of *text*, whitespace-collapsed and truncated."""
    for line in text.splitlines():
        label = " ".join(line.split())
        if label:
            if len(label) > limit:
                return label[: limit - 3].rstrip() + "..."
            return label
    return ""


def mine_accomplishments(
    user_messages: list[dict],
    patterns: tuple[tuple[str, re.Pattern[str]], ...] = ACCOMPLISHMENT_PATTERNS,
    limit: int = MAX_ACCOMPLISHMENTS,
    label_chars: int = ACCOMPLISHMENT_LABEL_CHARS,
) -> list[dict]:
    """Collect prompts that read like wins (shipped, merged, fixed, ...).

    Messages are scanned newest first; the first matching pattern decides
    the kind.  Duplicates are dropped by case-insensitive label.

    Args:
        user_messages: Flattened user messages (need text, timestamp, day).
        patterns: Ordered ``(kind, compiled regex)`` pairs.
        limit: Maximum number of accomplishments returned.
        label_chars: Maximum label length, including the ellipsis.

    Returns:
        List of ``{"text", "date", "kind"}`` dicts, most recent first.
    """
    found: list[dict] = []
    seen: set[str] = set()
    for message in sorted(user_messages, key=lambda m: m["timestamp"], reverse=True):
        kind = next((k for k, rx in patterns if rx.search(message["text"])), None)
        if kind is None:
            continue
        label = _accomplishment_label(message["text"], label_chars)
        if not label or label.lower() in seen:
            continue
        seen.add(label.lower())
        found.append({"text": label, "date": message["day"].isoformat(), "kind": kind})
        if len(found) >= limit:
            break
    return found


# ---------------------------------------------------------------------------
# Persona and roast
# ---------------------------------------------------------------------------

def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def build_persona(topics: list[dict], total_prompts: int, longest_streak: int) -> dict:
    """Template the persona blurb and share tags from the top two topics."""
    top_two = [t["name"] for t in topics[:2]]
    if len(top_two) == 2:
        blurb = f"You leaned {top_two[0]} with a side of {top_two[1]} this summer."
    elif top_two:
        blurb = f"You kept it all {top_two[0]} this summer."
    else:
        blurb = LOW_VOLUME_BLURB
    return {
        "blurb": blurb,
        "tags": [
            _plural(total_prompts, "prompt"),
            f"{longest_streak}-day streak",
            top_two[0] if top_two else GENERAL_TOPIC,
        ],
    }


def build_roast(
    topics: list[dict],
    longest_streak: int,
    unique_days: int,
    panic_count: int,
    lol_count: int,
) -> str:
    """Pick a topic line and a behaviour line for the roast slide.

    Selection is fully deterministic: the topic line comes from the top
    topic, the behaviour line from the first rule that fires (panic, then
    laughter, then a long streak, then plain attendance).
    """
    if not topics:
        return EMPTY_ROAST

    top = topics[0]
    template = ROAST_TOPIC_LINES.get(top["name"], ROAST_TOPIC_LINES[GENERAL_TOPIC])
    topic_line = template.format(count=top["value"])

    if panic_count >= 3 and panic_count >= lol_count:
        behaviour = (
            f"You hit panic mode {panic_count} times. "
            "Deadlines fear you, or maybe it's the other way around."
        )
    elif lol_count >= 3 and lol_count > panic_count:
        behaviour = f"{lol_count} prompts had you laughing. ChatGPT may be your funniest coworker."
    elif longest_streak >= 14:
        behaviour = f"A {longest_streak}-day streak. Touching grass has been rescheduled."
    else:
        behaviour = (
            f"{unique_days} active days out of {SUMMER_DAYS}. "
            "Work-life balance, or just a long vacation?"
        )
    return f"{topic_line} {behaviour}"


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def compute_summer_metrics(
    threads: Iterable[dict],
    year: int | None = None,
    aliases: Iterable[str] | None = None,
    reference_date: date | str | None = None,
) -> dict[str, Any]:
    """Compute every summer wrapped statistic from normalized threads.

    Picks the summer year, filters to the June 1 - August 31 UTC window and
    derives counts, streaks, busiest day, weekly buckets, topics, keywords,
    mood, longest thread, time saved, accomplishments, persona, and roast.
    Message-derived statistics use the user's own messages only; the
    busiest-day tie-break and the longest thread count every role.

    Degenerate input (no threads, no timestamps, nothing in the window)
    never raises; it produces the empty-state dict with ``empty`` True and
    an explanatory persona blurb.

    Args:
        threads: Thread dicts as produced by ``normalize_export``.
        year: Pin the summer year instead of auto-selecting it.
        aliases: Terms (names, project code words) that get boosted keyword
            weight.  Case-insensitive.
        reference_date: "Today" as a ``date`` or ISO string, used only to
            tag the empty state when there are no timestamps and no *year*.
            Defaults to the actual current date.

    Returns:
        Dict with keys: year, start_iso, end_iso, empty, total_prompts,
        total_assistant, unique_days, longest_streak, busiest_day, topics,
        week_buckets, keywords, emotions, longest_thread, time_saved,
        accomplishments, persona, roast.
    """
    all_messages = _flatten_threads(threads)
    if not all_messages:
        fallback_year = int(year) if year is not None else _reference_day(reference_date).year
        logger.warning("No timestamped messages found; returning empty metrics.")
        return _empty_metrics(fallback_year, NO_DATA_BLURB)

    chosen_year = resolve_summer_year(all_messages, year)
    start, end = summer_window(chosen_year)

    window_messages = [m for m in all_messages if start <= m["timestamp"] <= end]
    if not window_messages:
        logger.warning("No messages between %s and %s.", start.date(), end.date())
        return _empty_metrics(chosen_year, NO_SUMMER_BLURB.format(year=chosen_year))

    # Thread order is kept for the longest-thread tie-break.
    in_summer = sorted(window_messages, key=lambda m: m["timestamp"])
    user_summer = [m for m in in_summer if m["role"] == "user"]
    token_lists = [tokenize(m["text"]) for m in user_summer]

    daily = _build_daily_counts(in_summer)
    active_days = [day for day, counts in daily.items() if counts["user"] > 0]
    unique_days = len(active_days)
    longest_streak = compute_longest_streak(active_days)

    topics = _rank_topics(token_lists)
    emotions = analyze_emotions(user_summer)
    total_prompts = len(user_summer)

    logger.info(
        "Summer %d: %d prompts over %d active days (longest streak %d)",
        chosen_year, total_prompts, unique_days, longest_streak,
    )

    return {
        "year": chosen_year,
        "start_iso": start.date().isoformat(),
        "end_iso": end.date().isoformat(),
        "empty": False,
        "total_prompts": total_prompts,
        "total_assistant": sum(1 for m in in_summer if m["role"] == "assistant"),
        "unique_days": unique_days,
        "longest_streak": longest_streak,
        "busiest_day": _find_busiest_day(daily),
        "topics": topics,
        "week_buckets": _build_week_buckets(user_summer),
        "keywords": extract_keywords(
            user_summer, top_n=DEFAULT_TOP_KEYWORDS, boost=aliases or (),
        ),
        "emotions": emotions,
        "longest_thread": _find_longest_thread(window_messages),
        "time_saved": estimate_time_saved(user_summer, token_lists),
        "accomplishments": mine_accomplishments(user_summer),
        "persona": build_persona(topics, total_prompts, longest_streak),
        "roast": build_roast(
            topics, longest_streak, unique_days,
            emotions["panic_count"], emotions["lol_count"],
        ),
    }
