"""Shared test helpers for summer wrapped tests.

Regular functions (not fixtures) that can be imported by any test module.
"""

from __future__ import annotations

from datetime import datetime, timezone

from chat_gpt_normalize import to_iso


def utc_ts(year: int, month: int, day: int, hour: int = 12, minute: int = 0) -> float:
    """Return the epoch seconds for a UTC wall-clock time."""
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc).timestamp()


def make_mapping_conversation(
    messages: list[tuple[str, float | None, str]],
    conv_id: str | None = None,
    title: str | None = None,
) -> dict:
    """Build a conversation dict with a ``mapping`` graph.

    Args:
        messages: List of (role, create_time, text) triples.
        conv_id: Optional conversation id.
        title: Optional conversation title.

    Returns:
        A dict matching the ChatGPT export conversation structure, including
        a root node without a message.
    """
    mapping: dict[str, dict] = {"root": {"message": None}}
    for i, (role, ts, text) in enumerate(messages):
        mapping[f"msg-{i}"] = {
            "message": {
                "author": {"role": role},
                "create_time": ts,
                "content": {"parts": [text]},
            }
        }
    conv: dict = {"mapping": mapping}
    if conv_id is not None:
        conv["id"] = conv_id
    if title is not None:
        conv["title"] = title
    if messages and messages[0][1] is not None:
        conv["create_time"] = messages[0][1]
    return conv


def make_full_export(conversations: list[dict]) -> dict:
    """Wrap conversations in the full ``{"conversations": [...]}`` export shape."""
    return {"conversations": conversations}


def make_thread(
    messages: list[tuple[str, float | str | None, str]],
    thread_id: str = "t-1",
    title: str = "Thread",
) -> dict:
    """Build an already-normalized thread from (role, timestamp, text) triples."""
    return {
        "id": thread_id,
        "title": title,
        "created_at": to_iso(messages[0][1]) if messages else None,
        "messages": [
            {"role": role, "created_at": to_iso(ts), "text": text}
            for role, ts, text in messages
        ],
    }


def user_prompts_on_days(days: list[tuple[int, int]], year: int = 2024, text: str = "hello there") -> dict:
    """A single thread with one user prompt at noon on each (month, day)."""
    return make_thread([("user", utc_ts(year, m, d), text) for m, d in days])
