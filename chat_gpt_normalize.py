"""Tolerant normalizer for ChatGPT export documents.

Turns any decoded JSON value into a list of threads::

    {"id", "title", "created_at", "messages": [{"role", "created_at", "text"}]}

Three export shapes are recognized (full ``conversations.json`` wrapper,
single shared conversation, bare conversation list).  Anything else decodes
to zero threads rather than raising.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

logger = logging.getLogger(__name__)

SHAPE_FULL_EXPORT = "full_export"
SHAPE_SINGLE_CONVERSATION = "single_conversation"
SHAPE_CONVERSATION_LIST = "conversation_list"
SHAPE_UNRECOGNIZED = "unrecognized"

DEFAULT_ROLE = "user"


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------

def _parse_date_string(value: str) -> datetime | None:
    """Parse an ISO-8601 or RFC 2822 date string as an aware UTC datetime.

    Strings without an offset are read as UTC.  Returns None when neither
    format applies.
    """
    if not value:
        return None
    candidate = value[:-1] + "+00:00" if value[-1] in "Zz" else value
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        try:
            parsed = parsedate_to_datetime(value)
        except (TypeError, ValueError, IndexError):
            return None
        if parsed is None:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except (OverflowError, ValueError):
        return None


def parse_utc(value: Any) -> datetime | None:
    """Convert an export timestamp into an aware UTC datetime.

    Args:
        value: Epoch seconds (int or float) or a date string.  Booleans,
            None, and every other type are rejected.

    Returns:
        A timezone-aware datetime in UTC, or None if *value* is absent,
        unparseable, or out of the representable range.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(float(value), tz=timezone.utc)
        except (TypeError, ValueError, OSError, OverflowError):
            return None
    if isinstance(value, str):
        return _parse_date_string(value.strip())
    return None


def format_utc(moment: datetime) -> str:
    """Render an aware datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""
    rendered = moment.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return rendered.replace("+00:00", "Z")


def to_iso(value: Any) -> str | None:
    """Normalize an export timestamp to a UTC ISO-8601 string.

    The output always has millisecond precision and a ``Z`` suffix, e.g.
    ``2024-06-02T00:00:00.000Z``, so that string order matches time order.

    Args:
        value: Anything accepted by ``parse_utc``.

    Returns:
        The ISO string, or None when *value* cannot be parsed.
    """
    parsed = parse_utc(value)
    if parsed is None:
        return None
    return format_utc(parsed)


def _message_sort_time(message: dict) -> float:
    """Sort key for raw messages: create_time, then update_time, then 0."""
    for key in ("create_time", "update_time"):
        value = message.get(key)
        if value is None:
            continue
        parsed = parse_utc(value)
        return parsed.timestamp() if parsed is not None else 0.0
    return 0.0


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------

def _text_from_block(block: Any) -> str | None:
    """Pull the text out of one entry of a content-block list."""
    if not block:
        return None
    if isinstance(block, str):
        return block
    if not isinstance(block, dict):
        return None
    text = block.get("text")
    if isinstance(text, dict) and text.get("value"):
        return str(text["value"])
    if isinstance(text, str):
        return text
    if block.get("type") == "input_text" and isinstance(block.get("input_text"), str):
        return block["input_text"]
    return None


def extract_text(content: Any) -> str:
    """Flatten a message ``content`` field into a single string.

    Handles the legacy ``{"parts": [...]}`` layout, ``{"text": "..."}``,
    ``{"text": {"value": "..."}}``, assistants-style lists of content blocks,
    and bare strings.

    Args:
        content: The raw ``content`` value from a message node.

    Returns:
        The stripped text, or an empty string for unrecognized layouts.
    """
    if not content:
        return ""

    if isinstance(content, dict):
        parts = content.get("parts")
        if isinstance(parts, list):
            return "\n".join(p for p in parts if isinstance(p, str) and p).strip()
        text = content.get("text")
        if isinstance(text, str):
            return text.strip()
        if isinstance(text, dict) and text.get("value"):
            return str(text["value"]).strip()
        return ""

    if isinstance(content, list):
        pieces = [piece for piece in map(_text_from_block, content) if piece is not None]
        return "\n".join(pieces).strip()

    if isinstance(content, str):
        return content.strip()

    return ""


# ---------------------------------------------------------------------------
# Messages and threads
# ---------------------------------------------------------------------------

def _normalize_role(role: Any) -> str:
    normalized = str(role).strip().lower() if role is not None else ""
    return normalized or DEFAULT_ROLE


def _build_message(message: dict, role: Any) -> dict:
    """Project a raw message dict onto the canonical message shape."""
    return {
        "role": _normalize_role(role),
        "created_at": to_iso(message.get("create_time")) or to_iso(message.get("update_time")),
        "text": extract_text(message.get("content")),
    }


def _extract_mapping_messages(mapping: Any) -> list[dict]:
    """Walk a conversation mapping and return its messages in time order.

    Only nodes whose message carries both an author role and a content
    value are kept; an empty content object still yields a message with
    empty text.  Sorting is stable, so nodes without timestamps keep their
    mapping order relative to each other.

    Args:
        mapping: The ``mapping`` value of a conversation, normally a dict of
            node id to ``{"message": {...}}``.

    Returns:
        List of canonical message dicts.  Empty when *mapping* is not a dict.
    """
    if not isinstance(mapping, dict):
        return []

    raw_messages: list[dict] = []
    for node in mapping.values():
        message = node.get("message") if isinstance(node, dict) else None
        if not isinstance(message, dict):
            continue
        author = message.get("author")
        role = author.get("role") if isinstance(author, dict) else None
        if not role or message.get("content") in (None, ""):
            continue
        raw_messages.append(message)

    raw_messages.sort(key=_message_sort_time)
    return [_build_message(m, m["author"]["role"]) for m in raw_messages]


def _extract_flat_messages(messages: list) -> list[dict]:
    """Normalize a flat ``messages`` list from a single shared conversation."""
    raw_messages = [m if isinstance(m, dict) else {} for m in messages]
    raw_messages = sorted(raw_messages, key=_message_sort_time)

    results = []
    for message in raw_messages:
        author = message.get("author")
        role = author.get("role") if isinstance(author, dict) else None
        results.append(_build_message(message, role or message.get("role")))
    return results


def _build_thread(conv: dict, index: int, messages: list[dict]) -> dict:
    conv_id = conv.get("id")
    title = conv.get("title")
    return {
        "id": str(conv_id) if conv_id is not None else f"conv-{index}",
        "title": str(title) if title is not None else f"Conversation {index}",
        "created_at": to_iso(conv.get("create_time")) or to_iso(conv.get("update_time")),
        "messages": messages,
    }


def _threads_from_conversations(conversations: list) -> list[dict]:
    threads = []
    for index, conv in enumerate(conversations, 1):
        if not isinstance(conv, dict):
            conv = {}
        threads.append(_build_thread(conv, index, _extract_mapping_messages(conv.get("mapping"))))
    return threads


def _decode_full_export(raw: dict) -> list[dict]:
    return _threads_from_conversations(raw["conversations"])


def _decode_single_conversation(raw: dict) -> list[dict]:
    return [_build_thread(raw, 1, _extract_flat_messages(raw["messages"]))]


def _decode_conversation_list(raw: list) -> list[dict]:
    return _threads_from_conversations(raw)


def _decode_unrecognized(raw: Any) -> list[dict]:
    return []


_SHAPE_DECODERS = {
    SHAPE_FULL_EXPORT: _decode_full_export,
    SHAPE_SINGLE_CONVERSATION: _decode_single_conversation,
    SHAPE_CONVERSATION_LIST: _decode_conversation_list,
    SHAPE_UNRECOGNIZED: _decode_unrecognized,
}


def detect_export_shape(raw: Any) -> str:
    """Classify a decoded export document.

    Shapes are tried in priority order and the first structural match wins:
    a dict with a ``conversations`` list, a dict with a ``messages`` list,
    then a bare list.

    Args:
        raw: Any decoded JSON value.

    Returns:
        One of the ``SHAPE_*`` constants.
    """
    if isinstance(raw, dict):
        if isinstance(raw.get("conversations"), list):
            return SHAPE_FULL_EXPORT
        if isinstance(raw.get("messages"), list):
            return SHAPE_SINGLE_CONVERSATION
    if isinstance(raw, list):
        return SHAPE_CONVERSATION_LIST
    return SHAPE_UNRECOGNIZED


def normalize_export(raw: Any) -> dict[str, Any]:
    """Normalize a decoded export into canonical conversation threads.

    Missing fields fall back to defaults (``conv-{n}`` ids, ``Conversation
    {n}`` titles, ``user`` roles, empty text, None timestamps) so malformed
    sub-fields never raise.

    Args:
        raw: Any decoded JSON value, typically the contents of
            ``conversations.json``.

    Returns:
        Dict with keys:
            - threads: list of thread dicts (id, title, created_at, messages).
            - shape: the detected ``SHAPE_*`` constant.
    """
    shape = detect_export_shape(raw)
    threads = _SHAPE_DECODERS[shape](raw)

    if shape == SHAPE_UNRECOGNIZED:
        logger.warning(
            "Unrecognized export shape (%s); expected a conversations export.",
            type(raw).__name__,
        )
    else:
        logger.info(
            "Normalized %d threads (%d messages) from %s export",
            len(threads),
            sum(len(t["messages"]) for t in threads),
            shape,
        )

    return {"threads": threads, "shape": shape}
