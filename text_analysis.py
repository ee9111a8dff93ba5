"""Lexical text analysis: tokenizing, keywords, topics, and mood.

Everything here is rule based.  The lexicons live in ``lexicons`` and are
passed in as keyword defaults, so each function stays pure.
"""

from __future__ import annotations

import re
from collections import Counter
from typing import Any, Iterable

from chat_gpt_normalize import parse_utc
from lexicons import (
    ALIAS_BOOST,
    DEFAULT_TOP_KEYWORDS,
    EMPHASIS_BONUS,
    GENERAL_TOPIC,
    LEVITY_PATTERNS,
    MIN_KEYWORD_LENGTH,
    NEGATIVE_WORDS,
    PANIC_PATTERNS,
    POSITIVE_WORDS,
    STOP_WORDS,
    TOPIC_RULES,
)

_NON_TOKEN_RE = re.compile(r"[^a-z0-9+#.\-\s]")
_SHOUTED_WORD_RE = re.compile(r"\b[A-Z][A-Z0-9+#]+\b")


def tokenize(text: str | None) -> list[str]:
    """Split text into lowercase tokens of ``[a-z0-9+#.-]`` characters.

    Any other character acts as a separator, so ``"C++, C#!"`` yields
    ``["c++", "c#"]``.
    """
    if not isinstance(text, str):
        return []
    return _NON_TOKEN_RE.sub(" ", text.lower()).split()


def matches_any(text: str | None, patterns: Iterable[re.Pattern[str]]) -> bool:
    """Return True if any compiled pattern matches somewhere in *text*."""
    if not text:
        return False
    return any(pattern.search(text) for pattern in patterns)


# ---------------------------------------------------------------------------
# Keywords
# ---------------------------------------------------------------------------

def _canonical_order(message: dict) -> tuple[str, str]:
    created_at = message.get("created_at")
    text = message.get("text")
    return (
        created_at if isinstance(created_at, str) else "",
        text if isinstance(text, str) else "",
    )


def extract_keywords(
    messages: Iterable[dict],
    top_n: int = DEFAULT_TOP_KEYWORDS,
    boost: Iterable[str] = (),
    emphasize: bool = False,
    stop_words: frozenset[str] = STOP_WORDS,
    min_length: int = MIN_KEYWORD_LENGTH,
) -> list[dict[str, Any]]:
    """Rank the terms a user typed most often.

    Only ``user`` messages are counted.  Every kept token occurrence adds 1;
    tokens from *boost* add ``ALIAS_BOOST`` on top, and with *emphasize* an
    occurrence typed in ALL CAPS adds ``EMPHASIS_BONUS``.

    Messages are visited in (created_at, text) order, so the result does not
    depend on how the caller ordered its input.

    Args:
        messages: Canonical message dicts (role, created_at, text).
        top_n: Maximum number of keywords to return.
        boost: Alias terms that get extra weight.  Matched case-insensitively
            and tokenized the same way as message text.
        emphasize: Whether shouted words get the emphasis bonus.
        stop_words: Tokens never counted.
        min_length: Shortest token length counted.

    Returns:
        List of ``{"name", "value"}`` dicts sorted by weight descending,
        ties in first-seen order.
    """
    boost_set = {token for alias in boost for token in tokenize(str(alias))}
    user_messages = [
        m for m in messages
        if isinstance(m, dict) and str(m.get("role") or "").lower() == "user"
    ]

    freq: dict[str, int] = {}
    for message in sorted(user_messages, key=_canonical_order):
        text = message.get("text") or ""
        shouted = (
            Counter(w.lower() for w in _SHOUTED_WORD_RE.findall(text))
            if emphasize else Counter()
        )
        for token in tokenize(text):
            if len(token) < min_length or token in stop_words:
                continue
            weight = 1
            if token in boost_set:
                weight += ALIAS_BOOST
            if shouted[token] > 0:
                weight += EMPHASIS_BONUS
                shouted[token] -= 1
            freq[token] = freq.get(token, 0) + weight

    ranked = sorted(freq.items(), key=lambda item: item[1], reverse=True)
    return [{"name": name, "value": value} for name, value in ranked[:top_n]]


# ---------------------------------------------------------------------------
# Topics
# ---------------------------------------------------------------------------

def topic_hits(
    tokens: Iterable[str],
    rules: tuple[tuple[str, frozenset[str]], ...] = TOPIC_RULES,
) -> dict[str, int]:
    """Count keyword hits per topic rule.

    Returns:
        Dict of label to number of matching tokens, in rule order, holding
        only labels with at least one hit.
    """
    tokens = list(tokens)
    hits = {}
    for label, keywords in rules:
        count = sum(1 for token in tokens if token in keywords)
        if count:
            hits[label] = count
    return hits


def classify_topics(
    tokens: Iterable[str],
    rules: tuple[tuple[str, frozenset[str]], ...] = TOPIC_RULES,
) -> list[str]:
    """Label a tokenized message with every topic whose keywords it mentions.

    Returns ``["General"]`` when no rule matches.
    """
    labels = list(topic_hits(tokens, rules))
    return labels or [GENERAL_TOPIC]


def best_topic(
    tokens: Iterable[str],
    rules: tuple[tuple[str, frozenset[str]], ...] = TOPIC_RULES,
) -> str:
    """Return the topic with the most keyword hits (ties by rule order)."""
    hits = topic_hits(tokens, rules)
    if not hits:
        return GENERAL_TOPIC
    return max(hits.items(), key=lambda item: item[1])[0]


# ---------------------------------------------------------------------------
# Emotions
# ---------------------------------------------------------------------------

def analyze_emotions(
    messages: Iterable[dict],
    positive: frozenset[str] = POSITIVE_WORDS,
    negative: frozenset[str] = NEGATIVE_WORDS,
    panic_patterns: tuple[re.Pattern[str], ...] = PANIC_PATTERNS,
    levity_patterns: tuple[re.Pattern[str], ...] = LEVITY_PATTERNS,
) -> dict[str, Any]:
    """Score the mood of user messages per day and count panic/LOL moments.

    Each positive token adds 1 and each negative token subtracts 1 from the
    score of the message's UTC calendar day.  The panic and levity pattern
    lists are tested against the raw text; each list counts a message at
    most once however many of its patterns match.

    Args:
        messages: Canonical message dicts, normally already filtered to the
            user's own messages.  Messages without a parseable
            ``created_at`` are skipped.
        positive: Tokens scored +1.
        negative: Tokens scored -1.
        panic_patterns: Distress/urgency phrasing.
        levity_patterns: Laughter/amusement phrasing.

    Returns:
        Dict with keys:
            - daily_scores: list of ``{"date", "score"}`` ascending by date.
            - panic_count: messages matching any panic pattern.
            - lol_count: messages matching any levity pattern.
    """
    daily: dict[str, int] = {}
    panic_count = 0
    lol_count = 0

    for message in messages:
        if not isinstance(message, dict):
            continue
        timestamp = parse_utc(message.get("created_at"))
        if timestamp is None:
            continue
        text = message.get("text") or ""

        score = 0
        for token in tokenize(text):
            if token in positive:
                score += 1
            if token in negative:
                score -= 1

        if matches_any(text, panic_patterns):
            panic_count += 1
        if matches_any(text, levity_patterns):
            lol_count += 1

        day = timestamp.date().isoformat()
        daily[day] = daily.get(day, 0) + score

    return {
        "daily_scores": [{"date": day, "score": daily[day]} for day in sorted(daily)],
        "panic_count": panic_count,
        "lol_count": lol_count,
    }
