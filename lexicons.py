"""Static lexical tables and tunables for the summer wrapped pipeline.

Everything here is loaded once at import time and never mutated.  Functions
in ``text_analysis`` and ``summer_metrics`` take these as keyword defaults so
tests can inject smaller tables.
"""

from __future__ import annotations

import re

# ---------------------------------------------------------------------------
# Keywords
# ---------------------------------------------------------------------------
STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "of", "to", "in", "on", "for", "with",
    "without", "by", "as", "is", "are", "was", "were", "be", "been", "being",
    "it", "its", "at", "from", "this", "that", "i", "you", "we", "they", "he",
    "she", "them", "my", "our", "your", "me", "us", "about", "into", "over",
    "under", "up", "down", "out", "not", "no", "yes", "ok", "okay", "thanks",
    "thank", "pls", "please", "hey", "hi", "hello",
})

MIN_KEYWORD_LENGTH = 2
DEFAULT_TOP_KEYWORDS = 12
ALIAS_BOOST = 4  # added on top of the base weight of 1
EMPHASIS_BONUS = 1

# ---------------------------------------------------------------------------
# Topics
# ---------------------------------------------------------------------------
GENERAL_TOPIC = "General"

TOPIC_RULES: tuple[tuple[str, frozenset[str]], ...] = (
    ("Coding/Debugging", frozenset({
        "code", "bug", "error", "python", "pandas", "sql", "js", "react", "api",
    })),
    ("Writing/Comms", frozenset({
        "email", "draft", "rewrite", "tone", "summary", "bullet", "outline",
    })),
    ("Data/Analysis", frozenset({
        "data", "table", "chart", "plot", "csv", "query", "metrics", "regression",
    })),
    ("Research", frozenset({
        "paper", "cite", "source", "evidence", "policy", "report",
    })),
    ("Math/Stats", frozenset({
        "probability", "matrix", "algebra", "stat", "mean", "variance",
    })),
)

# ---------------------------------------------------------------------------
# Sentiment
# ---------------------------------------------------------------------------
POSITIVE_WORDS = frozenset({
    "win", "great", "awesome", "love", "nice", "yay", "cool", "clean", "works",
    "fixed", "pass", "haha", "lol", "lmao", "lols", "hehe", "woot", "nailed",
})

NEGATIVE_WORDS = frozenset({
    "panic", "anxious", "anxiety", "worried", "stressed", "stress", "urgent",
    "help", "broken", "fail", "wtf", "ugh", "omg", "crash", "stuck", "blocked",
    "deadlines",
})

PANIC_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"panic|freak(ing)? out|meltdown|help me", re.I),
    re.compile(r"urgent|deadline|blocked|stuck", re.I),
    re.compile(r"resume filter|oa due|offer deadline", re.I),
)

LEVITY_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"lol|lmao|haha|hehe|\U0001F602|\U0001F605", re.I),
    re.compile(r"this is (so )?funny|i can't believe i did", re.I),
    re.compile(r"toilet|plunger|paper towels", re.I),
)

# ---------------------------------------------------------------------------
# Time saved
# ---------------------------------------------------------------------------
TOPIC_MINUTES = {
    "Coding/Debugging": 15,
    "Writing/Comms": 10,
    "Data/Analysis": 12,
    "Research": 12,
    "Math/Stats": 8,
    GENERAL_TOPIC: 4,
}
LONG_MESSAGE_TOKENS = 60
LONG_MESSAGE_BONUS = 5
URGENCY_BONUS = 3
DAILY_MINUTES_CAP = 60

# ---------------------------------------------------------------------------
# Accomplishments
# ---------------------------------------------------------------------------
ACCOMPLISHMENT_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("shipped", re.compile(r"\b(shipped|launched|deployed|released|went live)\b", re.I)),
    ("merged", re.compile(r"\b(merged|got (my |the )?pr (merged|in))\b", re.I)),
    ("fixed", re.compile(
        r"\b(fixed|solved|resolved|squashed) (the |a |my |that )?(bug|issue|error|crash|test)", re.I,
    )),
    ("approved", re.compile(r"\b(approved|got approval|signed off)\b", re.I)),
    ("offer", re.compile(
        r"\b(got|received|accepted|signed) (an? |the |my )?(return )?offer\b", re.I,
    )),
    ("demo", re.compile(r"\b(demoed|presented|gave (a|my) (demo|presentation|talk))\b", re.I)),
)
ACCOMPLISHMENT_LABEL_CHARS = 80
MAX_ACCOMPLISHMENTS = 6
