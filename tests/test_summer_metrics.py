"""Tests for summer_metrics.py window selection and aggregation."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from chat_gpt_normalize import normalize_export
from summer_metrics import (
    EMPTY_ROAST,
    LOW_VOLUME_BLURB,
    NO_DATA_BLURB,
    build_persona,
    build_roast,
    compute_longest_streak,
    compute_summer_metrics,
    estimate_time_saved,
    mine_accomplishments,
    summer_window,
)
from helpers import (
    make_full_export,
    make_mapping_conversation,
    make_thread,
    user_prompts_on_days,
    utc_ts,
)


def _flat_user(text, year=2024, month=6, day=2, hour=12):
    """A flattened user message as compute_summer_metrics builds them internally."""
    ts = datetime(year, month, day, hour, tzinfo=timezone.utc)
    return {"role": "user", "text": text, "timestamp": ts, "day": ts.date()}


# ── Window ──────────────────────────────────


class TestSummerWindow:
    def test_bounds(self):
        start, end = summer_window(2024)
        assert start == datetime(2024, 6, 1, tzinfo=timezone.utc)
        assert end == datetime(2024, 8, 31, 23, 59, 59, 999000, tzinfo=timezone.utc)

    def test_always_92_days(self):
        for year in (2023, 2024):
            start, end = summer_window(year)
            assert (end.date() - start.date()).days + 1 == 92

    def test_inclusive_edges(self):
        thread = make_thread([
            ("user", "2024-05-31T23:59:59.999Z", "before"),
            ("user", "2024-06-01T00:00:00.000Z", "first"),
            ("user", "2024-08-31T23:59:59.999Z", "last"),
            ("user", "2024-09-01T00:00:00.000Z", "after"),
        ])
        metrics = compute_summer_metrics([thread], year=2024)
        assert metrics["total_prompts"] == 2


# ── Scenarios ───────────────────────────────


class TestSingleMessageExport:
    @pytest.fixture()
    def metrics(self):
        conv = make_mapping_conversation([("user", 1719878400, "hello")], conv_id="c1", title="Hi")
        threads = normalize_export(make_full_export([conv]))["threads"]
        return compute_summer_metrics(threads)

    def test_year(self, metrics):
        assert metrics["year"] == 2024
        assert metrics["start_iso"] == "2024-06-01"
        assert metrics["end_iso"] == "2024-08-31"

    def test_counts(self, metrics):
        assert metrics["empty"] is False
        assert metrics["total_prompts"] == 1
        assert metrics["total_assistant"] == 0
        assert metrics["unique_days"] == 1
        assert metrics["longest_streak"] == 1

    def test_topics_general(self, metrics):
        assert metrics["topics"] == [{"name": "General", "value": 1}]

    def test_busiest_day(self, metrics):
        assert metrics["busiest_day"] == {"date": "2024-07-02", "count": 1, "all": 1}

    def test_longest_thread(self, metrics):
        assert metrics["longest_thread"] == {"id": "c1", "title": "Hi", "turns": 1}

    def test_week_bucket(self, metrics):
        assert metrics["week_buckets"] == [{"activity": "Week of 07-01", "count": 1}]


class TestEmptyStates:
    def test_zero_conversations(self):
        threads = normalize_export(make_full_export([]))["threads"]
        metrics = compute_summer_metrics(threads, reference_date="2025-03-01")
        assert metrics["empty"] is True
        assert metrics["year"] == 2025
        assert metrics["total_prompts"] == 0
        assert metrics["persona"]["blurb"] == NO_DATA_BLURB
        assert metrics["roast"] == EMPTY_ROAST

    def test_reference_date_as_date(self):
        metrics = compute_summer_metrics([], reference_date=date(2023, 1, 5))
        assert metrics["year"] == 2023

    def test_explicit_year_beats_reference_date(self):
        metrics = compute_summer_metrics([], year=2021, reference_date="2025-03-01")
        assert metrics["year"] == 2021

    def test_malformed_threads_never_raise(self):
        threads = [None, {"messages": "x"}, {"messages": [None, {"created_at": "bad"}]}]
        metrics = compute_summer_metrics(threads, reference_date="2025-03-01")
        assert metrics["empty"] is True

    def test_no_summer_data(self):
        thread = make_thread([("user", utc_ts(2024, 1, 10), "winter prompt")])
        metrics = compute_summer_metrics([thread])
        assert metrics["empty"] is True
        assert metrics["year"] == 2024
        assert "2024" in metrics["persona"]["blurb"]
        assert metrics["busiest_day"] is None
        assert metrics["topics"] == []

    def test_empty_state_has_every_key(self):
        full = compute_summer_metrics([user_prompts_on_days([(6, 2)])])
        empty = compute_summer_metrics([], reference_date="2025-03-01")
        assert set(empty) == set(full)

    def test_assistant_only_window(self):
        thread = make_thread([("assistant", utc_ts(2024, 6, 2), "hi")])
        metrics = compute_summer_metrics([thread])
        assert metrics["empty"] is False
        assert metrics["total_prompts"] == 0
        assert metrics["total_assistant"] == 1
        assert metrics["unique_days"] == 0
        assert metrics["busiest_day"] is None
        assert metrics["topics"] == []
        assert metrics["persona"]["blurb"] == LOW_VOLUME_BLURB


# ── Year resolution ─────────────────────────


class TestYearResolution:
    def test_busiest_summer_wins(self):
        thread = make_thread([
            ("user", utc_ts(2023, 6, 5), "a"),
            ("user", utc_ts(2023, 7, 5), "b"),
            ("user", utc_ts(2023, 8, 5), "c"),
            ("user", utc_ts(2024, 6, 5), "d"),
            ("user", utc_ts(2024, 6, 6), "e"),
        ])
        assert compute_summer_metrics([thread])["year"] == 2023

    def test_tie_goes_to_earliest_year(self):
        thread = make_thread([
            ("user", utc_ts(2024, 6, 5), "a"),
            ("user", utc_ts(2023, 6, 5), "b"),
        ])
        assert compute_summer_metrics([thread])["year"] == 2023

    def test_fallback_to_earliest_message_year(self):
        thread = make_thread([
            ("user", utc_ts(2024, 1, 10), "a"),
            ("user", utc_ts(2022, 12, 10), "b"),
        ])
        assert compute_summer_metrics([thread])["year"] == 2022

    def test_explicit_year(self):
        thread = make_thread([
            ("user", utc_ts(2023, 6, 5), "a"),
            ("user", utc_ts(2023, 6, 6), "b"),
            ("user", utc_ts(2024, 6, 5), "c"),
        ])
        metrics = compute_summer_metrics([thread], year=2024)
        assert metrics["year"] == 2024
        assert metrics["total_prompts"] == 1


# ── Days, streaks, weeks ────────────────────


class TestStreaks:
    def test_consecutive_days(self):
        metrics = compute_summer_metrics([user_prompts_on_days([(6, 2), (6, 3)])])
        assert metrics["longest_streak"] == 2

    def test_days_apart(self):
        metrics = compute_summer_metrics([user_prompts_on_days([(6, 2), (6, 5)])])
        assert metrics["longest_streak"] == 1
        assert metrics["unique_days"] == 2

    def test_across_month_boundary(self):
        metrics = compute_summer_metrics([user_prompts_on_days([(6, 30), (7, 1), (7, 2), (7, 10)])])
        assert metrics["longest_streak"] == 3

    def test_streak_not_above_unique_days(self):
        days = [(6, d) for d in (1, 2, 3, 9, 10, 20)] + [(8, 31)]
        metrics = compute_summer_metrics([user_prompts_on_days(days)])
        assert metrics["longest_streak"] <= metrics["unique_days"] <= 92

    def test_compute_longest_streak_unsorted_duplicates(self):
        days = [date(2024, 6, 3), date(2024, 6, 1), date(2024, 6, 2), date(2024, 6, 2)]
        assert compute_longest_streak(days) == 3

    def test_compute_longest_streak_empty(self):
        assert compute_longest_streak([]) == 0

    def test_assistant_only_day_is_not_active(self):
        thread = make_thread([
            ("user", utc_ts(2024, 6, 2), "a"),
            ("assistant", utc_ts(2024, 6, 3), "b"),
            ("user", utc_ts(2024, 6, 4), "c"),
        ])
        metrics = compute_summer_metrics([thread])
        assert metrics["unique_days"] == 2
        assert metrics["longest_streak"] == 1


class TestBusiestDay:
    def test_most_user_messages(self):
        metrics = compute_summer_metrics([user_prompts_on_days([(6, 2), (6, 3), (6, 3)])])
        assert metrics["busiest_day"] == {"date": "2024-06-03", "count": 2, "all": 2}

    def test_tie_broken_by_all_roles(self):
        thread = make_thread([
            ("user", utc_ts(2024, 6, 2, 9), "a"),
            ("user", utc_ts(2024, 6, 3, 9), "b"),
            ("assistant", utc_ts(2024, 6, 3, 10), "c"),
        ])
        metrics = compute_summer_metrics([thread])
        assert metrics["busiest_day"]["date"] == "2024-06-03"
        assert metrics["busiest_day"]["all"] == 2

    def test_full_tie_goes_to_earliest(self):
        metrics = compute_summer_metrics([user_prompts_on_days([(6, 9), (6, 2)])])
        assert metrics["busiest_day"]["date"] == "2024-06-02"


class TestWeekBuckets:
    def test_monday_aligned_labels(self):
        # 2024-06-01 is a Saturday, 2024-06-03 a Monday
        metrics = compute_summer_metrics([user_prompts_on_days([(6, 1), (6, 2), (6, 3), (6, 9)])])
        assert metrics["week_buckets"] == [
            {"activity": "Week of 05-27", "count": 2},
            {"activity": "Week of 06-03", "count": 2},
        ]

    def test_labels_unique_and_ascending(self):
        days = [(8, 30), (6, 15), (7, 4), (6, 16), (8, 1)]
        buckets = compute_summer_metrics([user_prompts_on_days(days)])["week_buckets"]
        labels = [b["activity"] for b in buckets]
        assert labels == sorted(set(labels))
        assert sum(b["count"] for b in buckets) == len(days)


# ── Threads, topics, keywords ───────────────


class TestLongestThread:
    def test_most_turns_across_roles(self):
        short = make_thread([("user", utc_ts(2024, 6, 2), "a")], thread_id="s", title="Short")
        long = make_thread([
            ("user", utc_ts(2024, 6, 3), "a"),
            ("assistant", utc_ts(2024, 6, 3, 13), "b"),
            ("user", utc_ts(2024, 6, 3, 14), "c"),
        ], thread_id="l", title="Long")
        metrics = compute_summer_metrics([short, long])
        assert metrics["longest_thread"] == {"id": "l", "title": "Long", "turns": 3}

    def test_only_window_messages_count(self):
        thread = make_thread([
            ("user", utc_ts(2024, 5, 30), "a"),
            ("user", utc_ts(2024, 5, 31), "b"),
            ("user", utc_ts(2024, 6, 2), "c"),
        ])
        metrics = compute_summer_metrics([thread])
        assert metrics["longest_thread"]["turns"] == 1

    def test_tie_goes_to_first_thread_in_input(self):
        later = make_thread([
            ("user", utc_ts(2024, 6, 10), "a"),
            ("user", utc_ts(2024, 6, 11), "b"),
        ], thread_id="A", title="A")
        earlier = make_thread([
            ("user", utc_ts(2024, 6, 2), "c"),
            ("user", utc_ts(2024, 6, 3), "d"),
        ], thread_id="B", title="B")
        metrics = compute_summer_metrics([later, earlier])
        assert metrics["longest_thread"] == {"id": "A", "title": "A", "turns": 2}


class TestTopicsAndKeywords:
    def test_topics_ranked(self):
        thread = make_thread([
            ("user", utc_ts(2024, 6, 2), "python bug"),
            ("user", utc_ts(2024, 6, 3), "sql error in my query"),
            ("user", utc_ts(2024, 6, 4), "draft an email"),
        ])
        topics = compute_summer_metrics([thread])["topics"]
        assert topics[0] == {"name": "Coding/Debugging", "value": 2}
        assert {"name": "Writing/Comms", "value": 1} in topics
        assert {"name": "Data/Analysis", "value": 1} in topics

    def test_aliases_boost_keywords(self):
        thread = make_thread([
            ("user", utc_ts(2024, 6, 2), "pandas pandas pandas zed"),
        ])
        keywords = compute_summer_metrics([thread], aliases=["Zed"])["keywords"]
        assert keywords[0] == {"name": "zed", "value": 5}

    def test_keywords_ignore_assistant(self):
        thread = make_thread([
            ("user", utc_ts(2024, 6, 2), "pandas"),
            ("assistant", utc_ts(2024, 6, 2, 13), "matplotlib matplotlib"),
        ])
        names = [k["name"] for k in compute_summer_metrics([thread])["keywords"]]
        assert names == ["pandas"]

    def test_emotions_from_user_messages(self):
        thread = make_thread([
            ("user", utc_ts(2024, 6, 2), "great, it works lol"),
            ("assistant", utc_ts(2024, 6, 2, 13), "ugh broken panic"),
        ])
        emotions = compute_summer_metrics([thread])["emotions"]
        assert emotions == {
            "daily_scores": [{"date": "2024-06-02", "score": 3}],
            "panic_count": 0,
            "lol_count": 1,
        }


# ── Time saved ──────────────────────────────


class TestEstimateTimeSaved:
    def test_base_minutes_by_topic(self):
        result = estimate_time_saved([_flat_user("python bug"), _flat_user("hello there")])
        assert result["total_minutes"] == 15 + 4

    def test_urgency_bonus(self):
        result = estimate_time_saved([_flat_user("urgent python question")])
        assert result["total_minutes"] == 15 + 3

    def test_long_message_bonus(self):
        text = " ".join(f"word{i}" for i in range(61))
        result = estimate_time_saved([_flat_user(text)])
        assert result["total_minutes"] == 4 + 5

    def test_daily_cap(self):
        messages = [_flat_user("python code") for _ in range(5)]
        result = estimate_time_saved(messages)
        assert result["total_minutes"] == 60
        assert result["capped_days"] == 1
        assert result["by_day"] == [{"date": "2024-06-02", "minutes": 60}]
        assert result["hours"] == 1.0

    def test_cap_applies_per_day(self):
        messages = [_flat_user("python code", day=2) for _ in range(5)]
        messages += [_flat_user("python code", day=3)]
        result = estimate_time_saved(messages)
        assert result["total_minutes"] == 75
        assert all(d["minutes"] <= result["daily_cap"] for d in result["by_day"])

    def test_empty(self):
        result = estimate_time_saved([])
        assert result["total_minutes"] == 0
        assert result["by_day"] == []

    def test_in_metrics(self):
        thread = user_prompts_on_days([(6, 2), (6, 3)], text="python")
        saved = compute_summer_metrics([thread])["time_saved"]
        assert saved["total_minutes"] == 30
        assert saved["daily_cap"] == 60


# ── Accomplishments ─────────────────────────


class TestMineAccomplishments:
    def test_newest_first_with_kind(self):
        messages = [
            _flat_user("We shipped the new dashboard today", day=10),
            _flat_user("I fixed the bug in the parser", day=20),
            _flat_user("just chatting", day=25),
        ]
        result = mine_accomplishments(messages)
        assert result == [
            {"text": "I fixed the bug in the parser", "date": "2024-06-20", "kind": "fixed"},
            {"text": "We shipped the new dashboard today", "date": "2024-06-10", "kind": "shipped"},
        ]

    def test_dedupes_case_insensitively(self):
        messages = [_flat_user("Shipped v2", day=3), _flat_user("shipped v2", day=4)]
        assert len(mine_accomplishments(messages)) == 1

    def test_label_is_first_line_truncated(self):
        text = "\n  We   deployed " + "x" * 100 + "\nsecond line"
        label = mine_accomplishments([_flat_user(text)])[0]["text"]
        assert label.startswith("We deployed x")
        assert label.endswith("...")
        assert len(label) == 80

    def test_limit(self):
        messages = [_flat_user(f"merged pr {i}", day=i + 1) for i in range(10)]
        assert len(mine_accomplishments(messages)) == 6
        assert len(mine_accomplishments(messages, limit=2)) == 2

    def test_offer(self):
        result = mine_accomplishments([_flat_user("I got a return offer!")])
        assert result[0]["kind"] == "offer"


# ── Persona and roast ───────────────────────


class TestPersona:
    def test_two_topics(self):
        topics = [{"name": "Coding/Debugging", "value": 3}, {"name": "Research", "value": 1}]
        persona = build_persona(topics, total_prompts=4, longest_streak=2)
        assert persona["blurb"] == "You leaned Coding/Debugging with a side of Research this summer."
        assert persona["tags"] == ["4 prompts", "2-day streak", "Coding/Debugging"]

    def test_one_topic(self):
        persona = build_persona([{"name": "General", "value": 1}], total_prompts=1, longest_streak=1)
        assert persona["blurb"] == "You kept it all General this summer."
        assert persona["tags"][0] == "1 prompt"

    def test_no_topics(self):
        assert build_persona([], 0, 0)["blurb"] == LOW_VOLUME_BLURB


class TestRoast:
    TOPICS = [{"name": "Coding/Debugging", "value": 7}]

    def test_no_topics(self):
        assert build_roast([], 0, 0, 0, 0) == EMPTY_ROAST

    def test_topic_line_uses_count(self):
        assert build_roast(self.TOPICS, 1, 1, 0, 0).startswith("7 of your prompts were about code.")

    def test_panic_line(self):
        assert "panic mode 3 times" in build_roast(self.TOPICS, 1, 1, 3, 1)

    def test_laughter_line(self):
        assert "4 prompts had you laughing" in build_roast(self.TOPICS, 1, 1, 0, 4)

    def test_streak_line(self):
        assert "A 14-day streak" in build_roast(self.TOPICS, 14, 20, 0, 0)

    def test_attendance_line(self):
        assert "5 active days out of 92" in build_roast(self.TOPICS, 2, 5, 0, 0)

    def test_deterministic(self):
        assert build_roast(self.TOPICS, 2, 5, 1, 1) == build_roast(self.TOPICS, 2, 5, 1, 1)
