"""Static PNG charts for a summer wrapped metrics dict."""

from __future__ import annotations

import logging
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402
import seaborn as sns  # noqa: E402

logger = logging.getLogger(__name__)

WEEKLY_CHART = "weekly_activity.png"
MOOD_CHART = "daily_mood.png"
CHART_DPI = 150


def weekly_frame(metrics: dict) -> pd.DataFrame:
    """Weekly prompt counts as a DataFrame with columns week, count."""
    df = pd.DataFrame(metrics.get("week_buckets") or [], columns=["activity", "count"])
    return df.rename(columns={"activity": "week"})


def mood_frame(metrics: dict) -> pd.DataFrame:
    """Daily mood scores with a 7-day rolling average.

    Columns: date (datetime64), score, score_7_day_avg.
    """
    scores = (metrics.get("emotions") or {}).get("daily_scores") or []
    df = pd.DataFrame(scores, columns=["date", "score"])
    df["date"] = pd.to_datetime(df["date"])
    df = df.sort_values("date").reset_index(drop=True)
    df["score_7_day_avg"] = df["score"].rolling(window=7, min_periods=1).mean()
    return df


def _plot_weekly(df: pd.DataFrame, path: Path, year: int) -> None:
    plt.figure(figsize=(12, 6))
    sns.barplot(data=df, x="week", y="count", color="skyblue", errorbar=None)
    plt.title(f"Weekly Prompts, Summer {year}", fontsize=14, pad=20)
    plt.xlabel("Week", fontsize=12)
    plt.ylabel("Number of Prompts", fontsize=12)
    plt.grid(True, axis="y", alpha=0.3)
    plt.xticks(rotation=45)
    plt.tight_layout()
    plt.savefig(path, dpi=CHART_DPI, bbox_inches="tight")
    plt.close()


def _plot_mood(df: pd.DataFrame, path: Path, year: int) -> None:
    colors = ["lightgreen" if s >= 0 else "lightcoral" for s in df["score"]]
    plt.figure(figsize=(12, 6))
    plt.bar(df["date"], df["score"], alpha=0.6, color=colors, label="Daily Mood Score")
    plt.plot(df["date"], df["score_7_day_avg"], color="purple", linewidth=2, label="7-day Average")
    plt.axhline(0, color="gray", linewidth=1)
    plt.title(f"Daily Mood, Summer {year}", fontsize=14, pad=20)
    plt.xlabel("Date", fontsize=12)
    plt.ylabel("Positive minus Negative Words", fontsize=12)
    plt.grid(True, alpha=0.3)
    plt.legend()
    plt.xticks(rotation=45)
    plt.tight_layout()
    plt.savefig(path, dpi=CHART_DPI, bbox_inches="tight")
    plt.close()


def save_summer_charts(metrics: dict, output_dir: str | Path) -> list[Path]:
    """Save the weekly activity and daily mood charts as PNG files.

    A chart is skipped when its series is empty, so empty-state metrics
    produce no files.

    Args:
        metrics: Output of ``compute_summer_metrics``.
        output_dir: Directory for the PNGs; created if missing.

    Returns:
        Paths of the files written, weekly chart first.
    """
    out = Path(output_dir)
    year = metrics.get("year")
    written: list[Path] = []

    weekly = weekly_frame(metrics)
    mood = mood_frame(metrics)
    if weekly.empty and mood.empty:
        logger.warning("No summer activity to chart for %s", year)
        return written

    out.mkdir(parents=True, exist_ok=True)
    if not weekly.empty:
        path = out / WEEKLY_CHART
        _plot_weekly(weekly, path, year)
        written.append(path)
    if not mood.empty:
        path = out / MOOD_CHART
        _plot_mood(mood, path, year)
        written.append(path)
    return written
