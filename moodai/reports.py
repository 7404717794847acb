"""Weekly mood summaries built from a user's history."""

import time
from collections import Counter
from collections.abc import Iterable

from pydantic import BaseModel, Field

from .classifier import score_for
from .models import MoodEntry, MoodLabel

WEEK_SECONDS = 7 * 24 * 60 * 60


class WeeklySummary(BaseModel):
    """Aggregate of the mood records from the last seven days."""

    since: float
    until: float
    total: int = 0
    counts: dict[MoodLabel, int] = Field(default_factory=dict)
    average_score: float | None = None
    dominant_mood: MoodLabel | None = None


def summarize_week(entries: Iterable[MoodEntry], now: float | None = None) -> WeeklySummary:
    now = time.time() if now is None else now
    since = now - WEEK_SECONDS
    recent = [e for e in entries if since <= e.timestamp <= now]

    summary = WeeklySummary(since=since, until=now, total=len(recent))
    if not recent:
        return summary

    counts = Counter(e.mood for e in recent)
    # Ties go to the mood seen first in the week
    dominant = max(counts, key=lambda mood: counts[mood])
    summary.counts = dict(counts)
    summary.average_score = round(sum(score_for(e.mood) for e in recent) / len(recent), 1)
    summary.dominant_mood = dominant
    return summary
