"""
Mood classification for free-text chat messages.

A message is mapped to exactly one MoodLabel. Keyword groups are checked first
in a fixed priority order (negative states before positive ones) and the
AFINN sentiment score is only used when no negative keyword group matches.
The classifier holds no mutable state and is safe to call concurrently.
"""

import logging
import re
from collections.abc import Callable
from functools import lru_cache

from .errors import ClassificationUnavailable, InvalidInput
from .models import MoodLabel

logger = logging.getLogger(__name__)

SentimentScorer = Callable[[str], float]

# Sentiment cut points (AFINN sums, unbounded, 0 is neutral)
STRONG_NEGATIVE = -3
NEGATIVE = -1
STRONG_POSITIVE = 3
POSITIVE = 1

DEFAULT_COLOR = "#94a3b8"
DEFAULT_SCORE = 50

MOOD_COLORS: dict[str, str] = {
    MoodLabel.MOTIVATED.value: "#10b981",
    MoodLabel.NEUTRAL.value: "#60a5fa",
    MoodLabel.STRESSED.value: "#f59e0b",
    MoodLabel.BURNT_OUT.value: "#ef4444",
    MoodLabel.ANXIOUS.value: "#8b5cf6",
}

MOOD_SCORES: dict[str, int] = {
    MoodLabel.MOTIVATED.value: 100,
    MoodLabel.NEUTRAL.value: 60,
    MoodLabel.ANXIOUS.value: 40,
    MoodLabel.STRESSED.value: 30,
    MoodLabel.BURNT_OUT.value: 10,
}


def _keywords(*terms: str) -> re.Pattern[str]:
    return re.compile(r"\b(?:" + "|".join(terms) + r")\b", re.IGNORECASE)


BURNOUT_KEYWORDS = _keywords(
    "burnout", "burnt out", "burned out", "exhausted", "drained", "can[’']?t take",
    "giving up", "no energy", "overwhelmed", "breaking down", "can[’']?t cope",
    "too tired", "worn out", "depleted", "finished",
)
ANXIETY_KEYWORDS = _keywords(
    "anxious", "anxiety", "worried", "nervous", "panic", "scared", "fear",
    "restless", "uneasy", "tense", "afraid", "terrified", "frightened",
    "paranoid", "worried sick", "on edge",
)
SADNESS_KEYWORDS = _keywords(
    "sad", "unhappy", "depressed", "down", "low", "miserable", "upset", "hurt",
    "crying", "tears", "lonely", "alone", "heartbroken", "devastated", "blue",
    "gloomy", "sorrowful",
)
STRESS_KEYWORDS = _keywords(
    "stressed", "stress", "pressure", "deadline", "too much", "overworked",
    "frustrated", "struggling", "difficult", "hard time", "under pressure",
    "swamped", "overwhelm",
)
MOTIVATION_KEYWORDS = _keywords(
    "motivated", "excited", "great", "awesome", "happy", "energized",
    "productive", "accomplished", "proud", "confident", "fantastic", "amazing",
    "wonderful", "excellent", "thrilled", "inspired", "pumped", "ready",
)

# Checked in order, first match wins. Sadness folds into Stressed.
NEGATIVE_KEYWORD_GROUPS: tuple[tuple[re.Pattern[str], MoodLabel], ...] = (
    (BURNOUT_KEYWORDS, MoodLabel.BURNT_OUT),
    (ANXIETY_KEYWORDS, MoodLabel.ANXIOUS),
    (SADNESS_KEYWORDS, MoodLabel.STRESSED),
    (STRESS_KEYWORDS, MoodLabel.STRESSED),
)


class AfinnScorer:
    """Word-polarity sum over the AFINN lexicon."""

    def __init__(self, language: str = "en") -> None:
        from afinn import Afinn

        self._afinn = Afinn(language=language)

    def __call__(self, text: str) -> float:
        return self._afinn.score(text)


class MoodClassifier:
    """
    Deterministic text to MoodLabel classifier.

    Args:
        scorer: Callable returning a signed sentiment scalar for a text.
            Defaults to the AFINN lexicon scorer.
    """

    def __init__(self, scorer: SentimentScorer | None = None) -> None:
        self._scorer = scorer if scorer is not None else AfinnScorer()

    def sentiment(self, text: str) -> float:
        """Score text with the underlying sentiment primitive."""
        try:
            return float(self._scorer(text))
        except Exception as e:
            raise ClassificationUnavailable(f"Sentiment scoring failed: {e}") from e

    def classify(self, text: str) -> MoodLabel:
        """
        Classify a message into exactly one mood.

        Raises:
            InvalidInput: if the text is empty or whitespace-only
            ClassificationUnavailable: if the sentiment primitive fails
        """
        if not text or not text.strip():
            raise InvalidInput("Message cannot be empty")

        score = self.sentiment(text)
        mood = self._resolve(text, score)
        logger.debug(
            "Mood detection: %r -> %s (sentiment score: %s)", text[:50], mood.value, score
        )
        return mood

    @staticmethod
    def _resolve(text: str, score: float) -> MoodLabel:
        for pattern, label in NEGATIVE_KEYWORD_GROUPS:
            if pattern.search(text):
                return label

        if score <= STRONG_NEGATIVE:
            return MoodLabel.STRESSED
        if score < NEGATIVE:
            return MoodLabel.STRESSED
        # Positive keywords only override mild sentiment (-1 <= score)
        if MOTIVATION_KEYWORDS.search(text):
            return MoodLabel.MOTIVATED
        if score >= STRONG_POSITIVE:
            return MoodLabel.MOTIVATED
        if score > POSITIVE:
            return MoodLabel.MOTIVATED
        return MoodLabel.NEUTRAL


@lru_cache
def default_classifier() -> MoodClassifier:
    return MoodClassifier()


def classify(text: str) -> MoodLabel:
    """Classify text with the shared AFINN-backed classifier."""
    return default_classifier().classify(text)


def _label_key(label: MoodLabel | str) -> str:
    if isinstance(label, MoodLabel):
        return label.value
    try:
        return MoodLabel.parse(str(label)).value
    except ValueError:
        return str(label)


def color_for(label: MoodLabel | str) -> str:
    """Display color for a mood, gray for anything unrecognized."""
    return MOOD_COLORS.get(_label_key(label), DEFAULT_COLOR)


def score_for(label: MoodLabel | str) -> int:
    """Chart intensity (0-100) for a mood, mid-range for anything unrecognized."""
    return MOOD_SCORES.get(_label_key(label), DEFAULT_SCORE)
