"""
Shared data models for the MoodAI service.

This module defines the core domain models used across multiple layers
of the application (classifier, stores, API, CLI).
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

MESSAGE_EXCERPT_LENGTH = 100


class MoodLabel(str, Enum):
    """The five detectable moods.

    The value is the canonical serialization used in history records,
    recommendation tags, API payloads and chart keys.
    """

    MOTIVATED = "Motivated"
    NEUTRAL = "Neutral"
    STRESSED = "Stressed"
    BURNT_OUT = "Burnt Out"
    ANXIOUS = "Anxious"

    @classmethod
    def parse(cls, raw: str) -> "MoodLabel":
        """
        Parse a label leniently, ignoring case, spaces and underscores.

        Raises:
            ValueError: if the string does not name one of the five labels
        """
        key = "".join(raw.split()).replace("_", "").lower()
        for label in cls:
            if label.value.replace(" ", "").lower() == key:
                return label
        raise ValueError(f"Unknown mood label: {raw!r}")


RecommendationType = Literal[
    "breathing", "exercise", "game", "article", "movie", "meditation", "podcast", "music"
]
ConsultationStatus = Literal["pending", "confirmed", "completed", "cancelled"]


class MoodEntry(BaseModel):
    """A single mood history record."""

    mood: MoodLabel = Field(..., description="The detected mood")
    message: str = Field("", description="Excerpt of the message that was classified")
    timestamp: float = Field(..., description="Unix timestamp when the mood was recorded")


class MoodPoint(MoodEntry):
    """A mood history record decorated for charting."""

    color: str = Field(..., description="Display color for the mood")
    score: int = Field(..., ge=0, le=100, description="Chart intensity, 0-100")


class Recommendation(BaseModel):
    """A wellness content item tagged with the moods it suits."""

    id: str
    type: RecommendationType
    content: str
    description: str = ""
    mood_tags: list[MoodLabel] = Field(default_factory=list)
    duration: str = "5 min"
    difficulty: Literal["easy", "medium", "hard"] = "easy"
    link: str | None = None


class User(BaseModel):
    """Public view of a registered user."""

    id: str
    username: str
    email: str
    created_at: float
    consultations: list[str] = Field(default_factory=list)


class Consultation(BaseModel):
    """A paid 1-on-1 consultation booking."""

    id: str
    user_id: str
    username: str
    email: str
    amount: float
    currency: str = "INR"
    payment_id: str
    order_id: str
    status: ConsultationStatus = "confirmed"
    scheduled_date: float | None = None
    notes: str = ""
    created_at: float
