"""
Wellness content catalog queried by mood tag.

The catalog is seeded in memory; each item is tagged with the moods it suits
using the canonical MoodLabel values.
"""

from collections.abc import Iterable

from .models import MoodLabel, Recommendation

CHAT_RECOMMENDATION_LIMIT = 5

_M = MoodLabel

DEFAULT_CATALOG: tuple[Recommendation, ...] = (
    Recommendation(
        id="box-breathing",
        type="breathing",
        content="Box breathing: inhale 4s, hold 4s, exhale 4s, hold 4s",
        description="Slows the heart rate and calms the nervous system.",
        mood_tags=[_M.STRESSED, _M.ANXIOUS],
        duration="4 min",
    ),
    Recommendation(
        id="478-breathing",
        type="breathing",
        content="4-7-8 breathing before sleep",
        description="Inhale for 4, hold for 7, exhale for 8.",
        mood_tags=[_M.ANXIOUS, _M.BURNT_OUT],
        duration="5 min",
    ),
    Recommendation(
        id="grounding-54321",
        type="exercise",
        content="5-4-3-2-1 grounding: name 5 things you see, 4 you feel, 3 you hear",
        mood_tags=[_M.ANXIOUS],
        duration="3 min",
    ),
    Recommendation(
        id="body-scan",
        type="meditation",
        content="Guided body scan meditation",
        description="Notice and release tension from head to toe.",
        mood_tags=[_M.STRESSED, _M.BURNT_OUT],
        duration="10 min",
    ),
    Recommendation(
        id="walk-outside",
        type="exercise",
        content="Take a short walk outside without your phone",
        mood_tags=[_M.STRESSED, _M.NEUTRAL, _M.BURNT_OUT],
        duration="15 min",
    ),
    Recommendation(
        id="rest-day",
        type="article",
        content="Why rest is productive: planning a recovery day",
        mood_tags=[_M.BURNT_OUT],
        duration="6 min",
        link="https://www.who.int/news/item/28-05-2019-burn-out-an-occupational-phenomenon-international-classification-of-diseases",
    ),
    Recommendation(
        id="calm-playlist",
        type="music",
        content="Lo-fi focus playlist",
        mood_tags=[_M.STRESSED, _M.NEUTRAL],
        duration="30 min",
    ),
    Recommendation(
        id="gratitude-list",
        type="exercise",
        content="Write down three things you are grateful for today",
        mood_tags=[_M.MOTIVATED, _M.NEUTRAL],
        duration="5 min",
    ),
    Recommendation(
        id="stretch-goal",
        type="article",
        content="Setting a stretch goal while your energy is high",
        mood_tags=[_M.MOTIVATED],
        duration="7 min",
    ),
    Recommendation(
        id="hiit",
        type="exercise",
        content="Quick 10-minute HIIT session",
        mood_tags=[_M.MOTIVATED],
        duration="10 min",
        difficulty="medium",
    ),
    Recommendation(
        id="sudoku",
        type="game",
        content="A relaxing round of sudoku",
        mood_tags=[_M.NEUTRAL, _M.ANXIOUS],
        duration="10 min",
    ),
    Recommendation(
        id="comfort-movie",
        type="movie",
        content="Watch a favourite comfort film",
        mood_tags=[_M.BURNT_OUT, _M.STRESSED],
        duration="2 h",
    ),
    Recommendation(
        id="anxiety-podcast",
        type="podcast",
        content="A podcast episode on understanding anxiety",
        mood_tags=[_M.ANXIOUS],
        duration="25 min",
    ),
)


class RecommendationStore:
    """In-memory recommendation catalog."""

    def __init__(self, items: Iterable[Recommendation] = DEFAULT_CATALOG) -> None:
        self._items = list(items)

    def find(
        self,
        mood: MoodLabel | None = None,
        type: str | None = None,
        limit: int | None = None,
    ) -> list[Recommendation]:
        """
        Return catalog items matching every given filter, in catalog order.

        Args:
            mood: Only items tagged with this mood
            type: Only items of this type
            limit: Maximum number of items to return
        """
        found = [
            item
            for item in self._items
            if (mood is None or mood in item.mood_tags) and (type is None or item.type == type)
        ]
        if limit is not None:
            found = found[:limit]
        return found
