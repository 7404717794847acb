"""
Reply selection for the chat companion.

Replies come either from a table of canned strings per mood or from a hosted
chat-completion model. Model failures degrade to the canned table.
"""

import logging
import random
from collections.abc import Sequence

import httpx

from .models import MoodLabel, Recommendation

logger = logging.getLogger(__name__)

CANNED_RESPONSES: dict[MoodLabel, tuple[str, ...]] = {
    MoodLabel.MOTIVATED: (
        "That's wonderful to hear! Your positive energy is inspiring. Would you like some suggestions to maintain this momentum?",
        "I'm so glad you're feeling motivated! This is a great time to set new goals or tackle challenging tasks.",
        "Your motivation is fantastic! Keep channeling this energy into things that matter to you.",
    ),
    MoodLabel.NEUTRAL: (
        "Thank you for checking in. I'm here whenever you need support. How can I help you today?",
        "I appreciate you sharing how you're feeling. Is there anything specific you'd like to talk about?",
        "I'm here to listen. Sometimes neutral moments are opportunities for reflection. What's on your mind?",
    ),
    MoodLabel.STRESSED: (
        "I hear that you're feeling stressed. That's completely valid, and you're not alone. Would you like to try a quick breathing exercise?",
        "Stress can be overwhelming. Remember, it's okay to take breaks. Would some relaxation techniques help?",
        "I understand you're under pressure. Let's explore some ways to help you manage this stress.",
    ),
    MoodLabel.BURNT_OUT: (
        "I'm sorry you're experiencing burnout. This is serious, and your wellbeing matters. Would you like me to connect you with a human wellness consultant for 1-on-1 support?",
        "Burnout is exhausting. Please know it's okay to rest and seek help. Have you considered taking a break or talking to someone?",
        "What you're feeling is valid. Burnout requires care and support. Would professional guidance be helpful?",
    ),
    MoodLabel.ANXIOUS: (
        "I understand anxiety can feel overwhelming. You're safe here, and we can work through this together. Would grounding exercises help?",
        "Anxiety is tough, but you're taking a positive step by reaching out. Let's explore some calming strategies together.",
        "I hear your concerns. Anxiety can be managed with the right support. Would you like some immediate relief techniques?",
    ),
}

SYSTEM_PROMPT = """You are MoodAI, a gentle wellness companion.
Detected mood: {mood}
Never diagnose. Be supportive and warm.
Suggestions: {suggestions}
If highly stressed, offer human consultant.
Keep response short and kind."""


class CannedResponder:
    """
    Picks one of the canned replies for a mood.

    Args:
        rng: Random source used for the pick; pass a seeded instance for
            reproducible replies.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def respond(self, mood: MoodLabel) -> str:
        return self._rng.choice(CANNED_RESPONSES[mood])


class LLMResponder:
    """Chat-completion client for an OpenAI-compatible endpoint."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: float = 8.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._transport = transport

    async def respond(
        self, mood: MoodLabel, message: str, recommendations: Sequence[Recommendation] = ()
    ) -> str:
        suggestions = "\n".join(f"• {r.content}" for r in recommendations) or "None"
        system_prompt = SYSTEM_PROMPT.format(mood=mood.value, suggestions=suggestions)

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            response = await client.post(
                f"{self._base_url}/chat/completions",
                headers={"Authorization": f"Bearer {self._api_key}"},
                json={
                    "model": self._model,
                    "temperature": 0.7,
                    "max_tokens": 300,
                    "messages": [
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": message},
                    ],
                },
            )
            response.raise_for_status()
            data = response.json()

        content = data["choices"][0]["message"].get("content") or ""
        return content.strip()


class ResponseComposer:
    """
    Builds the companion's reply for a detected mood.

    Uses the model when one is configured and falls back to the canned table
    on any model failure or empty completion.
    """

    def __init__(
        self, canned: CannedResponder | None = None, llm: LLMResponder | None = None
    ) -> None:
        self.canned = canned or CannedResponder()
        self.llm = llm

    async def compose(
        self, mood: MoodLabel, message: str, recommendations: Sequence[Recommendation] = ()
    ) -> str:
        if self.llm is not None:
            try:
                reply = await self.llm.respond(mood, message, recommendations)
                if reply:
                    return reply
                logger.warning("LLM returned an empty reply, using canned response")
            except (httpx.HTTPError, AttributeError, KeyError, IndexError, TypeError, ValueError):
                logger.warning("LLM reply failed, using canned response", exc_info=True)
        return self.canned.respond(mood)
