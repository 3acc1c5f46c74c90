# modules/common/ai.py
import json
import os
import random
from dataclasses import dataclass
from typing import Any, Dict, Optional

from flask import Flask, current_app

from modules.common.errors import EnrichmentUnavailable

# -------------------------------------------------------------------
# Config (env-driven; app config wins when present)
# -------------------------------------------------------------------
OPENAI_MODEL_FAST = os.getenv("OPENAI_MODEL_FAST", "gpt-4o-mini")
ENRICHMENT_TIMEOUT_SECS = float(os.getenv("ENRICHMENT_TIMEOUT_SECS", "10"))

SENTIMENTS = ("positive", "negative", "neutral")
ENCOURAGEMENT_LEVELS = ("gentle", "moderate", "strong")
MOODS = ("great", "good", "okay", "struggling")

MAX_MESSAGE_CHARS = 600


@dataclass(frozen=True)
class Encouragement:
    message: str
    sentiment: str = "neutral"
    level: str = "moderate"


# -------------------------------------------------------------------
# Fallback pools (no network)
# -------------------------------------------------------------------
REFLECTION_FALLBACK_MESSAGES = (
    "Thank you for sharing your experience. Remember, growth happens one wave at a time. You're braver than you know! 🌊🦀",
    "Every small step you take creates ripples of positive change. Your courage is inspiring! 🐚✨",
    "Like a crab slowly emerging from its shell, you're discovering your own strength. Keep going! 🦀🌊",
    "The ocean doesn't rush its waves, and you don't need to rush your journey. You're exactly where you need to be. 🌊💙",
    "Each challenge you face is like a shell being polished by the waves - you're becoming more beautiful with every experience. 🐚⭐",
    "Your reflection shows real insight and growth. The tide is turning in your favor! 🌊🦀",
    "Progress isn't always visible on the surface, just like the powerful currents beneath calm waters. Trust your journey. 🌊✨",
    "You're building confidence like a coral reef - slowly but surely, creating something strong and beautiful. 🐚🌊",
    "Every experience, comfortable or challenging, adds to your treasure chest of wisdom. Well done! ⭐🦀",
    "Like the steady rhythm of waves on shore, your consistent effort is creating lasting change. Keep flowing forward! 🌊💙",
)

JOURNAL_FALLBACK_MESSAGES = (
    "Thank you for sharing your thoughts. Every reflection brings you closer to shore. 🐚✨",
    "Your words show deep self-awareness. Like shells on the beach, each thought has its own beauty. 🌊🐚",
    "Writing helps the waves of emotion find their natural rhythm. Keep expressing yourself! 💙⭐",
    "Your journal is a safe harbor for your thoughts. Thank you for being honest with yourself. 🦀🌊",
    "Each entry is like a message in a bottle - precious and meaningful. Your journey matters. 🐚💫",
    "The tides of feeling ebb and flow, and you're learning to navigate them beautifully. 🌊✨",
    "Your reflections are creating ripples of positive change in your life. Keep writing! 🦀💙",
    "Like a lighthouse guiding ships, your self-awareness lights the way forward. 🌊⭐",
    "Every word you write is a step on the path to understanding yourself better. Well done! 🐚🦀",
    "Your openness is like the ocean - vast, deep, and full of possibilities. 🌊💙",
)


def fallback_reflection_encouragement(rng: Optional[random.Random] = None) -> Encouragement:
    pick = (rng or random).choice(REFLECTION_FALLBACK_MESSAGES)
    return Encouragement(message=pick, sentiment="neutral", level="moderate")


def fallback_journal_encouragement(rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(JOURNAL_FALLBACK_MESSAGES)


# -------------------------------------------------------------------
# Prompts
# -------------------------------------------------------------------
REFLECTION_JSON_SCHEMA = r"""
{
  "type": "object",
  "required": ["message", "sentiment"],
  "properties": {
    "message": { "type": "string", "minLength": 1, "maxLength": 600 },
    "sentiment": { "type": "string", "enum": ["positive", "negative", "neutral"] },
    "encouragementLevel": { "type": "string", "enum": ["gentle", "moderate", "strong"] }
  }
}
"""

REFLECTION_PROMPT = """\
You are a supportive AI therapist helping someone overcome social anxiety.
They just completed a social anxiety challenge and shared their reflection.

Challenge: "{exercise_description}"
User Reflection: "{reflection_text}"

Analyze their reflection and provide:
1. An encouraging response (2-3 sentences, warm and supportive)
2. Sentiment analysis of their reflection (positive, negative, or neutral)
3. How much encouragement they need (gentle, moderate, or strong)

Use marine-themed emojis (🌊, 🐚, 🦀, ⭐) and keep a gentle, ocean-inspired tone.
Be specific about their progress and validate their feelings, whether positive or challenging.

Return ONLY JSON matching this schema:
{json_schema}
"""

JOURNAL_PROMPT = """\
You are a supportive AI companion for someone on a social anxiety recovery journey.
They just wrote a journal entry.

Journal Entry: "{journal_text}"
Mood: {mood}

Provide a brief (1-2 sentences), encouraging response that:
- Acknowledges their feelings and experiences
- Offers gentle support and validation
- Uses marine-themed language and emojis (🌊, 🐚, 🦀, ⭐)
- Matches their emotional state appropriately

Keep it warm, authentic, and supportive. Plain text only.
"""


# -------------------------------------------------------------------
# Strict response validation
# -------------------------------------------------------------------
def parse_reflection_response(raw: str) -> Encouragement:
    """Validate the model's JSON; anything off-schema is EnrichmentUnavailable."""
    try:
        data: Any = json.loads(raw or "")
    except (TypeError, ValueError) as e:
        raise EnrichmentUnavailable("Encouragement response was not JSON") from e

    if not isinstance(data, dict):
        raise EnrichmentUnavailable("Encouragement response was not an object")

    message = data.get("message")
    if not isinstance(message, str) or not message.strip():
        raise EnrichmentUnavailable("Encouragement response had no message")

    sentiment = data.get("sentiment")
    if sentiment not in SENTIMENTS:
        raise EnrichmentUnavailable(f"Unknown sentiment {sentiment!r}")

    level = data.get("encouragementLevel", "moderate")
    if level not in ENCOURAGEMENT_LEVELS:
        raise EnrichmentUnavailable(f"Unknown encouragement level {level!r}")

    return Encouragement(
        message=message.strip()[:MAX_MESSAGE_CHARS],
        sentiment=sentiment,
        level=level,
    )


def parse_journal_response(raw: Optional[str]) -> str:
    text = (raw or "").strip()
    if not text:
        raise EnrichmentUnavailable("Journal encouragement was empty")
    return text[:MAX_MESSAGE_CHARS]


# -------------------------------------------------------------------
# Generators
# -------------------------------------------------------------------
class EncouragementGenerator:
    """Both methods raise EnrichmentUnavailable on any failure."""

    name = "base"

    def generate_reflection_encouragement(
        self, reflection_text: str, exercise_description: str
    ) -> Encouragement:
        raise NotImplementedError

    def generate_journal_encouragement(self, journal_text: str, mood: Optional[str]) -> str:
        raise NotImplementedError


class FallbackEncouragementGenerator(EncouragementGenerator):
    """Offline generator: always answers from the fallback pools."""

    name = "fallback"

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng

    def generate_reflection_encouragement(self, reflection_text, exercise_description):
        return fallback_reflection_encouragement(self._rng)

    def generate_journal_encouragement(self, journal_text, mood):
        return fallback_journal_encouragement(self._rng)


class OpenAIEncouragementGenerator(EncouragementGenerator):
    name = "openai"

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        model: str = OPENAI_MODEL_FAST,
        timeout: float = ENRICHMENT_TIMEOUT_SECS,
        client: Any = None,
    ):
        if client is None:
            from openai import OpenAI

            # fail fast: bounded timeout, no client-side retries
            client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self._client = client
        self._model = model

    def _complete(self, prompt: str, *, json_mode: bool, temperature: float, max_tokens: int) -> str:
        kwargs: Dict[str, Any] = dict(
            model=self._model,
            messages=[{"role": "user", "content": prompt}],
            temperature=temperature,
            max_tokens=max_tokens,
        )
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        try:
            resp = self._client.chat.completions.create(**kwargs)
            return (resp.choices[0].message.content or "").strip()
        except Exception as e:
            raise EnrichmentUnavailable(f"Encouragement request failed: {e}") from e

    def generate_reflection_encouragement(self, reflection_text, exercise_description):
        prompt = REFLECTION_PROMPT.format(
            exercise_description=(exercise_description or "")[:1000],
            reflection_text=(reflection_text or "")[:4000],
            json_schema=REFLECTION_JSON_SCHEMA,
        )
        raw = self._complete(prompt, json_mode=True, temperature=0.7, max_tokens=300)
        return parse_reflection_response(raw)

    def generate_journal_encouragement(self, journal_text, mood):
        prompt = JOURNAL_PROMPT.format(
            journal_text=(journal_text or "")[:4000],
            mood=mood or "unspecified",
        )
        raw = self._complete(prompt, json_mode=False, temperature=0.8, max_tokens=150)
        return parse_journal_response(raw)


# -------------------------------------------------------------------
# App wiring
# -------------------------------------------------------------------
def init_encouragement(app: Flask) -> EncouragementGenerator:
    api_key = app.config.get("OPENAI_API_KEY")
    if api_key:
        generator: EncouragementGenerator = OpenAIEncouragementGenerator(
            api_key=api_key,
            model=app.config.get("OPENAI_MODEL_FAST", OPENAI_MODEL_FAST),
            timeout=float(app.config.get("ENRICHMENT_TIMEOUT_SECS", ENRICHMENT_TIMEOUT_SECS)),
        )
    else:
        app.logger.warning("OPENAI_API_KEY not set; encouragement uses the fallback pool.")
        generator = FallbackEncouragementGenerator()
    app.extensions["encouragement"] = generator
    app.logger.info("Encouragement generator: %s", generator.name)
    return generator


def get_encouragement_generator() -> EncouragementGenerator:
    return current_app.extensions["encouragement"]
