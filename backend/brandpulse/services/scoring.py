"""
Sentiment scoring clients.
"""
from __future__ import annotations

import json
import logging

from openai import AsyncOpenAI

from brandpulse.core.sentiment import FinBertScorer, SentimentScorer, label_for_score
from brandpulse.models import NEUTRAL_SENTIMENT, Sentiment
from brandpulse.settings import Settings
from brandpulse.utils import clamp_score

logger = logging.getLogger(__name__)

VALID_LABELS = {"positive", "neutral", "negative"}


def build_system_prompt(subject: str) -> str:
    return (
        "You are a sentiment analysis expert. Analyze the sentiment of the given text "
        f'specifically regarding the brand "{subject}".\n\n'
        "Return a JSON object with:\n"
        "- score: number between -1 (very negative) and 1 (very positive)\n"
        '- label: "positive", "neutral", or "negative"\n'
        "- confidence: number between 0 and 1 indicating your confidence\n\n"
        "Consider direct mentions of the brand, implied sentiment about products, "
        "comparison with competitors, and recommendations or complaints.\n\n"
        "Only return the JSON object, no additional text."
    )


def parse_sentiment_payload(content: str) -> Sentiment:
    """
    Parse the model's JSON answer.

    Raises:
        ValueError: If the payload is not a JSON object with a numeric score
    """
    data = json.loads(content)
    if not isinstance(data, dict):
        raise ValueError("model did not return a JSON object")

    score = clamp_score(float(data["score"]))
    label = data.get("label")
    if label not in VALID_LABELS:
        label = label_for_score(score)
    return Sentiment(label=label, score=score)


class OpenAIScorer:
    """Brand-targeted sentiment via an OpenAI chat completion."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini"):
        self.api_key = api_key
        self.model = model
        self._client: AsyncOpenAI | None = None

    def _get_client(self) -> AsyncOpenAI | None:
        """Get OpenAI client only when needed and API key is available."""
        if not self.api_key:
            return None
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def score(self, text: str, subject: str) -> Sentiment:
        client = self._get_client()
        if client is None:
            # No credentials: neutral without attempting the call
            return NEUTRAL_SENTIMENT

        response = await client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": build_system_prompt(subject)},
                {"role": "user", "content": text},
            ],
            temperature=0.1,
            max_tokens=100,
        )

        content = response.choices[0].message.content
        if not content:
            raise ValueError("No response from OpenAI")
        return parse_sentiment_payload(content.strip())


class NullScorer:
    """Scorer used when enrichment is switched off: always neutral."""

    async def score(self, text: str, subject: str) -> Sentiment:
        return NEUTRAL_SENTIMENT


def build_scorer(settings: Settings) -> SentimentScorer:
    backend = settings.SENTIMENT_BACKEND.lower()
    if backend == "finbert":
        return FinBertScorer()
    if backend == "openai":
        return OpenAIScorer(api_key=settings.OPENAI_API_KEY, model=settings.OPENAI_MODEL)
    if backend != "none":
        logger.warning("Unknown SENTIMENT_BACKEND %r, sentiment disabled", settings.SENTIMENT_BACKEND)
    return NullScorer()
