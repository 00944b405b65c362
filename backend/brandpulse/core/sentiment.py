"""
Best-effort sentiment enrichment for mentions.

The enricher batches mention text through a scoring client with bounded
concurrency. Scoring never fails the caller: timeouts, malformed responses
and API errors all resolve to a neutral sentiment.
"""
from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import List, Protocol, Tuple

from brandpulse.config import (
    SENTIMENT_BATCH_DELAY,
    SENTIMENT_BATCH_SIZE,
    SENTIMENT_TEXT_LIMIT,
    SENTIMENT_TIMEOUT,
)
from brandpulse.models import NEUTRAL_SENTIMENT, Mention, Sentiment
from brandpulse.utils import clamp_score

logger = logging.getLogger(__name__)


class SentimentScorer(Protocol):
    async def score(self, text: str, subject: str) -> Sentiment:
        ...


def label_for_score(score: float) -> str:
    if score > 0.2:
        return "positive"
    if score < -0.2:
        return "negative"
    return "neutral"


def mention_text(mention: Mention) -> str:
    return f"{mention.title} {mention.snippet}"[:SENTIMENT_TEXT_LIMIT]


class SentimentEnricher:
    """Scores mentions in fixed-size concurrent batches."""

    def __init__(
        self,
        scorer: SentimentScorer,
        batch_size: int = SENTIMENT_BATCH_SIZE,
        batch_delay: float = SENTIMENT_BATCH_DELAY,
        timeout: float = SENTIMENT_TIMEOUT,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self.scorer = scorer
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.timeout = timeout

    async def score(self, text: str, subject: str) -> Sentiment:
        """Score one text about `subject`; neutral on any failure."""
        try:
            result = await asyncio.wait_for(self.scorer.score(text, subject), timeout=self.timeout)
        except asyncio.TimeoutError:
            return self._neutral_fallback("timeout")
        except Exception as e:
            return self._neutral_fallback(f"{type(e).__name__}: {e}")

        if not isinstance(result, Sentiment):
            return self._neutral_fallback(f"unexpected result {result!r}")
        return result

    def _neutral_fallback(self, reason: str) -> Sentiment:
        logger.debug("Sentiment scoring fell back to neutral: %s", reason)
        return NEUTRAL_SENTIMENT

    async def enrich(self, mentions: List[Mention], subject: str) -> List[Mention]:
        """
        Attach a sentiment to every mention that has none yet.

        Mentions are updated in place, so cached mentions keep their
        sentiment across requests. Returns the same list.
        """
        pending = [mention for mention in mentions if mention.sentiment is None]

        for start in range(0, len(pending), self.batch_size):
            batch = pending[start : start + self.batch_size]
            results = await asyncio.gather(
                *(self.score(mention_text(mention), subject) for mention in batch)
            )
            for mention, sentiment in zip(batch, results):
                mention.sentiment = sentiment

            # Small delay between batches to avoid rate limits
            if start + self.batch_size < len(pending) and self.batch_delay:
                await asyncio.sleep(self.batch_delay)

        return mentions


@lru_cache(maxsize=1)
def _load_sentiment_model() -> Tuple:
    """
    Load the FinBERT sentiment analysis model.

    Returns:
        Tuple of (tokenizer, model) for sentiment analysis

    Raises:
        RuntimeError: If required dependencies are not installed
    """
    try:
        from transformers import AutoTokenizer, AutoModelForSequenceClassification
    except ImportError as e:
        raise RuntimeError(
            "Sentiment model dependencies are missing. Install the finbert extra.\n"
            "Try: pip install 'brandpulse[finbert]'"
        ) from e

    model_name = "yiyanghkust/finbert-tone"
    tokenizer = AutoTokenizer.from_pretrained(model_name)
    model = AutoModelForSequenceClassification.from_pretrained(model_name)
    model.eval()

    return tokenizer, model


def analyze_sentiment(text: str) -> Sentiment:
    """
    Run FinBERT on a single text.

    score = p_pos - p_neg, clipped to [-1, 1]; the label is the most
    probable class.
    """
    import torch

    tokenizer, model = _load_sentiment_model()

    with torch.no_grad():
        encoded = tokenizer([text], padding=True, truncation=True, max_length=256, return_tensors="pt")
        probabilities = torch.softmax(model(**encoded).logits, dim=-1).cpu().numpy()[0]

    # FinBERT label order: [neutral, positive, negative]
    p_neutral, p_positive, p_negative = float(probabilities[0]), float(probabilities[1]), float(probabilities[2])

    if p_positive > max(p_neutral, p_negative):
        label = "positive"
    elif p_negative > max(p_positive, p_neutral):
        label = "negative"
    else:
        label = "neutral"

    return Sentiment(label=label, score=clamp_score(p_positive - p_negative))


class FinBertScorer:
    """Local FinBERT scorer. The subject is not used: the model scores the text as a whole."""

    async def score(self, text: str, subject: str) -> Sentiment:
        # Model inference blocks, keep it off the event loop
        return await asyncio.to_thread(analyze_sentiment, text)
