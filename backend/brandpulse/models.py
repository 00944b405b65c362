"""
File: brandpulse/models.py
Internal data structures shared by adapters, cache, enricher and aggregator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional


JsonDict = Dict[str, Any]

SourceType = Literal["forum", "blog", "review", "social", "video", "news"]
SentimentLabel = Literal["positive", "neutral", "negative"]


@dataclass
class Engagement:
    """Sparse engagement metrics. None means "unknown", not zero."""

    upvotes: Optional[int] = None
    downvotes: Optional[int] = None
    comments: Optional[int] = None
    shares: Optional[int] = None
    views: Optional[int] = None

    @property
    def score(self) -> int:
        return (self.upvotes or 0) + (self.comments or 0)


@dataclass(frozen=True)
class EngagementThreshold:
    upvotes: Optional[int] = None
    comments: Optional[int] = None


@dataclass(frozen=True)
class Sentiment:
    label: SentimentLabel
    score: float  # [-1, 1]


NEUTRAL_SENTIMENT = Sentiment(label="neutral", score=0.0)


@dataclass
class Mention:
    """Unified representation of one brand mention from a single source.

    `sentiment` stays None until the enricher has run.
    """

    # Identity & content
    id: str
    source: str  # adapter name, e.g. "Reddit" or "Temptalia"
    source_type: SourceType
    url: str
    title: str
    snippet: str
    matched_keyword: str
    published_at: datetime
    scraped_at: datetime
    content_hash: str

    engagement: Engagement = field(default_factory=Engagement)
    is_high_engagement: bool = False
    full_text: Optional[str] = None
    author: Optional[str] = None
    category: Optional[str] = None

    # Raw metadata from the adapter (subreddit, channel, publisher...)
    raw: JsonDict = field(default_factory=dict)

    # Set by core/sentiment
    sentiment: Optional[Sentiment] = None


@dataclass
class SourceResult:
    """What a single adapter call produced."""

    source: str
    success: bool
    mentions: List[Mention]
    scraped_at: datetime
    duration_ms: int = 0
    error: Optional[str] = None


class SourceOutcome(str, Enum):
    """Terminal state of one source within one aggregation call."""

    LIVE = "live"      # cache miss, fetch ok, stored
    CACHED = "cached"  # fresh cache hit
    STALE = "stale"    # fetch failed, served stale cache
    EMPTY = "empty"    # fetch failed, nothing cached


@dataclass
class SourceFetchResult:
    source: str
    success: bool
    outcome: SourceOutcome
    mentions: List[Mention]
    scraped_at: datetime
    duration_ms: int = 0
    error: Optional[str] = None


@dataclass
class AggregateResult:
    success: bool
    mentions: List[Mention]
    by_source_count: Dict[str, int]
    by_sentiment_count: Dict[str, int]
    errors: List[str]
    source_status: Dict[str, SourceOutcome]
    duration_ms: int
    scraped_at: datetime
    warnings: List[str] = field(default_factory=list)

    @property
    def total_mentions(self) -> int:
        return len(self.mentions)

    @property
    def live_sources(self) -> List[str]:
        return [name for name, outcome in self.source_status.items() if outcome is SourceOutcome.LIVE]

    @property
    def cached_sources(self) -> List[str]:
        return [
            name
            for name, outcome in self.source_status.items()
            if outcome in (SourceOutcome.CACHED, SourceOutcome.STALE)
        ]


__all__ = [
    "AggregateResult",
    "Engagement",
    "EngagementThreshold",
    "JsonDict",
    "Mention",
    "NEUTRAL_SENTIMENT",
    "Sentiment",
    "SentimentLabel",
    "SourceFetchResult",
    "SourceOutcome",
    "SourceResult",
    "SourceType",
]
