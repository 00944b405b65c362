"""Shared builders for mention/adapter test doubles."""
from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Union

from brandpulse.models import Engagement, Mention, Sentiment, SourceResult

BASE_TIME = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)

_ids = itertools.count(1)


def make_mention(
    source: str = "A",
    content_hash: str = "hash-1",
    upvotes: Optional[int] = None,
    comments: Optional[int] = None,
    hours_ago: float = 0,
    source_type: str = "social",
    high: bool = False,
    sentiment: Optional[Sentiment] = None,
) -> Mention:
    n = next(_ids)
    published = BASE_TIME - timedelta(hours=hours_ago)
    return Mention(
        id=f"m{n}",
        source=source,
        source_type=source_type,
        url=f"https://example.com/{source}/{n}",
        title=f"Post {n}",
        snippet=f"Snippet {n}",
        matched_keyword="Revlon",
        published_at=published,
        scraped_at=BASE_TIME,
        content_hash=content_hash,
        engagement=Engagement(upvotes=upvotes, comments=comments),
        is_high_engagement=high,
        sentiment=sentiment,
    )


class FakeAdapter:
    """Adapter double returning canned results (or raising)."""

    def __init__(
        self,
        name: str,
        outcome: Union[List[Mention], str, BaseException, None] = None,
        source_type: str = "social",
        enabled: bool = True,
    ):
        self.name = name
        self.source_type = source_type
        self.enabled = enabled
        self.outcome = outcome if outcome is not None else []
        self.calls = 0
        self.last_terms: Optional[List[str]] = None

    async def fetch(self, terms, max_results, days_back):
        self.calls += 1
        self.last_terms = list(terms)
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        if isinstance(self.outcome, str):
            return SourceResult(
                source=self.name, success=False, mentions=[], scraped_at=BASE_TIME, error=self.outcome
            )
        mentions = list(self.outcome)[:max_results]
        return SourceResult(
            source=self.name, success=len(mentions) > 0, mentions=mentions, scraped_at=BASE_TIME
        )


class FakeClock:
    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
