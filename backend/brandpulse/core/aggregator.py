"""
Multi-source aggregation coordinator.

Each active source resolves to exactly one outcome per call:

    cache hit                         -> CACHED
    cache miss, fetch ok              -> LIVE   (result stored in cache)
    cache miss, fetch failed, stale   -> STALE  (stale cache served)
    cache miss, fetch failed, nothing -> EMPTY  (error recorded)

Sources run in small concurrent batches with a delay between batches. One
failing source never aborts the others; only the failure of every active
source makes the aggregation unsuccessful.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from brandpulse.config import (
    ADAPTER_TIMEOUT,
    AGGREGATE_BATCH_DELAY,
    AGGREGATE_BATCH_SIZE,
    DEFAULT_LOOKBACK_DAYS,
    MAX_PER_SOURCE,
)
from brandpulse.core import dedup
from brandpulse.core.cache import MentionCache
from brandpulse.core.sentiment import SentimentEnricher
from brandpulse.models import (
    AggregateResult,
    Mention,
    SourceFetchResult,
    SourceOutcome,
    SourceResult,
)
from brandpulse.sources.common import SourceAdapter
from brandpulse.utils import now_utc

logger = logging.getLogger(__name__)


@dataclass
class _SourceRun:
    source: str
    outcome: SourceOutcome
    mentions: List[Mention]
    error: Optional[str] = None
    warning: Optional[str] = None


def build_search_terms(terms: Iterable[str], brand: str) -> List[str]:
    """Terms followed by the brand, without blanks or case-insensitive repeats."""
    seen: set[str] = set()
    result: List[str] = []
    for term in [*terms, brand]:
        term = (term or "").strip()
        if term and term.lower() not in seen:
            seen.add(term.lower())
            result.append(term)
    return result


def sort_mentions(mentions: List[Mention]) -> List[Mention]:
    """High-engagement first, then newest first."""
    return sorted(mentions, key=lambda m: (not m.is_high_engagement, -m.published_at.timestamp()))


def count_by_sentiment(mentions: Iterable[Mention]) -> Dict[str, int]:
    counts = {"positive": 0, "neutral": 0, "negative": 0}
    for mention in mentions:
        label = mention.sentiment.label if mention.sentiment else "neutral"
        counts[label] += 1
    return counts


class MentionAggregator:
    """Fans out to all sources through the cache and merges the results."""

    def __init__(
        self,
        adapters: List[SourceAdapter],
        cache: MentionCache,
        enricher: Optional[SentimentEnricher] = None,
        batch_size: int = AGGREGATE_BATCH_SIZE,
        batch_delay: float = AGGREGATE_BATCH_DELAY,
        adapter_timeout: float = ADAPTER_TIMEOUT,
        cache_ttl: Optional[float] = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self.adapters = adapters
        self.cache = cache
        self.enricher = enricher
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.adapter_timeout = adapter_timeout
        self.cache_ttl = cache_ttl

    def available_sources(self) -> List[dict]:
        return [
            {"name": a.name, "source_type": a.source_type, "enabled": a.enabled}
            for a in self.adapters
        ]

    def active_adapters(self, sources: Optional[Iterable[str]] = None) -> List[SourceAdapter]:
        enabled = [a for a in self.adapters if a.enabled]
        if sources is None:
            return enabled
        wanted = {name.lower() for name in sources}
        return [a for a in enabled if a.name.lower() in wanted]

    def _find_adapter(self, name: str) -> Optional[SourceAdapter]:
        for adapter in self.adapters:
            if adapter.name.lower() == name.lower():
                return adapter
        return None

    async def _call_adapter(
        self,
        adapter: SourceAdapter,
        terms: List[str],
        max_results: int,
        days_back: int,
    ) -> SourceResult:
        """Run one adapter; timeouts and unexpected exceptions become a failed result."""
        try:
            return await asyncio.wait_for(
                adapter.fetch(terms, max_results, days_back),
                timeout=self.adapter_timeout,
            )
        except asyncio.TimeoutError:
            error = f"timed out after {self.adapter_timeout:g}s"
        except Exception as e:
            logger.exception("Adapter %s raised", adapter.name)
            error = f"{type(e).__name__}: {e}"

        return SourceResult(source=adapter.name, success=False, mentions=[], scraped_at=now_utc(), error=error)

    async def _fetch_through_cache(
        self,
        adapter: SourceAdapter,
        terms: List[str],
        brand: str,
        max_results: int,
        days_back: int,
        use_fresh_cache: bool = True,
    ) -> _SourceRun:
        if use_fresh_cache:
            cached = self.cache.get(adapter.name, brand)
            if cached is not None:
                return _SourceRun(adapter.name, SourceOutcome.CACHED, cached)

        result = await self._call_adapter(adapter, terms, max_results, days_back)

        if result.success:
            mentions = dedup.merge(result.mentions)
            self.cache.put(adapter.name, brand, mentions, ttl=self.cache_ttl)
            return _SourceRun(adapter.name, SourceOutcome.LIVE, mentions, warning=result.error)

        error = result.error or "no mentions found"
        stale = self.cache.get_stale(adapter.name, brand)
        if stale is not None:
            logger.info("%s failed (%s), serving stale cache", adapter.name, error)
            return _SourceRun(adapter.name, SourceOutcome.STALE, stale, warning=error)

        logger.warning("%s failed with no cache to fall back on: %s", adapter.name, error)
        return _SourceRun(adapter.name, SourceOutcome.EMPTY, [], error=error)

    async def aggregate(
        self,
        sources: Optional[Iterable[str]] = None,
        terms: Iterable[str] = (),
        brand: str = "",
        max_per_source: int = MAX_PER_SOURCE,
        days_back: int = DEFAULT_LOOKBACK_DAYS,
        include_sentiment: bool = True,
    ) -> AggregateResult:
        """
        Collect mentions for `brand` from every active source.

        Args:
            sources: Adapter names to restrict to (None means all enabled)
            terms: Search keywords; the brand is always searched as well
            brand: Brand being monitored, also the cache key and sentiment subject
            max_per_source: Cap on mentions requested from each adapter
            days_back: Lookback window in days
            include_sentiment: Run the sentiment enricher over the result

        Raises:
            ValueError: If no enabled adapter matches `sources`
        """
        started = time.perf_counter()
        active = self.active_adapters(sources)
        if not active:
            raise ValueError("aggregate called with an empty adapter set")

        search_terms = build_search_terms(terms, brand)
        runs: List[_SourceRun] = []

        # Run in small batches to be respectful of rate limits
        for start in range(0, len(active), self.batch_size):
            batch = active[start : start + self.batch_size]
            runs.extend(
                await asyncio.gather(
                    *(
                        self._fetch_through_cache(adapter, search_terms, brand, max_per_source, days_back)
                        for adapter in batch
                    )
                )
            )
            if start + self.batch_size < len(active) and self.batch_delay:
                await asyncio.sleep(self.batch_delay)

        errors = [f"{run.source}: {run.error}" for run in runs if run.error]
        warnings = [f"{run.source}: {run.warning}" for run in runs if run.warning]
        for run in runs:
            logger.info("%s -> %s (%d mentions)", run.source, run.outcome.value, len(run.mentions))

        mentions = dedup.merge(m for run in runs for m in run.mentions)

        if include_sentiment and self.enricher is not None:
            await self.enricher.enrich(mentions, brand)

        mentions = sort_mentions(mentions)

        by_source = {run.source: 0 for run in runs}
        for mention in mentions:
            by_source[mention.source] = by_source.get(mention.source, 0) + 1

        return AggregateResult(
            success=len(errors) < len(active),
            mentions=mentions,
            by_source_count=by_source,
            by_sentiment_count=count_by_sentiment(mentions),
            errors=errors,
            warnings=warnings,
            source_status={run.source: run.outcome for run in runs},
            duration_ms=int((time.perf_counter() - started) * 1000),
            scraped_at=now_utc(),
        )

    async def fetch_single_source(
        self,
        source_name: str,
        terms: Iterable[str] = (),
        brand: str = "",
        max_results: int = MAX_PER_SOURCE,
        days_back: int = DEFAULT_LOOKBACK_DAYS,
    ) -> Optional[SourceFetchResult]:
        """
        Targeted refresh of one source, skipping the fresh-cache check.

        A successful fetch replaces the cache entry; a failed one falls back
        to stale cache. Returns None for an unknown source name.
        """
        adapter = self._find_adapter(source_name)
        if adapter is None:
            return None

        started = time.perf_counter()
        run = await self._fetch_through_cache(
            adapter,
            build_search_terms(terms, brand),
            brand,
            max_results,
            days_back,
            use_fresh_cache=False,
        )
        return SourceFetchResult(
            source=adapter.name,
            success=run.outcome is not SourceOutcome.EMPTY,
            outcome=run.outcome,
            mentions=sort_mentions(run.mentions),
            scraped_at=now_utc(),
            duration_ms=int((time.perf_counter() - started) * 1000),
            error=run.error or run.warning,
        )
