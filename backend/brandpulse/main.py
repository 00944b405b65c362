"""
Main FastAPI application and routing layer.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from brandpulse.config import (
    CORS_ALLOW_ORIGINS,
    DEFAULT_KEYWORDS,
    DEFAULT_LOOKBACK_DAYS,
    LOG_FORMAT,
    LOG_LEVEL,
    MAX_PER_SOURCE,
)
from brandpulse.core.aggregator import MentionAggregator
from brandpulse.core.cache import MentionCache
from brandpulse.core.sentiment import SentimentEnricher
from brandpulse.models import AggregateResult, Mention, SourceFetchResult
from brandpulse.schemas import (
    AggregateResponse,
    MentionOut,
    RefreshRequest,
    SourceFetchResponse,
    SourceInfo,
)
from brandpulse.services.scoring import build_scorer
from brandpulse.settings import get_settings
from brandpulse.sources.registry import build_adapters
from brandpulse.utils import now_utc

# Configure logging
logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger(__name__)


def split_csv(value: Optional[str]) -> Optional[List[str]]:
    if value is None:
        return None
    return [part.strip() for part in value.split(",") if part.strip()]


def build_aggregator() -> MentionAggregator:
    """Wire adapters, cache and enricher from settings."""
    settings = get_settings()
    return MentionAggregator(
        adapters=build_adapters(settings),
        cache=MentionCache(),
        enricher=SentimentEnricher(build_scorer(settings)),
    )


def to_mention_out(mentions: List[Mention]) -> List[MentionOut]:
    return [MentionOut.model_validate(mention) for mention in mentions]


def build_aggregate_response(brand: str, result: AggregateResult, limit: int) -> AggregateResponse:
    """
    Build the API response for an aggregation.

    Args:
        brand: Brand that was searched
        result: Aggregation result
        limit: Maximum number of mentions to include

    Returns:
        AggregateResponse object
    """
    return AggregateResponse(
        success=result.success,
        brand=brand,
        total_mentions=result.total_mentions,
        mentions=to_mention_out(result.mentions[:limit]),
        by_source=result.by_source_count,
        by_sentiment=result.by_sentiment_count,
        source_status={name: outcome.value for name, outcome in result.source_status.items()},
        live_sources=result.live_sources,
        cached_sources=result.cached_sources,
        errors=result.errors,
        warnings=result.warnings,
        duration_ms=result.duration_ms,
        scraped_at=result.scraped_at,
    )


def build_source_response(result: SourceFetchResult) -> SourceFetchResponse:
    return SourceFetchResponse(
        source=result.source,
        success=result.success,
        outcome=result.outcome.value,
        mentions=to_mention_out(result.mentions),
        error=result.error,
        duration_ms=result.duration_ms,
        scraped_at=result.scraped_at,
    )


# Initialize FastAPI app
app = FastAPI(
    title="Brand Mention Aggregation API",
    version="0.1.0",
    description="Multi-source brand mention aggregation with resilient caching"
)


@app.on_event("startup")
async def create_aggregator():
    """Build one cache + aggregator for the process lifetime."""
    if getattr(app.state, "aggregator", None) is None:
        app.state.aggregator = build_aggregator()
        logger.info(
            "Aggregator ready with sources: %s",
            ", ".join(a.name for a in app.state.aggregator.active_adapters()),
        )


@app.on_event("shutdown")
async def drop_cache():
    aggregator = getattr(app.state, "aggregator", None)
    if aggregator is not None:
        aggregator.cache.clear()


# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_aggregator(request: Request) -> MentionAggregator:
    return request.app.state.aggregator


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "as_of": now_utc().isoformat(),
        "service": "brand-mention-api"
    }


@app.get("/sources", response_model=List[SourceInfo])
async def list_sources(request: Request):
    return get_aggregator(request).available_sources()


@app.get("/mentions", response_model=AggregateResponse)
async def get_mentions(
    request: Request,
    brand: str = Query(..., min_length=1, max_length=100, description="Brand to monitor (e.g., Revlon)"),
    terms: Optional[str] = Query(None, description="Comma separated search keywords"),
    sources: Optional[str] = Query(None, description="Comma separated source names"),
    max_per_source: int = Query(MAX_PER_SOURCE, ge=1, le=100),
    days_back: int = Query(DEFAULT_LOOKBACK_DAYS, ge=1, le=30),
    include_sentiment: bool = Query(True, description="Score mentions for sentiment"),
    limit: int = Query(100, ge=1, le=500, description="Maximum number of mentions to return"),
):
    """
    Aggregate mentions of a brand across all (or the selected) sources.

    Partial source failures still return 200 with `errors` filled in; when
    every source fails `success` is false.
    """
    brand = brand.strip()
    aggregator = get_aggregator(request)

    try:
        result = await aggregator.aggregate(
            sources=split_csv(sources),
            terms=split_csv(terms) or DEFAULT_KEYWORDS,
            brand=brand,
            max_per_source=max_per_source,
            days_back=days_back,
            include_sentiment=include_sentiment,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if result.errors:
        logger.warning("Aggregation for %s had %d source errors", brand, len(result.errors))
    return build_aggregate_response(brand, result, limit)


@app.post("/sources/{source_name}/refresh", response_model=SourceFetchResponse)
async def refresh_source(source_name: str, body: RefreshRequest, request: Request):
    """Re-fetch one source, bypassing the fresh cache."""
    result = await get_aggregator(request).fetch_single_source(
        source_name,
        terms=body.terms or DEFAULT_KEYWORDS,
        brand=body.brand.strip(),
        max_results=body.max_results,
        days_back=body.days_back,
    )
    if result is None:
        raise HTTPException(status_code=404, detail=f"Unknown source: {source_name}")
    return build_source_response(result)


@app.get("/cache")
async def cache_stats(request: Request):
    cache = get_aggregator(request).cache
    stats = cache.stats()
    stats["ages"] = {f"{source}_{brand}": cache.format_age(source, brand) for source, brand in cache.keys()}
    return stats


if __name__ == "__main__":
    # For development
    import uvicorn
    uvicorn.run("brandpulse.main:app", host="0.0.0.0", port=8000, reload=True)
