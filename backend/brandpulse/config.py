"""
Application configuration with environment variable support.
"""
from __future__ import annotations

import os
from typing import Dict

from brandpulse.models import EngagementThreshold, SourceType


def _get_env_float(key: str, default: float) -> float:
    """Get float value from environment variable with fallback."""
    try:
        return float(os.getenv(key, default))
    except (ValueError, TypeError):
        return default


def _get_env_int(key: str, default: int) -> int:
    """Get integer value from environment variable with fallback."""
    try:
        return int(os.getenv(key, default))
    except (ValueError, TypeError):
        return default


def _get_env_list(key: str, default: list[str], separator: str = ",") -> list[str]:
    """Get list value from environment variable with fallback."""
    value = os.getenv(key)
    if not value:
        return default
    return [item.strip() for item in value.split(separator) if item.strip()]


# Collection Settings
DEFAULT_LOOKBACK_DAYS: int = _get_env_int("LOOKBACK_DAYS", 7)
MAX_PER_SOURCE: int = _get_env_int("MAX_PER_SOURCE", 30)
DEFAULT_KEYWORDS: list[str] = _get_env_list(
    "DEFAULT_KEYWORDS",
    [
        "lipstick",
        "foundation",
        "mascara",
        "concealer",
        "drugstore makeup",
        "makeup review",
        "beauty haul",
    ],
)

# Cache Settings (seconds)
CACHE_SOFT_TTL: float = _get_env_float("CACHE_SOFT_TTL", 2 * 60 * 60)
CACHE_MAX_STALE_AGE: float = _get_env_float("CACHE_MAX_STALE_AGE", 24 * 60 * 60)

# Aggregation Settings
AGGREGATE_BATCH_SIZE: int = _get_env_int("AGGREGATE_BATCH_SIZE", 2)
AGGREGATE_BATCH_DELAY: float = _get_env_float("AGGREGATE_BATCH_DELAY", 1.0)
ADAPTER_TIMEOUT: float = _get_env_float("ADAPTER_TIMEOUT", 60.0)
# Slow scraping adapters stop starting new requests after this many seconds
# and return what they have, so they finish well inside ADAPTER_TIMEOUT.
ADAPTER_TIME_BUDGET: float = _get_env_float("ADAPTER_TIME_BUDGET", 30.0)

# Sentiment Enrichment Settings
SENTIMENT_BATCH_SIZE: int = _get_env_int("SENTIMENT_BATCH_SIZE", 10)
SENTIMENT_BATCH_DELAY: float = _get_env_float("SENTIMENT_BATCH_DELAY", 0.5)
SENTIMENT_TIMEOUT: float = _get_env_float("SENTIMENT_TIMEOUT", 10.0)
SENTIMENT_TEXT_LIMIT: int = 500

# Engagement thresholds for the high-engagement flag, keyed by source type.
# A mention is flagged when ANY configured metric reaches its threshold.
ENGAGEMENT_THRESHOLDS: Dict[SourceType, EngagementThreshold] = {
    "social": EngagementThreshold(upvotes=100, comments=25),
    "forum": EngagementThreshold(upvotes=100, comments=25),
    "video": EngagementThreshold(upvotes=100, comments=25),
    "review": EngagementThreshold(upvotes=50, comments=10),
    # Editorial sources have no upvote concept
    "blog": EngagementThreshold(comments=10),
    "news": EngagementThreshold(comments=10),
}

# HTTP Client Configuration
USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)
HTTP_HEADERS = {"User-Agent": USER_AGENT, "Accept": "text/html,application/xhtml+xml"}
HTTP_TIMEOUT: float = _get_env_float("HTTP_TIMEOUT", 20.0)

# CORS Configuration
CORS_ALLOW_ORIGINS: list[str] = _get_env_list("CORS_ALLOW_ORIGINS", ["*"])

# Logging Configuration
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT: str = os.getenv(
    "LOG_FORMAT",
    "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
