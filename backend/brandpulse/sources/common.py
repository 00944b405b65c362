"""
Common utilities and the adapter contract shared by all mention sources.
"""
from __future__ import annotations

import asyncio
import logging
import re
import time
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Iterable, List, Optional, Protocol, Tuple

import httpx
from dateutil import parser as dateparser

from brandpulse.config import ENGAGEMENT_THRESHOLDS
from brandpulse.models import Engagement, JsonDict, Mention, SourceResult, SourceType
from brandpulse.utils import (
    extract_snippet,
    make_content_hash,
    make_mention_id,
    normalize_text,
    now_utc,
)

logger = logging.getLogger(__name__)

FULL_TEXT_LIMIT = 2000
MAX_REPORTED_ERRORS = 5
RATE_LIMIT_BACKOFF = 5.0


class SourceFetchError(Exception):
    """A single search request against a source failed."""


class RateLimitedError(SourceFetchError):
    """The source answered HTTP 429."""


class SourceAdapter(Protocol):
    """Contract every mention source implements."""

    name: str
    source_type: SourceType
    enabled: bool

    async def fetch(self, terms: List[str], max_results: int, days_back: int) -> SourceResult:
        ...


def clean_text(text: Optional[str]) -> str:
    """
    Clean and normalize text content.

    Args:
        text: Raw text string or None

    Returns:
        Cleaned text string, empty string if input is None
    """
    if not text:
        return ""
    return normalize_text(text)


_RELATIVE_DATE = re.compile(r"(\d+)\s*(minute|hour|day|week|month)s?\s*ago", re.IGNORECASE)


def parse_utc_datetime(date_string: Optional[str]) -> datetime:
    """
    Parse a date string and convert to UTC datetime.

    Understands absolute dates in the usual formats as well as relative
    phrases such as "3 days ago".

    Args:
        date_string: Date string in various formats, or None

    Returns:
        UTC datetime object, or current UTC time if the input is empty or unparseable
    """
    if not date_string:
        return now_utc()

    relative = _RELATIVE_DATE.search(date_string)
    if relative:
        amount = int(relative.group(1))
        unit = relative.group(2).lower()
        if unit == "month":
            delta = timedelta(days=30 * amount)
        else:
            delta = timedelta(**{f"{unit}s": amount})
        return now_utc() - delta

    try:
        parsed_date = dateparser.parse(date_string)
    except (ValueError, OverflowError):
        return now_utc()

    if parsed_date.tzinfo:
        return parsed_date.astimezone(timezone.utc)
    return parsed_date.replace(tzinfo=timezone.utc)


def parse_count(text: Optional[str]) -> int:
    """Pull the digits out of labels like "12 comments"."""
    digits = re.sub(r"\D", "", text or "")
    return int(digits) if digits else 0


def absolute_url(url: str, base_url: str) -> str:
    if url.startswith("http"):
        return url
    return f"{base_url.rstrip('/')}/{url.lstrip('/')}"


def is_high_engagement(source_type: SourceType, engagement: Engagement) -> bool:
    """Check engagement against the per-source-type threshold table."""
    thresholds = ENGAGEMENT_THRESHOLDS.get(source_type, ENGAGEMENT_THRESHOLDS["forum"])

    if thresholds.upvotes is not None and engagement.upvotes is not None:
        if engagement.upvotes >= thresholds.upvotes:
            return True
    if thresholds.comments is not None and engagement.comments is not None:
        if engagement.comments >= thresholds.comments:
            return True
    return False


def build_mention(
    *,
    source: str,
    source_type: SourceType,
    url: str,
    title: str,
    text: str,
    keyword: str,
    published_at: Optional[datetime] = None,
    engagement: Optional[Engagement] = None,
    snippet: Optional[str] = None,
    author: Optional[str] = None,
    category: Optional[str] = None,
    raw: Optional[JsonDict] = None,
) -> Mention:
    """
    Normalize one parsed item into a Mention.

    `text` is the full text the keyword was matched in; the snippet is cut
    from it unless the source supplies its own. Id, content hash and the
    high-engagement flag are computed here, once.
    """
    engagement = engagement or Engagement()
    snippet = snippet if snippet is not None else extract_snippet(text, keyword)
    scraped_at = now_utc()

    return Mention(
        id=make_mention_id(url, keyword),
        source=source,
        source_type=source_type,
        url=url,
        title=title,
        snippet=snippet,
        full_text=text[:FULL_TEXT_LIMIT] if text else None,
        matched_keyword=keyword,
        published_at=published_at or scraped_at,
        scraped_at=scraped_at,
        engagement=engagement,
        is_high_engagement=is_high_engagement(source_type, engagement),
        content_hash=make_content_hash(title, snippet),
        author=author or None,
        category=category,
        raw=raw or {},
    )


def dedupe_by_upvotes(mentions: Iterable[Mention]) -> List[Mention]:
    """
    Adapter-local de-duplication by content hash.

    Keeps the item with more upvotes; on a tie the first parsed item stays.
    """
    seen: dict[str, Mention] = {}
    for mention in mentions:
        existing = seen.get(mention.content_hash)
        if existing is None or (mention.engagement.upvotes or 0) > (existing.engagement.upvotes or 0):
            seen[mention.content_hash] = mention
    return list(seen.values())


def is_within_window(published_at: datetime, days_back: int) -> bool:
    return published_at >= now_utc() - timedelta(days=days_back)


def deadline_passed(deadline: Optional[float]) -> bool:
    """True once `time.perf_counter()` has reached `deadline` (None never passes)."""
    return deadline is not None and time.perf_counter() >= deadline


async def search_terms(
    source: str,
    terms: List[str],
    max_results: int,
    search: Callable[[str], Awaitable[List[Mention]]],
    delay: float = 0.0,
    backoff: float = RATE_LIMIT_BACKOFF,
    deadline: Optional[float] = None,
) -> Tuple[List[Mention], List[str]]:
    """
    Run `search` for each term, keeping whatever succeeded.

    A failing term is recorded and the loop moves on. Stops once
    `max_results` raw hits are collected, or once `deadline`
    (a `time.perf_counter()` value) has passed.
    """
    mentions: List[Mention] = []
    errors: List[str] = []

    for index, term in enumerate(terms):
        if len(mentions) >= max_results:
            break
        if deadline_passed(deadline):
            skipped = len(terms) - index
            logger.info("%s time budget exhausted, skipping %d terms", source, skipped)
            errors.append(f"time budget exhausted, {skipped} terms skipped")
            break
        try:
            mentions.extend(await search(term))
        except RateLimitedError as e:
            logger.warning("%s rate limited on %r: %s", source, term, e)
            errors.append(f'"{term}": {e}')
            if not deadline_passed(deadline):
                await asyncio.sleep(backoff)
            continue
        except (SourceFetchError, httpx.HTTPError, ValueError) as e:
            logger.warning("%s search failed for %r: %s", source, term, e)
            errors.append(f'"{term}": {str(e) or type(e).__name__}')

        if delay and not deadline_passed(deadline):
            await asyncio.sleep(delay)

    return mentions, errors


def build_result(
    source: str,
    mentions: List[Mention],
    errors: List[str],
    max_results: int,
    started: float,
) -> SourceResult:
    """Finish an adapter call: local de-dup, cap, success flag and error summary."""
    unique = dedupe_by_upvotes(mentions)[:max_results]
    return SourceResult(
        source=source,
        success=len(unique) > 0,
        mentions=unique,
        scraped_at=now_utc(),
        duration_ms=int((time.perf_counter() - started) * 1000),
        error="; ".join(errors[:MAX_REPORTED_ERRORS]) if errors else None,
    )


def not_configured(source: str, what: str) -> SourceResult:
    """Clean failure for an adapter that is missing credentials."""
    return SourceResult(
        source=source,
        success=False,
        mentions=[],
        scraped_at=now_utc(),
        error=f"{source} not configured (missing {what})",
    )


def raise_for_status(response: httpx.Response) -> None:
    """Translate HTTP errors into SourceFetchError with a short message."""
    if response.status_code == 429:
        raise RateLimitedError("Rate limited (429)")
    if response.status_code >= 400:
        raise SourceFetchError(f"HTTP {response.status_code}")
