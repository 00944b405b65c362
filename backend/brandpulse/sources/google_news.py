"""
Google News fetcher with publisher extraction.
"""
from __future__ import annotations

import logging
import re
import time
from typing import List, Optional
from urllib.parse import urlencode

import feedparser
import httpx
from bs4 import BeautifulSoup

from brandpulse.config import HTTP_HEADERS, HTTP_TIMEOUT
from brandpulse.models import Mention, SourceResult, SourceType
from brandpulse.sources.common import (
    build_mention,
    build_result,
    clean_text,
    is_within_window,
    parse_utc_datetime,
    raise_for_status,
    search_terms,
)
from brandpulse.utils import extract_domain_from_url

logger = logging.getLogger(__name__)


def extract_publisher_from_entry(entry) -> Optional[str]:
    """
    Extract publisher name from RSS entry.

    Args:
        entry: RSS feed entry

    Returns:
        Publisher name or None if not found
    """
    # Try to get publisher from source title
    source = entry.get("source")
    if isinstance(source, dict):
        title = source.get("title")
        if title:
            return clean_text(title)

    # Fallback: extract from summary font tags
    summary = entry.get("summary", "") or ""
    font_matches = re.findall(r"<font[^>]*>([^<]+)</font>", summary, flags=re.IGNORECASE)
    return clean_text(font_matches[-1]) if font_matches else None


def strip_tags(html: str) -> str:
    if not html:
        return ""
    return clean_text(BeautifulSoup(html, "html.parser").get_text(" "))


class GoogleNewsFetcher:
    """Fetches news articles from Google News RSS search feeds."""

    name = "Google News"
    source_type: SourceType = "news"
    BASE_URL = "https://news.google.com/rss/search"

    def __init__(self, request_delay: float = 1.0, enabled: bool = True):
        self.request_delay = request_delay
        self.enabled = enabled

    async def fetch(self, terms: List[str], max_results: int, days_back: int) -> SourceResult:
        started = time.perf_counter()

        async with httpx.AsyncClient(headers=HTTP_HEADERS, timeout=HTTP_TIMEOUT) as client:

            async def search(term: str) -> List[Mention]:
                return await self._search(client, term, days_back)

            mentions, errors = await search_terms(
                self.name, terms, max_results, search, delay=self.request_delay
            )

        return build_result(self.name, mentions, errors, max_results, started)

    async def _search(self, client: httpx.AsyncClient, keyword: str, days_back: int) -> List[Mention]:
        params = urlencode({
            "q": f'"{keyword}" when:{days_back}d',
            "hl": "en-US",
            "gl": "US",
            "ceid": "US:en",
        })
        r = await client.get(f"{self.BASE_URL}?{params}")
        raise_for_status(r)

        feed = feedparser.parse(r.text)
        if feed.bozo and not feed.entries:
            raise ValueError(f"unreadable feed: {feed.get('bozo_exception')}")

        items: List[Mention] = []
        for entry in feed.entries:
            try:
                mention = self._parse_entry(entry, keyword)
            except (AttributeError, TypeError, ValueError) as e:
                # Skip malformed entries
                logger.debug("Error processing Google News entry: %s", e)
                continue
            if mention and is_within_window(mention.published_at, days_back):
                items.append(mention)
        return items

    def _parse_entry(self, entry, keyword: str) -> Optional[Mention]:
        # Extract and clean data from RSS entry
        title = clean_text(entry.get("title"))
        link = clean_text(entry.get("link"))
        summary = strip_tags(entry.get("summary", ""))

        # Skip if essential data is missing
        if not title or not link:
            return None

        publisher = extract_publisher_from_entry(entry)

        return build_mention(
            source=self.name,
            source_type=self.source_type,
            url=link,
            title=title,
            text=f"{title} {summary}".strip(),
            keyword=keyword,
            published_at=parse_utc_datetime(entry.get("published")),
            author=publisher,
            category="News",
            raw={"publisher": publisher, "domain": extract_domain_from_url(link)},
        )
