"""
NewsAPI (newsapi.org) fetcher.
"""
from __future__ import annotations

import logging
import time
from datetime import timedelta
from typing import List, Optional

import httpx

from brandpulse.config import HTTP_TIMEOUT
from brandpulse.models import Mention, SourceResult, SourceType
from brandpulse.sources.common import (
    SourceFetchError,
    build_mention,
    build_result,
    clean_text,
    not_configured,
    parse_utc_datetime,
    search_terms,
)
from brandpulse.utils import extract_domain_from_url, now_utc

logger = logging.getLogger(__name__)


class NewsAPIFetcher:
    name = "NewsAPI"
    source_type: SourceType = "news"
    BASE_URL = "https://newsapi.org/v2/everything"

    def __init__(self, api_key: str, request_delay: float = 0.5, enabled: bool = True):
        self.api_key = api_key
        self.request_delay = request_delay
        self.enabled = enabled

    async def fetch(self, terms: List[str], max_results: int, days_back: int) -> SourceResult:
        if not self.api_key:
            return not_configured(self.name, "API key")

        started = time.perf_counter()
        from_date = (now_utc() - timedelta(days=days_back)).date().isoformat()

        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:

            async def search(term: str) -> List[Mention]:
                return await self._search(client, term, from_date, min(max_results, 50))

            mentions, errors = await search_terms(
                self.name, terms, max_results, search, delay=self.request_delay
            )

        return build_result(self.name, mentions, errors, max_results, started)

    async def _search(self, client: httpx.AsyncClient, keyword: str, from_date: str, page_size: int) -> List[Mention]:
        params = {
            "q": f'"{keyword}"',
            "from": from_date,
            "sortBy": "publishedAt",
            "language": "en",
            "pageSize": page_size,
            "apiKey": self.api_key,
        }
        r = await client.get(self.BASE_URL, params=params)
        data = r.json()
        if r.status_code >= 400 or data.get("status") == "error":
            raise SourceFetchError(data.get("message") or f"HTTP {r.status_code}")

        items: List[Mention] = []
        for article in data.get("articles", []):
            try:
                mention = self._parse_article(article, keyword)
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("Skipping malformed NewsAPI article: %s", e)
                continue
            if mention:
                items.append(mention)
        return items

    def _parse_article(self, article: dict, keyword: str) -> Optional[Mention]:
        title = clean_text(article.get("title"))
        url = clean_text(article.get("url"))
        if not title or not url or title == "[Removed]":
            return None

        description = clean_text(article.get("description") or article.get("content"))
        publisher = (article.get("source") or {}).get("name")

        return build_mention(
            source=self.name,
            source_type=self.source_type,
            url=url,
            title=title,
            text=f"{title} {description}".strip(),
            keyword=keyword,
            published_at=parse_utc_datetime(article.get("publishedAt")),
            author=article.get("author"),
            category="News",
            raw={"publisher": publisher, "domain": extract_domain_from_url(url)},
        )
