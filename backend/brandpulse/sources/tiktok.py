"""
TikTok fetcher via Google Custom Search (site:tiktok.com).
"""
from __future__ import annotations

import logging
import re
import time
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
    raise_for_status,
    search_terms,
)

logger = logging.getLogger(__name__)

_USERNAME = re.compile(r"tiktok\.com/@([^/?]+)")
_TITLE_SUFFIX = re.compile(r"\s*[|-]\s*TikTok\s*$", re.IGNORECASE)
_TITLE_PREFIX = re.compile(r"^TikTok\s*-\s*", re.IGNORECASE)


def clean_tiktok_title(title: str) -> str:
    return _TITLE_PREFIX.sub("", _TITLE_SUFFIX.sub("", title)).strip()


class TikTokFetcher:
    """Finds TikTok videos through the Custom Search JSON API."""

    name = "TikTok"
    source_type: SourceType = "social"
    BASE_URL = "https://www.googleapis.com/customsearch/v1"
    # Free tier allows 100 queries/day
    MAX_QUERIES = 2

    def __init__(
        self,
        api_key: str,
        search_engine_id: str,
        request_delay: float = 0.2,
        enabled: bool = True,
    ):
        self.api_key = api_key
        self.search_engine_id = search_engine_id
        self.request_delay = request_delay
        self.enabled = enabled

    async def fetch(self, terms: List[str], max_results: int, days_back: int) -> SourceResult:
        if not (self.api_key and self.search_engine_id):
            return not_configured(self.name, "API key or Search Engine ID")

        started = time.perf_counter()
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:

            async def search(term: str) -> List[Mention]:
                return await self._search(client, term, min(10, max_results))

            mentions, errors = await search_terms(
                self.name,
                [t for t in terms if t][: self.MAX_QUERIES],
                max_results,
                search,
                delay=self.request_delay,
            )

        return build_result(self.name, mentions, errors, max_results, started)

    async def _search(self, client: httpx.AsyncClient, keyword: str, num_results: int) -> List[Mention]:
        params = {
            "key": self.api_key,
            "cx": self.search_engine_id,
            "q": f"{keyword} site:tiktok.com",
            "num": num_results,
            "sort": "date",
        }
        r = await client.get(self.BASE_URL, params=params)
        if r.status_code >= 400:
            try:
                message = r.json().get("error", {}).get("message")
            except ValueError:
                message = None
            if message:
                raise SourceFetchError(message)
        raise_for_status(r)

        data = r.json()
        if data.get("error"):
            raise SourceFetchError(data["error"].get("message", "Custom Search error"))

        items: List[Mention] = []
        for result in data.get("items", []):
            try:
                mention = self._parse_result(result, keyword)
            except (KeyError, TypeError, AttributeError) as e:
                logger.debug("Skipping malformed search result: %s", e)
                continue
            if mention:
                items.append(mention)
        return items

    def _parse_result(self, result: dict, keyword: str) -> Optional[Mention]:
        link = result["link"]
        if "tiktok.com" not in link:
            return None

        match = _USERNAME.search(link)
        username = match.group(1) if match else None
        title = clean_tiktok_title(clean_text(result.get("title"))) or f"TikTok by @{username or 'unknown'}"
        snippet = clean_text(result.get("snippet"))

        # Google doesn't expose the post date or engagement
        return build_mention(
            source=self.name,
            source_type=self.source_type,
            url=link,
            title=title,
            text=f"{title} {snippet}".strip(),
            keyword=keyword,
            snippet=snippet,
            author=f"@{username}" if username else None,
            raw={"platform": "tiktok", "is_video": "/video/" in link},
        )
