"""
YouTube Data API v3 fetcher.
"""
from __future__ import annotations

import logging
import time
from datetime import timedelta
from typing import Dict, List

import httpx

from brandpulse.config import HTTP_TIMEOUT
from brandpulse.models import Engagement, Mention, SourceResult, SourceType
from brandpulse.sources.common import (
    SourceFetchError,
    build_mention,
    build_result,
    clean_text,
    not_configured,
    parse_utc_datetime,
    search_terms,
)
from brandpulse.utils import now_utc

logger = logging.getLogger(__name__)


def _as_int(value) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


class YouTubeFetcher:
    """Searches videos by keyword and looks up their statistics."""

    name = "YouTube"
    source_type: SourceType = "video"
    BASE_URL = "https://www.googleapis.com/youtube/v3"

    def __init__(self, api_key: str, request_delay: float = 0.2, enabled: bool = True):
        self.api_key = api_key
        self.request_delay = request_delay
        self.enabled = enabled

    async def fetch(self, terms: List[str], max_results: int, days_back: int) -> SourceResult:
        if not self.api_key:
            return not_configured(self.name, "API key")

        started = time.perf_counter()
        published_after = (now_utc() - timedelta(days=days_back)).strftime("%Y-%m-%dT%H:%M:%SZ")

        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:

            async def search(term: str) -> List[Mention]:
                return await self._search(client, term, min(25, max_results), published_after)

            mentions, errors = await search_terms(
                self.name, terms, max_results, search, delay=self.request_delay
            )

        return build_result(self.name, mentions, errors, max_results, started)

    async def _get(self, client: httpx.AsyncClient, path: str, params: dict) -> dict:
        r = await client.get(f"{self.BASE_URL}/{path}", params={**params, "key": self.api_key})
        try:
            data = r.json()
        except ValueError as e:
            raise SourceFetchError(f"HTTP {r.status_code}") from e
        if r.status_code >= 400:
            # quotaExceeded and friends come back in the error body
            message = (data.get("error") or {}).get("message") if isinstance(data, dict) else None
            raise SourceFetchError(message or f"HTTP {r.status_code}")
        return data

    async def _search(
        self,
        client: httpx.AsyncClient,
        keyword: str,
        max_results: int,
        published_after: str,
    ) -> List[Mention]:
        data = await self._get(
            client,
            "search",
            {
                "part": "snippet",
                "q": keyword,
                "type": "video",
                "maxResults": max_results,
                "order": "date",
                "publishedAfter": published_after,
            },
        )
        videos = [item for item in data.get("items", []) if item.get("id", {}).get("videoId")]
        if not videos:
            return []

        stats = await self._statistics(client, [item["id"]["videoId"] for item in videos])

        items: List[Mention] = []
        for item in videos:
            try:
                items.append(self._parse_video(item, stats, keyword))
            except (KeyError, TypeError) as e:
                logger.debug("Skipping malformed YouTube item: %s", e)
        return items

    async def _statistics(self, client: httpx.AsyncClient, video_ids: List[str]) -> Dict[str, dict]:
        try:
            data = await self._get(client, "videos", {"part": "statistics", "id": ",".join(video_ids)})
        except (SourceFetchError, httpx.HTTPError) as e:
            # Videos without stats are still mentions
            logger.warning("YouTube statistics lookup failed: %s", e)
            return {}
        return {item["id"]: item.get("statistics", {}) for item in data.get("items", []) if "id" in item}

    def _parse_video(self, item: dict, stats: Dict[str, dict], keyword: str) -> Mention:
        video_id = item["id"]["videoId"]
        snippet = item["snippet"]
        title = clean_text(snippet.get("title"))
        description = clean_text(snippet.get("description"))
        video_stats = stats.get(video_id)

        engagement = Engagement()
        if video_stats is not None:
            engagement = Engagement(
                upvotes=_as_int(video_stats.get("likeCount")),
                comments=_as_int(video_stats.get("commentCount")),
                views=_as_int(video_stats.get("viewCount")),
            )

        return build_mention(
            source=self.name,
            source_type=self.source_type,
            url=f"https://www.youtube.com/watch?v={video_id}",
            title=title,
            text=f"{title} {description}".strip(),
            keyword=keyword,
            published_at=parse_utc_datetime(snippet.get("publishedAt")),
            engagement=engagement,
            author=snippet.get("channelTitle"),
            raw={"channel_id": snippet.get("channelId"), "video_id": video_id},
        )
