"""
File: brandpulse/sources/reddit.py
Reddit search fetcher. Uses the public JSON endpoints, or the OAuth API with
an app-only token when client credentials are configured.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import List, Optional
from urllib.parse import urlencode

import httpx

from brandpulse.config import ADAPTER_TIME_BUDGET, HTTP_TIMEOUT
from brandpulse.models import Engagement, Mention, SourceResult, SourceType
from brandpulse.sources.common import (
    SourceFetchError,
    build_mention,
    build_result,
    clean_text,
    deadline_passed,
    is_within_window,
    raise_for_status,
    search_terms,
)

logger = logging.getLogger(__name__)

BEAUTY_SUBREDDITS = [
    "MakeupAddiction",
    "drugstoreMUA",
    "BeautyGuruChatter",
    "SkincareAddiction",
    "Sephora",
    "PanPorn",
    "AsianBeauty",
    "MakeupRehab",
]

REDDIT_AUTH_URL = "https://www.reddit.com/api/v1/access_token"


def time_filter(days_back: int) -> str:
    if days_back <= 1:
        return "day"
    if days_back <= 7:
        return "week"
    return "month"


class RedditFetcher:
    name = "Reddit"
    source_type: SourceType = "social"

    PUBLIC_URL = "https://www.reddit.com"
    OAUTH_URL = "https://oauth.reddit.com"

    def __init__(
        self,
        user_agent: str,
        client_id: str = "",
        client_secret: str = "",
        subreddits: Optional[List[str]] = None,
        request_delay: float = 1.5,
        rate_limit_backoff: float = 5.0,
        time_budget: float = ADAPTER_TIME_BUDGET,
        enabled: bool = True,
    ):
        self.user_agent = user_agent
        self.client_id = client_id
        self.client_secret = client_secret
        self.subreddits = subreddits or BEAUTY_SUBREDDITS
        self.request_delay = request_delay
        self.rate_limit_backoff = rate_limit_backoff
        self.time_budget = time_budget
        self.enabled = enabled
        self._token: Optional[str] = None
        self._token_expires_at = 0.0

    async def fetch(self, terms: List[str], max_results: int, days_back: int) -> SourceResult:
        started = time.perf_counter()
        deadline = started + self.time_budget
        headers = {"User-Agent": self.user_agent, "Accept": "application/json"}

        async with httpx.AsyncClient(headers=headers, timeout=HTTP_TIMEOUT) as client:
            mentions: List[Mention] = []
            errors: List[str] = []

            for index, subreddit in enumerate(self.subreddits):
                if len(mentions) >= max_results:
                    break
                if deadline_passed(deadline):
                    errors.append(f"time budget exhausted, {len(self.subreddits) - index} subreddits skipped")
                    break

                async def search(term: str, subreddit: str = subreddit) -> List[Mention]:
                    return await self._search_subreddit(client, subreddit, term, days_back)

                found, failed = await search_terms(
                    self.name,
                    terms,
                    max_results - len(mentions),
                    search,
                    delay=self.request_delay,
                    backoff=self.rate_limit_backoff,
                    deadline=deadline,
                )
                mentions.extend(found)
                errors.extend(f"r/{subreddit} {message}" for message in failed)

        return build_result(self.name, mentions, errors, max_results, started)

    async def _access_token(self, client: httpx.AsyncClient) -> Optional[str]:
        """Get (and cache) an app-only bearer token, if credentials exist."""
        if not (self.client_id and self.client_secret):
            return None

        now = time.time()
        if self._token and self._token_expires_at - now > 60:
            return self._token

        r = await client.post(
            REDDIT_AUTH_URL,
            data={"grant_type": "client_credentials"},
            auth=(self.client_id, self.client_secret),
        )
        raise_for_status(r)
        token = r.json()
        if "access_token" not in token:
            raise SourceFetchError("Reddit token response without access_token")
        self._token = token["access_token"]
        self._token_expires_at = now + token.get("expires_in", 3600)
        return self._token

    async def _search_subreddit(
        self,
        client: httpx.AsyncClient,
        subreddit: str,
        keyword: str,
        days_back: int,
    ) -> List[Mention]:
        params = {
            "q": keyword,
            "restrict_sr": "on",
            "sort": "new",
            "t": time_filter(days_back),
            "limit": 25,
        }

        token = await self._access_token(client)
        if token:
            url = f"{self.OAUTH_URL}/r/{subreddit}/search?" + urlencode(params)
            r = await client.get(url, headers={"Authorization": f"Bearer {token}"})
        else:
            url = f"{self.PUBLIC_URL}/r/{subreddit}/search.json?" + urlencode(params)
            r = await client.get(url)
        raise_for_status(r)

        try:
            data = r.json()
        except ValueError as e:
            raise SourceFetchError("invalid JSON from Reddit") from e

        items: List[Mention] = []
        for child in data.get("data", {}).get("children", []):
            try:
                mention = self._parse_post(child.get("data", {}), keyword, days_back)
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("Skipping malformed Reddit post: %s", e)
                continue
            if mention:
                items.append(mention)

        return items

    def _parse_post(self, p: dict, keyword: str, days_back: int) -> Optional[Mention]:
        if p.get("over_18"):
            return None

        created_utc = p.get("created_utc")
        if not created_utc:
            return None
        published_at = datetime.fromtimestamp(float(created_utc), tz=timezone.utc)
        if not is_within_window(published_at, days_back):
            return None

        title = clean_text(p.get("title"))
        permalink = p.get("permalink", "")
        if not title or not permalink:
            return None

        full_text = f"{title} {clean_text(p.get('selftext'))}".strip()
        engagement = Engagement(
            upvotes=int(p.get("ups", 0) or 0),
            comments=int(p.get("num_comments", 0) or 0),
        )

        return build_mention(
            source=self.name,
            source_type=self.source_type,
            url=f"{self.PUBLIC_URL}{permalink}",
            title=title,
            text=full_text,
            keyword=keyword,
            published_at=published_at,
            engagement=engagement,
            author=p.get("author"),
            category=p.get("link_flair_text"),
            raw={"subreddit": p.get("subreddit", ""), "reddit_id": p.get("id")},
        )
