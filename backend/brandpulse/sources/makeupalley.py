"""
MakeupAlley fetcher: product reviews and board discussions.
"""
from __future__ import annotations

import logging
import time
from typing import List, Optional
from urllib.parse import urlencode

import httpx
from bs4 import BeautifulSoup, Tag

from brandpulse.config import ADAPTER_TIME_BUDGET, HTTP_HEADERS, HTTP_TIMEOUT
from brandpulse.models import Engagement, Mention, SourceResult, SourceType
from brandpulse.sources.common import (
    absolute_url,
    build_mention,
    build_result,
    clean_text,
    is_within_window,
    parse_count,
    parse_utc_datetime,
    raise_for_status,
    search_terms,
)

logger = logging.getLogger(__name__)


def _first_text(element: Tag, selector: str) -> str:
    found = element.select_one(selector)
    return clean_text(found.get_text()) if found else ""


class MakeupAlleyFetcher:
    """Searches MakeupAlley product reviews and forum threads."""

    name = "MakeupAlley"
    source_type: SourceType = "review"
    BASE_URL = "https://www.makeupalley.com"

    def __init__(
        self,
        request_delay: float = 2.5,
        rate_limit_backoff: float = 5.0,
        time_budget: float = ADAPTER_TIME_BUDGET,
        enabled: bool = True,
    ):
        self.request_delay = request_delay
        self.rate_limit_backoff = rate_limit_backoff
        self.time_budget = time_budget
        self.enabled = enabled

    async def fetch(self, terms: List[str], max_results: int, days_back: int) -> SourceResult:
        started = time.perf_counter()
        deadline = started + self.time_budget
        mentions: List[Mention] = []
        errors: List[str] = []

        async with httpx.AsyncClient(headers=HTTP_HEADERS, timeout=HTTP_TIMEOUT) as client:
            # Reviews and board threads are separate pages; a failing board
            # search keeps the reviews already collected.
            pages = [("reviews", self._search_reviews), ("forum", self._search_forum)]
            for label, page in pages:
                if len(mentions) >= max_results:
                    break

                async def search(term: str, page=page) -> List[Mention]:
                    return await page(client, term, days_back)

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
                errors.extend(f"{label} {message}" for message in failed)

        return build_result(self.name, mentions, errors, max_results, started)

    async def _get_soup(self, client: httpx.AsyncClient, path: str, keyword: str) -> BeautifulSoup:
        r = await client.get(f"{self.BASE_URL}{path}?" + urlencode({"q": keyword}))
        raise_for_status(r)
        return BeautifulSoup(r.text, "html.parser")

    async def _search_reviews(self, client: httpx.AsyncClient, keyword: str, days_back: int) -> List[Mention]:
        # Review cards carry no date, so the lookback window cannot apply
        soup = await self._get_soup(client, "/product/searching", keyword)

        items: List[Mention] = []
        for element in soup.select(".product-card, .search-result-item"):
            try:
                mention = self._parse_review(element, keyword)
            except (AttributeError, TypeError, ValueError) as e:
                logger.debug("Skipping malformed MakeupAlley review: %s", e)
                continue
            if mention:
                items.append(mention)
        return items

    def _parse_review(self, element: Tag, keyword: str) -> Optional[Mention]:
        title = _first_text(element, ".product-name, .title, h3, h4")
        link = element.select_one("a[href]")
        if not title or link is None:
            return None

        rating_text = _first_text(element, ".rating, .stars")
        try:
            rating = float(rating_text.split()[0]) if rating_text else 0.0
        except ValueError:
            rating = 0.0

        description = _first_text(element, ".description, .snippet, p")
        engagement = Engagement(
            # 5-star rating expressed as a percentage
            upvotes=round(rating * 20),
            comments=parse_count(_first_text(element, ".review-count, .reviews")),
        )

        return build_mention(
            source=self.name,
            source_type="review",
            url=absolute_url(link["href"], self.BASE_URL),
            title=title,
            text=f"{title} {description}".strip(),
            keyword=keyword,
            # MakeupAlley doesn't always show dates
            published_at=None,
            engagement=engagement,
            category="Product Review",
        )

    async def _search_forum(self, client: httpx.AsyncClient, keyword: str, days_back: int) -> List[Mention]:
        soup = await self._get_soup(client, "/board/search", keyword)

        items: List[Mention] = []
        for element in soup.select(".thread-item, .discussion-item, .board-post"):
            try:
                mention = self._parse_thread(element, keyword)
            except (AttributeError, TypeError, ValueError) as e:
                logger.debug("Skipping malformed MakeupAlley thread: %s", e)
                continue
            if mention and is_within_window(mention.published_at, days_back):
                items.append(mention)
        return items

    def _parse_thread(self, element: Tag, keyword: str) -> Optional[Mention]:
        title = _first_text(element, ".thread-title, .title, a")
        link = element.select_one("a[href]")
        if not title or link is None:
            return None

        preview = _first_text(element, ".preview, .snippet, p")
        engagement = Engagement(comments=parse_count(_first_text(element, ".replies, .reply-count")))

        return build_mention(
            source=self.name,
            source_type="forum",
            url=absolute_url(link["href"], self.BASE_URL),
            title=title,
            text=f"{title} {preview}".strip(),
            keyword=keyword,
            published_at=parse_utc_datetime(_first_text(element, ".date, .time, time")),
            engagement=engagement,
            author=_first_text(element, ".author, .username"),
            category="Forum Discussion",
        )
