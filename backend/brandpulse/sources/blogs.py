"""
Beauty blog fetchers: Temptalia, Into The Gloss and Allure.

The blogs differ only in their search URL and markup, so one fetcher class is
driven by a per-blog profile.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
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


@dataclass(frozen=True)
class BlogProfile:
    name: str
    base_url: str
    search_path: str
    search_param: str
    item_selector: str
    title_selector: str
    excerpt_selector: str
    category: str
    date_selector: Optional[str] = None
    author_selector: Optional[str] = None
    comments_selector: Optional[str] = None


TEMPTALIA = BlogProfile(
    name="Temptalia",
    base_url="https://www.temptalia.com",
    search_path="/",
    search_param="s",
    item_selector="article, .post, .search-result",
    title_selector="h2 a, h3 a, .entry-title a",
    excerpt_selector=".entry-summary, .excerpt, p",
    date_selector="time, .date, .published",
    comments_selector=".comments-link, .comment-count",
    category="Beauty Review",
)

INTO_THE_GLOSS = BlogProfile(
    name="Into The Gloss",
    base_url="https://intothegloss.com",
    search_path="/",
    search_param="s",
    item_selector="article, .post-card, .article-item",
    title_selector="h2 a, h3 a, .title a",
    excerpt_selector=".excerpt, .summary, p",
    date_selector="time, .date",
    author_selector=".author, .byline",
    category="Beauty Editorial",
)

ALLURE = BlogProfile(
    name="Allure",
    base_url="https://www.allure.com",
    search_path="/search",
    search_param="q",
    item_selector='[class*="summary-item"], article, .search-result',
    title_selector='h2 a, h3 a, [class*="hed"] a',
    excerpt_selector='[class*="dek"], .summary, p',
    category="Beauty Magazine",
)

BLOG_PROFILES = [TEMPTALIA, INTO_THE_GLOSS, ALLURE]


class BlogFetcher:
    """Site-search fetcher for an editorial beauty blog."""

    source_type: SourceType = "blog"

    def __init__(
        self,
        profile: BlogProfile,
        request_delay: float = 3.0,
        rate_limit_backoff: float = 5.0,
        time_budget: float = ADAPTER_TIME_BUDGET,
        enabled: bool = True,
    ):
        self.profile = profile
        self.name = profile.name
        self.request_delay = request_delay
        self.rate_limit_backoff = rate_limit_backoff
        self.time_budget = time_budget
        self.enabled = enabled

    async def fetch(self, terms: List[str], max_results: int, days_back: int) -> SourceResult:
        started = time.perf_counter()

        async with httpx.AsyncClient(headers=HTTP_HEADERS, timeout=HTTP_TIMEOUT) as client:

            async def search(term: str) -> List[Mention]:
                return await self._search(client, term, days_back)

            mentions, errors = await search_terms(
                self.name,
                terms,
                max_results,
                search,
                delay=self.request_delay,
                backoff=self.rate_limit_backoff,
                deadline=started + self.time_budget,
            )

        return build_result(self.name, mentions, errors, max_results, started)

    async def _search(self, client: httpx.AsyncClient, keyword: str, days_back: int) -> List[Mention]:
        profile = self.profile
        url = f"{profile.base_url}{profile.search_path}?" + urlencode({profile.search_param: keyword})
        r = await client.get(url)
        raise_for_status(r)

        soup = BeautifulSoup(r.text, "html.parser")
        items: List[Mention] = []
        for element in soup.select(profile.item_selector):
            try:
                mention = self.parse_item(element, keyword)
            except (AttributeError, TypeError, ValueError) as e:
                logger.debug("Skipping malformed %s item: %s", self.name, e)
                continue
            if mention and is_within_window(mention.published_at, days_back):
                items.append(mention)
        return items

    def parse_item(self, element: Tag, keyword: str) -> Optional[Mention]:
        profile = self.profile

        title_el = element.select_one(profile.title_selector)
        if title_el is None:
            return None
        title = clean_text(title_el.get_text())
        href = title_el.get("href") or ""
        if not title or not href:
            return None

        excerpt_el = element.select_one(profile.excerpt_selector)
        excerpt = clean_text(excerpt_el.get_text()) if excerpt_el else ""

        published_at = None
        if profile.date_selector:
            date_el = element.select_one(profile.date_selector)
            if date_el is not None:
                published_at = parse_utc_datetime(date_el.get("datetime") or date_el.get_text())

        engagement = Engagement()
        if profile.comments_selector:
            comments_el = element.select_one(profile.comments_selector)
            engagement = Engagement(comments=parse_count(comments_el.get_text() if comments_el else ""))

        author = None
        if profile.author_selector:
            author_el = element.select_one(profile.author_selector)
            author = clean_text(author_el.get_text()) if author_el else None

        return build_mention(
            source=self.name,
            source_type=self.source_type,
            url=absolute_url(href, profile.base_url),
            title=title,
            text=f"{title} {excerpt}".strip(),
            keyword=keyword,
            published_at=published_at,
            engagement=engagement,
            author=author,
            category=profile.category,
        )
