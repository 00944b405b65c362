"""
Builds the adapter set from settings.
"""
from __future__ import annotations

from typing import List

from brandpulse.settings import Settings
from brandpulse.sources.blogs import BLOG_PROFILES, BlogFetcher
from brandpulse.sources.common import SourceAdapter
from brandpulse.sources.google_news import GoogleNewsFetcher
from brandpulse.sources.makeupalley import MakeupAlleyFetcher
from brandpulse.sources.newsapi import NewsAPIFetcher
from brandpulse.sources.reddit import RedditFetcher
from brandpulse.sources.tiktok import TikTokFetcher
from brandpulse.sources.youtube import YouTubeFetcher


def build_adapters(settings: Settings) -> List[SourceAdapter]:
    """All known sources, with DISABLED_SOURCES switched off."""
    adapters: List[SourceAdapter] = [
        RedditFetcher(
            user_agent=settings.REDDIT_USER_AGENT,
            client_id=settings.REDDIT_CLIENT_ID,
            client_secret=settings.REDDIT_CLIENT_SECRET,
        ),
        MakeupAlleyFetcher(),
        *(BlogFetcher(profile) for profile in BLOG_PROFILES),
        TikTokFetcher(
            api_key=settings.YOUTUBE_API_KEY,  # same Google key works for Custom Search
            search_engine_id=settings.GOOGLE_SEARCH_ENGINE_ID,
        ),
        YouTubeFetcher(api_key=settings.YOUTUBE_API_KEY),
        GoogleNewsFetcher(),
        NewsAPIFetcher(api_key=settings.NEWSAPI_KEY),
    ]

    disabled = settings.disabled_sources
    for adapter in adapters:
        if adapter.name.lower() in disabled:
            adapter.enabled = False
    return adapters
