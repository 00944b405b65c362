"""
Mention normalization helpers: thresholds, hashing, snippets, dates and
adapter-local de-duplication.
"""
from datetime import timedelta

from brandpulse.models import Engagement
from brandpulse.sources.common import (
    build_mention,
    dedupe_by_upvotes,
    is_high_engagement,
    parse_count,
    parse_utc_datetime,
)
from brandpulse.utils import extract_snippet, make_content_hash, make_mention_id, now_utc

from helpers import make_mention


# =============================================================================
# ENGAGEMENT THRESHOLDS
# =============================================================================


def test_social_mention_with_150_upvotes_is_high_engagement():
    assert is_high_engagement("social", Engagement(upvotes=150)) is True


def test_blog_ignores_upvotes():
    assert is_high_engagement("blog", Engagement(upvotes=150)) is False


def test_blog_flags_on_comments():
    assert is_high_engagement("blog", Engagement(upvotes=150, comments=10)) is True
    assert is_high_engagement("blog", Engagement(comments=9)) is False


def test_social_flags_on_comments_alone():
    assert is_high_engagement("social", Engagement(comments=25)) is True
    assert is_high_engagement("social", Engagement(upvotes=99, comments=24)) is False


def test_review_thresholds():
    assert is_high_engagement("review", Engagement(upvotes=50)) is True
    assert is_high_engagement("review", Engagement(comments=10)) is True
    assert is_high_engagement("review", Engagement(upvotes=49, comments=9)) is False


def test_unknown_engagement_is_not_high():
    assert is_high_engagement("social", Engagement()) is False


def test_build_mention_computes_flag_once():
    mention = build_mention(
        source="Reddit",
        source_type="social",
        url="https://reddit.com/r/x/1",
        title="Revlon ColorStay",
        text="Revlon ColorStay is great",
        keyword="Revlon",
        engagement=Engagement(upvotes=150),
    )
    assert mention.is_high_engagement is True
    assert mention.sentiment is None
    assert mention.id == make_mention_id("https://reddit.com/r/x/1", "Revlon")


# =============================================================================
# IDS AND CONTENT HASH
# =============================================================================


def test_mention_id_is_deterministic_per_url_and_keyword():
    assert make_mention_id("https://a/1", "Revlon") == make_mention_id("https://a/1", "Revlon")
    assert make_mention_id("https://a/1", "Revlon") != make_mention_id("https://a/1", "NYX")


def test_content_hash_ignores_case_and_whitespace():
    assert make_content_hash("Great  Lipstick", "Love it\n") == make_content_hash("great lipstick", "love it")


def test_content_hash_differs_from_id():
    mention = build_mention(
        source="Reddit",
        source_type="social",
        url="https://reddit.com/r/x/1",
        title="Title",
        text="Title body",
        keyword="body",
    )
    assert mention.content_hash != mention.id


def test_same_post_for_two_keywords_shares_hash_but_not_id():
    kwargs = dict(source="Reddit", source_type="social", url="https://r/1", title="T", text="T")
    first = build_mention(keyword="lipstick", snippet="same", **kwargs)
    second = build_mention(keyword="Revlon", snippet="same", **kwargs)
    assert first.content_hash == second.content_hash
    assert first.id != second.id


# =============================================================================
# SNIPPETS
# =============================================================================


def test_snippet_without_keyword_is_head_of_text():
    assert extract_snippet("a" * 600, "zzz") == "a" * 500


def test_snippet_around_keyword_marks_truncation():
    text = "x" * 200 + "Revlon" + "y" * 400
    snippet = extract_snippet(text, "revlon")
    assert snippet.startswith("...")
    assert snippet.endswith("...")
    assert "Revlon" in snippet
    assert len(snippet) == 3 + 100 + len("Revlon") + 300 + 3


def test_short_text_snippet_is_untouched():
    assert extract_snippet("I love Revlon", "Revlon") == "I love Revlon"


# =============================================================================
# DATES AND COUNTS
# =============================================================================


def test_parse_relative_date():
    parsed = parse_utc_datetime("3 days ago")
    assert abs((now_utc() - parsed) - timedelta(days=3)) < timedelta(seconds=5)


def test_parse_absolute_date_is_utc():
    parsed = parse_utc_datetime("2026-01-02T10:00:00+02:00")
    assert parsed.hour == 8
    assert parsed.utcoffset() == timedelta(0)


def test_unparseable_date_falls_back_to_now():
    assert now_utc() - parse_utc_datetime("not a date at all") < timedelta(seconds=5)


def test_parse_count():
    assert parse_count("1,234 comments") == 1234
    assert parse_count("") == 0


# =============================================================================
# ADAPTER-LOCAL DEDUP
# =============================================================================


def test_local_dedup_keeps_higher_upvotes():
    low = make_mention(content_hash="h", upvotes=5)
    high = make_mention(content_hash="h", upvotes=40)
    assert dedupe_by_upvotes([low, high]) == [high]
    assert dedupe_by_upvotes([high, low]) == [high]


def test_local_dedup_tie_keeps_first_parsed():
    first = make_mention(content_hash="h", upvotes=7)
    second = make_mention(content_hash="h", upvotes=7)
    assert dedupe_by_upvotes([first, second]) == [first]
