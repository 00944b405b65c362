"""
Shared utility functions for mention normalization.
"""
from __future__ import annotations

import hashlib
import re
from datetime import datetime, timezone
from urllib.parse import urlparse

import tldextract

CONTENT_HASH_CHARS = 200
SNIPPET_MAX_LENGTH = 500


def now_utc() -> datetime:
    """
    Get current UTC datetime with timezone information.

    Returns:
        Current UTC datetime
    """
    return datetime.now(timezone.utc)


def normalize_text(text: str | None) -> str:
    """
    Normalize whitespace in text content.

    Args:
        text: Input text string (can be None)

    Returns:
        Normalized text with single spaces and trimmed edges
    """
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def extract_domain_from_url(url: str) -> str:
    """
    Extract the registered domain from a URL.

    Args:
        url: Full URL string

    Returns:
        Normalized domain name in lowercase
    """
    try:
        extracted = tldextract.extract(url)
        domain = f"{extracted.domain}.{extracted.suffix}" if extracted.suffix else extracted.domain
        return (domain or urlparse(url).netloc).lower()
    except ValueError:
        return urlparse(url).netloc.lower()


def make_mention_id(url: str, keyword: str) -> str:
    """
    Deterministic mention ID for a (url, keyword) pair.

    Returns:
        16-character hexadecimal string ID
    """
    key = f"{url}:{keyword}".encode("utf-8", "ignore")
    return hashlib.blake2b(key, digest_size=8).hexdigest()


def make_content_hash(title: str, snippet: str) -> str:
    """
    Fingerprint of normalized title + snippet used for de-duplication.

    Case and whitespace differences collapse to the same hash; only the first
    CONTENT_HASH_CHARS normalized characters are considered.
    """
    normalized = normalize_text(f"{title} {snippet}".lower())[:CONTENT_HASH_CHARS]
    return hashlib.sha1(normalized.encode("utf-8", "ignore")).hexdigest()[:16]


def extract_snippet(text: str, keyword: str, max_length: int = SNIPPET_MAX_LENGTH) -> str:
    """
    Cut an excerpt around the first occurrence of `keyword`.

    Keeps 100 characters before and 300 after the match and marks truncated
    edges with "...". Falls back to the head of the text when the keyword
    does not occur.
    """
    index = text.lower().find(keyword.lower())
    if index == -1:
        return text[:max_length]

    start = max(0, index - 100)
    end = min(len(text), index + len(keyword) + 300)

    snippet = text[start:end]
    if start > 0:
        snippet = "..." + snippet
    if end < len(text):
        snippet = snippet + "..."
    return snippet


def clamp_score(value: float) -> float:
    """Clamp a sentiment score to [-1.0, 1.0]."""
    return max(-1.0, min(1.0, value))
