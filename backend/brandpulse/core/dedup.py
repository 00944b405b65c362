"""
Cross-source de-duplication by content hash.
"""
from __future__ import annotations

from typing import Dict, Iterable, List

from brandpulse.models import Mention


def _should_replace(existing: Mention, candidate: Mention) -> bool:
    """
    Decide whether `candidate` beats the stored representative.

    Higher upvotes + comments wins. When both scores are zero the more
    recent mention wins. At equal non-zero scores the first-seen item stays.
    """
    existing_score = existing.engagement.score
    candidate_score = candidate.engagement.score

    if candidate_score != existing_score:
        return candidate_score > existing_score
    if candidate_score == 0:
        return candidate.published_at > existing.published_at
    return False


def merge(mentions: Iterable[Mention]) -> List[Mention]:
    """
    Collapse mentions sharing a content hash to one representative each.

    The output keeps the order in which each hash was first seen.
    """
    best: Dict[str, Mention] = {}
    for mention in mentions:
        existing = best.get(mention.content_hash)
        if existing is None or _should_replace(existing, mention):
            best[mention.content_hash] = mention
    return list(best.values())

