# brandpulse/schemas.py
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import Literal, Optional, Dict, Any, List


class EngagementOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    upvotes: Optional[int] = None
    downvotes: Optional[int] = None
    comments: Optional[int] = None
    shares: Optional[int] = None
    views: Optional[int] = None


class SentimentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    label: Literal["positive", "neutral", "negative"]
    score: float


class MentionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    source: str
    source_type: str
    url: str
    title: str
    snippet: str
    full_text: Optional[str] = None
    matched_keyword: str
    published_at: datetime
    scraped_at: datetime
    engagement: EngagementOut
    sentiment: Optional[SentimentOut] = None            # absent until enrichment ran
    author: Optional[str] = None
    category: Optional[str] = None
    is_high_engagement: bool
    content_hash: str
    raw: Dict[str, Any] = Field(default_factory=dict)


class AggregateResponse(BaseModel):
    success: bool
    brand: str
    total_mentions: int
    mentions: List[MentionOut]
    by_source: Dict[str, int]
    by_sentiment: Dict[str, int]
    source_status: Dict[str, str]
    live_sources: List[str]
    cached_sources: List[str]
    errors: List[str]
    warnings: List[str]
    duration_ms: int
    scraped_at: datetime


class RefreshRequest(BaseModel):
    brand: str = Field(..., min_length=1, max_length=100)
    terms: List[str] = Field(default_factory=list)
    max_results: int = Field(30, ge=1, le=100)
    days_back: int = Field(7, ge=1, le=30)


class SourceFetchResponse(BaseModel):
    source: str
    success: bool
    outcome: str
    mentions: List[MentionOut]
    error: Optional[str] = None
    duration_ms: int
    scraped_at: datetime


class SourceInfo(BaseModel):
    name: str
    source_type: str
    enabled: bool
