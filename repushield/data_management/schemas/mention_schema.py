"""Mention schemas: the normalized shape of a social post or news article.

A NormalizedMention is what a source adapter produces from a platform-native
item. The PostStore turns it into a Mention on first sighting, assigning the
store id and fetch timestamp and leaving every derived analysis field null.

Natural key: (platform, post_id). It is unique across the store.
"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from repushield.data_management.schemas.configuration_schema import Platform

Sentiment = Literal["positive", "neutral", "negative"]


class NormalizedMention(BaseModel):
    """Platform-independent mention as produced by a source adapter."""

    platform: Platform
    post_id: str = ""
    configuration_id: str = ""
    content: str = ""
    title: Optional[str] = None
    created_at: Optional[Any] = Field(
        default=None,
        description="Raw timestamp (str, datetime or None); normalized on insert",
    )
    post_url: str = ""
    author_id: Optional[str] = None
    author_username: Optional[str] = None
    author_name: Optional[str] = None
    author_verified: bool = False
    author_followers: Optional[int] = None
    author_following: Optional[int] = None
    author_profile_image: Optional[str] = None
    likes_count: int = 0
    comments_count: int = 0
    shares_count: int = 0
    retweets_count: Optional[int] = None
    upvotes_count: Optional[int] = None
    media_urls: list[str] = Field(default_factory=list)
    media_types: list[str] = Field(default_factory=list)
    thumbnail_url: Optional[str] = None
    raw_data: Optional[Any] = None


class Mention(NormalizedMention):
    """
    Persisted mention row.

    Field names are the contract consumed by downstream presentation layers.
    Derived fields start null and are written in place by the risk scoring
    stage (sentiment, risk_score, topics, keywords, narrative) and the
    fact-checking stage (fact_check_data).
    """

    id: str
    created_at: datetime
    fetched_at: datetime

    sentiment: Optional[Sentiment] = None
    risk_score: Optional[float] = None
    topics: Optional[list[str]] = None
    keywords: Optional[list[str]] = None
    narrative: Optional[str] = Field(
        default=None, description="Five-word summary from the classifier"
    )
    fact_check_data: Optional[dict[str, Any]] = None

    @property
    def text(self) -> str:
        """Text submitted to analysis: body content, falling back to the title."""
        return self.content or self.title or ""

    @property
    def is_complete(self) -> bool:
        return self.risk_score is not None and bool(self.topics)

    def is_fact_check_eligible(self, threshold: float) -> bool:
        return (
            self.risk_score is not None
            and self.risk_score >= threshold
            and self.fact_check_data is None
        )
