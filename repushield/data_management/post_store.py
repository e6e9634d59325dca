"""Dedup-aware persistence of normalized mentions.

Every platform-specific store_* method funnels into a single insert()
primitive:
1. Validate the natural key (platform, post_id) and the owning configuration
2. Normalize created_at, substituting "now" when missing or unparsable
3. Insert; a uniqueness conflict on (platform, post_id) is the duplicate
   signal and is silently discarded (the first sighting wins, nothing is
   merged or overwritten)
4. New rows carry null derived-analysis fields and a server-assigned
   fetched_at

The stages read their work sets through the query helpers below, so the
access patterns the pipeline needs from its datastore live in one place.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from dateutil import parser as date_parser
from loguru import logger

from repushield.agents.crawlers.sources.facebook_source import normalize_facebook_post
from repushield.agents.crawlers.sources.news_source import normalize_news_article
from repushield.agents.crawlers.sources.reddit_source import normalize_reddit_post
from repushield.agents.crawlers.sources.twitter_source import normalize_tweet
from repushield.data_management.mention_repository import (
    InMemoryMentionRepository,
    MentionRepository,
)
from repushield.data_management.schemas import (
    FactCheckResult,
    Mention,
    NormalizedMention,
    RiskScoreResult,
)
from repushield.errors import DuplicateMentionError, MentionValidationError


def normalize_timestamp(value: Any) -> datetime:
    """
    Coerce a raw timestamp into an aware UTC datetime.

    Accepts datetimes, ISO/RFC strings and epoch seconds. Anything missing or
    unparsable becomes the current time.
    """
    now = datetime.now(timezone.utc)
    if value is None or value == "":
        return now

    try:
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            parsed = datetime.fromtimestamp(value, tz=timezone.utc)
        elif isinstance(value, str):
            parsed = date_parser.parse(value)
        else:
            return now
    except (ValueError, OverflowError, OSError, TypeError):
        return now

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def is_incomplete(mention: Mention) -> bool:
    return not mention.is_complete


class PostStore:
    """
    Persistence facade used by platform agents and analysis stages.

    Attributes:
        repository: Backing MentionRepository (in-memory by default)
    """

    def __init__(self, repository: Optional[MentionRepository] = None):
        """
        Initialize post store.

        Args:
            repository: Backing repository. Creates an in-memory one if None.
        """
        self.repository = repository or InMemoryMentionRepository()
        self.logger = logger.bind(component="PostStore")

    # Platform-specific entry points

    async def store_twitter_post(self, post: Dict[str, Any], configuration_id: str) -> Optional[Mention]:
        return await self.insert(normalize_tweet(post, configuration_id))

    async def store_reddit_post(self, post: Dict[str, Any], configuration_id: str) -> Optional[Mention]:
        return await self.insert(normalize_reddit_post(post, configuration_id))

    async def store_facebook_post(self, post: Dict[str, Any], configuration_id: str) -> Optional[Mention]:
        return await self.insert(normalize_facebook_post(post, configuration_id))

    async def store_news_article(self, article: Dict[str, Any], configuration_id: str) -> Optional[Mention]:
        return await self.insert(normalize_news_article(article, configuration_id))

    async def store(self, normalized: NormalizedMention) -> Optional[Mention]:
        """Store an already-normalized mention from any source adapter."""
        return await self.insert(normalized)

    async def insert(self, normalized: NormalizedMention) -> Optional[Mention]:
        """
        Insert a normalized mention, rejecting duplicates.

        Args:
            normalized: Mention shape produced by a source adapter

        Returns:
            The stored Mention, or None if (platform, post_id) already existed

        Raises:
            MentionValidationError: If post_id or configuration_id is empty
        """
        if normalized.platform is None:
            raise MentionValidationError("Platform cannot be empty")
        if not normalized.post_id or not normalized.post_id.strip():
            raise MentionValidationError("Post ID cannot be empty")
        if not normalized.configuration_id or not normalized.configuration_id.strip():
            raise MentionValidationError("Configuration ID cannot be empty")

        created_at = normalize_timestamp(normalized.created_at)

        try:
            mention = await self.repository.insert(normalized, created_at)
        except DuplicateMentionError:
            self.logger.debug(
                f"Rejected duplicate {normalized.platform.value} post: {normalized.post_id}"
            )
            return None

        self.logger.debug(
            f"Stored {mention.platform.value} post {mention.post_id}",
            mention_id=mention.id,
            configuration_id=mention.configuration_id,
        )
        return mention

    # Stage work sets

    async def get(self, mention_id: str) -> Optional[Mention]:
        return await self.repository.get(mention_id)

    async def get_backlog(self, configuration_id: str, limit: int) -> List[Mention]:
        """Most recent mentions for a configuration, newest first."""
        return await self.repository.query(
            configuration_id, order_by="created_at", descending=True, limit=limit
        )

    async def get_by_ids(self, configuration_id: str, mention_ids: List[str]) -> List[Mention]:
        return await self.repository.query(configuration_id, ids=list(mention_ids))

    async def get_incomplete(self, configuration_id: str, limit: int) -> List[Mention]:
        """Mentions missing a risk score or with a null/empty topic list."""
        return await self.repository.query(
            configuration_id, predicate=is_incomplete, limit=limit
        )

    async def get_fact_check_eligible(self, configuration_id: str, threshold: float) -> List[Mention]:
        """Mentions at or above the risk threshold with no fact-check yet, riskiest first."""
        return await self.repository.query(
            configuration_id,
            predicate=lambda m: m.is_fact_check_eligible(threshold),
            order_by="risk_score",
            descending=True,
        )

    async def count(self, configuration_id: str) -> int:
        rows = await self.repository.query(configuration_id)
        return len(rows)

    # Single-row updates

    async def update_analysis(self, mention_id: str, analysis: RiskScoreResult) -> Mention:
        return await self.repository.update(mention_id, analysis.to_update())

    async def update_fact_check(self, mention_id: str, fact_check: FactCheckResult) -> Mention:
        return await self.repository.update(
            mention_id, {"fact_check_data": fact_check.model_dump(mode="json")}
        )
