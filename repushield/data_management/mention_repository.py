"""Mention repository: the abstract backing store behind PostStore.

The pipeline needs only three access patterns from its datastore:
- point lookup by natural key (platform, post_id) or by mention id
- filtered range scan per configuration (predicate, ordering, limit)
- single-row conditional update keyed by mention id

MentionRepository captures that contract. InMemoryMentionRepository is the
default implementation:
- In-memory storage with optional JSON persistence
- Unique natural-key index; a conflicting insert raises DuplicateMentionError
- Configuration-scoped scans
- Thread-safe operations with asyncio locks
"""

import asyncio
import json
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from loguru import logger

from repushield.data_management.schemas import Mention, NormalizedMention
from repushield.errors import DuplicateMentionError, MentionNotFoundError

MentionPredicate = Callable[[Mention], bool]


class MentionRepository(ABC):
    """Storage contract for persisted mentions."""

    @abstractmethod
    async def insert(self, normalized: NormalizedMention, created_at: datetime) -> Mention:
        """
        Insert a new mention row.

        Args:
            normalized: Validated mention shape
            created_at: Normalized creation timestamp

        Returns:
            The stored Mention with id and fetched_at assigned

        Raises:
            DuplicateMentionError: If (platform, post_id) already exists
        """

    @abstractmethod
    async def get(self, mention_id: str) -> Optional[Mention]:
        """Point lookup by mention id."""

    @abstractmethod
    async def get_by_natural_key(self, platform: str, post_id: str) -> Optional[Mention]:
        """Point lookup by (platform, post_id)."""

    @abstractmethod
    async def query(
        self,
        configuration_id: str,
        predicate: Optional[MentionPredicate] = None,
        order_by: str = "created_at",
        descending: bool = True,
        limit: Optional[int] = None,
        ids: Optional[List[str]] = None,
    ) -> List[Mention]:
        """Filtered range scan over one configuration's mentions."""

    @abstractmethod
    async def update(self, mention_id: str, fields: Dict[str, Any]) -> Mention:
        """
        Update fields on a single mention.

        Raises:
            MentionNotFoundError: If the mention does not exist
        """


class InMemoryMentionRepository(MentionRepository):
    """
    In-memory mention storage with a uniqueness constraint on the natural key.

    Data structure:
    {
        "mentions": {mention_id: Mention, ...},
        "natural_key_index": {(platform, post_id): mention_id, ...}
    }

    The check for an existing natural key and the insert happen under the
    same lock, so concurrent inserts of one native post produce one row.
    """

    def __init__(self, persistence_path: Optional[str] = None):
        """
        Initialize repository.

        Args:
            persistence_path: Optional path to JSON file for persistence.
                            If None, storage is memory-only.
        """
        self._mentions: Dict[str, Mention] = {}
        self._natural_key_index: Dict[Tuple[str, str], str] = {}
        self._lock = asyncio.Lock()
        self.persistence_path = Path(persistence_path) if persistence_path else None
        self.logger = logger.bind(component="MentionRepository")

        if self.persistence_path and self.persistence_path.exists():
            self._load_from_file()

    async def insert(self, normalized: NormalizedMention, created_at: datetime) -> Mention:
        key = (normalized.platform.value, normalized.post_id)
        async with self._lock:
            if key in self._natural_key_index:
                raise DuplicateMentionError(*key)

            mention = Mention(
                **normalized.model_dump(exclude={"created_at"}),
                id=str(uuid.uuid4()),
                created_at=created_at,
                fetched_at=datetime.now(timezone.utc),
            )
            self._mentions[mention.id] = mention
            self._natural_key_index[key] = mention.id

            if self.persistence_path:
                self._save_to_file()

            return mention.model_copy(deep=True)

    async def get(self, mention_id: str) -> Optional[Mention]:
        async with self._lock:
            mention = self._mentions.get(mention_id)
            return mention.model_copy(deep=True) if mention else None

    async def get_by_natural_key(self, platform: str, post_id: str) -> Optional[Mention]:
        async with self._lock:
            mention_id = self._natural_key_index.get((platform, post_id))
            if mention_id is None:
                return None
            return self._mentions[mention_id].model_copy(deep=True)

    async def query(
        self,
        configuration_id: str,
        predicate: Optional[MentionPredicate] = None,
        order_by: str = "created_at",
        descending: bool = True,
        limit: Optional[int] = None,
        ids: Optional[List[str]] = None,
    ) -> List[Mention]:
        async with self._lock:
            wanted = set(ids) if ids is not None else None
            rows = [
                m for m in self._mentions.values()
                if m.configuration_id == configuration_id
                and (wanted is None or m.id in wanted)
                and (predicate is None or predicate(m))
            ]

        # None sorts last regardless of direction
        present = [m for m in rows if getattr(m, order_by) is not None]
        missing = [m for m in rows if getattr(m, order_by) is None]
        present.sort(key=lambda m: getattr(m, order_by), reverse=descending)
        ordered = present + missing

        if limit is not None:
            ordered = ordered[:limit]
        return [m.model_copy(deep=True) for m in ordered]

    async def update(self, mention_id: str, fields: Dict[str, Any]) -> Mention:
        async with self._lock:
            existing = self._mentions.get(mention_id)
            if existing is None:
                raise MentionNotFoundError(f"Mention {mention_id} not found")

            updated = existing.model_copy(update=fields, deep=True)
            self._mentions[mention_id] = updated

            if self.persistence_path:
                self._save_to_file()

            return updated.model_copy(deep=True)

    async def count(self, configuration_id: Optional[str] = None) -> int:
        async with self._lock:
            if configuration_id is None:
                return len(self._mentions)
            return sum(1 for m in self._mentions.values() if m.configuration_id == configuration_id)

    def _save_to_file(self) -> None:
        """Save current storage to JSON file (synchronous)."""
        if not self.persistence_path:
            return

        try:
            self.persistence_path.parent.mkdir(parents=True, exist_ok=True)
            data = [m.model_dump(mode="json") for m in self._mentions.values()]
            with open(self.persistence_path, "w") as f:
                json.dump(data, f, indent=2, default=str)
        except OSError as e:
            self.logger.error(f"Failed to persist to file: {e}")

    def _load_from_file(self) -> None:
        """Load storage from JSON file and rebuild the natural-key index."""
        try:
            with open(self.persistence_path, "r") as f:
                data = json.load(f)

            self._mentions = {}
            self._natural_key_index = {}
            for row in data:
                mention = Mention.model_validate(row)
                self._mentions[mention.id] = mention
                self._natural_key_index[(mention.platform.value, mention.post_id)] = mention.id

            self.logger.info(
                f"Loaded from {self.persistence_path}",
                mentions=len(self._mentions),
            )
        except (OSError, ValueError) as e:
            self.logger.error(f"Failed to load from file: {e}")
            self._mentions = {}
            self._natural_key_index = {}
