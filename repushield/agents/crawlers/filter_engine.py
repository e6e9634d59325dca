"""Ontology-driven relevance filtering and search query construction.

Matching order:
1. Exclusion keywords reject immediately, whatever else matches
2. Otherwise accept on any of: entity or alternate name in the text or author
   name (literal and whitespace-stripped), core/associated/narrative keyword
   in the text, or a configured handle matching the author handle or
   appearing in the text
3. Reject if nothing matched

All comparisons are case-insensitive substring checks. matches() performs no
I/O; callers sample rejections into the debug log via log_rejection().
"""

import random
import re
from typing import Iterable, Optional

from loguru import logger

from repushield.data_management.schemas import FilterCriteria

MAX_ASSOCIATED_QUERY_TERMS = 10
QUERY_OPERATOR = " OR "

_WHITESPACE = re.compile(r"\s+")


def _squash(value: str) -> str:
    return _WHITESPACE.sub("", value)


def _contains_any(haystack: str, needles: Iterable[str]) -> bool:
    return any(needle and needle.lower() in haystack for needle in needles)


def _name_matches(name: str, text: str, author_name: str) -> bool:
    if not name or not name.strip():
        return False
    lowered = name.lower()
    squashed = _squash(lowered)
    return (
        lowered in text
        or lowered in author_name
        or squashed in _squash(text)
        or squashed in _squash(author_name)
    )


def _handle_matches(handles: Iterable[str], text: str, author_handle: str) -> bool:
    for handle in handles:
        if not handle or not handle.strip():
            continue
        lowered = handle.lower()
        bare = lowered.lstrip("@")
        if (bare and bare in author_handle) or lowered in text:
            return True
    return False


class FilterEngine:
    """
    Stateless relevance filter for one configuration's criteria.

    Attributes:
        rejection_sample_rate: Fraction of rejections written to the debug log
    """

    def __init__(self, rejection_sample_rate: float = 0.2):
        self.rejection_sample_rate = rejection_sample_rate
        self.logger = logger.bind(component="FilterEngine")

    @staticmethod
    def matches(
        text: Optional[str],
        author_handle: Optional[str],
        author_name: Optional[str],
        criteria: FilterCriteria,
    ) -> bool:
        """
        Decide whether an item is relevant to the tracked entity.

        Args:
            text: Item body text (None treated as empty)
            author_handle: Author username/handle (None treated as empty)
            author_name: Author display name (None treated as empty)
            criteria: Filter projection of the configuration

        Returns:
            True if the item should be kept
        """
        body = (text or "").lower()
        handle = (author_handle or "").lower()
        name = (author_name or "").lower()

        if _contains_any(body, criteria.exclusion_keywords):
            return False

        names = (criteria.entity_name, *criteria.alternate_names)
        if any(_name_matches(candidate, body, name) for candidate in names):
            return True

        if (
            _contains_any(body, criteria.core_keywords)
            or _contains_any(body, criteria.associated_keywords)
            or _contains_any(body, criteria.narrative_keywords)
        ):
            return True

        return _handle_matches(
            (*criteria.twitter_handles, *criteria.facebook_handles), body, handle
        )

    @staticmethod
    def build_query(criteria: FilterCriteria) -> str:
        """
        Build an OR query: entity name, alternate names, core keywords and
        the first ten associated keywords, de-duplicated in first-seen order.
        """
        terms = [
            criteria.entity_name,
            *criteria.alternate_names,
            *criteria.core_keywords,
            *criteria.associated_keywords[:MAX_ASSOCIATED_QUERY_TERMS],
        ]
        unique: list[str] = []
        for term in terms:
            term = (term or "").strip()
            if term and term not in unique:
                unique.append(term)
        return QUERY_OPERATOR.join(unique)

    def log_rejection(self, text: Optional[str], criteria: FilterCriteria) -> None:
        """Sample a rejected item into the debug log."""
        if random.random() >= self.rejection_sample_rate:
            return
        self.logger.debug(
            f"Item filtered out for {criteria.entity_name}",
            core_keywords=list(criteria.core_keywords[:3]),
            text_preview=(text or "")[:150],
        )


matches = FilterEngine.matches
build_query = FilterEngine.build_query
