"""Topic/narrative grouping collaborator interface.

Grouping is best-effort: the risk scoring stage hands each freshly scored
mention id to assign() and only logs failures.
"""

from typing import Protocol


class GroupingService(Protocol):
    async def assign(self, mention_id: str, configuration_id: str) -> None:
        ...


class NullGroupingService:
    """Default collaborator that groups nothing."""

    async def assign(self, mention_id: str, configuration_id: str) -> None:
        return None
