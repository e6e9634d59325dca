"""Base class for analysis stages that enrich stored mentions.

Crawlers acquire mentions; sifters read them back from the PostStore and
write derived fields in place:
- RiskScoringStage: sentiment, risk score, topics, keywords, summary
- FactCheckingStage: evidence, verdict and response draft for risky mentions

Sifters never raise for item failures. They count them and report them on
the stage's AgentResult.
"""

from typing import Optional

import structlog

from repushield.agents.base_agent import BaseAgent
from repushield.data_management.post_store import PostStore


class BaseSifter(BaseAgent):
    """
    Common state for analysis stages.

    Attributes:
        post_store: Store the stage reads from and writes to
        processed_count: Items successfully processed over the sifter's lifetime
        error_count: Items that failed over the sifter's lifetime
    """

    def __init__(self, name: str, description: str = "", post_store: Optional[PostStore] = None):
        super().__init__(name=name, description=description)
        self.post_store = post_store or PostStore()
        self.processed_count: int = 0
        self.error_count: int = 0
        self._logger = structlog.get_logger().bind(component=type(self).__name__)

    def get_capabilities(self) -> list[str]:
        return ["sifting", "analysis"]

    def get_stats(self) -> dict:
        total = self.processed_count + self.error_count
        return {
            "processed_count": self.processed_count,
            "error_count": self.error_count,
            "error_rate": self.error_count / total if total > 0 else 0.0,
        }
