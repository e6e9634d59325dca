"""Analysis stages that enrich stored mentions.

- RiskScoringStage: batched risk classification
- CompletenessValidator: one retry pass for mentions missing derived fields
- FactCheckingStage: evidence, verdict and response draft for risky mentions
"""

from repushield.agents.sifters.base_sifter import BaseSifter
from repushield.agents.sifters.completeness_validator import CompletenessValidator
from repushield.agents.sifters.grouping import GroupingService, NullGroupingService
from repushield.agents.sifters.risk_scoring_agent import RiskScoringStage
from repushield.agents.sifters.verification import FactCheckingStage

__all__ = [
    "BaseSifter",
    "CompletenessValidator",
    "FactCheckingStage",
    "GroupingService",
    "NullGroupingService",
    "RiskScoringStage",
]
