"""Schema package for configurations, mentions, analysis results and stage outcomes.

Primary exports:
- Configuration / FilterCriteria: what to monitor and how to filter it
- NormalizedMention / Mention: the common post shape and its persisted row
- RiskScoreResult / FactCheckResult: sanitized analysis outputs
- AgentResult / OrchestrationResult / FetchJobRecord: run outcomes and audit rows

Usage:
    from repushield.data_management.schemas import Configuration, EntityDetails
    config = Configuration(entity_details=EntityDetails(name="Acme Corp"))
"""

from repushield.data_management.schemas.configuration_schema import (
    Configuration,
    EntityDetails,
    EntityHandles,
    EntityType,
    FilterCriteria,
    Ontology,
    Platform,
    PlatformConfig,
    PlatformOptions,
)
from repushield.data_management.schemas.mention_schema import (
    Mention,
    NormalizedMention,
    Sentiment,
)
from repushield.data_management.schemas.analysis_schema import (
    Evidence,
    EvidenceSource,
    FactCheckResult,
    ResponseDraft,
    RiskScoreResult,
    TruthStatus,
)
from repushield.data_management.schemas.result_schema import (
    AgentResult,
    CompletenessReport,
    FetchJobRecord,
    OrchestrationResult,
    StageStatus,
)

__all__ = [
    # Configuration
    "Configuration",
    "EntityDetails",
    "EntityHandles",
    "EntityType",
    "FilterCriteria",
    "Ontology",
    "Platform",
    "PlatformConfig",
    "PlatformOptions",
    # Mention
    "Mention",
    "NormalizedMention",
    "Sentiment",
    # Analysis
    "Evidence",
    "EvidenceSource",
    "FactCheckResult",
    "ResponseDraft",
    "RiskScoreResult",
    "TruthStatus",
    # Outcomes
    "AgentResult",
    "CompletenessReport",
    "FetchJobRecord",
    "OrchestrationResult",
    "StageStatus",
]
