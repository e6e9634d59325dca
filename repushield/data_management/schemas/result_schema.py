"""Stage outcome and audit schemas.

Every stage returns an AgentResult whose status makes partial success
explicit (completed, partial, failed, skipped) instead of relying on raised
exceptions. The orchestrator folds them into one OrchestrationResult and
writes one FetchJobRecord per contributing stage.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StageStatus(str, Enum):
    """Explicit outcome of one stage.

    COMPLETED: no errors recorded.
    PARTIAL: errors recorded but at least one item succeeded.
    FAILED: errors recorded and nothing succeeded.
    SKIPPED: stage did not apply (platform disabled, run cancelled first).
    """

    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"
    SKIPPED = "skipped"


class AgentResult(BaseModel):
    """
    Outcome of one platform agent or analysis stage.

    Attributes:
        platform: Platform name or stage label (risk_scoring, fact_checking, ...)
        posts_fetched: Items fetched from the source or selected from the store
        posts_stored: Items successfully stored or updated
        errors: Accumulated non-fatal error messages
        status: Explicit stage outcome, set by finish()
        started_at: When the stage started
        completed_at: When the stage finished
    """

    platform: str
    posts_fetched: int = 0
    posts_stored: int = 0
    errors: list[str] = Field(default_factory=list)
    status: StageStatus = StageStatus.COMPLETED
    started_at: datetime = Field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None

    def record_error(self, message: str) -> None:
        self.errors.append(message)

    def skip(self) -> "AgentResult":
        self.status = StageStatus.SKIPPED
        self.completed_at = _utcnow()
        return self

    def finish(self) -> "AgentResult":
        """Stamp completion time and derive status from counts and errors."""
        self.completed_at = _utcnow()
        if self.status == StageStatus.SKIPPED:
            return self
        if not self.errors:
            self.status = StageStatus.COMPLETED
        elif self.posts_stored > 0:
            self.status = StageStatus.PARTIAL
        else:
            self.status = StageStatus.FAILED
        return self

    @classmethod
    def failed(cls, platform: str, message: str) -> "AgentResult":
        result = cls(platform=platform, errors=[message])
        return result.finish()

    @property
    def audit_status(self) -> Literal["completed", "failed"]:
        return "failed" if self.errors else "completed"


class CompletenessReport(BaseModel):
    """Outcome of the single best-effort completeness retry pass."""

    incomplete_before: int = 0
    rescored: int = 0
    still_incomplete: int = 0
    errors: list[str] = Field(default_factory=list)
    retry_result: Optional[AgentResult] = None

    @property
    def is_complete(self) -> bool:
        return self.still_incomplete == 0


class OrchestrationResult(BaseModel):
    """Aggregate of all stage outcomes for one pipeline run."""

    configuration_id: str
    run_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    total_posts_fetched: int = 0
    total_posts_stored: int = 0
    agent_results: list[AgentResult] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    completeness: Optional[CompletenessReport] = None
    duration_seconds: float = 0.0
    cancelled: bool = False
    started_at: datetime = Field(default_factory=_utcnow)

    def add_platform_result(self, result: AgentResult) -> None:
        self.agent_results.append(result)
        self.total_posts_fetched += result.posts_fetched
        self.total_posts_stored += result.posts_stored
        self.errors.extend(result.errors)

    def add_stage_result(self, result: AgentResult) -> None:
        """Analysis stages contribute errors but not fetch/store totals."""
        self.agent_results.append(result)
        self.errors.extend(result.errors)


class FetchJobRecord(BaseModel):
    """One audit row per stage outcome in the job log."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    configuration_id: str
    run_id: Optional[str] = None
    platform: str
    status: Literal["completed", "failed"]
    posts_fetched: int = 0
    posts_stored: int = 0
    error_message: Optional[str] = None
    started_at: datetime
    completed_at: datetime

    @classmethod
    def from_result(
        cls,
        configuration_id: str,
        result: AgentResult,
        run_id: Optional[str] = None,
    ) -> "FetchJobRecord":
        return cls(
            configuration_id=configuration_id,
            run_id=run_id,
            platform=result.platform,
            status=result.audit_status,
            posts_fetched=result.posts_fetched,
            posts_stored=result.posts_stored,
            error_message="; ".join(result.errors) if result.errors else None,
            started_at=result.started_at,
            completed_at=result.completed_at or _utcnow(),
        )
