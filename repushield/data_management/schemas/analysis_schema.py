"""Value objects returned by the external analysis calls.

RiskScoreResult is sanitized from raw classifier output before it is written
onto a Mention: the risk score is clamped into [1, 10] at one decimal place,
topics and keywords are capped at three entries, sentiment falls back to
neutral and the summary is cut to its first five words.

FactCheckResult is the combined evidence + verdict + response draft object
persisted as a mention's fact_check_data.
"""

import math
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from repushield.data_management.schemas.mention_schema import Sentiment

MIN_RISK_SCORE = 1.0
MAX_RISK_SCORE = 10.0
DEFAULT_RISK_SCORE = 5.0
MAX_TOPICS = 3
MAX_KEYWORDS = 3
SUMMARY_WORDS = 5
VALID_SENTIMENTS = ("positive", "neutral", "negative")

MAX_RESPONSE_CHARS = 280
MAX_KEY_POINTS = 5
FALLBACK_RESPONSE_TEXT = (
    "We are reviewing this post and will provide a response shortly."
)
FALLBACK_TONE = "professional"


def clamp_risk_score(value: Any) -> float:
    """Round to one decimal place (half up), then clamp into [1, 10].

    Missing or non-numeric values fall back to the neutral midpoint.
    """
    try:
        score = float(value)
    except (TypeError, ValueError):
        score = DEFAULT_RISK_SCORE
    if value is None or math.isnan(score):
        score = DEFAULT_RISK_SCORE
    if math.isinf(score):
        return MAX_RISK_SCORE if score > 0 else MIN_RISK_SCORE
    rounded = math.floor(score * 10 + 0.5) / 10
    return max(MIN_RISK_SCORE, min(MAX_RISK_SCORE, rounded))


def truncate_summary(text: Any) -> str:
    """First five whitespace-separated tokens joined by single spaces."""
    if not isinstance(text, str):
        return ""
    return " ".join(text.split()[:SUMMARY_WORDS])


def _string_list(value: Any, limit: int) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None and str(item).strip()][:limit]


class RiskScoreResult(BaseModel):
    """Sanitized classifier output for one mention."""

    topics: list[str] = Field(default_factory=list, max_length=MAX_TOPICS)
    keywords: list[str] = Field(default_factory=list, max_length=MAX_KEYWORDS)
    sentiment: Sentiment = "neutral"
    risk_score: float = Field(DEFAULT_RISK_SCORE, ge=MIN_RISK_SCORE, le=MAX_RISK_SCORE)
    summary: Optional[str] = None

    @classmethod
    def sanitize(cls, raw: dict[str, Any]) -> "RiskScoreResult":
        """Validate and clamp a raw classifier response.

        Accepts both snake_case and the camelCase keys the classifier prompt
        asks for (riskScore, crispSummary).
        """
        risk = raw.get("risk_score", raw.get("riskScore"))
        sentiment = raw.get("sentiment")
        if not isinstance(sentiment, str) or sentiment.lower() not in VALID_SENTIMENTS:
            sentiment = "neutral"
        summary = truncate_summary(
            raw.get("summary", raw.get("crispSummary", raw.get("crisp_summary")))
        )
        return cls(
            topics=_string_list(raw.get("topics"), MAX_TOPICS),
            keywords=_string_list(raw.get("keywords"), MAX_KEYWORDS),
            sentiment=sentiment.lower(),
            risk_score=clamp_risk_score(risk),
            summary=summary or None,
        )

    def to_update(self) -> dict[str, Any]:
        """Mention fields written by the risk scoring stage."""
        return {
            "risk_score": self.risk_score,
            "sentiment": self.sentiment,
            "topics": list(self.topics),
            "keywords": list(self.keywords),
            "narrative": self.summary,
        }


class TruthStatus(str, Enum):
    TRUE = "true"
    FALSE = "false"
    PARTIALLY_TRUE = "partially true"
    MISLEADING = "misleading"
    UNVERIFIED = "unverified"


class EvidenceSource(BaseModel):
    """One web search hit gathered as fact-check evidence."""

    title: str = ""
    url: str = ""
    snippet: str = ""


class Evidence(BaseModel):
    sources: list[EvidenceSource] = Field(default_factory=list)
    facts: list[str] = Field(default_factory=list)
    verification: TruthStatus = TruthStatus.UNVERIFIED


class ResponseDraft(BaseModel):
    """Publish-ready response drafted for a high-risk mention."""

    response_text: str = FALLBACK_RESPONSE_TEXT
    tone: str = FALLBACK_TONE
    key_points: list[str] = Field(default_factory=list)

    @field_validator("response_text")
    @classmethod
    def _cap_length(cls, value: str) -> str:
        return value[:MAX_RESPONSE_CHARS]

    @field_validator("key_points")
    @classmethod
    def _cap_key_points(cls, value: list[str]) -> list[str]:
        return value[:MAX_KEY_POINTS]

    @classmethod
    def fallback(cls) -> "ResponseDraft":
        return cls()


class FactCheckResult(BaseModel):
    """Evidence, verdict and response draft stored on a mention."""

    evidence: Evidence
    truth_status: TruthStatus
    admin_response: ResponseDraft
