"""Risk classification collaborator.

classify(text, entity_name) returns the raw classifier dict
{topics, keywords, sentiment, riskScore, crispSummary}; validation and
clamping happen in RiskScoreResult.sanitize().
"""

from typing import Any, Optional, Protocol

from repushield.config.prompts.risk_prompts import build_risk_prompt
from repushield.llm.gemini_client import GeminiClient


class RiskClassifier(Protocol):
    async def classify(self, text: str, entity_name: str) -> dict[str, Any]:
        ...


class GeminiRiskClassifier:
    """
    Gemini-backed risk classifier.

    Raises ClassificationError when the response is not a JSON object;
    the risk scoring stage records that as an item error.
    """

    def __init__(self, client: Optional[GeminiClient] = None, temperature: float = 0.3):
        self.client = client or GeminiClient()
        self.temperature = temperature

    async def classify(self, text: str, entity_name: str) -> dict[str, Any]:
        prompt = build_risk_prompt(text, entity_name)
        return await self.client.generate_json(prompt, temperature=self.temperature)
