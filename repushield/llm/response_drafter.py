"""Synthesis collaborator drafting publish-ready responses to high-risk posts."""

from typing import Optional, Protocol

import structlog

from repushield.config.prompts.fact_check_prompts import build_response_prompt
from repushield.data_management.schemas import Evidence, ResponseDraft
from repushield.data_management.schemas.analysis_schema import FALLBACK_TONE
from repushield.errors import ClassificationError
from repushield.llm.gemini_client import GeminiClient


class ResponseDrafter(Protocol):
    async def draft(self, entity_name: str, content: str, evidence: Evidence) -> ResponseDraft:
        ...


class GeminiResponseDrafter:
    """
    Draft a tweet-length response with Gemini.

    Empty or unusable model output falls back to the generic placeholder
    draft. API failures propagate; the fact-checking stage applies the same
    fallback for those.
    """

    def __init__(self, client: Optional[GeminiClient] = None, temperature: float = 0.5):
        self.client = client or GeminiClient()
        self.temperature = temperature
        self._logger = structlog.get_logger().bind(component="ResponseDrafter")

    async def draft(self, entity_name: str, content: str, evidence: Evidence) -> ResponseDraft:
        prompt = build_response_prompt(entity_name, content, evidence)
        try:
            data = await self.client.generate_json(prompt, temperature=self.temperature)
        except ClassificationError as e:
            self._logger.warning("draft_unparseable", error=str(e))
            return ResponseDraft.fallback()

        text = data.get("response_text")
        if not isinstance(text, str) or not text.strip():
            self._logger.warning("draft_empty", keys=list(data.keys()))
            return ResponseDraft.fallback()

        tone = data.get("tone")
        key_points = data.get("key_points")
        return ResponseDraft(
            response_text=text.strip(),
            tone=tone if isinstance(tone, str) and tone.strip() else FALLBACK_TONE,
            key_points=[str(p) for p in key_points if p] if isinstance(key_points, list) else [],
        )
