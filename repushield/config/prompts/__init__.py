"""Prompt templates for the Gemini-backed collaborators.

Modules:
    risk_prompts: Risk classification prompt
    fact_check_prompts: Evidence query and response drafting prompts
"""

from repushield.config.prompts.fact_check_prompts import (
    FACT_CHECK_QUERY_TEMPLATE,
    RESPONSE_DRAFT_PROMPT,
    build_fact_check_query,
    build_response_prompt,
)
from repushield.config.prompts.risk_prompts import (
    RISK_CLASSIFICATION_PROMPT,
    build_risk_prompt,
)

__all__ = [
    "FACT_CHECK_QUERY_TEMPLATE",
    "RESPONSE_DRAFT_PROMPT",
    "RISK_CLASSIFICATION_PROMPT",
    "build_fact_check_query",
    "build_response_prompt",
    "build_risk_prompt",
]
