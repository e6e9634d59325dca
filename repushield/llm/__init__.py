"""Gemini client, rate limiting and the model-backed collaborators."""

from repushield.llm.classifier import GeminiRiskClassifier, RiskClassifier
from repushield.llm.gemini_client import GeminiClient
from repushield.llm.rate_limiter import RateLimiter
from repushield.llm.response_drafter import GeminiResponseDrafter, ResponseDrafter

__all__ = [
    "GeminiClient",
    "GeminiResponseDrafter",
    "GeminiRiskClassifier",
    "RateLimiter",
    "ResponseDrafter",
    "RiskClassifier",
]
