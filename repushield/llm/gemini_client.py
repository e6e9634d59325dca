"""Async Gemini client with exponential backoff and rate limiting."""

import asyncio
import functools
import json
import random
from typing import Any, Awaitable, Callable, Optional

import google.generativeai as genai
from google.generativeai.types.generation_types import BlockedPromptException
from loguru import logger

from repushield.config.settings import settings
from repushield.errors import ClassificationError
from repushield.llm.rate_limiter import RateLimiter, estimate_tokens

MAX_RETRIES = 3
BASE_DELAY = 1.0


def _exponential_backoff(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
    """
    Retry an async API call with exponential backoff and jitter.

    Delays are 1s, 2s, ... plus 0-10% jitter. Blocked prompts are never
    retried since resubmitting them gives the same answer.
    """

    @functools.wraps(func)
    async def wrapper(*args, **kwargs) -> Any:
        for attempt in range(MAX_RETRIES):
            try:
                return await func(*args, **kwargs)
            except BlockedPromptException:
                raise
            except Exception as e:
                if attempt == MAX_RETRIES - 1:
                    logger.error(f"Max retries exceeded for {func.__name__}: {e}")
                    raise

                delay = BASE_DELAY * (2 ** attempt)
                total_delay = delay + random.uniform(0, delay * 0.1)
                logger.warning(
                    f"Retry {attempt + 1}/{MAX_RETRIES} for {func.__name__} "
                    f"after {total_delay:.2f}s: {e}"
                )
                await asyncio.sleep(total_delay)

        raise RuntimeError(f"Unexpected retry loop exit in {func.__name__}")

    return wrapper


def parse_json_response(text: str) -> dict[str, Any]:
    """
    Decode a model response that should contain one JSON object.

    Tolerates markdown code fences around the object.

    Raises:
        ClassificationError: If no JSON object can be decoded
    """
    cleaned = (text or "").strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.strip("`")
        if cleaned.lower().startswith("json"):
            cleaned = cleaned[4:]
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start == -1 or end < start:
        raise ClassificationError(f"No JSON object in model response: {text[:100]!r}")
    try:
        data = json.loads(cleaned[start:end + 1])
    except json.JSONDecodeError as e:
        raise ClassificationError(f"Invalid JSON in model response: {e}") from e
    if not isinstance(data, dict):
        raise ClassificationError("Model response is not a JSON object")
    return data


class GeminiClient:
    """
    Google Gemini client shared by the classifier and the response drafter.

    The underlying model is created on first use, so constructing the client
    (and everything that depends on it) works without an API key.

    Attributes:
        model_name: Gemini model identifier
        rate_limiter: RPM/TPM gate applied before every call
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.model_name = model_name or settings.gemini_model
        self.rate_limiter = rate_limiter or RateLimiter()
        self._model = None
        self.logger = logger.bind(component="GeminiClient")

    @property
    def model(self) -> Any:
        if self._model is None:
            if not self.api_key:
                raise ValueError("GEMINI_API_KEY not configured in environment")
            genai.configure(api_key=self.api_key)
            self._model = genai.GenerativeModel(self.model_name)
            self.logger.info(f"Gemini client initialized with model {self.model_name}")
        return self._model

    @_exponential_backoff
    async def generate_content(
        self,
        prompt: str,
        temperature: float = 0.3,
        json_mode: bool = False,
    ) -> str:
        """
        Generate text for a prompt.

        Args:
            prompt: Input prompt
            temperature: Sampling temperature (0.0-1.0)
            json_mode: Ask the model for an application/json response

        Returns:
            Generated text

        Raises:
            BlockedPromptException: If the prompt violates safety policies
        """
        await self.rate_limiter.acquire(estimate_tokens(prompt))

        config = genai.types.GenerationConfig(
            temperature=temperature,
            response_mime_type="application/json" if json_mode else "text/plain",
        )
        try:
            response = await self.model.generate_content_async(prompt, generation_config=config)
        except BlockedPromptException as e:
            self.logger.error(f"Prompt blocked by safety filters: {e}")
            raise
        return response.text

    async def generate_json(self, prompt: str, temperature: float = 0.3) -> dict[str, Any]:
        text = await self.generate_content(prompt, temperature=temperature, json_mode=True)
        return parse_json_response(text)
