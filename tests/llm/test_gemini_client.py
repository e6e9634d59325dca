"""Tests for the Gemini client, JSON decoding and rate limiting."""

from types import SimpleNamespace

import pytest
from google.generativeai.types.generation_types import BlockedPromptException

from repushield.errors import ClassificationError
from repushield.llm import gemini_client
from repushield.llm.classifier import GeminiRiskClassifier
from repushield.llm.gemini_client import GeminiClient, parse_json_response
from repushield.llm.rate_limiter import RateLimiter, TokenBucket, estimate_tokens


class FakeModel:
    """Stands in for genai.GenerativeModel; replies or raises in order."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.prompts = []

    async def generate_content_async(self, prompt, generation_config=None):
        self.prompts.append(prompt)
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return SimpleNamespace(text=reply)


@pytest.fixture
def no_backoff_delay(monkeypatch):
    monkeypatch.setattr(gemini_client, "BASE_DELAY", 0.0)


def make_client(model: FakeModel) -> GeminiClient:
    client = GeminiClient(api_key="test-key", rate_limiter=RateLimiter(max_rpm=1000, max_tpm=1_000_000))
    client._model = model
    return client


class TestParseJsonResponse:
    def test_plain_object(self):
        assert parse_json_response('{"riskScore": 7}') == {"riskScore": 7}

    def test_fenced_object(self):
        text = '```json\n{"sentiment": "negative"}\n```'
        assert parse_json_response(text) == {"sentiment": "negative"}

    def test_surrounding_prose(self):
        assert parse_json_response('Here you go: {"a": 1} hope it helps') == {"a": 1}

    @pytest.mark.parametrize("text", ["", "no json here", "[1, 2]", '{"a": }'])
    def test_unusable(self, text):
        with pytest.raises(ClassificationError):
            parse_json_response(text)


class TestGeminiClient:
    def test_missing_key_raises_on_first_use(self):
        client = GeminiClient(api_key="")
        with pytest.raises(ValueError, match="GEMINI_API_KEY"):
            client.model

    @pytest.mark.asyncio
    async def test_generate_json(self):
        model = FakeModel('{"topics": ["pricing"]}')
        client = make_client(model)

        assert await client.generate_json("classify this") == {"topics": ["pricing"]}
        assert model.prompts == ["classify this"]

    @pytest.mark.asyncio
    async def test_transient_failures_retried(self, no_backoff_delay):
        model = FakeModel(ConnectionError("reset"), ConnectionError("reset"), "ok")
        client = make_client(model)

        assert await client.generate_content("prompt") == "ok"
        assert len(model.prompts) == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, no_backoff_delay):
        model = FakeModel(*(ConnectionError("down") for _ in range(3)))
        client = make_client(model)

        with pytest.raises(ConnectionError):
            await client.generate_content("prompt")
        assert len(model.prompts) == 3

    @pytest.mark.asyncio
    async def test_blocked_prompt_not_retried(self, no_backoff_delay):
        model = FakeModel(BlockedPromptException("blocked"), "never")
        client = make_client(model)

        with pytest.raises(BlockedPromptException):
            await client.generate_content("prompt")
        assert len(model.prompts) == 1


class TestGeminiRiskClassifier:
    @pytest.mark.asyncio
    async def test_prompt_mentions_entity_and_text(self):
        model = FakeModel('{"riskScore": 4, "topics": ["service"]}')
        classifier = GeminiRiskClassifier(client=make_client(model))

        raw = await classifier.classify("The support line never answers", "Acme Corp")

        assert raw["riskScore"] == 4
        assert "Acme Corp" in model.prompts[0]
        assert "The support line never answers" in model.prompts[0]

    @pytest.mark.asyncio
    async def test_invalid_output_raises(self):
        classifier = GeminiRiskClassifier(client=make_client(FakeModel("I cannot help with that")))
        with pytest.raises(ClassificationError):
            await classifier.classify("text", "Acme Corp")


class TestRateLimiter:
    def test_bucket_consume(self):
        bucket = TokenBucket(capacity=10, refill_rate=0.0)
        assert bucket.available(10)
        bucket.consume(10)
        assert not bucket.available(1)
        assert bucket.seconds_until(1) == 0.0

    def test_seconds_until_refill(self):
        bucket = TokenBucket(capacity=60, refill_rate=1.0)
        bucket.consume(60)
        assert 0 < bucket.seconds_until(2) <= 2.0

    def test_rpm_budget(self):
        limiter = RateLimiter(max_rpm=2, max_tpm=1000)
        assert limiter.can_proceed(10)
        assert limiter.can_proceed(10)
        assert not limiter.can_proceed(10)

    def test_oversized_request_capped_to_capacity(self):
        limiter = RateLimiter(max_rpm=10, max_tpm=100)
        assert limiter.can_proceed(10_000)

    @pytest.mark.asyncio
    async def test_acquire_when_available(self):
        limiter = RateLimiter(max_rpm=10, max_tpm=1000)
        await limiter.acquire(5)
        assert limiter.rpm_bucket.tokens < 10

    def test_estimate_tokens(self):
        assert estimate_tokens("") == 1
        assert estimate_tokens("x" * 400) == 100
