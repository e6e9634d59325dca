"""Tests for the single best-effort completeness retry pass."""

import pytest

from repushield.agents.sifters import CompletenessValidator, RiskScoringStage
from repushield.data_management.post_store import PostStore
from repushield.data_management.schemas import (
    Configuration,
    EntityDetails,
    NormalizedMention,
    Platform,
    RiskScoreResult,
)
from repushield.errors import ClassificationError


class ScriptedClassifier:
    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.calls = 0

    async def classify(self, text, entity_name):
        self.calls += 1
        if text in self.fail_on:
            raise ClassificationError("empty response")
        return {"topics": ["service"], "sentiment": "neutral", "riskScore": 3}


@pytest.fixture
def config() -> Configuration:
    return Configuration(entity_details=EntityDetails(name="Acme Corp"))


@pytest.fixture
def post_store() -> PostStore:
    return PostStore()


async def insert(store, config, post_id):
    return await store.insert(NormalizedMention(
        platform=Platform.REDDIT,
        post_id=post_id,
        configuration_id=config.id,
        content=post_id,
    ))


class TestReconcile:
    @pytest.mark.asyncio
    async def test_nothing_incomplete(self, post_store, config):
        mention = await insert(post_store, config, "done")
        await post_store.update_analysis(mention.id, RiskScoreResult(risk_score=2.0, topics=["t"]))
        classifier = ScriptedClassifier()
        validator = CompletenessValidator(post_store, RiskScoringStage(post_store, classifier=classifier))

        report = await validator.reconcile(config)

        assert report.incomplete_before == 0
        assert report.is_complete
        assert report.retry_result is None
        assert classifier.calls == 0

    @pytest.mark.asyncio
    async def test_retry_fills_missing_fields(self, post_store, config):
        empty_topics = await insert(post_store, config, "empty-topics")
        await post_store.update_analysis(empty_topics.id, RiskScoreResult(risk_score=4.0, topics=[]))
        await insert(post_store, config, "unscored")
        validator = CompletenessValidator(
            post_store, RiskScoringStage(post_store, classifier=ScriptedClassifier())
        )

        report = await validator.reconcile(config)

        assert report.incomplete_before == 2
        assert report.rescored == 2
        assert report.still_incomplete == 0
        assert report.retry_result.platform == "risk_scoring_retry"
        assert await post_store.get_incomplete(config.id, 10) == []

    @pytest.mark.asyncio
    async def test_persistent_failure_is_reported_not_raised(self, post_store, config):
        await insert(post_store, config, "stubborn")
        await insert(post_store, config, "fine")
        classifier = ScriptedClassifier(fail_on={"stubborn"})
        validator = CompletenessValidator(post_store, RiskScoringStage(post_store, classifier=classifier))

        report = await validator.reconcile(config)

        assert report.rescored == 1
        assert report.still_incomplete == 1
        assert not report.is_complete
        assert len(report.errors) == 1
        assert report.errors[0].startswith("Error scoring post")
        # exactly one retry pass
        assert classifier.calls == 2

    @pytest.mark.asyncio
    async def test_page_size_bounds_retry(self, post_store, config):
        for i in range(5):
            await insert(post_store, config, f"p{i}")
        classifier = ScriptedClassifier()
        validator = CompletenessValidator(
            post_store, RiskScoringStage(post_store, classifier=classifier), page_size=2
        )

        report = await validator.reconcile(config)

        assert report.incomplete_before == 2
        assert classifier.calls == 2

    @pytest.mark.asyncio
    async def test_store_failure_never_raises(self, config):
        class BrokenStore(PostStore):
            async def get_incomplete(self, configuration_id, limit):
                raise ConnectionError("timeout")

        store = BrokenStore()
        validator = CompletenessValidator(store, RiskScoringStage(store, classifier=ScriptedClassifier()))

        report = await validator.reconcile(config)

        assert report.errors == ["Completeness check error: timeout"]
