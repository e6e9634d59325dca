"""Tests for PipelineOrchestrator stage sequencing, isolation and auditing.

Tests cover:
- Stage order: fetch, risk scoring, completeness, fact-checking
- Platform agents for enabled platforms only, failures isolated
- Stage exceptions converted into failed results
- Audit rows for every non-skipped stage
- Cancellation at stage boundaries
- End-to-end run with fake external collaborators
- Source client connection pools closed on exit
"""

from unittest.mock import AsyncMock

import httpx
import pytest

from repushield.agents.crawlers.sources.base import SourceAdapter
from repushield.agents.crawlers.sources.reddit_source import normalize_reddit_post
from repushield.agents.crawlers.sources.twitter_source import TwitterClient, normalize_tweet
from repushield.agents.sifters.completeness_validator import CompletenessValidator
from repushield.agents.sifters.risk_scoring_agent import RiskScoringStage
from repushield.agents.sifters.verification.fact_checking_agent import FactCheckingStage
from repushield.data_management.job_log_store import JobLogStore
from repushield.data_management.post_store import PostStore
from repushield.data_management.schemas import (
    AgentResult,
    CompletenessReport,
    Configuration,
    EntityDetails,
    EvidenceSource,
    Platform,
    PlatformConfig,
    ResponseDraft,
    StageStatus,
)
from repushield.errors import SourceClientError
from repushield.orchestration.orchestrator import PipelineOrchestrator
from repushield.orchestration.run_context import RunContext


# ── Helpers ──────────────────────────────────────────────────────────────


def make_config(*platforms: Platform) -> Configuration:
    return Configuration(
        entity_details=EntityDetails(name="Acme Corp"),
        platform_config=PlatformConfig(platforms=list(platforms)),
    )


def twitter_adapter(items=None, error=None) -> SourceAdapter:
    client = AsyncMock()
    client.search = AsyncMock(return_value=items or [], side_effect=error)
    return SourceAdapter(Platform.TWITTER, client, normalize_tweet)


def reddit_adapter(items=None) -> SourceAdapter:
    client = AsyncMock()
    client.search = AsyncMock(return_value=items or [])
    return SourceAdapter(Platform.REDDIT, client, normalize_reddit_post)


def stage_mocks(order: list):
    """Fake risk scoring, completeness and fact-checking that record call order."""

    async def score_backlog(configuration, context=None):
        order.append("risk_scoring")
        return AgentResult(platform="risk_scoring", posts_fetched=2, posts_stored=2).finish()

    async def reconcile(configuration, context=None):
        order.append("completeness")
        return CompletenessReport(errors=["Error scoring post x: boom"], still_incomplete=1)

    async def execute(configuration, context=None):
        order.append("fact_checking")
        return AgentResult(platform="fact_checking", posts_fetched=1, posts_stored=1).finish()

    risk = AsyncMock()
    risk.score_backlog = AsyncMock(side_effect=score_backlog)
    completeness = AsyncMock()
    completeness.reconcile = AsyncMock(side_effect=reconcile)
    fact = AsyncMock()
    fact.execute = AsyncMock(side_effect=execute)
    return risk, completeness, fact


def make_orchestrator(adapters, order=None, **overrides) -> PipelineOrchestrator:
    risk, completeness, fact = stage_mocks(order if order is not None else [])
    kwargs = dict(
        post_store=PostStore(),
        job_log=JobLogStore(),
        adapters=adapters,
        risk_scoring=risk,
        completeness=completeness,
        fact_checking=fact,
    )
    kwargs.update(overrides)
    return PipelineOrchestrator(**kwargs)


# ── Tests ─────────────────────────────────────────────────────────────────


class TestStageOrdering:
    @pytest.mark.asyncio
    async def test_stages_run_in_order(self):
        order = []
        orchestrator = make_orchestrator({Platform.TWITTER: twitter_adapter()}, order)

        result = await orchestrator.run(make_config(Platform.TWITTER))

        assert order == ["risk_scoring", "completeness", "fact_checking"]
        assert [r.platform for r in result.agent_results] == ["twitter", "risk_scoring", "fact_checking"]
        assert result.completeness.still_incomplete == 1
        assert result.cancelled is False
        assert result.duration_seconds >= 0

    @pytest.mark.asyncio
    async def test_completeness_errors_not_in_run_errors(self):
        orchestrator = make_orchestrator({Platform.TWITTER: twitter_adapter()})
        result = await orchestrator.run(make_config(Platform.TWITTER))
        assert result.errors == []


class TestPlatformFetch:
    @pytest.mark.asyncio
    async def test_only_enabled_platforms_with_adapters(self):
        twitter = twitter_adapter()
        reddit = reddit_adapter()
        orchestrator = make_orchestrator({Platform.TWITTER: twitter, Platform.REDDIT: reddit})

        agents = orchestrator.build_agents(make_config(Platform.REDDIT, Platform.FACEBOOK))

        assert [a.platform for a in agents] == ["reddit"]

    @pytest.mark.asyncio
    async def test_platform_failure_isolated(self):
        orchestrator = make_orchestrator({
            Platform.TWITTER: twitter_adapter(error=SourceClientError("Invalid API key")),
            Platform.REDDIT: reddit_adapter([{"id": "r1", "title": "Acme", "subreddit": "news"}]),
        })

        result = await orchestrator.run(make_config(Platform.TWITTER, Platform.REDDIT))

        by_platform = {r.platform: r for r in result.agent_results}
        assert by_platform["twitter"].status == StageStatus.FAILED
        assert by_platform["reddit"].posts_stored == 1
        assert result.total_posts_fetched == 1
        assert result.total_posts_stored == 1
        assert result.errors == ["Twitter agent error: Invalid API key"]

    @pytest.mark.asyncio
    async def test_raising_agent_becomes_failed_result(self):
        class ExplodingAgent:
            platform = "twitter"

            async def execute(self, context=None):
                raise RuntimeError("unexpected")

        class Orchestrator(PipelineOrchestrator):
            def build_agents(self, configuration):
                return [ExplodingAgent()]

        risk, completeness, fact = stage_mocks([])
        orchestrator = Orchestrator(
            adapters={}, risk_scoring=risk, completeness=completeness, fact_checking=fact
        )

        result = await orchestrator.run(make_config(Platform.TWITTER))

        assert result.agent_results[0].platform == "twitter"
        assert result.agent_results[0].status == StageStatus.FAILED
        assert result.errors == ["Agent failed: unexpected"]

    @pytest.mark.asyncio
    async def test_disabled_platforms_produce_no_results(self):
        orchestrator = make_orchestrator({Platform.TWITTER: twitter_adapter()})
        result = await orchestrator.run(make_config())
        assert [r.platform for r in result.agent_results] == ["risk_scoring", "fact_checking"]


class TestStageIsolation:
    @pytest.mark.asyncio
    async def test_raising_stage_becomes_failed_result(self):
        order = []
        orchestrator = make_orchestrator({Platform.TWITTER: twitter_adapter()}, order)
        orchestrator.risk_scoring.score_backlog = AsyncMock(side_effect=RuntimeError("boom"))

        result = await orchestrator.run(make_config(Platform.TWITTER))

        risk = next(r for r in result.agent_results if r.platform == "risk_scoring")
        assert risk.status == StageStatus.FAILED
        assert "risk_scoring error: boom" in result.errors
        assert order == ["completeness", "fact_checking"]


class TestAudit:
    @pytest.mark.asyncio
    async def test_one_row_per_non_skipped_stage(self):
        job_log = JobLogStore()
        orchestrator = make_orchestrator(
            {Platform.TWITTER: twitter_adapter(), Platform.REDDIT: reddit_adapter()},
            job_log=job_log,
        )
        config = make_config(Platform.TWITTER)

        result = await orchestrator.run(config)

        rows = await job_log.latest_run(config.id)
        assert sorted(r.platform for r in rows) == ["fact_checking", "risk_scoring", "twitter"]
        assert all(r.run_id == result.run_id for r in rows)
        assert all(r.status == "completed" for r in rows)

    @pytest.mark.asyncio
    async def test_failed_stage_audited_as_failed(self):
        job_log = JobLogStore()
        orchestrator = make_orchestrator(
            {Platform.TWITTER: twitter_adapter(error=SourceClientError("Rate limit exceeded"))},
            job_log=job_log,
        )
        config = make_config(Platform.TWITTER)

        await orchestrator.run(config)

        rows = {r.platform: r for r in await job_log.latest_run(config.id)}
        assert rows["twitter"].status == "failed"
        assert rows["twitter"].error_message == "Twitter agent error: Rate limit exceeded"

    @pytest.mark.asyncio
    async def test_audit_failure_does_not_fail_run(self):
        job_log = AsyncMock()
        job_log.record = AsyncMock(side_effect=IOError("disk full"))
        orchestrator = make_orchestrator({Platform.TWITTER: twitter_adapter()}, job_log=job_log)

        result = await orchestrator.run(make_config(Platform.TWITTER))

        assert result.errors == []
        assert job_log.record.await_count == 3


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_during_risk_scoring_stops_later_stages(self):
        order = []
        context = RunContext()
        orchestrator = make_orchestrator({Platform.TWITTER: twitter_adapter()}, order)

        async def score_and_cancel(configuration, ctx=None):
            order.append("risk_scoring")
            context.cancel("operator stop")
            return AgentResult(platform="risk_scoring").finish()

        orchestrator.risk_scoring.score_backlog = AsyncMock(side_effect=score_and_cancel)
        config = make_config(Platform.TWITTER)

        result = await orchestrator.run(config, context)

        assert order == ["risk_scoring"]
        assert result.cancelled is True
        assert result.completeness is None
        rows = await orchestrator.job_log.latest_run(config.id)
        assert sorted(r.platform for r in rows) == ["risk_scoring", "twitter"]

    @pytest.mark.asyncio
    async def test_cancel_before_run(self):
        order = []
        context = RunContext()
        context.cancel()
        orchestrator = make_orchestrator({Platform.TWITTER: twitter_adapter()}, order)

        result = await orchestrator.run(make_config(Platform.TWITTER), context)

        assert order == []
        assert result.cancelled is True
        assert result.agent_results[0].status == StageStatus.SKIPPED


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_fetch_score_and_fact_check(self):
        post_store = PostStore()
        classifier = AsyncMock()
        classifier.classify = AsyncMock(return_value={
            "topics": ["safety"],
            "keywords": ["#acme"],
            "sentiment": "negative",
            "riskScore": 8.4,
            "crispSummary": "Rocket skates explode on users",
        })
        search = AsyncMock()
        search.search = AsyncMock(return_value=[
            EvidenceSource(title="Recall notice", url="https://n.example", snippet="Reports confirmed"),
        ])
        drafter = AsyncMock()
        drafter.draft = AsyncMock(return_value=ResponseDraft(response_text="We are investigating."))

        risk = RiskScoringStage(post_store, classifier=classifier, batch_size=2)
        orchestrator = PipelineOrchestrator(
            post_store=post_store,
            adapters={Platform.TWITTER: twitter_adapter([
                {"id_str": "1", "text": "Acme skates exploded"},
                {"id_str": "2", "text": "Acme skates caught fire"},
                {"text": "no id"},
            ])},
            risk_scoring=risk,
            completeness=CompletenessValidator(post_store, risk),
            fact_checking=FactCheckingStage(post_store, search, drafter, threshold=7.0),
        )
        config = make_config(Platform.TWITTER)

        result = await orchestrator.run(config)

        assert result.total_posts_fetched == 3
        assert result.total_posts_stored == 2
        assert len(result.errors) == 1
        assert result.completeness.is_complete
        fact = next(r for r in result.agent_results if r.platform == "fact_checking")
        assert fact.posts_stored == 2

        mentions = await post_store.get_backlog(config.id, 10)
        assert all(m.risk_score == 8.4 for m in mentions)
        assert all(m.fact_check_data["truth_status"] == "true" for m in mentions)


class TestSourceClientCleanup:
    @pytest.mark.asyncio
    async def test_context_manager_closes_every_client(self):
        twitter, reddit = twitter_adapter(), reddit_adapter()
        orchestrator = make_orchestrator({Platform.TWITTER: twitter, Platform.REDDIT: reddit})

        async with orchestrator:
            await orchestrator.run(make_config(Platform.TWITTER))

        twitter.client.aclose.assert_awaited_once()
        reddit.client.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_rapidapi_connection_pool_closed(self):
        http_client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"result": []}))
        )
        adapter = SourceAdapter(
            Platform.TWITTER, TwitterClient(api_key="k", http_client=http_client), normalize_tweet
        )
        orchestrator = make_orchestrator({Platform.TWITTER: adapter})

        await orchestrator.run(make_config(Platform.TWITTER))
        assert not http_client.is_closed
        await orchestrator.aclose()

        assert http_client.is_closed

    @pytest.mark.asyncio
    async def test_close_failure_does_not_stop_other_clients(self):
        twitter, reddit = twitter_adapter(), reddit_adapter()
        twitter.client.aclose = AsyncMock(side_effect=RuntimeError("already closed"))
        orchestrator = make_orchestrator({Platform.TWITTER: twitter, Platform.REDDIT: reddit})

        await orchestrator.aclose()

        reddit.client.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unused_default_adapters_are_not_built(self):
        orchestrator = PipelineOrchestrator(post_store=PostStore(), job_log=JobLogStore())

        await orchestrator.aclose()

        assert orchestrator._adapters is None


class TestConstruction:
    def test_zero_page_size_is_rejected(self):
        with pytest.raises(ValueError, match="page_size"):
            make_orchestrator({}, page_size=0)
