"""Pipeline orchestrator: sequence the stages for one configuration.

Stage order within a run, each stage fully settling before the next starts:
1. Platform fetch: one PlatformAgent per enabled platform, run concurrently;
   all agents settle and one platform's failure never cancels its siblings
2. Risk scoring of the configuration's recent backlog
3. Completeness reconciliation (auxiliary, never fails the run)
4. Fact-checking of newly eligible high-risk mentions
5. One job-log row per contributing stage

Every stage is isolated: a stage that raises is converted into a failed
AgentResult and the run continues. An operator stop (RunContext.cancel())
abandons in-flight external calls and ends the run at the next stage
boundary; audit rows collected so far are still written. aclose() (or
`async with orchestrator:`) releases the source clients' connection pools.
"""

import asyncio
import time
from typing import Dict, Optional

from repushield.agents.crawlers.filter_engine import FilterEngine
from repushield.agents.crawlers.platform_agent import PlatformAgent
from repushield.agents.crawlers.sources.base import SourceAdapter
from repushield.agents.crawlers.sources.registry import build_default_adapters
from repushield.agents.sifters.completeness_validator import CompletenessValidator
from repushield.agents.sifters.risk_scoring_agent import RISK_SCORING_LABEL, RiskScoringStage
from repushield.agents.sifters.verification.fact_checking_agent import (
    FACT_CHECKING_LABEL,
    FactCheckingStage,
)
from repushield.config.settings import settings
from repushield.data_management.job_log_store import JobLogStore
from repushield.data_management.post_store import PostStore
from repushield.data_management.schemas import (
    AgentResult,
    Configuration,
    FetchJobRecord,
    OrchestrationResult,
    Platform,
    StageStatus,
)
from repushield.orchestration.run_context import RunContext
from repushield.utils.logging import get_structured_logger


class PipelineOrchestrator:
    """
    Runs the full ingestion and analysis pipeline for a configuration.

    Collaborators are created lazily with defaults when not supplied, so
    tests can inject fakes for any subset of them.

    Attributes:
        post_store: Shared mention store
        job_log: Audit row store
        adapters: Source adapter per platform
        risk_scoring: Risk scoring stage
        completeness: Completeness validator
        fact_checking: Fact-checking stage
        page_size: Items requested per platform
        apply_filter: Whether platform agents drop items failing the ontology filter
    """

    def __init__(
        self,
        post_store: Optional[PostStore] = None,
        job_log: Optional[JobLogStore] = None,
        adapters: Optional[Dict[Platform, SourceAdapter]] = None,
        risk_scoring: Optional[RiskScoringStage] = None,
        completeness: Optional[CompletenessValidator] = None,
        fact_checking: Optional[FactCheckingStage] = None,
        page_size: Optional[int] = None,
        apply_filter: bool = False,
        filter_engine: Optional[FilterEngine] = None,
    ):
        self.post_store = post_store or PostStore()
        self.job_log = job_log or JobLogStore()
        self._adapters = adapters
        self._risk_scoring = risk_scoring
        self._completeness = completeness
        self._fact_checking = fact_checking
        self.page_size = page_size if page_size is not None else settings.fetch_page_size
        if self.page_size < 1:
            raise ValueError("page_size must be at least 1")
        self.apply_filter = apply_filter
        self.filter_engine = filter_engine or FilterEngine()

    @property
    def adapters(self) -> Dict[Platform, SourceAdapter]:
        if self._adapters is None:
            self._adapters = build_default_adapters(settings)
        return self._adapters

    @property
    def risk_scoring(self) -> RiskScoringStage:
        if self._risk_scoring is None:
            self._risk_scoring = RiskScoringStage(post_store=self.post_store)
        return self._risk_scoring

    @property
    def completeness(self) -> CompletenessValidator:
        if self._completeness is None:
            self._completeness = CompletenessValidator(self.post_store, self.risk_scoring)
        return self._completeness

    @property
    def fact_checking(self) -> FactCheckingStage:
        if self._fact_checking is None:
            self._fact_checking = FactCheckingStage(post_store=self.post_store)
        return self._fact_checking

    async def aclose(self) -> None:
        """Close the HTTP connection pools held by the source clients."""
        if self._adapters is None:
            return
        log = get_structured_logger("orchestrator")
        for platform, adapter in self._adapters.items():
            close = getattr(adapter.client, "aclose", None)
            if close is None:
                continue
            try:
                await close()
            except Exception as e:
                log.warning("source_client_close_failed", platform=platform.value, error=str(e))

    async def __aenter__(self) -> "PipelineOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    def build_agents(self, configuration: Configuration) -> list[PlatformAgent]:
        """One agent per enabled platform that has a registered adapter."""
        agents = []
        for platform in configuration.platform_config.platforms:
            adapter = self.adapters.get(platform)
            if adapter is None:
                continue
            agents.append(
                PlatformAgent(
                    adapter,
                    configuration,
                    self.post_store,
                    page_size=self.page_size,
                    apply_filter=self.apply_filter,
                    filter_engine=self.filter_engine,
                )
            )
        return agents

    async def run(
        self,
        configuration: Configuration,
        context: Optional[RunContext] = None,
    ) -> OrchestrationResult:
        """
        Execute one pipeline pass.

        Args:
            configuration: Configuration to process
            context: Run context; a fresh one is created if None

        Returns:
            OrchestrationResult reflecting partial success. Never raises for
            stage failures.
        """
        context = context or RunContext(configuration_id=configuration.id)
        result = OrchestrationResult(configuration_id=configuration.id, run_id=context.run_id)
        log = get_structured_logger(
            "orchestrator",
            run_id=context.run_id,
            configuration_id=configuration.id,
            trigger=context.trigger_source,
        )
        started = time.monotonic()
        log.info("run_started", entity=configuration.entity_name,
                 platforms=[p.value for p in configuration.platform_config.platforms])

        try:
            await self._fetch_platforms(configuration, context, result, log)

            if not self._stop_requested(context, result, log, next_stage=RISK_SCORING_LABEL):
                result.add_stage_result(
                    await self._run_stage(
                        RISK_SCORING_LABEL,
                        self.risk_scoring.score_backlog(configuration, context),
                        log,
                    )
                )

            if not self._stop_requested(context, result, log, next_stage="completeness"):
                result.completeness = await self.completeness.reconcile(configuration, context)

            if not self._stop_requested(context, result, log, next_stage=FACT_CHECKING_LABEL):
                result.add_stage_result(
                    await self._run_stage(
                        FACT_CHECKING_LABEL,
                        self.fact_checking.execute(configuration, context),
                        log,
                    )
                )

            # A cancel during the last stage still marks the run
            if context.cancelled:
                result.cancelled = True

        except Exception as e:
            log.error("run_failed", error=str(e))
            result.errors.append(f"Orchestration error: {e}")

        await self._write_audit(configuration.id, result, log)

        result.duration_seconds = time.monotonic() - started
        log.info(
            "run_complete",
            fetched=result.total_posts_fetched,
            stored=result.total_posts_stored,
            errors=len(result.errors),
            cancelled=result.cancelled,
            duration_seconds=round(result.duration_seconds, 2),
        )
        return result

    async def _fetch_platforms(self, configuration, context, result, log) -> None:
        agents = self.build_agents(configuration)
        if not agents:
            log.warning("no_platform_agents", platforms=[p.value for p in configuration.platform_config.platforms])
            return

        outcomes = await asyncio.gather(
            *(agent.execute(context) for agent in agents),
            return_exceptions=True,
        )
        for agent, outcome in zip(agents, outcomes):
            if isinstance(outcome, BaseException):
                log.error("platform_agent_failed", platform=agent.platform, error=str(outcome))
                outcome = AgentResult.failed(agent.platform, f"Agent failed: {outcome}")
            result.add_platform_result(outcome)

        log.info(
            "platform_fetch_complete",
            agents=len(agents),
            fetched=result.total_posts_fetched,
            stored=result.total_posts_stored,
        )

    async def _run_stage(self, label: str, stage, log) -> AgentResult:
        """Await a stage coroutine, converting an escaped exception into a failed result."""
        try:
            return await stage
        except Exception as e:
            log.error("stage_failed", stage=label, error=str(e))
            return AgentResult.failed(label, f"{label} error: {e}")

    def _stop_requested(self, context: RunContext, result: OrchestrationResult, log, next_stage: str) -> bool:
        if not context.cancelled:
            return False
        if not result.cancelled:
            log.warning("run_cancelled", next_stage=next_stage, reason=context.cancel_reason)
        result.cancelled = True
        return True

    async def _write_audit(self, configuration_id: str, result: OrchestrationResult, log) -> None:
        for stage_result in result.agent_results:
            if stage_result.status == StageStatus.SKIPPED:
                continue
            try:
                await self.job_log.record(
                    FetchJobRecord.from_result(configuration_id, stage_result, run_id=result.run_id)
                )
            except Exception as e:
                log.error("audit_write_failed", stage=stage_result.platform, error=str(e))
