"""Fact-checking stage for high-risk mentions.

Eligibility: risk_score >= threshold (7.0 by default) and no fact-check yet.
All eligible mentions are processed concurrently, optionally capped by
max_concurrency. Per mention:
1. Search the web for evidence (a failed search means empty evidence)
2. Derive a truth verdict with the keyword heuristic
3. Draft a publish-ready response (placeholder draft on failure)
4. Persist evidence, verdict and draft as the mention's fact_check_data

Usage:
    stage = FactCheckingStage(post_store=store)
    result = await stage.execute(configuration)
"""

import asyncio
from typing import Optional

from repushield.agents.sifters.base_sifter import BaseSifter
from repushield.agents.sifters.verification.search_executor import SearchExecutor
from repushield.agents.sifters.verification.truth_heuristic import determine_truth_status
from repushield.config.prompts.fact_check_prompts import build_fact_check_query
from repushield.config.settings import settings
from repushield.data_management.post_store import PostStore
from repushield.data_management.schemas import (
    AgentResult,
    Configuration,
    Evidence,
    FactCheckResult,
    Mention,
    ResponseDraft,
)
from repushield.errors import PipelineCancelledError
from repushield.llm.response_drafter import GeminiResponseDrafter, ResponseDrafter
from repushield.orchestration.run_context import RunContext, run_cancellable

FACT_CHECKING_LABEL = "fact_checking"


class FactCheckingStage(BaseSifter):
    """
    Evidence gathering and response drafting for risky mentions.

    Attributes:
        search_executor: Web search collaborator
        drafter: Response synthesis collaborator
        threshold: Minimum risk score for eligibility
        max_concurrency: Optional cap on parallel fact-checks (None = unlimited)
    """

    def __init__(
        self,
        post_store: Optional[PostStore] = None,
        search_executor: Optional[SearchExecutor] = None,
        drafter: Optional[ResponseDrafter] = None,
        threshold: Optional[float] = None,
        max_concurrency: Optional[int] = None,
    ):
        super().__init__(
            name=FACT_CHECKING_LABEL,
            description="Fact-checks high-risk mentions and drafts responses",
            post_store=post_store,
        )
        self.search_executor = search_executor or SearchExecutor()
        self.drafter = drafter or GeminiResponseDrafter()
        self.threshold = threshold if threshold is not None else settings.fact_check_threshold
        self.max_concurrency = (
            max_concurrency if max_concurrency is not None else settings.fact_check_concurrency
        )

    def get_capabilities(self) -> list[str]:
        return ["fact_checking", "evidence_search", "response_drafting"]

    async def execute(
        self,
        configuration: Configuration,
        context: Optional[RunContext] = None,
    ) -> AgentResult:
        result = AgentResult(platform=FACT_CHECKING_LABEL)
        try:
            mentions = await self.post_store.get_fact_check_eligible(configuration.id, self.threshold)
        except Exception as e:
            self._logger.error("eligible_fetch_failed", configuration_id=configuration.id, error=str(e))
            result.record_error(f"Fact-checking error: {e}")
            return result.finish()

        result.posts_fetched = len(mentions)
        if not mentions:
            self._logger.info(
                "no_high_risk_mentions",
                configuration_id=configuration.id,
                threshold=self.threshold,
            )
            return result.finish()

        self._logger.info(
            "fact_checking_started",
            configuration_id=configuration.id,
            mentions=len(mentions),
            max_concurrency=self.max_concurrency,
        )

        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None

        async def check_one(mention: Mention) -> FactCheckResult:
            if context:
                context.raise_if_cancelled()
            if semaphore is None:
                return await self.fact_check_mention(mention, configuration, context)
            async with semaphore:
                if context:
                    context.raise_if_cancelled()
                return await self.fact_check_mention(mention, configuration, context)

        outcomes = await asyncio.gather(
            *(check_one(m) for m in mentions),
            return_exceptions=True,
        )

        for mention, outcome in zip(mentions, outcomes):
            if isinstance(outcome, PipelineCancelledError):
                continue
            if isinstance(outcome, Exception):
                self.error_count += 1
                self._logger.warning("fact_check_failed", mention_id=mention.id, error=str(outcome))
                result.record_error(f"Error fact-checking post {mention.id}: {outcome}")
            else:
                self.processed_count += 1
                result.posts_stored += 1

        result.finish()
        self._logger.info(
            "fact_checking_complete",
            checked=result.posts_stored,
            errors=len(result.errors),
            status=result.status.value,
        )
        return result

    async def gather_evidence(
        self,
        mention: Mention,
        entity_name: str,
        context: Optional[RunContext] = None,
    ) -> Evidence:
        query = build_fact_check_query(mention.text, entity_name)
        try:
            sources = await run_cancellable(self.search_executor.search(query), context)
        except PipelineCancelledError:
            raise
        except Exception as e:
            self._logger.warning("evidence_search_failed", mention_id=mention.id, error=str(e))
            sources = []

        return Evidence(
            sources=sources,
            facts=[s.snippet for s in sources if s.snippet],
            verification=determine_truth_status(sources),
        )

    async def draft_response(
        self,
        mention: Mention,
        entity_name: str,
        evidence: Evidence,
        context: Optional[RunContext] = None,
    ) -> ResponseDraft:
        try:
            draft = await run_cancellable(
                self.drafter.draft(entity_name, mention.text, evidence), context
            )
        except PipelineCancelledError:
            raise
        except Exception as e:
            self._logger.warning("response_draft_failed", mention_id=mention.id, error=str(e))
            return ResponseDraft.fallback()

        if draft is None or not draft.response_text.strip():
            return ResponseDraft.fallback()
        return draft

    async def fact_check_mention(
        self,
        mention: Mention,
        configuration: Configuration,
        context: Optional[RunContext] = None,
    ) -> FactCheckResult:
        """
        Gather evidence, decide a verdict, draft a response and persist all three.

        A cancel while the search or draft call is in flight abandons the
        mention before anything is written.
        """
        entity_name = configuration.entity_name
        evidence = await self.gather_evidence(mention, entity_name, context)
        draft = await self.draft_response(mention, entity_name, evidence, context)

        fact_check = FactCheckResult(
            evidence=evidence,
            truth_status=evidence.verification,
            admin_response=draft,
        )
        await self.post_store.update_fact_check(mention.id, fact_check)

        self._logger.debug(
            "mention_fact_checked",
            mention_id=mention.id,
            truth_status=fact_check.truth_status.value,
            sources=len(evidence.sources),
        )
        return fact_check
