"""Risk scoring stage: classify stored mentions and write derived fields.

Work is processed in fixed-size batches. Items within a batch run
concurrently; batches run one after another, which bounds the number of
in-flight classifier calls to batch_size. One item failing never fails its
batch-mates.

Per item:
1. classify(text, entity_name) via the classifier collaborator
2. Sanitize: clamp risk into [1, 10] at one decimal, cap topics/keywords at
   three, default sentiment to neutral, cut the summary to five words
3. Write all five derived fields in one update keyed by mention id
4. Hand the id to the grouping collaborator (failures are logged only)
"""

import asyncio
from typing import Optional

from repushield.agents.sifters.base_sifter import BaseSifter
from repushield.agents.sifters.grouping import GroupingService, NullGroupingService
from repushield.config.settings import settings
from repushield.data_management.post_store import PostStore
from repushield.data_management.schemas import (
    AgentResult,
    Configuration,
    Mention,
    RiskScoreResult,
)
from repushield.errors import PipelineCancelledError
from repushield.llm.classifier import GeminiRiskClassifier, RiskClassifier
from repushield.orchestration.run_context import RunContext, run_cancellable

RISK_SCORING_LABEL = "risk_scoring"
RISK_SCORING_RETRY_LABEL = "risk_scoring_retry"


class RiskScoringStage(BaseSifter):
    """
    Batched, concurrency-limited risk classification.

    Attributes:
        classifier: Classification collaborator
        grouping: Best-effort grouping collaborator
        batch_size: Maximum concurrent classifier calls
        backlog_limit: Most recent mentions considered by score_backlog
    """

    def __init__(
        self,
        post_store: Optional[PostStore] = None,
        classifier: Optional[RiskClassifier] = None,
        grouping: Optional[GroupingService] = None,
        batch_size: Optional[int] = None,
        backlog_limit: Optional[int] = None,
    ):
        super().__init__(
            name=RISK_SCORING_LABEL,
            description="Scores mentions for reputational risk",
            post_store=post_store,
        )
        self.classifier = classifier or GeminiRiskClassifier()
        self.grouping = grouping or NullGroupingService()
        self.batch_size = batch_size if batch_size is not None else settings.risk_batch_size
        self.backlog_limit = backlog_limit if backlog_limit is not None else settings.backlog_limit

        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")

    def get_capabilities(self) -> list[str]:
        return ["risk_scoring", "sentiment_analysis", "topic_extraction"]

    async def score_backlog(
        self,
        configuration: Configuration,
        context: Optional[RunContext] = None,
    ) -> AgentResult:
        """Score the configuration's most recent mentions."""
        result = AgentResult(platform=RISK_SCORING_LABEL)
        try:
            mentions = await self.post_store.get_backlog(configuration.id, self.backlog_limit)
        except Exception as e:
            self._logger.error("backlog_fetch_failed", configuration_id=configuration.id, error=str(e))
            result.record_error(f"Risk scoring error: {e}")
            return result.finish()

        return await self._score(configuration, mentions, result, context)

    async def score_specific(
        self,
        configuration: Configuration,
        mention_ids: list[str],
        context: Optional[RunContext] = None,
    ) -> AgentResult:
        """Score exactly the given mentions (used by the completeness retry)."""
        result = AgentResult(platform=RISK_SCORING_RETRY_LABEL)
        if not mention_ids:
            return result.finish()

        try:
            mentions = await self.post_store.get_by_ids(configuration.id, mention_ids)
        except Exception as e:
            self._logger.error("rescore_fetch_failed", configuration_id=configuration.id, error=str(e))
            result.record_error(f"Re-scoring error: {e}")
            return result.finish()

        return await self._score(configuration, mentions, result, context)

    async def _score(
        self,
        configuration: Configuration,
        mentions: list[Mention],
        result: AgentResult,
        context: Optional[RunContext],
    ) -> AgentResult:
        result.posts_fetched = len(mentions)
        if not mentions:
            self._logger.info("no_mentions_to_score", configuration_id=configuration.id)
            return result.finish()

        self._logger.info(
            "scoring_started",
            stage=result.platform,
            configuration_id=configuration.id,
            mentions=len(mentions),
            batch_size=self.batch_size,
        )

        for start in range(0, len(mentions), self.batch_size):
            if context and context.cancelled:
                self._logger.info("scoring_cancelled", remaining=len(mentions) - start)
                break

            batch = mentions[start:start + self.batch_size]
            outcomes = await asyncio.gather(
                *(self.score_mention(m, configuration, context) for m in batch),
                return_exceptions=True,
            )
            for mention, outcome in zip(batch, outcomes):
                if isinstance(outcome, PipelineCancelledError):
                    self._logger.info("scoring_abandoned", mention_id=mention.id)
                elif isinstance(outcome, Exception):
                    self.error_count += 1
                    self._logger.warning("scoring_failed", mention_id=mention.id, error=str(outcome))
                    result.record_error(f"Error scoring post {mention.id}: {outcome}")
                else:
                    self.processed_count += 1
                    result.posts_stored += 1

        result.finish()
        self._logger.info(
            "scoring_complete",
            stage=result.platform,
            scored=result.posts_stored,
            errors=len(result.errors),
            status=result.status.value,
        )
        return result

    async def score_mention(
        self,
        mention: Mention,
        configuration: Configuration,
        context: Optional[RunContext] = None,
    ) -> RiskScoreResult:
        """
        Classify one mention and persist its derived fields.

        Raises:
            PipelineCancelledError: If the run is cancelled while the classifier call is in flight
        """
        raw = await run_cancellable(
            self.classifier.classify(mention.text, configuration.entity_name), context
        )
        analysis = RiskScoreResult.sanitize(raw if isinstance(raw, dict) else {})
        await self.post_store.update_analysis(mention.id, analysis)

        self._logger.debug(
            "mention_scored",
            mention_id=mention.id,
            risk_score=analysis.risk_score,
            sentiment=analysis.sentiment,
            summary=analysis.summary,
        )

        try:
            await self.grouping.assign(mention.id, configuration.id)
        except Exception as e:
            self._logger.warning("grouping_failed", mention_id=mention.id, error=str(e))

        return analysis
