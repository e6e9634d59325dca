"""Completeness reconciliation after risk scoring.

A mention is incomplete when it has no risk score or a null/empty topic list.
The validator makes exactly one best-effort retry pass over a bounded page of
incomplete mentions, then re-checks. Anything still incomplete is logged as a
warning and reported; reconcile() never raises and never fails the run.
"""

from typing import Optional

import structlog

from repushield.agents.sifters.risk_scoring_agent import RiskScoringStage
from repushield.config.settings import settings
from repushield.data_management.post_store import PostStore
from repushield.data_management.schemas import CompletenessReport, Configuration
from repushield.orchestration.run_context import RunContext


class CompletenessValidator:
    """
    Re-drive risk scoring for mentions missing derived fields.

    Attributes:
        post_store: Store scanned for incomplete mentions
        risk_scoring: Stage whose score_specific() performs the retry
        page_size: Maximum incomplete mentions handled per run
    """

    def __init__(
        self,
        post_store: PostStore,
        risk_scoring: RiskScoringStage,
        page_size: Optional[int] = None,
    ):
        self.post_store = post_store
        self.risk_scoring = risk_scoring
        self.page_size = page_size or settings.completeness_page_size
        self._logger = structlog.get_logger().bind(component="CompletenessValidator")

    async def reconcile(
        self,
        configuration: Configuration,
        context: Optional[RunContext] = None,
    ) -> CompletenessReport:
        report = CompletenessReport()
        try:
            incomplete = await self.post_store.get_incomplete(configuration.id, self.page_size)
            report.incomplete_before = len(incomplete)
            if not incomplete:
                self._logger.info("all_mentions_complete", configuration_id=configuration.id)
                return report

            ids = [m.id for m in incomplete]
            self._logger.info(
                "incomplete_mentions_found",
                configuration_id=configuration.id,
                count=len(ids),
                sample=ids[:10],
            )

            retry = await self.risk_scoring.score_specific(configuration, ids, context)
            report.retry_result = retry
            report.rescored = retry.posts_stored
            report.errors.extend(retry.errors)
            if retry.errors:
                self._logger.warning("rescoring_errors", errors=retry.errors[:5], count=len(retry.errors))

            remaining = await self.post_store.get_incomplete(configuration.id, self.page_size)
            report.still_incomplete = len(remaining)
            if remaining:
                self._logger.warning(
                    "mentions_still_incomplete",
                    configuration_id=configuration.id,
                    count=len(remaining),
                    msg="These may need manual review",
                )
            else:
                self._logger.info("all_mentions_complete_after_retry", rescored=report.rescored)

        except Exception as e:
            self._logger.error("completeness_check_failed", configuration_id=configuration.id, error=str(e))
            report.errors.append(f"Completeness check error: {e}")

        return report
