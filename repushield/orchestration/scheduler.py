"""Periodic triggering of the pipeline with APScheduler.

The scheduler owns only trigger state (running, paused, stopped). Each tick
runs the orchestrator for every active configuration, one after another.
max_instances=1 keeps ticks from overlapping; a tick that would overlap the
previous one is skipped by APScheduler.
"""

from typing import List, Optional, Set

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.schedulers.base import STATE_PAUSED, STATE_RUNNING, STATE_STOPPED

from repushield.config.logging import get_logger
from repushield.config.settings import settings
from repushield.data_management.configuration_store import ConfigurationStore
from repushield.data_management.schemas import OrchestrationResult
from repushield.errors import ConfigurationNotFoundError
from repushield.orchestration.orchestrator import PipelineOrchestrator
from repushield.orchestration.run_context import RunContext, TriggerSource

JOB_ID = "pipeline_fetch"


class PipelineScheduler:
    """
    Interval scheduler for pipeline runs.

    Attributes:
        orchestrator: Orchestrator executing each run
        configuration_store: Source of active configurations
        interval_minutes: Minutes between ticks
    """

    def __init__(
        self,
        orchestrator: PipelineOrchestrator,
        configuration_store: ConfigurationStore,
        interval_minutes: Optional[int] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.orchestrator = orchestrator
        self.configuration_store = configuration_store
        self.interval_minutes = interval_minutes or settings.schedule_interval_minutes
        self._scheduler = scheduler or AsyncIOScheduler(timezone="UTC")
        self._active_runs: Set[RunContext] = set()
        self.logger = get_logger("scheduler")

    @property
    def state(self) -> str:
        return {
            STATE_RUNNING: "running",
            STATE_PAUSED: "paused",
            STATE_STOPPED: "stopped",
        }.get(self._scheduler.state, "stopped")

    @property
    def is_running(self) -> bool:
        return self._scheduler.state == STATE_RUNNING

    def start(self) -> None:
        """Start ticking. Must be called with an asyncio event loop running."""
        if self._scheduler.state != STATE_STOPPED:
            self.logger.debug(f"Start ignored, scheduler is {self.state}")
            return
        self._scheduler.add_job(
            self.run_active_configurations,
            "interval",
            minutes=self.interval_minutes,
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        self.logger.info(f"Started. Fetching every {self.interval_minutes} minutes.")

    def pause(self) -> None:
        if self._scheduler.state == STATE_RUNNING:
            self._scheduler.pause()
            self.logger.info("Paused")

    def resume(self) -> None:
        if self._scheduler.state == STATE_PAUSED:
            self._scheduler.resume()
            self.logger.info("Resumed")

    def stop(self) -> None:
        """Stop ticking and cancel any in-flight run."""
        for context in list(self._active_runs):
            context.cancel("stopped by scheduler shutdown")
        if self._scheduler.state != STATE_STOPPED:
            self._scheduler.shutdown(wait=False)
            self.logger.info("Stopped")

    async def shutdown(self) -> None:
        """Stop the scheduler and release the orchestrator's source clients."""
        self.stop()
        await self.orchestrator.aclose()

    async def _run(self, configuration, trigger: TriggerSource) -> OrchestrationResult:
        context = RunContext(configuration_id=configuration.id, trigger_source=trigger)
        self._active_runs.add(context)
        try:
            return await self.orchestrator.run(configuration, context)
        finally:
            self._active_runs.discard(context)

    async def run_active_configurations(self) -> List[OrchestrationResult]:
        """Run the pipeline for every active configuration; failures are logged per configuration."""
        configurations = await self.configuration_store.get_active()
        if not configurations:
            self.logger.info("No active configurations found")
            return []

        self.logger.info(f"Found {len(configurations)} active configuration(s)")
        results = []
        for configuration in configurations:
            try:
                result = await self._run(configuration, "schedule")
            except Exception as e:
                self.logger.error(f"Error processing configuration {configuration.id}: {e}")
                continue

            results.append(result)
            run_logger = get_logger("scheduler", run_id=result.run_id)
            run_logger.info(
                f"Completed for {configuration.id}",
                fetched=result.total_posts_fetched,
                stored=result.total_posts_stored,
                errors=len(result.errors),
            )
            if result.errors:
                run_logger.warning(f"Errors for {configuration.id}: {result.errors[:5]}")
        return results

    async def trigger_manual(self, configuration_id: str) -> OrchestrationResult:
        """
        Run the pipeline for one configuration now, activating it if needed.

        Raises:
            ConfigurationNotFoundError: If the id is unknown
        """
        configuration = await self.configuration_store.get(configuration_id)
        if configuration is None:
            raise ConfigurationNotFoundError(configuration_id)

        if not configuration.is_active:
            self.logger.warning(f"Configuration {configuration_id} is not active. Activating it...")
            configuration = await self.configuration_store.activate(configuration_id)

        self.logger.info(
            f"Manual fetch triggered for {configuration_id}",
            entity=configuration.entity_name,
            platforms=[p.value for p in configuration.platform_config.platforms],
        )
        result = await self._run(configuration, "manual")
        get_logger("scheduler", run_id=result.run_id).info(
            f"Manual fetch completed for {configuration_id}",
            fetched=result.total_posts_fetched,
            stored=result.total_posts_stored,
            errors=len(result.errors),
            duration_seconds=round(result.duration_seconds, 2),
        )
        return result
