"""Pipeline orchestration: run context, stage sequencing and scheduling.

- RunContext: run identity and cancellation signal
- PipelineOrchestrator (orchestrator module): one pipeline pass per configuration
- PipelineScheduler (scheduler module): periodic triggering via APScheduler
"""

from repushield.orchestration.run_context import RunContext

__all__ = ["RunContext"]
