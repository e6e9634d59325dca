"""Per-run context threaded through every stage.

Carries the run's identity for logging and the cancellation signal an
operator uses to stop a run. Stages check the signal at their boundaries
(before each platform, batch or fact-check) and stop scheduling new work once
it is set. External calls already in flight go through run_cancellable(),
which abandons them as soon as the signal fires.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Literal, Optional, TypeVar

from repushield.errors import PipelineCancelledError
from repushield.utils.logging import get_correlation_id

TriggerSource = Literal["manual", "schedule", "cli"]

T = TypeVar("T")


@dataclass(eq=False)
class RunContext:
    """
    Identity and cancellation state of one pipeline run.

    Attributes:
        configuration_id: Configuration being processed
        run_id: Correlation id shared by every log line and audit row of the run
        trigger_source: What started the run
        started_at: When the context was created
    """

    configuration_id: str = ""
    run_id: str = field(default_factory=get_correlation_id)
    trigger_source: TriggerSource = "manual"
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    _cancel_event: asyncio.Event = field(default_factory=asyncio.Event, repr=False)
    _cancel_reason: Optional[str] = field(default=None, repr=False)

    def cancel(self, reason: str = "cancelled by operator") -> None:
        self._cancel_reason = reason
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    @property
    def cancel_reason(self) -> Optional[str]:
        return self._cancel_reason

    def raise_if_cancelled(self) -> None:
        """
        Raises:
            PipelineCancelledError: If cancel() has been called
        """
        if self.cancelled:
            raise PipelineCancelledError(f"Run {self.run_id} {self._cancel_reason}")

    async def wait_cancelled(self) -> None:
        await self._cancel_event.wait()


async def run_cancellable(awaitable: Awaitable[T], context: Optional[RunContext]) -> T:
    """
    Await an external call, abandoning it if the run is cancelled first.

    The call runs as its own task raced against the context's cancellation
    signal. When the signal wins, the call's task is cancelled and allowed to
    unwind before PipelineCancelledError is raised.

    Args:
        awaitable: Classifier, search or HTTP call to await
        context: Run context; None awaits the call directly

    Returns:
        The call's result

    Raises:
        PipelineCancelledError: If the context was cancelled before the call finished
    """
    if context is None:
        return await awaitable

    call: "asyncio.Future[Any]" = asyncio.ensure_future(awaitable)
    stop = asyncio.ensure_future(context.wait_cancelled())
    try:
        await asyncio.wait({call, stop}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        stop.cancel()
        if not call.done():
            call.cancel()

    if call.done() and not call.cancelled():
        return call.result()

    await asyncio.wait({call})
    context.raise_if_cancelled()
    raise PipelineCancelledError(f"Run {context.run_id} call cancelled")
