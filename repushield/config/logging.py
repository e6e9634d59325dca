"""Loguru setup for the ingestion side: platform agents, stores, sources, scheduler and CLI.

Every record carries two extras:
- component: the agent, store or source that emitted it ("twitter", "PostStore")
- run_id: the pipeline run it belongs to ("-" outside a run)

On a TTY with LOG_FORMAT=console both extras get their own column. Everywhere
else records are serialized as JSON lines, so one run can be followed across
platform agents by its run_id. The analysis stages log through structlog
(repushield.utils.logging) under the same run_id.
"""

import sys
from typing import Any, Optional

from loguru import logger

from repushield.config.settings import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> | <magenta>{extra[run_id]}</magenta> | "
    "<level>{message}</level>"
)
DEFAULT_EXTRA = {"component": "-", "run_id": "-"}


def configure_logging(
    level: Optional[str] = None,
    log_format: Optional[str] = None,
    sink: Any = None,
) -> None:
    """
    Replace loguru's handlers with the repushield sink.

    Args:
        level: Minimum level, defaults to settings.log_level
        log_format: "console" or "json", defaults to settings.log_format
        sink: Optional destination; console output to a custom sink is not colorized
    """
    logger.remove()
    logger.configure(extra=dict(DEFAULT_EXTRA))

    level = (level or settings.log_level).upper()
    use_console = (log_format or settings.log_format).lower() == "console"

    if use_console and (sink is not None or sys.stderr.isatty()):
        logger.add(
            sink or sys.stderr,
            format=CONSOLE_FORMAT,
            level=level,
            colorize=sink is None,
        )
    else:
        logger.add(
            sink or sys.stdout,
            format="{message}",
            level=level,
            serialize=True,
            diagnose=False,
        )


def get_logger(component: str, run_id: Optional[str] = None):
    """
    Logger bound to a component and, inside a pipeline run, to its run id.

    Example:
        >>> log = get_logger("scheduler", run_id=context.run_id)
        >>> log.info("Tick finished")
    """
    if run_id:
        return logger.bind(component=component, run_id=run_id)
    return logger.bind(component=component)


configure_logging()

__all__ = ["logger", "get_logger", "configure_logging"]
