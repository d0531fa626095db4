"""Diagnostic logging for ghrunner.

ghrunner is silent by default: the package disables its loguru records at
import time. `ghrunner --log-level DEBUG` (or a caller passing a LogConfig
to setup_logging) turns them on, on stderr and optionally in a file. User
facing progress never goes through here; that is output.Reporter's job.

Records carry a `component` extra (github, aws, controller, http, events)
bound by each module.

Example:
    handler_ids = setup_logging(LogConfig(level="DEBUG", file="ghrunner.log"))
    try:
        ...
    finally:
        teardown_logging(handler_ids)
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Literal

from loguru import logger

from ghrunner.events import RunnerEvent

logger.disable("ghrunner")

type LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

LOG_LEVELS: tuple[LogLevel, ...] = ("DEBUG", "INFO", "WARNING", "ERROR")

_STDERR_FORMAT = (
    "<dim>{time:HH:mm:ss}</dim> <level>{level: <7}</level> "
    "<cyan>[{extra[component]}]</cyan> {message}"
)
_FILE_FORMAT = "{time:YYYY-MM-DDTHH:mm:ss.SSSZZ} {level: <7} [{extra[component]}] {message}"


@dataclass(frozen=True, slots=True)
class LogConfig:
    """Where ghrunner's diagnostics go.

    Args:
        level: Minimum level for the stderr sink.
        file: Optional log file; it always receives DEBUG and above.
        console: Write to stderr.
    """

    level: LogLevel = "INFO"
    file: str | None = None
    console: bool = True


def setup_logging(config: LogConfig) -> list[int]:
    """Enable ghrunner records and return the sink ids to remove later."""
    logger.enable("ghrunner")
    logger.configure(extra={"component": "ghrunner"})

    sinks: list[int] = []
    if config.console:
        sinks.append(logger.add(
            sys.stderr, level=config.level, format=_STDERR_FORMAT, filter="ghrunner"
        ))
    if config.file:
        sinks.append(logger.add(
            config.file, level="DEBUG", format=_FILE_FORMAT, filter="ghrunner", diagnose=False
        ))
    return sinks


def teardown_logging(handler_ids: list[int]) -> None:
    for handler_id in handler_ids:
        logger.remove(handler_id)
    logger.disable("ghrunner")


_event_log = logger.bind(component="events")


def log_events(event: RunnerEvent) -> None:
    """Event callback recording every controller event at DEBUG."""
    _event_log.debug("{name}: {event}", name=type(event).__name__, event=event)


__all__ = [
    "LOG_LEVELS",
    "LogConfig",
    "LogLevel",
    "log_events",
    "setup_logging",
    "teardown_logging",
]
