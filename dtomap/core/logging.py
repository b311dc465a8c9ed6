"""
Structured logging configuration for dtomap.

Events carry the emitting module and, when one is set, the caller's
correlation ID. Console output is rendered with rich; ``rich_output=False``
switches to one JSON object per line.
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Optional

import structlog
from rich.console import Console
from rich.logging import RichHandler

# Per-caller, like the conversion context
_correlation_id: ContextVar[Optional[str]] = ContextVar("dtomap_correlation_id", default=None)


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Set the correlation ID for the current caller, generating one if omitted."""
    value = correlation_id or str(uuid.uuid4())[:8]
    _correlation_id.set(value)
    return value


def get_correlation_id() -> Optional[str]:
    return _correlation_id.get()


def clear_correlation_id() -> None:
    _correlation_id.set(None)


def add_correlation_id(logger, method_name, event_dict):
    """Processor adding the caller's correlation ID to each event."""
    correlation_id = _correlation_id.get()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def setup_logging(debug: bool = False, rich_output: bool = True) -> None:
    """
    Configure structured logging for dtomap.

    Args:
        debug: Emit debug events (rule misses, cache fills, batch summaries)
        rich_output: Render for a terminal instead of as JSON lines
    """
    level = logging.DEBUG if debug else logging.INFO

    processors = [
        structlog.contextvars.merge_contextvars,
        add_correlation_id,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.dev.set_exc_info,
    ]

    if rich_output:
        console = Console(stderr=True, force_terminal=True)
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True, exception_formatter=structlog.dev.rich_traceback
            )
        )
        logging.basicConfig(
            level=level,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(console=console, show_path=False)],
        )
    else:
        processors.append(structlog.processors.JSONRenderer())
        logging.basicConfig(level=level, format="%(message)s", stream=sys.stdout)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.WriteLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Logger for module ``name``.

    Safe to call at import time: the logger resolves the configuration
    installed by ``setup_logging`` on first use, and every event it emits
    carries ``logger=name``.
    """
    return structlog.get_logger(name, logger=name)
