"""
Structured logging for the configuration engine.

Log events are rendered as console lines in development and as JSON
elsewhere. A configuration session id, once bound, is attached to every
event emitted while a buyer's selection is being changed.
"""

import logging
import sys
import time
from contextlib import contextmanager, nullcontext
from typing import Any, ContextManager, Iterator, Optional
from uuid import uuid4

import structlog
from structlog.types import Processor

from configurator.core.config import get_settings

SESSION_ID_KEY = "session_id"

# Completed operations slower than this log a warning
SLOW_OPERATION_MS = 50


def build_processors(json_output: bool) -> list[Processor]:
    """
    Build the structlog processor chain.

    Args:
        json_output: Render events as JSON instead of console lines

    Returns:
        Ordered list of processors
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    return processors


def configure_logging() -> None:
    """
    Configure structlog and route standard library logging to stdout.

    Called once by the embedding application; the engine itself never
    configures logging.
    """
    settings = get_settings()

    structlog.configure(
        processors=build_processors(json_output=not settings.is_development),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level),
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger, typically for __name__."""
    return structlog.get_logger(name)


def new_session_id(session_id: Optional[str] = None) -> str:
    """
    Resolve the id of a configuration session.

    Args:
        session_id: Caller supplied id

    Returns:
        The given id, else the id already bound by the caller, else a new one
    """
    if session_id:
        return session_id
    bound = structlog.contextvars.get_contextvars().get(SESSION_ID_KEY)
    return bound or uuid4().hex


def session_context(session_id: Optional[str]) -> ContextManager[Any]:
    """
    Bind a session id to every log event inside the block.

    A missing id binds nothing.
    """
    if not session_id:
        return nullcontext()
    return structlog.contextvars.bound_contextvars(**{SESSION_ID_KEY: session_id})


@contextmanager
def log_performance(
    logger: structlog.stdlib.BoundLogger,
    operation: str,
    **context: Any,
) -> Iterator[dict[str, Any]]:
    """
    Time a block and log its duration.

    Yields a dict that receives duration_ms once the block finishes.
    Failures are logged and re-raised.

    Example:
        >>> with log_performance(logger, "validate_configuration", car_id="c1"):
        ...     verdict = service.validate_configuration("c1", ["hybrid-engine"])
    """
    timing: dict[str, Any] = {"duration_ms": None}
    started = time.perf_counter()
    try:
        yield timing
    except Exception as e:
        timing["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
        logger.error(
            "Operation failed",
            operation=operation,
            duration_ms=timing["duration_ms"],
            error_type=type(e).__name__,
            **context,
        )
        raise

    timing["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
    log = logger.warning if timing["duration_ms"] > SLOW_OPERATION_MS else logger.debug
    log(
        "Operation completed",
        operation=operation,
        duration_ms=timing["duration_ms"],
        **context,
    )
