"""Structured logging for congestion analysis runs.

Each view computation runs inside ``run_context()``, which binds a short
``run_id`` (and any extra fields) into structlog's context variables for
the duration of the run only. ``configure_logging()`` selects JSON or
console rendering from ``LOG_`` settings.
"""

import logging
import sys
import uuid
from contextlib import contextmanager
from datetime import timedelta
from typing import Any, Iterator

import structlog
from structlog.typing import EventDict, WrappedLogger

from .config import get_settings


@contextmanager
def run_context(**fields: Any) -> Iterator[str]:
    """Bind a fresh run ID plus ``fields`` to every event logged inside the block.

    The bindings are removed when the block exits, so events logged after a
    run never carry its ID.
    """
    run_id = uuid.uuid4().hex[:8]
    with structlog.contextvars.bound_contextvars(run_id=run_id, **fields):
        yield run_id


def render_durations(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Processor that renders timedelta fields as seconds."""
    for key, value in event_dict.items():
        if isinstance(value, timedelta):
            event_dict[key] = value.total_seconds()
    return event_dict


def configure_logging() -> None:
    """Configure structlog from settings: JSON for machines, console for people."""
    settings = get_settings()
    level = logging.getLevelName(settings.logging.level)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        render_durations,
    ]

    if settings.logging.format == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[*shared_processors, structlog.processors.format_exc_info, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
