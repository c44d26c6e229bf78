"""
Structured logging for Guardrail.

Every module logs through `structlog.get_logger()`. The CLI calls
configure_logging once, which routes events through the standard library
to stderr as JSON lines, so stdout stays free for manifests and reports.

While a scope compiles, the engine enters scope_context; every event logged
inside it, from any module, carries the scope id and tier.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog


def configure_logging(level: int | str = logging.INFO) -> None:
    """Configure structlog over stdlib logging, writing JSON lines to stderr."""

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=level, format="%(message)s", stream=sys.stderr)


@contextmanager
def scope_context(scope_id: str, tier: str) -> Iterator[None]:
    """Attach scope_id and tier to every event logged in this context."""
    with structlog.contextvars.bound_contextvars(scope_id=scope_id, tier=tier):
        yield


def bind_context(**kwargs: Any) -> structlog.stdlib.BoundLogger:
    """Bind contextual fields for downstream logs."""

    logger = structlog.get_logger()
    return logger.bind(**kwargs)
