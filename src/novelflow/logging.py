"""novelflow.logging

Structured logger factory.

Call sites log with keyword context:

    logger = get_logger(__name__)
    logger.warning("Branch has no target", group_id=3)

`configure_logging()` is optional; hosts that already configure structlog
(or stdlib logging) can skip it.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Optional

import structlog

_CONFIGURED = False


def configure_logging(level: Optional[str] = None, *, json_format: bool = False) -> None:
    """Route structlog through stdlib logging at `level` (default: $NOVELFLOW_LOG_LEVEL or WARNING)."""
    global _CONFIGURED
    level_name = str(level or os.getenv("NOVELFLOW_LOG_LEVEL") or "WARNING").upper()
    numeric = getattr(logging, level_name, logging.WARNING)

    logging.basicConfig(format="%(message)s", level=numeric)

    renderer: Any = structlog.processors.JSONRenderer() if json_format else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    _CONFIGURED = True


def is_configured() -> bool:
    return _CONFIGURED


def get_logger(name: str) -> Any:
    return structlog.get_logger(name)
