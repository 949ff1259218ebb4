"""Structured JSON logging for the exception desk.

Every record carries the service name and deployment environment bound at
startup, plus whatever request-scoped fields callers add with
``structlog.contextvars.bind_contextvars``.
"""
from __future__ import annotations

import logging
from typing import Any

import structlog

SERVICE_NAME = "swiftship"


def configure_logging(level: str = "INFO", *, environment: str = "development") -> None:
    """Route structlog through stdlib logging and bind the service fields."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.bind_contextvars(service=SERVICE_NAME, environment=environment)


def get_logger(*, name: str | None = None, **kwargs: Any) -> structlog.stdlib.BoundLogger:
    logger = structlog.get_logger(name)
    if kwargs:
        return logger.bind(**kwargs)
    return logger
