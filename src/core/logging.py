"""Logfire setup for the API plus the structured logging helper used by services.

Modules log through `logging.getLogger(__name__)` with `extra={...}`;
Logfire picks those records up once configured.
"""

import logging

import logfire
from fastapi import FastAPI

from src.core.config import settings


logger = logging.getLogger(__name__)


def configure_logfire() -> None:
    """Configure Logfire. Records are shipped only when LOGFIRE_TOKEN is set."""
    logfire.configure(
        token=settings.logfire_token,
        service_name="tarefas",
        service_version="0.1.0",
        environment=settings.environment,
        send_to_logfire="if-token-present",
    )
    logger.info("Logfire configured", extra={"environment": settings.environment})


def instrument_fastapi(app: FastAPI) -> None:
    logfire.instrument_fastapi(app)


def span(name: str) -> logfire.LogfireSpan:
    """Span around one service operation, named `<service>.<operation>`."""
    return logfire.span(name)


def log_with_user_context(
    logger: logging.Logger,
    level: str,
    message: str,
    user_id: str | None = None,
    **extra: object,
) -> None:
    """Log `message` at `level` with the acting user and task fields as structured context.

    Usage:
        log_with_user_context(logger, "info", "Task deleted", user_id="1", task_id="42")
    """
    context = {"user_id": user_id, **extra} if user_id else extra
    getattr(logger, level.lower())(message, extra=context)
