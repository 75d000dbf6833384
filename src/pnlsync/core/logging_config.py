"""structlog setup shared by the API and the scripts."""

from __future__ import annotations

import logging

import structlog

from pnlsync.core.config import AppSettings


def configure_logging(settings: AppSettings | None = None) -> None:
    """Configure structlog once per process from application settings."""
    if settings is None:
        settings = AppSettings()

    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.log_json
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )
