"""Логирование (JSON через structlog, в stderr)."""

import logging
import sys

import structlog

from agentforge.settings import get_settings


def configure_logging(level_name: str | None = None) -> None:
    """Настраивает stdlib logging + structlog.

    Пишем в stderr: stdout занят потоковым выводом ответов модели.
    """
    level_name = level_name or get_settings().log_level
    level = getattr(logging, level_name.upper(), logging.WARNING)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level,
    )

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
