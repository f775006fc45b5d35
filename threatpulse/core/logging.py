"""Structured logging for the API, the scheduler and local CLI runs.

Every pipeline run binds a ``run_id`` through ``structlog.contextvars`` so
all events of one run can be grouped downstream.
"""

import logging
import sys

import structlog

from threatpulse.core.config import get_settings

# Third-party loggers that are too chatty at INFO (httpx logs every request)
_NOISY_LOGGERS = ("httpx", "httpcore", "aiosqlite")

_configured = False


def _add_service(_, __, event_dict: dict) -> dict:
    event_dict.setdefault("service", "threatpulse")
    return event_dict


def _renderer(debug: bool) -> list[structlog.types.Processor]:
    if debug:
        return [structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]
    return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]


def configure_logging(force: bool = False) -> None:
    """Configure structlog once per process; ``force`` re-reads the settings."""
    global _configured
    if _configured and not force:
        return

    settings = get_settings()
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _add_service,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        *_renderer(settings.app_debug),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # stderr keeps stdout free for the CLI's rich tables
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=log_level)
    if log_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
    _configured = True


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    configure_logging()
    return structlog.get_logger(name)
