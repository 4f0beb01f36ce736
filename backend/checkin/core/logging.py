"""
Structured logging configuration using structlog.

JSON in production, console output elsewhere (LOG_JSON forces either way).
Every record carries the app name and environment; request-scoped fields
(request_id, method, path) come from contextvars bound by the middleware.
Credentials never reach the output: values under sensitive keys are masked.
"""

import logging
import sys

import structlog
from structlog.types import EventDict, WrappedLogger

from checkin.core.config import get_settings

SENSITIVE_KEYS = frozenset({"password", "new_password", "hashed_password", "access_token", "token", "authorization"})
MASK = "***"


def mask_sensitive(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    for key in SENSITIVE_KEYS.intersection(event_dict):
        event_dict[key] = MASK
    return event_dict


def _app_context(app: str, environment: str):
    def add_app_context(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("app", app)
        event_dict.setdefault("env", environment)
        return event_dict

    return add_app_context


def setup_logging() -> None:
    settings = get_settings()
    use_json = settings.LOG_JSON if settings.LOG_JSON is not None else settings.ENVIRONMENT == "production"

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        mask_sensitive,
    ]

    if use_json:
        shared_processors.append(_app_context(settings.APP_NAME, settings.ENVIRONMENT))
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        # Records from uvicorn/sqlalchemy go through the same chain
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    # Lifespan may run more than once per process (tests, reloads)
    for existing in list(root_logger.handlers):
        if isinstance(existing.formatter, structlog.stdlib.ProcessorFormatter):
            root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    for noisy in ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "qrcode", "PIL"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
