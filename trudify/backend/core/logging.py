"""
Structured Logging.

structlog on top of the stdlib root logger, configured once from
config/settings/logging.yaml. Every module logs through get_logger(__name__).

Records carry the timestamp, level, logger name, calling function and line,
plus whatever the request middleware bound (request_id, method, path,
locale). Telegram handlers and the CLI have no request context, so they tag
records with log_with_source instead.

Connection tokens, notification session tokens and Authorization headers end
up in log fields easily (deep links, failed lookups). They are masked before
rendering, including inside an ``extra`` dict.

Usage:
    logger = get_logger(__name__)
    logger.info("Task withdrawn", extra={"task_id": task_id, "timing_impact": "high"})
    log_with_source(logger, "telegram", "info", "Update received", chat_id=123)
"""

import logging
import sys
from collections.abc import MutableMapping
from logging.handlers import RotatingFileHandler
from typing import Any

import structlog
from structlog.typing import Processor

from trudify.backend.core.config import find_project_root, get_app_config
from trudify.backend.core.config_schema import LoggingSchema

VALID_SOURCES = frozenset({
    "web",
    "cli",
    "telegram",
    "api",
    "internal",
    "unknown",
})

REDACTED_FIELDS = frozenset({
    "token",
    "connection_token",
    "session_token",
    "authorization",
    "secret_token",
    "telegram_bot_token",
})
REDACTED = "***"

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiogram.event")


def redact_tokens(logger: Any, method_name: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    """structlog processor masking credential fields at the top level and in ``extra``."""
    for container in (event_dict, event_dict.get("extra")):
        if not isinstance(container, MutableMapping):
            continue
        for key in REDACTED_FIELDS.intersection(container):
            if container[key]:
                container[key] = REDACTED
    return event_dict


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ],
        ),
        redact_tokens,
    ]


def _formatter(renderer: Processor, pre_chain: list[Processor]) -> logging.Formatter:
    return structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=pre_chain)


def _file_handler(config: LoggingSchema, formatter: logging.Formatter) -> logging.Handler:
    file_config = config.handlers.file
    log_path = find_project_root() / file_config.path
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        filename=str(log_path),
        maxBytes=file_config.max_bytes,
        backupCount=file_config.backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    level: str | None = None,
    format_type: str | None = None,
    enable_console: bool | None = None,
    enable_file_logging: bool | None = None,
) -> None:
    """
    Configure structlog and the root logger.

    Arguments left as None take their value from logging.yaml. The file
    handler always writes JSON lines; the console follows format_type.
    Calling this again replaces the previous handlers.
    """
    config = get_app_config().logging
    level = level or config.level
    format_type = format_type or config.format
    if enable_console is None:
        enable_console = config.handlers.console.enabled
    if enable_file_logging is None:
        enable_file_logging = config.handlers.file.enabled

    processors = _shared_processors()
    structlog.configure(
        processors=processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    json_formatter = _formatter(structlog.processors.JSONRenderer(ensure_ascii=False), processors)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        if format_type == "console":
            console_handler.setFormatter(_formatter(structlog.dev.ConsoleRenderer(colors=True), processors))
        else:
            console_handler.setFormatter(json_formatter)
        root_logger.addHandler(console_handler)

    if enable_file_logging:
        root_logger.addHandler(_file_handler(config, json_formatter))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> Any:
    return structlog.get_logger(name)


def log_with_source(logger: Any, source: str, level: str, message: str, **kwargs: Any) -> None:
    """
    Log with an explicit ``source`` field, for code running outside an
    HTTP request (bot handlers, outbound Bot API calls, CLI commands).

    Sources outside VALID_SOURCES are recorded as "unknown". An invalid
    level raises AttributeError.
    """
    log_method = getattr(logger, level.lower())
    log_method(message, source=source if source in VALID_SOURCES else "unknown", **kwargs)
