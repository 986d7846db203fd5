"""
Structured logging for the dispatch engine.

Every delivery attempt is logged as one structlog event keyed by channel
identity. Console output is JSON or plain text; when ``logging.file`` is
configured the same events are also appended to a rotating JSONL file.
"""

from __future__ import annotations

import logging
import socket
import sys
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from alert_dispatch.config import get_config

if TYPE_CHECKING:
    from structlog.types import Processor

SERVICE_NAME = "alert-dispatch"
DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_FILE = "alert-dispatch.jsonl"
ROTATE_BYTES = 10 * 1024 * 1024
ROTATE_BACKUPS = 5

# Settings keys that carry credentials across the channel types.
REDACTED_KEYS = frozenset(
    {"token", "secret", "api_secret", "apikey", "api_key", "password", "bottoken"}
)


def _add_service_info(
    _logger: logging.Logger, _method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("host", socket.gethostname())
    return event_dict


def _redact_secrets(
    _logger: logging.Logger, _method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mask values logged under credential-like keys."""
    for key in list(event_dict):
        if key.lower() in REDACTED_KEYS:
            event_dict[key] = "[REDACTED]"
    return event_dict


def _format_exception(
    _logger: logging.Logger, _method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Replace an ``exception=`` value with its type and message."""
    exc = event_dict.pop("exception", None)
    if exc:
        event_dict["exception"] = {"type": type(exc).__name__, "message": str(exc)}
    return event_dict


_PRE_CHAIN: list[Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    _add_service_info,
    _redact_secrets,
    _format_exception,
]


def _handler(handler: logging.Handler, renderer: Processor, level: int) -> logging.Handler:
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_PRE_CHAIN,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    handler.setLevel(level)
    return handler


def setup_logging(
    level: str | None = None,
    format: str | None = None,
    log_file: str | None = None,
    log_dir: str | None = None,
    enable_console: bool = True,
    enable_file: bool | None = None,
) -> None:
    """
    Configure structlog and the root logger.

    Arguments left as None fall back to the ``logging`` section of the
    global config. File output is on when ``enable_file`` is true or, if it
    is None, when ``logging.file`` is set.
    """
    settings = get_config().logging
    log_level = getattr(logging, (level or settings.level).upper(), logging.INFO)
    log_file = log_file or settings.file
    if enable_file is None:
        enable_file = bool(log_file)

    structlog.configure(
        processors=[*_PRE_CHAIN, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = []
    if enable_console:
        if (format or settings.format).lower() == "json":
            renderer: Processor = structlog.processors.JSONRenderer()
        else:
            renderer = structlog.dev.ConsoleRenderer(colors=False)
        handlers.append(_handler(logging.StreamHandler(sys.stdout), renderer, log_level))

    if enable_file:
        path = get_log_file_path(log_dir, log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        rotating = RotatingFileHandler(
            path, maxBytes=ROTATE_BYTES, backupCount=ROTATE_BACKUPS, encoding="utf-8"
        )
        handlers.append(_handler(rotating, structlog.processors.JSONRenderer(), log_level))

    root = logging.getLogger()
    root.handlers = handlers
    root.setLevel(log_level)


def get_logger(name: str | None = None) -> Any:
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind values to every later event on this thread or task."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


@contextmanager
def with_context(**kwargs: Any) -> Iterator[None]:
    """
    Bind values for the duration of a block.

    Example:
        with with_context(receiver=receiver.name, group_key=ctx.group_key):
            receiver.dispatch(ctx, alerts)
    """
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield


def get_log_file_path(log_dir: str | None = None, log_file: str | None = None) -> Path:
    """Resolve the JSONL path; an absolute ``log_file`` ignores ``log_dir``."""
    return Path(log_dir or DEFAULT_LOG_DIR) / (log_file or DEFAULT_LOG_FILE)
