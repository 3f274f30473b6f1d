"""Structured logging helpers for AutoFix components."""

from __future__ import annotations

import functools
import json
import logging
import os
import sys
import threading
import time
from collections.abc import Callable, Mapping
from contextlib import ContextDecorator
from logging import Handler, LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

_DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10MB
_DEFAULT_BACKUP_COUNT = 5
_LOGGER_NAME = "autofix"
_REDACTED = "***"
_LOCK = threading.RLock()
_CONFIGURED = False
_FILE_HANDLER: Optional[Handler] = None
_SECRETS: set[str] = set()

_LEVEL_COLORS = {
    "DEBUG": "\033[36m",  # cyan
    "INFO": "\033[32m",  # green
    "WARNING": "\033[33m",  # yellow
    "ERROR": "\033[31m",  # red
    "CRITICAL": "\033[41m",  # red background
}
_RESET_COLOR = "\033[0m"


def register_secret(value: Optional[str]) -> None:
    """Redact ``value`` from every record emitted under the AutoFix namespace."""

    if not value:
        return
    with _LOCK:
        _SECRETS.add(str(value))


def redact(text: str) -> str:
    """Return ``text`` with all registered secrets replaced."""

    if not text or not _SECRETS:
        return text
    # Longest first so that a secret containing another is fully masked.
    for secret in sorted(_SECRETS, key=len, reverse=True):
        text = text.replace(secret, _REDACTED)
    return text


class SecretRedactionFilter(logging.Filter):
    """Filter that rewrites records so registered secrets never reach a sink."""

    def filter(self, record: LogRecord) -> bool:
        if not _SECRETS:
            return True
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            message = str(record.msg)
        record.msg = redact(message)
        record.args = None
        if record.exc_info and not record.exc_text:
            record.exc_text = logging.Formatter().formatException(record.exc_info)
        if record.exc_text:
            record.exc_text = redact(record.exc_text)
        return True


class AutofixJsonFormatter(logging.Formatter):
    """JSON formatter with AutoFix metadata."""

    default_time_format = "%Y-%m-%dT%H:%M:%S"

    def format(self, record: LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.default_time_format),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info or record.exc_text:
            payload["exception"] = record.exc_text or self.formatException(
                record.exc_info
            )
        metadata = {}
        if hasattr(record, "metadata") and isinstance(record.metadata, Mapping):
            metadata.update(record.metadata)
        if metadata:
            payload["metadata"] = metadata
        return redact(json.dumps(payload, default=str, ensure_ascii=False))


class AutofixConsoleFormatter(logging.Formatter):
    """Console formatter for runner logs.

    Components are shown relative to the ``autofix`` namespace. Levels are
    coloured on a terminal and on GitHub Actions runners, which render ANSI.
    """

    def __init__(self, *args: Any, colour: Optional[bool] = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        if colour is None:
            colour = os.getenv("GITHUB_ACTIONS") == "true" or sys.stderr.isatty()
        self.colour = colour

    def format(self, record: LogRecord) -> str:  # noqa: D401 - inherited docs
        component = record.name
        if component.startswith(f"{_LOGGER_NAME}."):
            component = component[len(_LOGGER_NAME) + 1 :]
        record.__dict__["component"] = component
        base = super().format(record)
        colour = _LEVEL_COLORS.get(record.levelname) if self.colour else None
        return f"{colour}{base}{_RESET_COLOR}" if colour else base


def _coerce_level(value: Optional[str | int]) -> int:
    if isinstance(value, int):
        return value
    text = (value or "").strip()
    if text.isdigit():
        return int(text)
    mapped = logging.getLevelName(text.upper()) if text else None
    return mapped if isinstance(mapped, int) else logging.INFO


def configure_logging(
    level: Optional[str] = None,
    *,
    log_file: Optional[Path | str] = None,
    enable_json: bool = True,
) -> None:
    """Initialise AutoFix logging infrastructure.

    Console output is always attached. A rotating file sink is only added when
    ``log_file`` or ``AUTOFIX_LOG_FILE`` names one, which keeps stray log files
    out of the repository checkout the pipeline commits from.
    """

    global _CONFIGURED, _FILE_HANDLER

    with _LOCK:
        resolved_level = _coerce_level(level or os.getenv("AUTOFIX_LOG_LEVEL"))
        logger = logging.getLogger(_LOGGER_NAME)

        if not _CONFIGURED:
            logger.handlers.clear()
            logger.filters.clear()
            logger.setLevel(resolved_level)
            logger.propagate = False

            console_handler = logging.StreamHandler()
            console_handler.addFilter(SecretRedactionFilter())
            console_handler.setFormatter(
                AutofixConsoleFormatter(
                    fmt="%(asctime)s %(levelname)s %(component)s %(message)s",
                    datefmt="%H:%M:%S",
                )
            )
            logger.addHandler(console_handler)
            _CONFIGURED = True
        elif level is not None:
            logger.setLevel(resolved_level)

        target = log_file or os.getenv("AUTOFIX_LOG_FILE")
        if not target:
            return

        target_file = Path(target)
        target_file.parent.mkdir(parents=True, exist_ok=True)

        if _FILE_HANDLER and getattr(_FILE_HANDLER, "baseFilename", None) == str(
            target_file.resolve()
        ):
            return

        if _FILE_HANDLER is not None:
            logger.removeHandler(_FILE_HANDLER)
            try:
                _FILE_HANDLER.close()
            finally:
                _FILE_HANDLER = None

        rotation_handler = RotatingFileHandler(
            target_file,
            maxBytes=_DEFAULT_MAX_BYTES,
            backupCount=_DEFAULT_BACKUP_COUNT,
            encoding="utf-8",
        )
        rotation_handler.addFilter(SecretRedactionFilter())

        if enable_json:
            formatter: logging.Formatter = AutofixJsonFormatter()
        else:
            formatter = logging.Formatter(
                fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )

        rotation_handler.setFormatter(formatter)
        logger.addHandler(rotation_handler)
        _FILE_HANDLER = rotation_handler


def get_logger(name: str) -> logging.Logger:
    """Return a logger scoped under the AutoFix namespace."""

    configure_logging()
    qualified = name if name.startswith(f"{_LOGGER_NAME}.") else f"{_LOGGER_NAME}.{name}"
    return logging.getLogger(qualified)


class log_exceptions(ContextDecorator):
    """Context manager/decorator that logs uncaught exceptions."""

    def __init__(self, logger: logging.Logger, *, message: str = "Unhandled error") -> None:
        self.logger = logger
        self.message = message

    def __enter__(self) -> "log_exceptions":  # noqa: D401 - context protocol
        return self

    def __exit__(self, exc_type, exc_value, exc_traceback) -> bool:
        if exc_type is not None:
            self.logger.error(
                self.message,
                exc_info=(exc_type, exc_value, exc_traceback),
            )
        return False


def log_action(
    action: str,
    *,
    start_level: int = logging.INFO,
    success_level: int = logging.INFO,
    failure_level: int = logging.ERROR,
    logger_factory: Callable[[], logging.Logger] | None = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator that logs ``<action>:start``, ``:success`` and ``:error`` events.

    Every record carries ``metadata`` with the action name and event so the
    JSON sink can be filtered per pipeline step.
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        func_logger = logger_factory() if logger_factory else get_logger(func.__module__)

        def _emit(level: int, event: str, template: str, *args: Any, **metadata: Any) -> None:
            func_logger.log(
                level,
                template,
                action,
                *args,
                extra={"metadata": {"action": action, "event": event, **metadata}},
            )

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            _emit(start_level, "start", "%s:start")
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                _emit(failure_level, "error", "%s:error %s", exc.__class__.__name__)
                raise
            duration = time.perf_counter() - started
            _emit(success_level, "success", "%s:success (%.2fs)", duration, duration=duration)
            return result

        return wrapper

    return decorator


__all__ = [
    "AutofixConsoleFormatter",
    "AutofixJsonFormatter",
    "SecretRedactionFilter",
    "configure_logging",
    "get_logger",
    "log_action",
    "log_exceptions",
    "redact",
    "register_secret",
]
