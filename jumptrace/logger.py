"""Append-only logging sink.

Wraps the ``jumptrace`` standard-library logger. ``log`` and ``error`` are
best effort: they never raise, even before ``initialize_logger`` is called.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from platformdirs import user_log_dir

APP_NAME = "jumptrace"
LOG_FILENAME = "jumptrace.log"
DEFAULT_LOG_PATH = Path(user_log_dir(APP_NAME, appauthor=False)) / LOG_FILENAME
LOG_MAX_BYTES = 1024 * 1024
LOG_BACKUP_COUNT = 3
LOG_FORMAT = "[%(asctime)s] %(levelname)s %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_logger = logging.getLogger(APP_NAME)
_logger.addHandler(logging.NullHandler())
_handler: logging.Handler | None = None
_log_path: Path | None = None


def get_logger() -> logging.Logger:
    """Return the package logger."""
    return _logger


def initialize_logger(log_path: Path | None = None, level: int = logging.INFO) -> Path | None:
    """Attach a rotating file handler once; later calls are no-ops.

    Returns the log file path, or ``None`` when the file cannot be opened (the
    sink then stays handler-less and silent).
    """
    global _handler, _log_path

    if _handler is not None:
        return _log_path

    target = log_path or DEFAULT_LOG_PATH
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            target,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
    except OSError:
        return None
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    _logger.addHandler(handler)
    _logger.setLevel(level)
    _handler = handler
    _log_path = target
    return target


def _format(message: object, params: tuple[object, ...]) -> str:
    text = message if isinstance(message, str) else repr(message)
    if params:
        text = " ".join([text, *(str(param) for param in params)])
    return text


def log(message: object, *params: object) -> None:
    """Append an informational line."""
    try:
        _logger.info(_format(message, params))
    except Exception:
        pass


def error(message: object, detail: object = None, *params: object) -> None:
    """Append an error line, with the traceback when ``detail`` is an exception."""
    try:
        text = _format(message, params)
        if isinstance(detail, BaseException):
            _logger.error(text, exc_info=(type(detail), detail, detail.__traceback__))
        elif detail is not None:
            _logger.error("%s\n%s", text, detail)
        else:
            _logger.error(text)
    except Exception:
        pass


def dispose_logger() -> None:
    """Detach and close the file handler installed by ``initialize_logger``."""
    global _handler, _log_path

    if _handler is None:
        return
    _logger.removeHandler(_handler)
    try:
        _handler.close()
    finally:
        _handler = None
        _log_path = None


__all__ = [
    "DEFAULT_LOG_PATH",
    "dispose_logger",
    "error",
    "get_logger",
    "initialize_logger",
    "log",
]
