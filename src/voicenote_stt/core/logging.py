"""Centralized logging setup for voicenote-stt.

All modules share one queue-backed sink so that log records emitted from
executor threads (recognizer feeds, model extraction) never block the
event loop on file I/O. Library modules only call
``logging.getLogger(__name__)``; the CLI attaches the package logger to the
sink once, from configuration.
"""

import atexit
import logging
import sys
import threading
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path
from queue import SimpleQueue
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import ConfigLoader

PACKAGE_LOGGER = "voicenote_stt"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_LISTENER_LOCK = threading.Lock()
_LOG_QUEUE: SimpleQueue | None = None
_LOG_LISTENER: QueueListener | None = None


def _stop_listener() -> None:
    global _LOG_LISTENER
    if _LOG_LISTENER is not None:
        _LOG_LISTENER.stop()
        _LOG_LISTENER = None


def _file_handler(log_file: Path, max_bytes: int, backup_count: int) -> logging.Handler | None:
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        return RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count)
    except OSError as e:
        print(f"voicenote-stt: file logging disabled ({e})", file=sys.stderr)
        return None


def _ensure_listener(
    level: int,
    console: bool,
    log_file: Path | None,
    max_bytes: int,
    backup_count: int,
) -> QueueListener | None:
    global _LOG_QUEUE, _LOG_LISTENER
    with _LISTENER_LOCK:
        if _LOG_LISTENER is not None and _LOG_QUEUE is not None:
            return _LOG_LISTENER

        handlers: list[logging.Handler] = []
        if log_file is not None:
            file_handler = _file_handler(log_file, max_bytes, backup_count)
            if file_handler is not None:
                handlers.append(file_handler)
        if console:
            handlers.append(logging.StreamHandler(sys.stderr))
        if not handlers:
            return None

        formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        for handler in handlers:
            handler.setLevel(level)
            handler.setFormatter(formatter)

        _LOG_QUEUE = SimpleQueue()
        _LOG_LISTENER = QueueListener(_LOG_QUEUE, *handlers, respect_handler_level=True)
        _LOG_LISTENER.start()
        atexit.register(_stop_listener)
        return _LOG_LISTENER


def setup_logging(
    module_name: str,
    level: str = "INFO",
    console: bool = False,
    log_file: Path | None = None,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
) -> logging.Logger:
    """Attach ``module_name``'s logger to the shared queue sink.

    The first call decides the sink's handlers; later calls for a logger that
    already has handlers return it unchanged.

    Args:
        module_name: Logger name, usually the package name so that every
            ``logging.getLogger(__name__)`` below it inherits the handler
        level: DEBUG, INFO, WARNING or ERROR (unknown names fall back to INFO)
        console: Also log to stderr
        log_file: Rotating log file; None disables file logging
        max_bytes: Rotation size of the log file
        backup_count: Rotated files to keep

    """
    logger = logging.getLogger(module_name)
    if logger.handlers:
        return logger

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(numeric_level)
    logger.propagate = False

    listener = _ensure_listener(numeric_level, console, log_file, max_bytes, backup_count)
    if listener is None or _LOG_QUEUE is None:
        logger.addHandler(logging.NullHandler())
        return logger

    queue_handler = QueueHandler(_LOG_QUEUE)
    queue_handler.setLevel(numeric_level)
    logger.addHandler(queue_handler)
    return logger


def configure_logging(config: "ConfigLoader", debug: bool = False) -> logging.Logger:
    """Set up the package logger from the ``logging`` section of ``config``.

    ``debug`` forces DEBUG level and console output.
    """
    return setup_logging(
        PACKAGE_LOGGER,
        level="DEBUG" if debug else config.log_level,
        console=debug or config.console_logs,
        log_file=config.log_file,
        max_bytes=config.log_max_bytes,
        backup_count=config.log_backup_count,
    )


__all__ = ["PACKAGE_LOGGER", "configure_logging", "setup_logging"]
