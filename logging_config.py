"""Logging setup shared by the arena server and client.

The server logs to the console (and optionally a file); the client keeps its
terminal for the game and only logs to a file when asked to.
setup_logging() is idempotent: handlers are looked up by name and
reconfigured, never stacked.

Usage:
    from logging_config import setup_logging
    setup_logging(enable_console=True, console_level="INFO")

Environment overrides:
    ARENA_LOG_LEVEL=DEBUG|INFO|WARNING|ERROR
    ARENA_LOG_FILE=path/to/file.log   (also turns the file handler on)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from logging.handlers import RotatingFileHandler
from pathlib import Path

FILE_HANDLER = "arena_file"
CONSOLE_HANDLER = "arena_console"

DEFAULT_LOG_PATH = Path("logs") / "arena.log"
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# chatty at INFO
_QUIET_LOGGERS = ("websockets", "asyncio")


def _to_level(level: str | int) -> int:
    """'debug' / 'INFO' / 10 -> logging level; unknown names fall back to INFO"""
    if isinstance(level, int):
        return level
    name = (level or "").strip().upper()
    return logging._nameToLevel.get(name, logging.INFO) if name else logging.INFO


def _log_path(log_file: str | None) -> Path:
    path = Path(log_file or DEFAULT_LOG_PATH)
    if not path.is_absolute():
        path = Path.cwd() / path
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def _install(
    root: logging.Logger,
    name: str,
    factory: Callable[[], logging.Handler],
    level: int,
    formatter: logging.Formatter,
) -> logging.Handler:
    """Reuse the handler called ``name`` on root, creating it on first call."""
    handler = next((h for h in root.handlers if h.name == name), None)
    if handler is None:
        handler = factory()
        handler.name = name
        root.addHandler(handler)
    handler.setFormatter(formatter)
    handler.setLevel(level)
    return handler


def setup_logging(
    *,
    level: str | int = "INFO",
    log_file: str | None = None,
    enable_file: bool = False,
    enable_console: bool = False,
    console_level: str | int = "WARNING",
    max_bytes: int = 2 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """Configure the root logger and return it.

    Args:
        level: file handler level (ARENA_LOG_LEVEL wins when set)
        log_file: file path, default logs/arena.log (ARENA_LOG_FILE wins when set)
        enable_file: attach the rotating file handler
        enable_console: attach a stderr handler at console_level
    """
    level = os.environ.get("ARENA_LOG_LEVEL") or level
    if os.environ.get("ARENA_LOG_FILE"):
        log_file = os.environ["ARENA_LOG_FILE"]
        enable_file = True

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)  # handlers do the filtering
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    path: Path | None = None
    if enable_file:
        path = _log_path(log_file)
        _install(
            root,
            FILE_HANDLER,
            lambda: RotatingFileHandler(
                str(path), maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
            ),
            _to_level(level),
            formatter,
        )

    if enable_console:
        _install(root, CONSOLE_HANDLER, logging.StreamHandler, _to_level(console_level), formatter)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging ready | level=%s file=%s console=%s",
        level,
        path or "off",
        enable_console,
    )
    return root
