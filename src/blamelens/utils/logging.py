"""Logging setup for hosts embedding the blame lens core.

Handlers are attached to the ``blamelens`` package logger only, so an editor
host keeps ownership of the root logger and its own handlers.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..services.settings import BlameLensSettings

__all__ = ["PACKAGE_LOGGER", "get_log_path", "resolve_level", "setup_logging"]

PACKAGE_LOGGER = "blamelens"
LOG_FILE_NAME = "blamelens.log"

_DEFAULT_LOG_DIR = Path.home() / ".blamelens" / "logs"
_NOISY_LOGGERS: tuple[str, ...] = ("asyncio", "tenacity")
_HANDLER_MARKER = "_blamelens_handler"
_LOG_PATH: Path | None = None


def resolve_level(level: int | str | None = None, settings: BlameLensSettings | None = None) -> int:
    """Pick the log level: explicit value, then ``BLAMELENS_LOG_LEVEL``, then settings."""

    if isinstance(level, int):
        return level
    name = level or os.environ.get("BLAMELENS_LOG_LEVEL")
    if name:
        resolved = logging.getLevelName(str(name).strip().upper())
        if isinstance(resolved, int):
            return resolved
    if settings is not None and settings.debug_logging:
        return logging.DEBUG
    return logging.INFO


def setup_logging(
    level: int | str | None = None,
    *,
    settings: BlameLensSettings | None = None,
    log_dir: Path | str | None = None,
    console: bool = False,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Attach a rotating file handler (and optionally a console one) to ``blamelens``.

    Repeated calls return the existing log path unless ``force`` is set, in
    which case previously installed handlers are closed and replaced.
    """

    global _LOG_PATH
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    installed = [handler for handler in package_logger.handlers if getattr(handler, _HANDLER_MARKER, False)]
    if installed and not force and _LOG_PATH is not None:
        return _LOG_PATH
    for handler in installed:
        package_logger.removeHandler(handler)
        handler.close()

    resolved_level = resolve_level(level, settings)
    target_dir = _resolve_log_dir(log_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    log_path = target_dir / LOG_FILE_NAME

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    ]
    if console:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setLevel(resolved_level)
        handler.setFormatter(formatter)
        setattr(handler, _HANDLER_MARKER, True)
        package_logger.addHandler(handler)
    package_logger.setLevel(resolved_level)
    _tune_external_loggers(resolved_level)

    _LOG_PATH = log_path
    return log_path


def get_log_path() -> Path | None:
    """Return the currently configured log file if available."""

    return _LOG_PATH


def _resolve_log_dir(log_dir: Path | str | None) -> Path:
    env_override = os.environ.get("BLAMELENS_LOG_DIR")
    return Path(log_dir or env_override or _DEFAULT_LOG_DIR).expanduser()


def _tune_external_loggers(package_level: int) -> None:
    quiet_level = max(logging.WARNING, package_level)
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(quiet_level)
