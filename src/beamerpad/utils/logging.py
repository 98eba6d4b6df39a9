"""Logging helpers for the beamerpad application.

Two sinks are configured. ``beamerpad.log`` receives everything at the
application level and is what ``debug_logging`` toggles. ``actions.log``
receives one line per edit-action transition (started, succeeded, failed,
canceled, rejected) from the ``beamerpad.actions`` logger, always at INFO,
so a session's request history survives even when debug output is off.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

__all__ = [
    "ACTION_LOGGER_NAME",
    "get_action_log_path",
    "get_log_path",
    "log_action",
    "set_debug_logging",
    "setup_logging",
]

ACTION_LOGGER_NAME = "beamerpad.actions"

_DEFAULT_LOG_DIR = Path.home() / ".beamerpad" / "logs"
_NOISY_LOGGERS: tuple[str, ...] = ("asyncio", "qasync", "httpx", "httpcore", "openai")
_APP_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_ACTION_FORMAT = "%(asctime)s | %(action_id)s | %(kind)-8s | %(outcome)-9s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_MAX_BYTES = 1_000_000
_BACKUP_COUNT = 3

_LOG_PATH: Path | None = None
_ACTION_LOG_PATH: Path | None = None
_APP_HANDLERS: list[logging.Handler] = []
_ACTION_HANDLER: logging.Handler | None = None


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    force: bool = False,
) -> Path:
    """Install the application and action log handlers.

    Calling again without ``force`` only adjusts the level, which is how a
    settings-driven switch to DEBUG is applied after startup.
    """

    global _LOG_PATH, _ACTION_LOG_PATH, _ACTION_HANDLER
    if _LOG_PATH is not None and not force:
        set_debug_logging(level <= logging.DEBUG)
        return _LOG_PATH

    target_dir = _resolve_log_dir(log_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    log_path = target_dir / "beamerpad.log"
    action_log_path = target_dir / "actions.log"

    app_formatter = logging.Formatter(fmt=_APP_FORMAT, datefmt=_DATE_FORMAT)
    handlers: list[logging.Handler] = [_rotating_handler(log_path, app_formatter)]
    if console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(app_formatter)
        handlers.append(console_handler)
    for handler in handlers:
        handler.setLevel(level)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    _tune_external_loggers(level)

    action_logger = logging.getLogger(ACTION_LOGGER_NAME)
    if _ACTION_HANDLER is not None:
        action_logger.removeHandler(_ACTION_HANDLER)
        _ACTION_HANDLER.close()
    _ACTION_HANDLER = _rotating_handler(action_log_path, logging.Formatter(fmt=_ACTION_FORMAT, datefmt=_DATE_FORMAT))
    _ACTION_HANDLER.setLevel(logging.INFO)
    _ACTION_HANDLER.addFilter(_has_action_fields)
    action_logger.addHandler(_ACTION_HANDLER)
    action_logger.setLevel(logging.INFO)

    _APP_HANDLERS[:] = handlers
    _LOG_PATH = log_path
    _ACTION_LOG_PATH = action_log_path
    return log_path


def set_debug_logging(enabled: bool) -> int:
    """Switch the application handlers between INFO and DEBUG.

    The action log keeps its own INFO level either way. Returns the level now
    in effect.
    """

    level = logging.DEBUG if enabled else logging.INFO
    logging.getLogger().setLevel(level)
    for handler in _APP_HANDLERS:
        handler.setLevel(level)
    _tune_external_loggers(level)
    return level


def log_action(action_id: str, kind: str, outcome: str, message: str = "", *, level: int = logging.INFO) -> None:
    """Record one edit-action transition on the ``beamerpad.actions`` logger."""

    logging.getLogger(ACTION_LOGGER_NAME).log(
        level,
        message or outcome,
        extra={"action_id": action_id, "kind": kind, "outcome": outcome},
    )


def get_log_path() -> Path | None:
    """Return the currently configured application log file if available."""

    return _LOG_PATH


def get_action_log_path() -> Path | None:
    return _ACTION_LOG_PATH


def _rotating_handler(path: Path, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT, encoding="utf-8"
    )
    handler.setFormatter(formatter)
    return handler


def _has_action_fields(record: logging.LogRecord) -> bool:
    # Only records written through log_action carry the columns the action format needs.
    return hasattr(record, "action_id") and hasattr(record, "outcome")


def _resolve_log_dir(log_dir: Path | str | None) -> Path:
    env_override = os.environ.get("BEAMERPAD_LOG_DIR")
    return Path(log_dir or env_override or _DEFAULT_LOG_DIR).expanduser()


def _tune_external_loggers(root_level: int) -> None:
    # Third-party chatter stays at WARNING even when the app logs at DEBUG.
    quiet_level = logging.WARNING if root_level < logging.WARNING else root_level
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(quiet_level)
