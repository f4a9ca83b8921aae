"""Logging setup driven by the ``logging`` section of the plugin config.

Version: 1.0.0

Inside a host server the plugin only touches its own ``videobridge_plugin``
logger: the host owns the root logger and its handlers. The command line is
a process of its own and also configures the root logger.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from videobridge_plugin.config import LoggingConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
PLUGIN_LOGGER_NAME = "videobridge_plugin"

_LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
# Spellings accepted from the host admin console
_SHORT_NAMES = {"WARN": "WARNING", "CRITIC": "CRITICAL", "FATAL": "CRITICAL"}

RESTART_MARKER = "\n--- videobridge plugin started {timestamp} ---\n"


def normalize_log_level(level_name: Optional[str]) -> str:
    """Map a user supplied level to a logging level name, INFO when unknown."""
    if not level_name:
        return "INFO"
    name = level_name.strip().upper()
    name = _SHORT_NAMES.get(name, name)
    return name if name in _LEVEL_NAMES else "INFO"


def start_log_file(log_path: Path, reset_on_start: bool) -> None:
    """Truncate ``log_path`` or mark the restart in it.

    Failures are logged; the file handler opens the file in append mode
    whatever happens here.
    """
    mode = "w" if reset_on_start else "a"
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with open(log_path, mode, encoding="utf-8") as f:
            if not reset_on_start:
                f.write(RESTART_MARKER.format(
                    timestamp=datetime.now().strftime("%Y-%m-%d %H:%M:%S")
                ))
    except OSError as exc:
        logging.getLogger(__name__).warning("Could not prepare log file %s: %s", log_path, exc)


def _find_file_handler(target: logging.Logger, log_path: Path) -> Optional[logging.FileHandler]:
    wanted = str(log_path.resolve())
    for handler in target.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == wanted:
            return handler
    return None


def configure_logging(
    config: LoggingConfig,
    process_wide: bool = False,
) -> Optional[logging.FileHandler]:
    """Apply ``config`` to the plugin logger.

    Args:
        config: Level, optional log file and reset policy.
        process_wide: Also set the root logger level and give it a console
            handler. Only for processes the plugin owns (the CLI).

    Returns:
        The file handler attached for ``config.path``, or None.
    """
    level_name = normalize_log_level(config.level)
    level = getattr(logging, level_name)

    plugin_logger = logging.getLogger(PLUGIN_LOGGER_NAME)
    plugin_logger.setLevel(level)
    if process_wide:
        logging.basicConfig(level=level, format=LOG_FORMAT)
        logging.getLogger().setLevel(level)

    if not config.path:
        return None

    log_path = Path(config.path)
    existing = _find_file_handler(plugin_logger, log_path)
    if existing is not None:
        existing.setLevel(level)
        return existing

    try:
        start_log_file(log_path, config.reset_on_start)
        handler = logging.FileHandler(log_path, encoding="utf-8")
    except OSError as exc:
        logging.getLogger(__name__).warning("Failed to attach file handler %s: %s", log_path, exc)
        return None

    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    plugin_logger.addHandler(handler)
    return handler


def detach_file_handler(handler: Optional[logging.FileHandler]) -> None:
    """Remove a handler returned by ``configure_logging`` and close its file."""
    if handler is None:
        return
    logging.getLogger(PLUGIN_LOGGER_NAME).removeHandler(handler)
    handler.close()
