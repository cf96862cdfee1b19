"""
Logging service for ImageMarkup.

Handlers are configured once at startup from the ``logging`` section of the
user config: a console handler always, plus a daily file under
~/.local/share/imagemarkup/logs/ unless file output is switched off.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

DEFAULT_LOG_DIR = Path.home() / ".local" / "share" / "imagemarkup" / "logs"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Handlers this module installed on the root logger
_installed_handlers: List[logging.Handler] = []


def resolve_log_level(level: Union[int, str, None]) -> int:
    """
    Turn a config value into a logging level.

    Accepts a numeric level or a name such as ``"debug"``. Anything else
    falls back to INFO.
    """
    if isinstance(level, int) and not isinstance(level, bool):
        return level
    if isinstance(level, str):
        resolved = logging.getLevelName(level.strip().upper())
        if isinstance(resolved, int):
            return resolved
    return logging.INFO


def log_file_path(log_dir: Path) -> Path:
    return log_dir / f"imagemarkup_{datetime.now().strftime('%Y%m%d')}.log"


def setup_logging(
    log_level: Union[int, str] = logging.INFO,
    log_to_file: bool = True,
    log_dir: Optional[Union[str, Path]] = None,
) -> None:
    """
    Configure the logging system for ImageMarkup.

    Args:
        log_level: A logging level or its name, as stored in the config.
        log_to_file: Whether to also log to a dated file.
        log_dir: Directory for log files. Defaults to ~/.local/share/imagemarkup/logs/

    Only the first call takes effect until reset_logging() is called.
    """
    if _installed_handlers:
        return

    level = resolve_log_level(log_level)
    directory = Path(log_dir).expanduser() if log_dir else DEFAULT_LOG_DIR
    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)
    _installed_handlers.append(console_handler)

    if log_to_file:
        try:
            directory.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file_path(directory), encoding="utf-8")
        except OSError as e:
            root_logger.warning(f"Could not create log file in {directory}: {e}. Logging to console only.")
        else:
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
            _installed_handlers.append(file_handler)

    logging.getLogger(__name__).debug(
        f"Logging configured at {logging.getLevelName(level)}"
        + (f", file output in {directory}" if len(_installed_handlers) > 1 else "")
    )


def reset_logging() -> None:
    """Remove the handlers setup_logging() installed so it can run again."""
    root_logger = logging.getLogger()
    while _installed_handlers:
        handler = _installed_handlers.pop()
        root_logger.removeHandler(handler)
        handler.close()


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Usage:
        from imagemarkup.services.logging_service import get_logger
        logger = get_logger(__name__)
        logger.info("Image loaded")
    """
    return logging.getLogger(name)
