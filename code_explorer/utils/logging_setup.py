"""
Logging configuration for the API server and the CLI.

The application logger ("code_explorer") gets its own handlers; third-party
loggers that are chatty at INFO (per-request access lines, connection pool
messages) are raised to WARNING.
"""

import logging
import sys
from pathlib import Path
from typing import Iterable, Optional, Union

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
NOISY_LOGGERS = ("uvicorn.access", "urllib3")


def resolve_level(level: Union[int, str]) -> int:
    """Turn "debug", "INFO", 20, ... into a logging level (INFO if unknown)."""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    name: Optional[str] = None,
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    console: bool = True,
    format_string: str = DEFAULT_FORMAT,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> logging.Logger:
    """
    Configure a logger, replacing any handlers it already has.

    Args:
        name: Logger name (root logger if None)
        level: Level as int or name, e.g. settings.log_level
        log_file: Also write to this file (parent directories are created)
        console: Write to stdout
        format_string: Log message format
        quiet: Loggers raised to WARNING

    Returns:
        The configured logger

    Example:
        >>> logger = setup_logging("code_explorer", level="DEBUG")
        >>> logger.info("Application started")
    """
    level = resolve_level(level)
    formatter = logging.Formatter(format_string)

    handlers: list[logging.Handler] = []
    if console:
        handlers.append(logging.StreamHandler(sys.stdout))
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers.clear()
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    for noisy in quiet:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return logger
