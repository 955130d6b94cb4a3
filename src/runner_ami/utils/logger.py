# utils/logger.py
import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional

# Set by --verbose; wins over the level each logger asks for
_level_override: Optional[str] = None

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_log_dir(log_dir: Optional[str] = None) -> Path:
    """Directory for log files: explicit argument, then LOG_PATH, then ./logs."""
    return Path(log_dir or os.environ.get("LOG_PATH") or "logs")


def _file_handler(
    log_path: Path, rotate: bool, max_bytes: int, backup_count: int
) -> logging.Handler:
    if rotate:
        return logging.handlers.RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    return logging.FileHandler(log_path, encoding="utf-8")


def setup_logger(
    name: str,
    log_file: str = "",
    level: str = "INFO",
    log_dir: Optional[str] = None,
    enable_rotation: bool = True,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """Logger writing progress to stderr and everything to a rotating file.

    Console output goes to stderr so command results printed on stdout
    (secrets, tables, Packer commands) stay pipeable.
    """
    level = _level_override or level
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    console.setLevel(logging.DEBUG if level.upper() == "DEBUG" else logging.INFO)
    logger.addHandler(console)

    if log_file:
        logs_dir = get_log_dir(log_dir)
        log_path = logs_dir / log_file
        try:
            logs_dir.mkdir(parents=True, exist_ok=True)
            handler = _file_handler(log_path, enable_rotation, max_bytes, backup_count)
            handler.setFormatter(formatter)
            handler.setLevel(logging.DEBUG)
            logger.addHandler(handler)
        except OSError as e:
            logger.warning(
                f"Failed to create log file {log_path}: {e}. Logging to console only."
            )

    logger.propagate = False
    return logger


def set_log_level(level: Optional[str], prefix: str = "runner_ami") -> None:
    """Apply ``level`` to every existing and future logger under ``prefix``.

    ``None`` clears the override without touching existing loggers.
    """
    global _level_override
    _level_override = level.upper() if level else None
    if not level:
        return

    numeric = getattr(logging, level.upper())
    for name, logger in list(logging.Logger.manager.loggerDict.items()):
        if not name.startswith(prefix) or not isinstance(logger, logging.Logger):
            continue
        logger.setLevel(numeric)
        for handler in logger.handlers:
            # File handlers always record DEBUG
            if not isinstance(handler, logging.FileHandler):
                handler.setLevel(numeric)
