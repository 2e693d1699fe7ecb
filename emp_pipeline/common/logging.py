"""
Centralized logging configuration for the reconciliation pipeline.
"""

import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Optional, Union


DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
    log_format: str = DEFAULT_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> None:
    """
    Configure root logging for a pipeline run.

    Args:
        level: Logging level, as an int or a name such as "DEBUG"
        log_file: Optional path to a log file (parent dirs are created)
        log_format: Log message format
        date_format: Date format in log messages
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    formatter = logging.Formatter(log_format, date_format)
    handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)


def create_run_log_file(base_dir: str = "logs", prefix: str = "reconcile") -> str:
    """Return a timestamped log file path for a pipeline run."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_dir = Path(base_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    return str(log_dir / f"{prefix}_run_{timestamp}.log")


def log_banner(logger: logging.Logger, title: str, width: int = 60) -> None:
    """Log a step header framed by rule lines."""
    logger.info("=" * width)
    logger.info(title)
    logger.info("=" * width)
