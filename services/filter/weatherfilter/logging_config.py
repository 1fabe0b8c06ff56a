"""
Run logging

Every run writes timestamped messages to the console and to a dated log
file, ``<YYYY-MM-DD>_<run name>.log``.
"""
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Optional, Union

from .exceptions import LogInitError

LOG_FORMAT = "[%(asctime)s Filter]: %(message)s"

PACKAGE_LOGGER = "weatherfilter"


class RunLogFormatter(logging.Formatter):
    """Timestamps as ISO 8601 with seconds and a +HH:MM offset"""

    def formatTime(self, record, datefmt=None):
        stamp = datetime.fromtimestamp(record.created).astimezone()
        return stamp.isoformat(timespec="seconds")


def log_file_path(log_dir: Path, run_name: str, day: Optional[date] = None) -> Path:
    """Build the dated log file path for a run"""
    day = day or date.today()
    return Path(log_dir) / f"{day.isoformat()}_{run_name}.log"


def configure_run_logging(
    log_dir: Path,
    run_name: str,
    level: Union[int, str] = logging.INFO
) -> Path:
    """
    Attach console and file handlers to the package logger

    Calling this again replaces the handlers from the previous call.

    Args:
        log_dir: Directory for the log file
        run_name: Name embedded in the log file name
        level: Logging level

    Returns:
        Path of the log file

    Raises:
        LogInitError: If the level is invalid or the log file cannot be created
    """
    path = log_file_path(log_dir, run_name)

    logger = logging.getLogger(PACKAGE_LOGGER)
    # Reject a bad level before the log file is opened
    try:
        logger.setLevel(level)
    except (TypeError, ValueError) as e:
        raise LogInitError(f"invalid log level {level!r}: {e}") from e

    try:
        file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    except OSError as e:
        raise LogInitError(f"cannot write logfile {path}: {e}") from e

    formatter = RunLogFormatter(LOG_FORMAT)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    reset_run_logging()
    logger.addHandler(console_handler)
    logger.addHandler(file_handler)

    logger.info(f"Redirecting filter logs to {path}")
    return path


def reset_run_logging() -> None:
    """Detach and close handlers added by configure_run_logging"""
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
