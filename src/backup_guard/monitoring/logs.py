"""
Log sinks for capture and retention runs.

Every run appends timestamped lines to the main log; ERROR and above are
duplicated into a dedicated error log, and retention runs also write to their
own cleanup log. A SUCCESS level sits between INFO and WARNING.
"""

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ROOT_LOGGER = "backup_guard"

# Marks handlers installed here so reconfiguration only replaces our own
_HANDLER_ATTR = "_backup_guard_handler"


def log_success(logger: logging.Logger, message: str) -> None:
    """Emit a SUCCESS-level line."""
    logger.log(SUCCESS, message)


def _file_handler(path: Path, level: int) -> logging.FileHandler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    setattr(handler, _HANDLER_ATTR, True)
    return handler


def configure_logging(
    log_dir: Path,
    backup_log: str = "backup.log",
    error_log: str = "backup_errors.log",
    run_log: str | None = None,
    console: bool = True,
    console_stream=None,
) -> logging.Logger:
    """
    Attach file (and optional console) handlers to the package logger.

    Args:
        log_dir: Directory the log files live in
        backup_log: Main log file name (all levels)
        error_log: Error log file name (ERROR and above)
        run_log: Extra per-engine log file name (e.g. retention_cleanup.log)
        console: Whether to also render lines on the console
        console_stream: File object for the console handler (default: stderr)

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    reset_logging()
    logger.setLevel(logging.INFO)

    log_dir = Path(log_dir)
    logger.addHandler(_file_handler(log_dir / backup_log, logging.INFO))
    logger.addHandler(_file_handler(log_dir / error_log, logging.ERROR))
    if run_log:
        logger.addHandler(_file_handler(log_dir / run_log, logging.INFO))

    if console:
        handler = RichHandler(
            console=Console(file=console_stream, stderr=console_stream is None),
            show_path=False,
            log_time_format=f"[{DATE_FORMAT}]",
        )
        handler.setLevel(logging.INFO)
        setattr(handler, _HANDLER_ATTR, True)
        logger.addHandler(handler)

    return logger


def reset_logging() -> None:
    """Detach and close handlers previously installed by configure_logging."""
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_ATTR, False):
            logger.removeHandler(handler)
            handler.close()
