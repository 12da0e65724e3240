"""Shared utility functions for the Receipt Processor project."""

import logging
import math
from datetime import UTC, datetime
from pathlib import Path

import colorlog

LOGGER_NAMESPACE = "receipt-processor"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}


def get_logger(name: str) -> logging.Logger:
    """Get a logger for one of the receipt-processor components, coloured on the console.

    Loggers do not propagate: each one carries its own console handler, and `main.setup_logging`
    attaches the shared processing log file to each of them.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        console = colorlog.StreamHandler()
        console.setFormatter(
            colorlog.ColoredFormatter(f"%(log_color)s{LOG_FORMAT}", datefmt=LOG_DATE_FORMAT, log_colors=LOG_COLORS),
        )
        logger.addHandler(console)
    logger.propagate = False
    return logger


def add_file_handler(logger: logging.Logger, log_dir: str | Path, filename: str) -> None:
    """Attach a plain-text file handler to a logger, once."""
    if any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        return
    file_handler = logging.FileHandler(ensure_dir(log_dir) / filename)
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    logger.addHandler(file_handler)


def ensure_dir(path: str | Path) -> Path:
    """Create an upload or log directory if missing and return it as a Path."""
    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def as_float(value: object) -> float | None:
    """Coerce an extracted number to float; None, booleans, junk and NaN/inf give None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (ValueError, TypeError):
        return None
    return number if math.isfinite(number) else None


def utcnow() -> datetime:
    """Get the current UTC time as an aware datetime."""
    return datetime.now(UTC)


def truncate(text: str, limit: int) -> str:
    """Shorten text for log lines."""
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."
