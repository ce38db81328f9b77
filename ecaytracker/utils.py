"""
Utility functions for text normalisation, number parsing, and logging.
"""
import logging
import re
from datetime import datetime, timezone
from typing import Optional


def init_logger(
    name: str = "ecaytracker",
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    log_file: Optional[str] = "ecaytracker.log"
) -> logging.Logger:
    """Initialize logger with console and optional file handlers."""
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    if logger.handlers:
        return logger

    console_level_num = getattr(logging, console_level.upper(), logging.INFO)
    ch = logging.StreamHandler()
    ch.setLevel(console_level_num)

    fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    if log_file:  # Create file handler only if log_file is provided
        file_level_num = getattr(logging, file_level.upper(), logging.DEBUG)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level_num)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    return logger


def now_iso() -> str:
    """Return current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat()


def clean_text(s: Optional[str]) -> str:
    """Clean and normalize text by collapsing whitespace."""
    if not s:
        return ""
    s = re.sub(r"\s+", " ", s)
    return s.strip()


def title_case(s: str) -> str:
    """'GEORGE TOWN' / 'george town' -> 'George Town'."""
    return s.lower().title()


def digits_to_int(text: str) -> Optional[int]:
    """Parse a digit run that may contain thousands separators."""
    if not text:
        return None
    try:
        return int(text.replace(",", ""))
    except ValueError:
        return None


def truncate(s: str, n: int) -> str:
    """Shorten long strings for log output."""
    if len(s) <= n:
        return s
    return s[:n] + "..."
