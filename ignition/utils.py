"""
Utility functions for the Ignition application.
"""

import math
import re
import uuid
from datetime import datetime, timezone
from typing import Optional

from ignition.constants import COMMIT_MESSAGE_MAX_LENGTH, DATE_FORMATS


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def generate_id(prefix: str) -> str:
    """Generate an entity id of the form ``<PREFIX>-<8 hex>``."""
    return f"{prefix}-{uuid.uuid4().hex[:8].upper()}"


def parse_date(date_string: str) -> Optional[datetime]:
    """
    Parse a date string using multiple supported formats.

    Args:
        date_string: The date string to parse.

    Returns:
        A UTC datetime if parsing succeeds, None otherwise.

    Examples:
        >>> parse_date("2024-12-31")  # ISO 8601
        >>> parse_date("31/12/2024")  # DD/MM/YYYY
        >>> parse_date("31 December 2024")  # DD Month YYYY
    """
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(date_string, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return None


def format_timestamp(value: datetime) -> str:
    """Format a datetime as an ISO 8601 UTC string with a ``Z`` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = value.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounding up."""
    return int(math.floor(value + 0.5))


def percentage(part: int, total: int) -> int:
    """
    Integer percentage of part over total, rounded half-up.

    A zero denominator yields 0.
    """
    if total <= 0:
        return 0
    return round_half_up(part * 100 / total)


def sanitize_commit_message(message: str) -> str:
    """Strip angle brackets and newlines and cap the length of a commit subject."""
    cleaned = re.sub(r"[<>]", "", message)
    cleaned = re.sub(r"[\r\n]+", " ", cleaned).strip()
    return cleaned[:COMMIT_MESSAGE_MAX_LENGTH]
