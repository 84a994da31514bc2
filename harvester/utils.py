"""
Shared utility functions for the harvester.
"""

from datetime import date, datetime, timedelta
from typing import Optional

# Trailing characters of a progress link that identify a student
IDENTIFIER_LENGTH = 8


def subject_identifier(link: str, length: int = IDENTIFIER_LENGTH) -> str:
    """
    Derive a subject's identity key from its progress link.

    Args:
        link: Student progress URL (e.g., https://.../students/ab12cd34)
        length: Number of trailing characters that form the key

    Returns:
        The trailing substring, or "" for an empty link
    """
    cleaned = (link or "").strip().rstrip('/')
    if not cleaned:
        return ""
    return cleaned[-length:]


def yesterday(today: Optional[date] = None) -> date:
    """Day before ``today`` (the current local date if None)."""
    return (today or date.today()) - timedelta(days=1)


def format_checkpoint_date(value: date) -> str:
    """
    Format a date the way the checkpoint file stores it.

    Args:
        value: Date to format

    Returns:
        Date string without zero padding (e.g., 2026-3-7)
    """
    return f"{value.year}-{value.month}-{value.day}"


def parse_checkpoint_date(text: str) -> date:
    """
    Parse a checkpoint date string.

    Args:
        text: Date in Y-M-D form, zero padding optional

    Returns:
        Parsed date

    Raises:
        ValueError: If the text is not a valid date
    """
    parts = text.strip().split('-')
    if len(parts) != 3:
        raise ValueError(f"invalid checkpoint date: {text!r}")
    year, month, day = (int(p) for p in parts)
    return date(year, month, day)


def run_timestamp(moment: datetime) -> str:
    """ISO 8601 basic-format timestamp safe for file names (20261019T083000)."""
    return moment.strftime("%Y%m%dT%H%M%S")
