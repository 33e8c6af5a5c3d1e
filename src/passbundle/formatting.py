"""Formatting utilities for pass content."""

from datetime import datetime, timezone


def format_iso_date(dt: datetime) -> str:
    """Format a datetime for the platform's expected ISO 8601 format.

    The platform requires the colon in the timezone offset (+00:00, not +0000).
    Naive datetimes are taken as UTC.

    Args:
        dt: The datetime to format.

    Returns:
        ISO 8601 formatted string with colon in timezone.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    formatted = dt.strftime("%Y-%m-%dT%H:%M:%S%z")

    # Insert colon in timezone offset: +0000 -> +00:00
    if len(formatted) >= 5 and formatted[-5] in ("+", "-"):
        formatted = formatted[:-2] + ":" + formatted[-2:]

    return formatted
