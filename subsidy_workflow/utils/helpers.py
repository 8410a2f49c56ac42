"""Shared parsing helpers for blueprint and service input.

parse_datetime_input:  ISO-8601 string → aware datetime (raises ValueError)
parse_int_input:       int-like value → int (raises ValueError)
"""
from datetime import date, datetime, timezone


def parse_datetime_input(value):
    """Parse an ISO-8601 date or datetime, raising ValueError on bad input.

    Returns None for empty input.  Naive values are taken as UTC; a bare
    date becomes midnight UTC.
    """
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValueError(
                "Invalid datetime format. Use ISO-8601 (YYYY-MM-DD or YYYY-MM-DDTHH:MM:SS)."
            ) from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_int_input(value, field: str):
    """Coerce *value* to int; bools and non-numeric strings are rejected."""
    if isinstance(value, bool):
        raise ValueError(f"{field} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{field} must be an integer") from exc
