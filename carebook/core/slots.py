"""Canonical keys for appointment slots."""

import re
from datetime import date, datetime
from zoneinfo import ZoneInfo

_SHORT_HOUR = re.compile(r"^(\d):(\d{2})$")


def to_calendar_day(value: date | datetime | str, timezone: str) -> date:
    """
    Reduce a date-like value to the calendar day used for slot matching.

    Accepts ``YYYY-MM-DD`` strings, ISO-8601 datetimes (``Z`` suffix included)
    and ``date``/``datetime`` objects. Aware datetimes are converted to
    ``timezone`` first; naive datetimes are taken as already local.

    Raises:
        ValueError: If the value cannot be parsed
    """
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            raise ValueError("Appointment date is required")
        if len(raw) == 10:
            return date.fromisoformat(raw)
        value = datetime.fromisoformat(raw.replace("Z", "+00:00"))

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(ZoneInfo(timezone))
        return value.date()

    return value


def normalize_time_label(value: str) -> str:
    """Strip a time label and zero-pad single-digit hours ("9:30" -> "09:30")."""
    label = value.strip()
    match = _SHORT_HOUR.match(label)
    if match:
        label = f"0{match.group(1)}:{match.group(2)}"
    return label
