"""Expansion of ``{{ date }}``, ``{{ time }}`` and ``{{ day }}`` placeholders."""

import re
from datetime import datetime
from typing import Optional

PLACEHOLDER = re.compile(r"\{\{\s*(date|time|day)\s*\}\}", re.IGNORECASE)

MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
WEEKDAYS = (
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
)

# Regions that write the month before the day
MONTH_FIRST_REGIONS = {"US", "PH", "FM", "MH", "PW", "CA"}


def long_date(now: datetime, region: Optional[str] = None) -> str:
    """Long date without time, e.g. ``August 11, 2025`` or ``11 August 2025``."""
    month = MONTHS[now.month - 1]
    if region is None or region.upper() in MONTH_FIRST_REGIONS:
        return f"{month} {now.day}, {now.year}"
    return f"{now.day} {month} {now.year}"


def short_time(now: datetime) -> str:
    return f"{now.hour:02d}:{now.minute:02d}"


def weekday(now: datetime) -> str:
    return WEEKDAYS[now.weekday()]


def long_datetime(now: datetime, region: Optional[str] = None) -> str:
    """Long date with 24-hour time, used for the injected "right now" fact."""
    return f"{weekday(now)}, {long_date(now, region)} at {short_time(now)}"


def expand(text: str, now: Optional[datetime] = None, region: Optional[str] = None) -> str:
    """
    Replace known placeholders in ``text``; unknown ``{{ ... }}`` tokens are
    left untouched. Output never contains braces from a substitution, so a
    second pass is a no-op.
    """
    if "{{" not in text:
        return text
    now = now or datetime.now()

    def _substitute(match: re.Match) -> str:
        name = match.group(1).lower()
        if name == "date":
            return long_date(now, region)
        if name == "time":
            return short_time(now)
        return weekday(now)

    return PLACEHOLDER.sub(_substitute, text)
