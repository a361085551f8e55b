"""
Front matter extraction for spark documents.

Sparks carry a small header block of known fields:

    ---
    title: Morning walk
    category: idea
    date: 2025-08-11 07:45:00
    tags: health, routine
    ---
    Body text...

This is a line-oriented parser for that fixed field set, not a YAML parser.
Only a quoted value is handed to YAML, to decode its quoting and escapes.
Unknown lines inside the block are ignored so newer writers can add fields.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

import yaml

DELIMITER = "---"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_CATEGORY = "unknown"

_FIELDS = ("title", "category", "date", "tags")


class _ScanState(Enum):
    OUTSIDE_BLOCK = "outside"
    INSIDE_BLOCK = "inside"


@dataclass
class FrontMatter:
    """Parsed header fields plus the remaining body."""
    title: str = ""
    category: str = DEFAULT_CATEGORY
    date: datetime = field(default_factory=datetime.now)
    tags: List[str] = field(default_factory=list)
    body: str = ""
    # True only when a ``date:`` line parsed successfully
    has_date: bool = False


def parse_date(value: str) -> Optional[datetime]:
    """Parse a ``yyyy-MM-dd HH:mm:ss`` value; None when malformed."""
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT)
    except ValueError:
        return None


def parse_tags(value: str) -> List[str]:
    return [tag.strip() for tag in value.split(",") if tag.strip()]


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) < 2 or value[0] != value[-1] or value[0] not in ("'", '"'):
        return value
    try:
        scalar = yaml.safe_load(value)
    except yaml.YAMLError:
        scalar = None
    if isinstance(scalar, str):
        return scalar
    # Quotes that do not wrap one scalar, e.g. 'a' or 'b'
    return value[1:-1]


def _is_delimiter(line: str) -> bool:
    return line.rstrip() == DELIMITER


def parse(document: str, now: Optional[datetime] = None) -> FrontMatter:
    """
    Split ``document`` into header fields and body.

    A header exists only when the first non-blank line is ``---`` and a
    later line closes the block with ``---``. Without one, the whole
    document is the body and every field keeps its default. A malformed
    date keeps the default (``now``) and never raises.
    """
    result = FrontMatter(date=now or datetime.now())
    lines = document.splitlines()

    state = _ScanState.OUTSIDE_BLOCK
    values = {}
    body_start: Optional[int] = None

    for index, line in enumerate(lines):
        if state is _ScanState.OUTSIDE_BLOCK:
            if not line.strip():
                continue
            if _is_delimiter(line):
                state = _ScanState.INSIDE_BLOCK
                continue
            break

        if _is_delimiter(line):
            body_start = index + 1
            break

        for name in _FIELDS:
            prefix = f"{name}: "
            if line.startswith(prefix) and name not in values:
                values[name] = _unquote(line[len(prefix):])
                break

    if body_start is None:
        # No (closed) header block
        result.body = document
        return result

    remaining = lines[body_start:]
    while remaining and not remaining[0].strip():
        remaining.pop(0)
    result.body = "\n".join(remaining)

    if "title" in values:
        result.title = values["title"]
    if "category" in values:
        result.category = values["category"]
    if "tags" in values:
        result.tags = parse_tags(values["tags"])
    if "date" in values:
        parsed = parse_date(values["date"])
        if parsed is not None:
            result.date = parsed
            result.has_date = True

    return result
