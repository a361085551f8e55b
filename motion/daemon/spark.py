"""Immutable spark records built from watched files."""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .front_matter import parse

# Sentinel for files without any usable timestamp
EPOCH = datetime(1970, 1, 1)


@dataclass(frozen=True)
class SparkRecord:
    """
    One discovered spark file.

    ``id`` is the file's absolute path and is the unique key used for
    selection and diffing. ``content`` is the raw text, header included.
    """
    id: str
    title: str
    category: str
    created_date: datetime
    token_estimate: int
    content: str


def estimate_tokens(text: str) -> int:
    """Roughly four characters per token, never less than one."""
    return max(1, math.ceil(len(text) / 4))


def build_record(
    file_id: str,
    text: str,
    fs_created: Optional[datetime] = None,
    fs_modified: Optional[datetime] = None,
) -> SparkRecord:
    """
    Combine a file's text with its header fields.

    The header ``date`` wins; otherwise the file system creation time,
    then modification time, then the epoch sentinel.
    """
    header = parse(text)
    if header.has_date:
        created = header.date
    else:
        created = fs_created or fs_modified or EPOCH

    return SparkRecord(
        id=file_id,
        title=header.title,
        category=header.category,
        created_date=created,
        token_estimate=estimate_tokens(text),
        content=text,
    )
