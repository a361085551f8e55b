"""Selection filtering and assembly of the prompt's Data section."""

import json
from typing import Any, Dict, Iterable, List, Sequence

from .front_matter import parse
from .spark import SparkRecord

SEPARATOR = "\n\n"


def select(records: Sequence[SparkRecord], selected: Iterable[str]) -> List[SparkRecord]:
    """Records whose id is selected, keeping their newest-first order."""
    chosen = set(selected)
    return [record for record in records if record.id in chosen]


def to_structured(record: SparkRecord) -> Dict[str, Any]:
    """
    Structured form of a record with empty fields left out entirely.
    Field order is fixed so the JSON output is stable.
    """
    header = parse(record.content)
    created = header.date if header.has_date else record.created_date
    candidate = {
        "title": header.title,
        "category": header.category,
        "createdDate": created.astimezone().isoformat(timespec="seconds"),
        "tags": header.tags,
        "content": header.body,
    }
    return {key: value for key, value in candidate.items() if value}


def aggregate(
    records: Sequence[SparkRecord],
    selected: Iterable[str],
    as_json: bool = False,
) -> str:
    """
    Build the Data payload from the selected records.

    Plain mode joins raw contents with a blank line. JSON mode emits a
    pretty-printed array of structured objects, ``[]`` when nothing is left.
    """
    chosen = select(records, selected)
    if not as_json:
        return SEPARATOR.join(record.content for record in chosen)

    objects = [obj for obj in (to_structured(r) for r in chosen) if obj]
    if not objects:
        return "[]"
    return json.dumps(objects, indent=2, ensure_ascii=False)
