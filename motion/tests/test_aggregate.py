"""Tests for selection and Data aggregation."""

import json
from datetime import datetime

from motion.daemon.aggregate import aggregate, select
from motion.daemon.spark import build_record


def make_records():
    newest = build_record(
        "/s/new.md",
        "---\ntitle: New\ncategory: idea\ndate: 2025-08-11 10:00:00\ntags: x, y\n---\nNew body",
    )
    middle = build_record("/s/mid.md", "plain middle", fs_modified=datetime(2025, 8, 10, 9, 0))
    oldest = build_record(
        "/s/old.md",
        "---\ncategory: log\ndate: 2025-08-01 08:00:00\n---\nOld body",
    )
    return [newest, middle, oldest]


def test_empty_selection():
    records = make_records()
    assert aggregate(records, set(), as_json=True) == "[]"
    assert aggregate(records, set(), as_json=False) == ""


def test_plain_join_keeps_record_order():
    records = make_records()
    # Selection order must not matter
    selected = ["/s/old.md", "/s/new.md"]
    data = aggregate(records, selected, as_json=False)

    assert data == records[0].content + "\n\n" + records[2].content


def test_select_ignores_unknown_ids():
    records = make_records()
    chosen = select(records, {"/s/mid.md", "/gone.md"})
    assert [r.id for r in chosen] == ["/s/mid.md"]


def test_json_objects():
    records = make_records()
    data = aggregate(records, {r.id for r in records}, as_json=True)
    objects = json.loads(data)

    assert len(objects) == 3
    first = objects[0]
    assert first["title"] == "New"
    assert first["category"] == "idea"
    assert first["tags"] == ["x", "y"]
    assert first["content"] == "New body"
    assert first["createdDate"].startswith("2025-08-11T10:00:00")


def test_json_omits_empty_fields():
    records = make_records()
    objects = json.loads(aggregate(records, {"/s/old.md", "/s/mid.md"}, as_json=True))

    middle, oldest = objects
    assert "title" not in oldest
    assert "tags" not in oldest
    assert oldest["content"] == "Old body"

    assert middle["category"] == "unknown"
    assert middle["content"] == "plain middle"
    assert middle["createdDate"].startswith("2025-08-10T09:00:00")


def test_json_is_pretty_printed():
    records = make_records()
    data = aggregate(records, {"/s/new.md"}, as_json=True)
    assert data.startswith("[\n  {")
