"""Tests for capture service."""

from datetime import datetime

import pytest

from motion.daemon.capture import CaptureEntry, CaptureService, slugify
from motion.daemon.config import StorageConfig
from motion.daemon.front_matter import parse
from motion.daemon.state import SparkState
from motion.daemon.watcher import SparkWatcher


@pytest.mark.asyncio
async def test_capture_writes_parseable_spark(tmp_path):
    """Captured sparks round-trip through the header parser."""
    service = CaptureService(tmp_path / "sparks")

    path = await service.capture(
        "Call the bank about the card\nBefore Friday",
        category="task",
        tags=["money", "calls"],
    )

    assert path.exists()
    assert path.name.startswith("call-the-bank-about-the-card")
    header = parse(path.read_text(encoding="utf-8"))
    assert header.title == "Call the bank about the card"
    assert header.category == "task"
    assert header.tags == ["money", "calls"]
    assert header.has_date
    assert header.body.startswith("Call the bank about the card\nBefore Friday")


@pytest.mark.asyncio
async def test_captured_spark_is_discovered(tmp_path):
    root = tmp_path / "sparks"
    service = CaptureService(root)
    await service.capture("First idea", title="Idea")

    state = SparkState()
    watcher = SparkWatcher(StorageConfig(mode="directory", local_root=root), state)
    records = await watcher.rebuild()

    assert [r.title for r in records] == ["Idea"]
    assert state.selection == {records[0].id}


def test_capture_entry_defaults():
    entry = CaptureEntry(text="Buy oat milk\nand bread")

    assert len(entry.id) == 26  # ULID length
    assert entry.title == "Buy oat milk"
    assert entry.category == "unknown"
    assert entry.captured_at <= datetime.now()


def test_render_without_tags():
    service = CaptureService(root=None)
    entry = CaptureEntry(text="Body", title="T", captured_at=datetime(2025, 8, 11, 7, 30))
    header = parse(service.render(entry))

    assert header.tags == []
    assert header.date == datetime(2025, 8, 11, 7, 30)


def test_slugify():
    assert slugify("Hello, World! Again") == "hello-world-again"
    assert slugify("!!!") == "spark"


@pytest.mark.asyncio
@pytest.mark.parametrize("title", [
    "Don't forget: milk",
    "Ask the landlord about the heating schedule before the first cold week of the emitter line season",
    'She said "not today" and left',
])
async def test_captured_titles_survive_parsing(tmp_path, title):
    service = CaptureService(tmp_path)

    path = await service.capture("body", title=title, tags=["it's", "plain"])
    header = parse(path.read_text(encoding="utf-8"))

    assert header.title == title
    assert header.tags == ["it's", "plain"]
    assert header.body == "body"
