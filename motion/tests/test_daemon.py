"""Integration tests for the daemon wiring."""

import asyncio

import pytest

from motion.daemon.config import Config
from motion.daemon.main import MotionDaemon, main


class EchoClient:
    async def generate(self, prompt: str) -> str:
        return f"echo: {len(prompt)}"


def make_config(root) -> Config:
    config = Config()
    config.storage.mode = "directory"
    config.storage.local_root = root
    config.storage.poll_interval_s = 0.05
    config.notifications.interval_s = 3600
    return config


@pytest.mark.asyncio
async def test_daemon_watches_and_generates(tmp_path):
    (tmp_path / "a.md").write_text("---\ntitle: A\ndate: 2025-08-10 10:00:00\n---\nalpha", encoding="utf-8")

    daemon = MotionDaemon(make_config(tmp_path), client=EchoClient())
    await daemon.start()
    await asyncio.sleep(0.3)

    assert daemon.state.count == 1
    assert await daemon.orchestrator.submit()
    assert daemon.orchestrator.result.startswith("echo: ")

    await daemon.event_bus.drain()
    status = daemon.get_status()
    assert status["sparks"] == 1
    assert status["generation_state"] == "completed"
    assert status["stats"]["published_count"] == 1
    assert status["stats"]["generation_count"] == 1

    await daemon.stop()
    assert not daemon.watcher.running


@pytest.mark.asyncio
async def test_deactivate_releases_watch(tmp_path):
    daemon = MotionDaemon(make_config(tmp_path), client=EchoClient())
    await daemon.start()

    await daemon.deactivate()
    assert not daemon.watcher.running
    (tmp_path / "late.md").write_text("late", encoding="utf-8")
    await asyncio.sleep(0.2)
    assert daemon.state.count == 0

    await daemon.activate()
    await asyncio.sleep(0.3)
    assert daemon.state.count == 1

    await daemon.stop()


@pytest.mark.asyncio
async def test_toggle_notifications(tmp_path):
    (tmp_path / "a.md").write_text("alpha", encoding="utf-8")
    daemon = MotionDaemon(make_config(tmp_path), client=EchoClient())
    await daemon.start()
    await asyncio.sleep(0.2)
    await daemon.orchestrator.submit()

    await daemon.set_notifications_enabled(True)
    assert daemon.timer.running
    assert daemon.notifier.recurring_scheduled

    await daemon.set_notifications_enabled(False)
    assert not daemon.timer.running
    assert not daemon.notifier.recurring_scheduled

    await daemon.stop()


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["storage: [unclosed\n", "storage:\n  mode: ftp\n", "- just\n- a list\n"])
async def test_main_exits_on_bad_config(tmp_path, monkeypatch, text):
    monkeypatch.setenv("HOME", str(tmp_path))
    path = tmp_path / "motion.yaml"
    path.write_text(text, encoding="utf-8")

    with pytest.raises(SystemExit) as exc:
        await main(str(path))
    assert exc.value.code == 1
