"""Main daemon process for Motion."""

import asyncio
import signal
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime
from loguru import logger

from .config import LOAD_ERRORS, Config
from .bus import Event, EventBus
from .state import SparkState, Workspace
from .watcher import SparkWatcher
from .llm import OllamaClient
from .notifications import Notifier
from .orchestrator import GenerationOrchestrator, HourlyGenerationTimer


class MotionDaemon:
    """Main daemon coordinating all services."""

    def __init__(self, config: Config, client: Optional[OllamaClient] = None):
        self.config = config
        self.start_time = datetime.now()

        # Core services
        self.event_bus = EventBus()
        self.state = SparkState()
        self.workspace = Workspace(self.state, config.prompt)
        self.watcher = SparkWatcher(config.storage, self.state, self.event_bus)
        self.notifier = Notifier(
            title=config.notifications.title,
            interval_s=config.notifications.interval_s,
            event_bus=self.event_bus,
        )
        self.orchestrator = GenerationOrchestrator(
            self.workspace,
            client or OllamaClient(config.endpoint),
            notifier=self.notifier,
            notification_settings=config.notifications,
            event_bus=self.event_bus,
        )
        self.timer = HourlyGenerationTimer(
            self.orchestrator,
            interval_s=config.notifications.interval_s,
        )

        self.stats = {
            "published_count": 0,
            "generation_count": 0,
            "failure_count": 0,
        }

    async def start(self) -> None:
        """Start all daemon services."""
        logger.info("Starting Motion daemon...")

        await self.event_bus.start()

        self.event_bus.subscribe("sparks.published", self._on_published)
        self.event_bus.subscribe("generation.completed", self._on_generation)
        self.event_bus.subscribe("generation.failed", self._on_failure)

        await self.activate()
        if self.config.notifications.enabled:
            await self.timer.start()

        logger.info("Motion daemon started successfully")

    async def stop(self) -> None:
        """Stop all daemon services."""
        logger.info("Stopping Motion daemon...")

        await self.timer.stop()
        await self.deactivate()
        await self.notifier.close()
        await self.event_bus.stop()

        logger.info("Motion daemon stopped")

    async def activate(self) -> None:
        """Consumer became visible: resume watching."""
        await self.watcher.start()

    async def deactivate(self) -> None:
        """Consumer went away: release the watch."""
        await self.watcher.stop()

    async def set_notifications_enabled(self, enabled: bool) -> None:
        """Toggle the recurring notification and the hourly timer together."""
        self.config.notifications.enabled = enabled
        if enabled:
            await self.timer.start()
            if self.orchestrator.result:
                await self.notifier.ensure_authorized_and_schedule_recurring(self.orchestrator.result)
        else:
            await self.timer.stop()
            self.notifier.cancel_recurring()

    async def _on_published(self, event: Event) -> None:
        self.stats["published_count"] = event.data.get("count", 0)

    async def _on_generation(self, event: Event) -> None:
        self.stats["generation_count"] += 1

    async def _on_failure(self, event: Event) -> None:
        self.stats["failure_count"] += 1

    def get_status(self) -> dict:
        """Get daemon status and statistics."""
        uptime = (datetime.now() - self.start_time).total_seconds()

        return {
            "status": "running",
            "uptime": f"{uptime:.0f}s",
            "sparks": self.state.count,
            "selected": len(self.state.selection),
            "notice": self.state.notice,
            "generation_state": self.orchestrator.state.value,
            "stats": dict(self.stats),
            "config": {
                "watched_root": str(self.config.storage.watched_root()),
                "mode": self.config.storage.mode,
                "endpoint": self.config.endpoint.base_url,
                "model": self.config.endpoint.model,
            },
        }


def setup_logging(level: str = "INFO") -> None:
    """stderr sink plus a rotating debug log file."""
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=level
    )

    log_dir = Path.home() / ".local" / "share" / "motion" / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    logger.add(
        log_dir / "daemon.log",
        rotation="1 day",
        retention="7 days",
        level="DEBUG"
    )


async def main(config_path: Optional[str] = None):
    """Main entry point for the daemon."""
    setup_logging()

    try:
        config = Config.load(Path(config_path) if config_path else None)
    except LOAD_ERRORS as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    daemon = MotionDaemon(config)
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops
            pass

    try:
        await daemon.start()
        await stop_event.wait()
        logger.info("Shutdown signal received")
    except Exception as e:
        logger.exception(f"Daemon error: {e}")
    finally:
        await daemon.stop()


if __name__ == "__main__":
    asyncio.run(main())
