"""
Local notifications for generated responses.

Each scheduled notification is its own asyncio task, so the recurring
reminder and one-shot notices can be cancelled independently.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional, Union

import ulid
from loguru import logger
from rich.console import Console
from rich.panel import Panel

from .bus import Event, EventBus

RECURRING_IDENTIFIER = "motion.hourly.response.notification"

console = Console(stderr=True)


@dataclass
class Notification:
    identifier: str
    title: str
    body: str
    delivered_at: datetime = field(default_factory=datetime.now)


Delivery = Callable[[Notification], Union[None, Awaitable[None]]]
Authorizer = Callable[[], Union[bool, Awaitable[bool]]]


def console_delivery(notification: Notification) -> None:
    """Default delivery: a panel on the terminal plus a log line."""
    logger.info(f"Notification {notification.identifier}: {notification.title}")
    console.print(Panel(notification.body, title=notification.title))


def always_authorized() -> bool:
    return True


async def _maybe_await(value):
    if asyncio.iscoroutine(value):
        return await value
    return value


class Notifier:
    """Recurring and one-shot notifications."""

    def __init__(
        self,
        title: str = "Motion",
        interval_s: float = 3600.0,
        delivery: Delivery = console_delivery,
        authorizer: Authorizer = always_authorized,
        event_bus: Optional[EventBus] = None,
        immediate_delay_s: float = 1.0,
    ):
        self.title = title
        self.interval_s = interval_s
        self.delivery = delivery
        self.authorizer = authorizer
        self.event_bus = event_bus
        self.immediate_delay_s = immediate_delay_s

        self._pending: Dict[str, asyncio.Task] = {}
        self.delivered: List[Notification] = []

    async def request_authorization(self) -> bool:
        try:
            return bool(await _maybe_await(self.authorizer()))
        except Exception as e:
            logger.warning(f"Notification authorization failed: {e}")
            return False

    async def ensure_authorized_and_schedule_recurring(self, text: str) -> bool:
        """
        Replace the recurring notification with one carrying ``text``.
        Nothing is scheduled without permission or for blank text.
        """
        if not await self.request_authorization():
            logger.info("Notifications not authorized")
            return False
        trimmed = text.strip()
        if not trimmed:
            return False
        self.schedule_recurring(trimmed)
        return True

    def schedule_recurring(self, text: str) -> None:
        self._cancel(RECURRING_IDENTIFIER)
        self._pending[RECURRING_IDENTIFIER] = asyncio.create_task(
            self._repeat(RECURRING_IDENTIFIER, self.title, text)
        )
        logger.debug(f"Recurring notification scheduled every {self.interval_s:.0f}s")

    def cancel_recurring(self) -> None:
        """Remove the pending recurring notification and its delivered copies."""
        self._cancel(RECURRING_IDENTIFIER)
        self.delivered = [n for n in self.delivered if n.identifier != RECURRING_IDENTIFIER]

    def send_immediate(self, text: str, title: Optional[str] = None) -> str:
        """One-shot notification about a second from now; never replaces another."""
        identifier = str(ulid.ULID())
        task = asyncio.create_task(
            self._once(identifier, title or self.title, text, self.immediate_delay_s)
        )
        self._pending[identifier] = task
        task.add_done_callback(lambda _t: self._pending.pop(identifier, None))
        return identifier

    @property
    def recurring_scheduled(self) -> bool:
        task = self._pending.get(RECURRING_IDENTIFIER)
        return task is not None and not task.done()

    async def wait_immediate(self) -> None:
        """Wait for pending one-shot notifications to be delivered."""
        tasks = [t for i, t in self._pending.items() if i != RECURRING_IDENTIFIER]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def close(self) -> None:
        """Cancel everything still pending."""
        for identifier in list(self._pending):
            self._cancel(identifier)

    def _cancel(self, identifier: str) -> None:
        task = self._pending.pop(identifier, None)
        if task is not None and not task.done():
            task.cancel()

    async def _repeat(self, identifier: str, title: str, body: str) -> None:
        while True:
            await asyncio.sleep(self.interval_s)
            await self._deliver(Notification(identifier=identifier, title=title, body=body))

    async def _once(self, identifier: str, title: str, body: str, delay: float) -> None:
        await asyncio.sleep(delay)
        await self._deliver(Notification(identifier=identifier, title=title, body=body))

    async def _deliver(self, notification: Notification) -> None:
        try:
            await _maybe_await(self.delivery(notification))
        except Exception as e:
            logger.error(f"Notification delivery failed: {e}")
            return
        self.delivered.append(notification)
        if self.event_bus is not None:
            await self.event_bus.emit(Event(
                type="notification.delivered",
                data={"identifier": notification.identifier, "title": notification.title},
                source="notifier",
            ))
