"""Async event bus connecting the watcher, state container and orchestrator."""

import asyncio
import inspect
from typing import Dict, List, Callable, Any, Optional, Union
from dataclasses import dataclass, field
from datetime import datetime
from collections import defaultdict
import weakref
from loguru import logger


HandlerRef = Union[weakref.ref, weakref.WeakMethod]


@dataclass
class Event:
    """Something that happened in the daemon, keyed by ``category.action``."""
    type: str
    data: Dict[str, Any]
    timestamp: datetime = field(default_factory=datetime.now)
    source: Optional[str] = None


class EventBus:
    """
    Bounded in-process pub/sub.

    Events used by the daemon: sparks.gathered, sparks.updated,
    sparks.published, storage.unavailable, generation.started,
    generation.completed, generation.failed, notification.delivered.
    Subscriptions take an exact type, ``category.*`` or ``*``.
    """

    def __init__(self, maxsize: int = 1000):
        self._subscribers: Dict[str, List[HandlerRef]] = defaultdict(list)
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._worker: Optional[asyncio.Task] = None
        self._stats = defaultdict(int)

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @staticmethod
    def _ref(handler: Callable[[Event], Any]) -> HandlerRef:
        # A plain ref to a bound method dies immediately
        if inspect.ismethod(handler):
            return weakref.WeakMethod(handler)
        return weakref.ref(handler)

    def subscribe(self, event_pattern: str, handler: Callable[[Event], Any]) -> None:
        """Handlers are held weakly; the caller owns their lifetime."""
        self._subscribers[event_pattern].append(self._ref(handler))
        logger.debug(f"Subscribed handler to pattern: {event_pattern}")

    def unsubscribe(self, event_pattern: str, handler: Callable[[Event], Any]) -> None:
        self._subscribers[event_pattern] = [
            ref for ref in self._subscribers[event_pattern]
            if ref() is not None and ref() != handler
        ]

    async def emit(self, event: Event) -> bool:
        """Queue ``event``; False when the queue is full and it was dropped."""
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(f"Event queue full, dropping event: {event.type}")
            self._stats['dropped'] += 1
            return False
        self._stats['emitted'] += 1
        logger.debug(f"Emitted event: {event.type}")
        return True

    async def start(self) -> None:
        if self.running:
            logger.warning("Event bus already running")
            return
        self._worker = asyncio.create_task(self._process_events())
        logger.info("Event bus started")

    async def stop(self) -> None:
        """Cancel the worker; events still queued are discarded."""
        if self._worker is None:
            return
        worker, self._worker = self._worker, None
        worker.cancel()
        try:
            await worker
        except asyncio.CancelledError:
            pass
        logger.info("Event bus stopped")

    async def drain(self) -> None:
        """Wait until every queued event has been handled."""
        await self._queue.join()

    async def _process_events(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._dispatch(event)
                self._stats['processed'] += 1
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Error processing event: {e}")
                self._stats['processing_errors'] += 1
            finally:
                self._queue.task_done()

    def _handlers_for(self, event_type: str) -> List[Callable[[Event], Any]]:
        """Live handlers for ``event_type``; dead references are pruned."""
        handlers = []
        for pattern, refs in list(self._subscribers.items()):
            if not self._matches_pattern(event_type, pattern):
                continue
            live_refs = []
            for ref in refs:
                handler = ref()
                if handler is not None:
                    handlers.append(handler)
                    live_refs.append(ref)
            self._subscribers[pattern] = live_refs
        return handlers

    async def _dispatch(self, event: Event) -> None:
        tasks = []
        for handler in self._handlers_for(event.type):
            if asyncio.iscoroutinefunction(handler):
                tasks.append(asyncio.create_task(handler(event)))
            else:
                tasks.append(asyncio.create_task(asyncio.to_thread(handler, event)))
        if not tasks:
            return

        results = await asyncio.gather(*tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error(f"Handler error for event {event.type}: {result}")
                self._stats['handler_errors'] += 1

    @staticmethod
    def _matches_pattern(event_type: str, pattern: str) -> bool:
        if pattern == "*":
            return True
        if pattern.endswith(".*"):
            return event_type.startswith(pattern[:-1])
        return event_type == pattern

    def get_stats(self) -> Dict[str, int]:
        return dict(self._stats)
