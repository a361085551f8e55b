"""
Generation lifecycle: compile the prompt, call the model, surface the reply.

    IDLE --submit--> GENERATING --> COMPLETED | FAILED --reset--> IDLE

Only one user-initiated generation is in flight at a time. The hourly
timer path shares the compile-and-call sequence but never moves the
user-visible state; both write the shared result/error fields and the
last write wins.
"""

import asyncio
from enum import Enum
from typing import Optional, Tuple

from loguru import logger

from .bus import Event, EventBus
from .config import NotificationConfig
from .errors import GenerationError
from .llm import OllamaClient
from .notifications import Notifier
from .state import Workspace


class GenerationState(Enum):
    IDLE = "idle"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


class GenerationOrchestrator:
    """Drives one-at-a-time generation requests."""

    def __init__(
        self,
        workspace: Workspace,
        client: OllamaClient,
        notifier: Optional[Notifier] = None,
        notification_settings: Optional[NotificationConfig] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self.workspace = workspace
        self.client = client
        self.notifier = notifier
        self.notification_settings = notification_settings or NotificationConfig()
        self.event_bus = event_bus

        self.state = GenerationState.IDLE
        self.result: Optional[str] = None
        self.error_message: Optional[str] = None

        self.stats = {"submitted": 0, "completed": 0, "failed": 0, "rejected": 0}

    @property
    def has_response(self) -> bool:
        """COMPLETED or FAILED; the two differ only by error_message."""
        return self.state in (GenerationState.COMPLETED, GenerationState.FAILED)

    def can_submit(self) -> bool:
        return self.state is GenerationState.IDLE and self.workspace.inputs().has_content()

    async def submit(self) -> bool:
        """
        Run a user-initiated generation. Returns False, with no side
        effects, unless the orchestrator is idle and there is input.
        """
        if self.state is not GenerationState.IDLE:
            self.stats["rejected"] += 1
            logger.debug(f"Submit ignored in state {self.state.value}")
            return False
        inputs = self.workspace.inputs()
        if not inputs.has_content():
            self.stats["rejected"] += 1
            logger.debug("Submit ignored: no instruction, context or data")
            return False

        self.state = GenerationState.GENERATING
        self.result = None
        self.error_message = None
        self.stats["submitted"] += 1
        await self._emit("generation.started", {"trigger": "user"})

        prompt = self.workspace.compile(inputs)
        result, error = await self._generate(prompt)

        self.result = result
        self.error_message = error
        if error is None:
            self.state = GenerationState.COMPLETED
            await self._schedule_recurring(result)
        else:
            self.state = GenerationState.FAILED
        return True

    def reset(self) -> bool:
        """Back to IDLE from COMPLETED or FAILED; ignored while generating."""
        if not self.has_response:
            return False
        self.state = GenerationState.IDLE
        self.result = None
        self.error_message = None
        logger.debug("Generation state reset")
        return True

    async def generate_and_notify(self) -> Optional[str]:
        """
        Timer entry point: compile, call, and on success notify right away
        (and refresh the recurring reminder). Leaves ``state`` alone.
        """
        inputs = self.workspace.inputs()
        if not inputs.has_content():
            logger.debug("Scheduled generation skipped: nothing to send")
            return None

        await self._emit("generation.started", {"trigger": "timer"})
        prompt = self.workspace.compile(inputs)
        result, error = await self._generate(prompt)

        # Shared with the user path; last write wins
        self.result = result
        self.error_message = error
        if error is not None:
            return None

        await self._schedule_recurring(result)
        if self.notifier is not None:
            self.notifier.send_immediate(result, title=self.notification_settings.title)
        return result

    async def _generate(self, prompt: str) -> Tuple[Optional[str], Optional[str]]:
        """Call the endpoint; every failure becomes a user-facing message."""
        try:
            result = await self.client.generate(prompt)
        except GenerationError as e:
            self.stats["failed"] += 1
            logger.error(f"Generation failed ({e.kind.value}): {e.user_message}")
            await self._emit("generation.failed", {"kind": e.kind.value, "message": e.user_message})
            return None, e.user_message
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.stats["failed"] += 1
            logger.exception(f"Unexpected generation error: {e}")
            await self._emit("generation.failed", {"kind": "unexpected", "message": str(e)})
            return None, f"Error: {e}"

        self.stats["completed"] += 1
        logger.info(f"Generation completed ({len(result)} chars)")
        await self._emit("generation.completed", {"length": len(result)})
        return result, None

    async def _schedule_recurring(self, text: str) -> None:
        if self.notifier is None or not self.notification_settings.enabled:
            return
        await self.notifier.ensure_authorized_and_schedule_recurring(text)

    async def _emit(self, event_type: str, data: dict) -> None:
        if self.event_bus is not None:
            await self.event_bus.emit(Event(type=event_type, data=data, source="orchestrator"))


class HourlyGenerationTimer:
    """Periodic ``generate_and_notify`` with its own start/stop."""

    def __init__(self, orchestrator: GenerationOrchestrator, interval_s: float = 3600.0):
        self.orchestrator = orchestrator
        self.interval_s = interval_s
        self._task: Optional[asyncio.Task] = None
        self.runs = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"Hourly generation timer started (interval: {self.interval_s:.0f}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Hourly generation timer stopped")

    async def _run_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_s)
            self.runs += 1
            try:
                await self.orchestrator.generate_and_notify()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Scheduled generation error: {e}")
