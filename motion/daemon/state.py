"""
Observable state shared by the watcher, the CLI and the orchestrator.

All writes happen on the event loop that owns the state; background work
computes a complete result first and installs it in one call.
"""

from datetime import datetime
from typing import Callable, FrozenSet, Iterable, List, Optional, Set, Tuple

from loguru import logger

from .aggregate import aggregate, select
from .config import PromptConfig
from .prompt import PromptInputs, compile_inputs
from .spark import SparkRecord

Listener = Callable[["SparkState"], None]


class SparkState:
    """Published record list, selection and storage notice."""

    def __init__(self):
        self._records: Tuple[SparkRecord, ...] = ()
        self._selection: Set[str] = set()
        self._populated = False
        self._listeners: List[Listener] = []
        self.notice: Optional[str] = None
        self.version = 0

    @property
    def records(self) -> Tuple[SparkRecord, ...]:
        return self._records

    @property
    def count(self) -> int:
        return len(self._records)

    @property
    def selection(self) -> FrozenSet[str]:
        return frozenset(self._selection)

    def install(self, records: Iterable[SparkRecord], notice: Optional[str] = None) -> None:
        """
        Swap in a complete, already-sorted record list.
        The first non-empty population selects everything when nothing
        was selected yet.
        """
        self._records = tuple(records)
        self.notice = notice
        if self._records and not self._populated:
            self._populated = True
            if not self._selection:
                self._selection = {record.id for record in self._records}
        self.version += 1
        logger.debug(f"Installed {self.count} sparks (version {self.version})")
        self._notify()

    def select(self, record_id: str) -> None:
        self._selection.add(record_id)
        self._notify()

    def deselect(self, record_id: str) -> None:
        self._selection.discard(record_id)
        self._notify()

    def toggle(self, record_id: str) -> None:
        if record_id in self._selection:
            self._selection.discard(record_id)
        else:
            self._selection.add(record_id)
        self._notify()

    def select_all(self) -> None:
        self._selection = {record.id for record in self._records}
        self._notify()

    def select_none(self) -> None:
        self._selection = set()
        self._notify()

    def selected_records(self) -> List[SparkRecord]:
        return select(self._records, self._selection)

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        self._listeners = [l for l in self._listeners if l is not listener]

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.error(f"State listener failed: {e}")


class Workspace:
    """
    Derives the compiled prompt from the prompt settings and the current
    selection. Only the last computed prompt is kept.
    """

    def __init__(
        self,
        state: SparkState,
        settings: PromptConfig,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.state = state
        self.settings = settings
        self.clock = clock
        self.last_prompt: Optional[str] = None

    def data(self) -> str:
        return aggregate(self.state.records, self.state.selection, self.settings.json_output)

    def inputs(self) -> PromptInputs:
        return PromptInputs(
            instruction=self.settings.instruction,
            extra_instruction=self.settings.extra_instruction,
            context=self.settings.context,
            data=self.data(),
        )

    def compile(self, inputs: Optional[PromptInputs] = None) -> str:
        inputs = inputs or self.inputs()
        self.last_prompt = compile_inputs(
            inputs,
            now=self.clock(),
            region=self.settings.resolved_region(),
        )
        return self.last_prompt
