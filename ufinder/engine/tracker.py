"""Per-source history tracking: run producer, merge into history, emit delta."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from threading import Lock
from typing import Callable

from ..config import SourceConfig, SourcePaths
from ..logging_conf import source_logger
from .lineset import LineSetStore
from .producer import ProducerContext, ProducerRunner, build_producer


class TrackerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SETTLING = "settling"


@dataclass(slots=True)
class SourceReport:
    """Accounting for one source after a run."""

    source: str
    total: int
    new: int
    ok: bool = True
    error: str | None = None


StateListener = Callable[[str, TrackerState], None]


class DeltaTracker:
    """Own one source's history store and fold each run's output into it."""

    def __init__(
        self,
        source: SourceConfig,
        paths: SourcePaths,
        store: LineSetStore,
        producer: ProducerRunner | None = None,
        on_state_change: StateListener | None = None,
    ) -> None:
        self.source = source
        self.paths = paths
        self.store = store
        self.producer = producer or build_producer(source)
        self.on_state_change = on_state_change
        self._state = TrackerState.IDLE
        self._lock = Lock()
        self.logger = source_logger(source.name)

    @property
    def state(self) -> TrackerState:
        return self._state

    def _set_state(self, state: TrackerState) -> None:
        self._state = state
        if self.on_state_change is not None:
            self.on_state_change(self.source.name, state)

    def execute(self, context: ProducerContext) -> SourceReport:
        # Same-source runs queue here; different sources never share a tracker
        with self._lock:
            try:
                self._set_state(TrackerState.RUNNING)
                result = self.producer.run(context)
                with result:
                    self._set_state(TrackerState.SETTLING)
                    try:
                        stats = self.store.merge_into(
                            self.paths.history,
                            result.lines(),
                            self.paths.history,
                            self.paths.last,
                        )
                        self.store.mirror(self.paths.history, self.paths.output)
                    except OSError as exc:
                        self.logger.error(
                            "source_store_failed", error=str(exc), history=str(self.paths.history)
                        )
                        return SourceReport(
                            source=self.source.name,
                            total=self.last_known_total(),
                            new=0,
                            ok=False,
                            error=f"I/O error: {exc}",
                        )
            finally:
                self._set_state(TrackerState.IDLE)

        self.logger.info(
            "source_merged",
            total=stats.total,
            new=stats.added,
            previous=stats.previous,
            producer_ok=result.ok,
        )
        return SourceReport(
            source=self.source.name,
            total=stats.total,
            new=stats.added,
            ok=result.ok,
            error=result.error,
        )

    def last_known_total(self) -> int:
        try:
            return self.store.count(self.paths.history)
        except OSError as exc:
            self.logger.warning("history_unreadable", error=str(exc))
            return 0


__all__ = ["DeltaTracker", "SourceReport", "StateListener", "TrackerState"]
