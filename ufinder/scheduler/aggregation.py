"""Select sources and run their delta trackers under a concurrency cap."""

from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock
from typing import Callable, Iterable

from ..config import EndpointsLayout, GlobalConfig, SourceConfig
from ..engine import BoundedWorkerPool, DeltaTracker, LineSetStore, ProducerContext, SourceReport
from ..engine.producer import terminate_running_producers
from ..engine.tracker import StateListener
from ..logging_conf import configure_logging

TrackerFactory = Callable[[SourceConfig], DeltaTracker]


@dataclass(slots=True)
class Selection:
    sources: list[SourceConfig]
    invalid: list[str] = field(default_factory=list)


@dataclass(slots=True)
class SchedulerResult:
    reports: list[SourceReport]
    invalid: list[str] = field(default_factory=list)
    peak_running: int = 0


class AggregationScheduler:
    """Run the selected sources' trackers on a bounded pool and join before returning."""

    def __init__(
        self,
        config: GlobalConfig,
        layout: EndpointsLayout,
        store: LineSetStore | None = None,
        tracker_factory: TrackerFactory | None = None,
        on_state_change: StateListener | None = None,
    ) -> None:
        self.config = config
        self.layout = layout
        self.store = store or LineSetStore(chunk_size=config.sort_chunk_size)
        self.on_state_change = on_state_change
        self._tracker_factory = tracker_factory or self._default_tracker
        self._trackers: dict[str, DeltaTracker] = {}
        self._lock = Lock()
        self.logger = configure_logging().bind(component="scheduler")

    def _default_tracker(self, source: SourceConfig) -> DeltaTracker:
        return DeltaTracker(
            source,
            self.layout.source_paths(source),
            self.store,
            on_state_change=self.on_state_change,
        )

    def tracker(self, source: SourceConfig) -> DeltaTracker:
        with self._lock:
            if source.name not in self._trackers:
                self._trackers[source.name] = self._tracker_factory(source)
            return self._trackers[source.name]

    def select(self, names: Iterable[str] | None = None) -> Selection:
        """Resolve requested names; ``None`` or nothing requested means every enabled source."""

        requested = [name.strip() for name in names or () if name and name.strip()]
        if not requested:
            return Selection(sources=self.config.enabled_sources())
        selected: list[SourceConfig] = []
        invalid: list[str] = []
        seen: set[str] = set()
        for name in requested:
            if name in seen:
                continue
            seen.add(name)
            source = self.config.source(name)
            if source is None:
                self.logger.error("invalid_source", source=name)
                invalid.append(name)
            else:
                selected.append(source)
        return Selection(sources=selected, invalid=invalid)

    def run(self, context: ProducerContext, names: Iterable[str] | None = None) -> SchedulerResult:
        return self.run_selection(context, self.select(names))

    def run_selection(self, context: ProducerContext, selection: Selection) -> SchedulerResult:
        if not selection.sources:
            return SchedulerResult(reports=[], invalid=selection.invalid)

        workers = self.config.concurrency or len(selection.sources)
        self.logger.info(
            "scheduler_started",
            sources=[source.name for source in selection.sources],
            workers=workers,
        )
        with BoundedWorkerPool(workers, thread_name_prefix="ufinder-source") as pool:
            for source in selection.sources:
                pool.submit(self.tracker(source).execute, context)
            try:
                futures = pool.join()
            except KeyboardInterrupt:
                pool.cancel_pending()
                killed = terminate_running_producers()
                self.logger.warning("run_interrupted", killed_producers=killed)
                raise
            peak = pool.peak_running

        reports: list[SourceReport] = []
        for source, future in zip(selection.sources, futures):
            try:
                reports.append(future.result())
            except Exception as exc:  # noqa: BLE001
                self.logger.error("source_crashed", source=source.name, error=str(exc))
                reports.append(
                    SourceReport(
                        source=source.name,
                        total=self.tracker(source).last_known_total(),
                        new=0,
                        ok=False,
                        error=str(exc),
                    )
                )
        self.logger.info("scheduler_joined", sources=len(reports), peak_running=peak)
        return SchedulerResult(reports=reports, invalid=selection.invalid, peak_running=peak)


__all__ = ["AggregationScheduler", "SchedulerResult", "Selection", "TrackerFactory"]
