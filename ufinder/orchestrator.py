"""Discovery orchestrator: schedule sources, join, then merge the master set."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping

from .config import EndpointsLayout, GlobalConfig
from .engine import GlobalMerger, GlobalReport, LineSetStore, ProducerContext, SourceReport
from .engine.tracker import StateListener
from .exceptions import ConfigurationError, MergeError
from .logging_conf import configure_logging
from .scheduler import AggregationScheduler
from .scheduler.aggregation import TrackerFactory


@dataclass(slots=True)
class RunReport:
    """Everything a caller needs to render the summary of one discovery run."""

    sources: list[SourceReport]
    totals: GlobalReport | None
    invalid_sources: list[str] = field(default_factory=list)
    peak_running: int = 0
    merge_error: MergeError | None = None

    @property
    def failed_sources(self) -> list[SourceReport]:
        return [report for report in self.sources if not report.ok]


class Orchestrator:
    """Central coordinator for one output folder."""

    def __init__(
        self,
        config: GlobalConfig,
        output_folder: Path,
        *,
        env: Mapping[str, str] | None = None,
        tracker_factory: TrackerFactory | None = None,
        on_state_change: StateListener | None = None,
    ) -> None:
        self.config = config
        self.layout = EndpointsLayout(Path(output_folder))
        self.env = env
        self.store = LineSetStore(chunk_size=config.sort_chunk_size)
        self.scheduler = AggregationScheduler(
            config,
            self.layout,
            self.store,
            tracker_factory=tracker_factory,
            on_state_change=on_state_change,
        )
        self.merger = GlobalMerger(self.store)
        self.logger = configure_logging().bind(component="orchestrator")

    def discover(self, target: str, sources: Iterable[str] | None = None) -> RunReport:
        target = (target or "").strip()
        if not target:
            raise ConfigurationError("A target domain is required.")
        requested = [name for name in sources or () if name and name.strip()]
        selection = self.scheduler.select(requested)
        if requested and not selection.sources:
            raise ConfigurationError(
                f"None of the requested sources are configured: {', '.join(selection.invalid)}"
            )

        self.layout.ensure_directories()
        context = ProducerContext(target=target, shell=self.config.shell, env=self.env)
        self.logger.info("discovery_started", target=target, output=str(self.layout.output_folder))
        scheduled = self.scheduler.run_selection(context, selection)

        # Every tracker is idle past this point
        totals: GlobalReport | None = None
        merge_error: MergeError | None = None
        try:
            merged = self.merger.merge(
                self.layout.master_path,
                self.layout.history_paths(self.config),
                self.layout.last_results_path,
            )
            totals = merged.report
        except OSError as exc:
            self.logger.error("global_merge_failed", error=str(exc))
            merge_error = MergeError(f"Global merge failed: {exc}")

        return RunReport(
            sources=scheduled.reports,
            totals=totals,
            invalid_sources=scheduled.invalid,
            peak_running=scheduled.peak_running,
            merge_error=merge_error,
        )


__all__ = ["Orchestrator", "RunReport"]
