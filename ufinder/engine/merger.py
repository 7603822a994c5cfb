"""Fold every source history and the prior master set into a new master set."""

from __future__ import annotations

from dataclasses import dataclass
from itertools import chain
from pathlib import Path
from typing import Iterable, Sequence

from ..logging_conf import configure_logging
from .lineset import LineSetStore


@dataclass(slots=True)
class GlobalReport:
    previous_total: int
    current_total: int
    new_count: int


@dataclass(slots=True)
class GlobalMergeResult:
    master_path: Path
    added_path: Path
    report: GlobalReport


class GlobalMerger:
    """Single-threaded owner of the master store; runs after all sources are idle."""

    def __init__(self, store: LineSetStore) -> None:
        self.store = store
        self.logger = configure_logging().bind(component="merger")

    def _history_entries(self, paths: Iterable[Path]) -> Iterable[str]:
        return chain.from_iterable(self.store.iter_entries(path) for path in paths)

    def merge(
        self,
        prior_master_path: Path,
        source_history_paths: Sequence[Path],
        added_path: Path,
    ) -> GlobalMergeResult:
        """Rewrite ``prior_master_path`` as the union and write the new entries to ``added_path``.

        Raises ``OSError`` when a store cannot be read or written; the
        previous master is left untouched in that case.
        """

        existing = [path for path in source_history_paths if Path(path).exists()]
        self.logger.info(
            "global_merge_started",
            master=str(prior_master_path),
            histories=len(existing),
        )
        stats = self.store.merge_into(
            prior_master_path,
            self._history_entries(existing),
            prior_master_path,
            added_path,
        )
        report = GlobalReport(
            previous_total=stats.previous,
            current_total=stats.total,
            new_count=stats.added,
        )
        self.logger.info(
            "global_merge_complete",
            previous_total=report.previous_total,
            current_total=report.current_total,
            new_count=report.new_count,
        )
        return GlobalMergeResult(
            master_path=Path(prior_master_path), added_path=Path(added_path), report=report
        )


__all__ = ["GlobalMergeResult", "GlobalMerger", "GlobalReport"]
