from __future__ import annotations

import pytest

from conftest import read_lines, write_lines
from ufinder.engine import GlobalMerger


def test_example_scenario_global_accounting(layout, store) -> None:
    write_lines(layout.master_path, ["a.com/1"])
    history = write_lines(layout.source_paths("x").history, ["a.com/1", "a.com/2"])

    result = GlobalMerger(store).merge(layout.master_path, [history], layout.last_results_path)

    assert read_lines(layout.master_path) == ["a.com/1", "a.com/2"]
    assert read_lines(layout.last_results_path) == ["a.com/2"]
    report = result.report
    assert (report.previous_total, report.current_total, report.new_count) == (1, 2, 1)


def test_union_covers_every_history_and_skips_missing(layout, store) -> None:
    first = write_lines(layout.source_paths("a").history, ["u/3", "u/1"])
    second = write_lines(layout.source_paths("b").history, ["u/2", "u/1", ""])
    missing = layout.source_paths("c").history

    result = GlobalMerger(store).merge(
        layout.master_path, [first, second, missing], layout.last_results_path
    )

    assert read_lines(layout.master_path) == ["u/1", "u/2", "u/3"]
    assert read_lines(layout.last_results_path) == ["u/1", "u/2", "u/3"]
    assert result.report.previous_total == 0
    assert result.report.new_count == 3


def test_rerun_is_idempotent(layout, store) -> None:
    history = write_lines(layout.source_paths("a").history, ["u/1", "u/2"])
    merger = GlobalMerger(store)
    merger.merge(layout.master_path, [history], layout.last_results_path)
    before = layout.master_path.read_bytes()

    result = merger.merge(layout.master_path, [history], layout.last_results_path)

    assert layout.master_path.read_bytes() == before
    assert layout.last_results_path.read_bytes() == b""
    assert result.report.new_count == 0
    assert result.report.current_total == result.report.previous_total == 2


def test_master_never_loses_entries(layout, store) -> None:
    write_lines(layout.master_path, ["old/1", "old/2"])
    history = write_lines(layout.source_paths("a").history, ["new/1"])

    result = GlobalMerger(store).merge(layout.master_path, [history], layout.last_results_path)

    assert read_lines(layout.master_path) == ["new/1", "old/1", "old/2"]
    report = result.report
    assert report.current_total >= report.previous_total
    assert report.current_total - report.previous_total == report.new_count


def test_unreadable_master_raises_and_keeps_store(layout, store) -> None:
    layout.master_path.mkdir()
    history = write_lines(layout.source_paths("a").history, ["u/1"])
    with pytest.raises(OSError):
        GlobalMerger(store).merge(layout.master_path, [history], layout.last_results_path)
    assert layout.master_path.is_dir()
