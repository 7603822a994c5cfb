from __future__ import annotations

from pathlib import Path

import pytest

from conftest import read_lines, write_lines
from ufinder.engine.lineset import LineSetStore, clean_lines


def test_load_missing_and_blank_files_are_empty(tmp_path: Path, store: LineSetStore) -> None:
    assert store.load(tmp_path / "missing.txt") == set()
    blank = write_lines(tmp_path / "blank.txt", ["", "   ", "\t"])
    assert store.load(blank) == set()
    empty = tmp_path / "empty.txt"
    empty.write_text("", encoding="utf-8")
    assert store.load(empty) == set()


def test_load_unreadable_present_path_raises(tmp_path: Path, store: LineSetStore) -> None:
    directory = tmp_path / "a-directory.txt"
    directory.mkdir()
    with pytest.raises(OSError):
        store.load(directory)


def test_clean_lines_trims_and_drops_blanks() -> None:
    raw = ["  a.com/1  ", "", "\tb.com\r", "c.com\nd.com", "   "]
    assert list(clean_lines(raw)) == ["a.com/1", "b.com", "c.com", "d.com"]


def test_merge_reports_novelty_against_existing_only() -> None:
    existing = {"a.com/1"}
    result = LineSetStore.merge(existing, ["a.com/1", " a.com/2 ", "", "a.com/2"])
    assert result.added == {"a.com/2"}
    assert result.merged == {"a.com/1", "a.com/2"}
    assert existing == {"a.com/1"}


def test_persist_writes_sorted_unique_without_blanks(tmp_path: Path, store: LineSetStore) -> None:
    target = tmp_path / "nested" / "set.txt"
    written = store.persist(["b", " a ", "", "b", "c", "a"], target)
    assert written == 3
    assert target.read_text(encoding="utf-8") == "a\nb\nc\n"


def test_persist_empty_set_writes_zero_length_file(tmp_path: Path, store: LineSetStore) -> None:
    target = tmp_path / "empty.txt"
    write_lines(target, ["old"])
    assert store.persist([], target) == 0
    assert target.read_bytes() == b""


def test_persist_leaves_no_temporary_files(tmp_path: Path, store: LineSetStore) -> None:
    store.persist(["x"], tmp_path / "set.txt")
    assert sorted(p.name for p in tmp_path.iterdir()) == ["set.txt"]


def test_sorted_unique_spills_and_merges_runs(store: LineSetStore) -> None:
    lines = ["e", "b", "a", "d", "b", "c", "a", " e ", "", "f"]
    with store.sorted_unique(lines) as entries:
        assert list(entries) == ["a", "b", "c", "d", "e", "f"]


def test_merge_into_streams_union_and_delta(tmp_path: Path, store: LineSetStore) -> None:
    base = write_lines(tmp_path / "history.raw", ["c", "a", "a", "", "b"])
    last = tmp_path / "last.txt"
    stats = store.merge_into(base, ["d", "b", " e", "", "d", "a"], base, last)
    assert read_lines(base) == ["a", "b", "c", "d", "e"]
    assert read_lines(last) == ["d", "e"]
    assert (stats.previous, stats.total, stats.added) == (3, 5, 2)
    assert stats.total - stats.previous == stats.added


def test_merge_into_is_idempotent(tmp_path: Path, store: LineSetStore) -> None:
    base = write_lines(tmp_path / "history.raw", ["a", "b"])
    last = tmp_path / "last.txt"
    store.merge_into(base, ["b", "c"], base, last)
    stats = store.merge_into(base, ["b", "c"], base, last)
    assert stats.added == 0
    assert last.read_bytes() == b""
    assert read_lines(base) == ["a", "b", "c"]


def test_merge_into_creates_missing_base(tmp_path: Path, store: LineSetStore) -> None:
    base = tmp_path / "endpoints" / "new.txt.raw"
    last = tmp_path / "endpoints" / "last_new.txt"
    stats = store.merge_into(base, ["z", "y"], base, last)
    assert stats.previous == 0
    assert read_lines(base) == ["y", "z"]
    assert read_lines(last) == ["y", "z"]


def test_count_ignores_duplicates_and_blanks(tmp_path: Path, store: LineSetStore) -> None:
    path = write_lines(tmp_path / "messy.txt", ["b", "", "a", "b", " a "])
    assert store.count(path) == 2
    assert store.count(tmp_path / "absent.txt") == 0


def test_non_utf8_bytes_roundtrip(tmp_path: Path, store: LineSetStore) -> None:
    base = tmp_path / "bytes.raw"
    base.write_bytes(b"http://a.com/\xff\n")
    last = tmp_path / "last.txt"
    store.merge_into(base, [], base, last)
    assert base.read_bytes() == b"http://a.com/\xff\n"


def test_mirror_copies_content(tmp_path: Path, store: LineSetStore) -> None:
    source = write_lines(tmp_path / "a.raw", ["x", "y"])
    target = tmp_path / "a.txt"
    store.mirror(source, target)
    assert target.read_bytes() == source.read_bytes()


def test_chunk_size_must_be_positive() -> None:
    with pytest.raises(ValueError):
        LineSetStore(chunk_size=0)
