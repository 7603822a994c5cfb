"""Sorted, deduplicated text-file sets of entries.

A line-set lives on disk as one entry per line, sorted by code point,
without duplicates or blank lines. Two APIs are offered:

* an in-memory one (``load`` / ``merge`` / ``persist``) for small sets, and
* a streaming one (``sorted_unique`` / ``merge_into``) that spills sorted runs
  to temporary files and k-way merges them, so memory stays bounded by
  ``chunk_size`` whatever the size of the stores involved.

All writes go through a temporary file in the target directory followed by
``os.replace`` so readers never observe a half-written store.
"""

from __future__ import annotations

import heapq
import os
import shutil
import tempfile
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass
from itertools import groupby
from operator import itemgetter
from pathlib import Path
from typing import IO, Iterable, Iterator

ENCODING = "utf-8"
# Keep undecodable bytes intact so identity stays byte-exact
ERRORS = "surrogateescape"
DEFAULT_CHUNK_SIZE = 100_000


def clean_lines(lines: Iterable[str]) -> Iterator[str]:
    """Yield trimmed, non-empty entries from raw lines."""

    for raw in lines:
        for part in raw.split("\n"):
            entry = part.strip()
            if entry:
                yield entry


def _dedupe_sorted(entries: Iterable[str]) -> Iterator[str]:
    previous: str | None = None
    for entry in entries:
        if entry != previous:
            yield entry
            previous = entry


def _write_entries(stream: IO[str], entries: Iterable[str]) -> int:
    written = 0
    for entry in entries:
        stream.write(entry)
        stream.write("\n")
        written += 1
    return written


@contextmanager
def atomic_writer(path: Path) -> Iterator[IO[str]]:
    """Open a temporary sibling of ``path`` and move it into place on success."""

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding=ENCODING, errors=ERRORS, newline="\n") as stream:
            yield stream
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


@dataclass(frozen=True, slots=True)
class MergeResult:
    merged: frozenset[str]
    added: frozenset[str]


@dataclass(frozen=True, slots=True)
class MergeStats:
    previous: int
    total: int
    added: int


class LineSetStore:
    """Load, merge and persist line-sets on the local filesystem."""

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE, tmp_dir: Path | None = None) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self.chunk_size = chunk_size
        self.tmp_dir = tmp_dir

    # ------------------------------------------------------------------
    # In-memory API
    # ------------------------------------------------------------------
    def iter_entries(self, path: Path) -> Iterator[str]:
        """Lazily yield the entries of ``path``; nothing when it is absent."""

        path = Path(path)
        if not path.exists():
            return
        with path.open("r", encoding=ENCODING, errors=ERRORS, newline="\n") as stream:
            yield from clean_lines(stream)

    def load(self, path: Path) -> set[str]:
        return set(self.iter_entries(path))

    @staticmethod
    def merge(existing: Iterable[str], incoming: Iterable[str]) -> MergeResult:
        """Union ``incoming`` into ``existing`` and report what was not known before."""

        before = frozenset(existing)
        added = frozenset(entry for entry in clean_lines(incoming) if entry not in before)
        return MergeResult(merged=before | added, added=added)

    def persist(self, entries: Iterable[str], path: Path) -> int:
        ordered = sorted(set(clean_lines(entries)))
        with atomic_writer(Path(path)) as stream:
            return _write_entries(stream, ordered)

    def count(self, path: Path) -> int:
        with self.sorted_unique(self.iter_entries(path)) as entries:
            return sum(1 for _ in entries)

    # ------------------------------------------------------------------
    # Streaming API
    # ------------------------------------------------------------------
    @contextmanager
    def sorted_unique(self, lines: Iterable[str]) -> Iterator[Iterator[str]]:
        """Yield a sorted, deduplicated stream of the entries in ``lines``.

        Input is consumed fully before the stream is handed out; chunks larger
        than ``chunk_size`` are spilled to temporary run files that live until
        the context exits.
        """

        with ExitStack() as stack:
            runs: list[IO[str]] = []
            chunk: list[str] = []
            for entry in clean_lines(lines):
                chunk.append(entry)
                if len(chunk) >= self.chunk_size:
                    runs.append(self._spill(chunk, stack))
                    chunk = []
            if not runs:
                yield iter(sorted(set(chunk)))
                return
            if chunk:
                runs.append(self._spill(chunk, stack))
            readers = [(line.rstrip("\n") for line in run) for run in runs]
            yield _dedupe_sorted(heapq.merge(*readers))

    def _spill(self, chunk: list[str], stack: ExitStack) -> IO[str]:
        run = stack.enter_context(
            tempfile.TemporaryFile(
                "w+",
                encoding=ENCODING,
                errors=ERRORS,
                newline="\n",
                prefix="ufinder-run-",
                dir=self.tmp_dir,
            )
        )
        _write_entries(run, sorted(set(chunk)))
        run.seek(0)
        return run

    def merge_into(
        self,
        base_path: Path,
        incoming: Iterable[str],
        merged_path: Path,
        added_path: Path,
    ) -> MergeStats:
        """Stream ``base_path ∪ incoming`` into ``merged_path`` and the novelty into ``added_path``.

        ``merged_path`` may be ``base_path``: the base is read completely
        before either output is moved into place.
        """

        previous = total = added = 0
        with ExitStack() as stack:
            base = stack.enter_context(self.sorted_unique(self.iter_entries(base_path)))
            fresh = stack.enter_context(self.sorted_unique(incoming))
            merged_out = stack.enter_context(atomic_writer(Path(merged_path)))
            added_out = stack.enter_context(atomic_writer(Path(added_path)))
            tagged = heapq.merge(((entry, 0) for entry in base), ((entry, 1) for entry in fresh))
            for entry, group in groupby(tagged, key=itemgetter(0)):
                origins = {origin for _, origin in group}
                merged_out.write(entry + "\n")
                total += 1
                if 0 in origins:
                    previous += 1
                else:
                    added_out.write(entry + "\n")
                    added += 1
        return MergeStats(previous=previous, total=total, added=added)

    def mirror(self, source: Path, target: Path) -> None:
        """Atomically replace ``target`` with a byte copy of ``source``."""

        with atomic_writer(Path(target)) as out, Path(source).open(
            "r", encoding=ENCODING, errors=ERRORS, newline="\n"
        ) as src:
            shutil.copyfileobj(src, out)


__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "LineSetStore",
    "MergeResult",
    "MergeStats",
    "atomic_writer",
    "clean_lines",
]
