"""Shared fixtures: source builders, layouts and on-disk config files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator

import pytest
import yaml

from ufinder.config import EndpointsLayout, GlobalConfig, ProducerMode, SourceConfig
from ufinder.engine import LineSetStore
from ufinder.logging_conf import configure_logging


@pytest.fixture(autouse=True, scope="session")
def _logging() -> None:
    # Bind the console handler before any CliRunner swaps the standard streams
    configure_logging()


@pytest.fixture(autouse=True)
def _restore_log_levels() -> Iterator[None]:
    root = logging.getLogger("ufinder")
    levels = [(item, item.level) for item in (root, *root.handlers)]
    yield
    for item, level in levels:
        item.setLevel(level)


def write_lines(path: Path, lines: Iterable[str]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
    return path


def read_lines(path: Path) -> list[str]:
    return path.read_text(encoding="utf-8").splitlines()


@pytest.fixture
def make_source() -> Callable[..., SourceConfig]:
    def _builder(name: str = "alpha", command: str = "printf 'a.com/1\\n'", **overrides: Any) -> SourceConfig:
        base: dict[str, Any] = {"name": name, "command": command, "mode": ProducerMode.STREAM}
        base.update(overrides)
        return SourceConfig(**base)

    return _builder


@pytest.fixture
def make_config(make_source) -> Callable[..., GlobalConfig]:
    def _builder(*sources: SourceConfig, **overrides: Any) -> GlobalConfig:
        return GlobalConfig(sources=tuple(sources) or (make_source(),), **overrides)

    return _builder


@pytest.fixture
def layout(tmp_path: Path) -> EndpointsLayout:
    result = EndpointsLayout(tmp_path / "out")
    result.ensure_directories()
    return result


@pytest.fixture
def store() -> LineSetStore:
    return LineSetStore(chunk_size=3)


@pytest.fixture
def config_file(tmp_path: Path) -> Callable[[dict], Path]:
    def _write(payload: dict, name: str = "sources.yaml") -> Path:
        path = tmp_path / name
        path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
        return path

    return _write
