"""Configuration loading helpers and the on-disk endpoints layout."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import yaml
from pydantic import ValidationError

from ..exceptions import ConfigurationError
from .models import GlobalConfig, SourceConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
CONFIG_ENV_VAR = "UFINDER_CONFIG"
TEMPLATE_NAME = "sources.yaml"

ENDPOINTS_DIRNAME = "endpoints"
MASTER_FILENAME = "urls.txt"
LAST_RESULTS_FILENAME = "last_results.txt"
HISTORY_SUFFIX = ".raw"


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix == ".json":
            json.dump(payload, stream, indent=2, ensure_ascii=False)
        else:
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)


def template_path() -> Path:
    return Path(__file__).resolve().parent / "templates" / TEMPLATE_NAME


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, default_path: Path | None = None) -> None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if default_path is None and env_path:
            default_path = Path(env_path).expanduser()
        self.default_path = default_path

    def load_global_config(self, path: Path | None = None) -> GlobalConfig:
        """Load and validate a configuration file, falling back to the built-in catalogue."""

        resolved = path or self.default_path or template_path()
        if resolved.suffix not in CONFIG_EXTENSIONS:
            raise ConfigurationError(
                f"Unsupported configuration format {resolved.suffix!r}; expected one of {CONFIG_EXTENSIONS}"
            )
        if not resolved.exists():
            raise ConfigurationError(f"Configuration file not found: {resolved}")
        try:
            payload = _read_file(resolved)
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as exc:
            raise ConfigurationError(f"Cannot read configuration {resolved}: {exc}") from exc
        try:
            return GlobalConfig.model_validate(payload)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration {resolved}:\n{exc}") from exc

    def save_global_config(self, config: GlobalConfig, path: Path) -> Path:
        payload = config.model_dump(mode="json", exclude_defaults=False)
        _write_file(path, payload)
        return path


@dataclass(frozen=True, slots=True)
class SourcePaths:
    """Store files owned by a single source."""

    output: Path
    history: Path
    last: Path


@dataclass(slots=True)
class EndpointsLayout:
    """Resolve the persisted files under ``<output-folder>/endpoints``."""

    output_folder: Path
    endpoints_dir: Path | None = None

    def __post_init__(self) -> None:
        self.output_folder = Path(self.output_folder).expanduser()
        self.endpoints_dir = self.output_folder / ENDPOINTS_DIRNAME

    def ensure_directories(self) -> None:
        self.endpoints_dir.mkdir(parents=True, exist_ok=True)

    @property
    def master_path(self) -> Path:
        return self.endpoints_dir / MASTER_FILENAME

    @property
    def last_results_path(self) -> Path:
        return self.endpoints_dir / LAST_RESULTS_FILENAME

    @property
    def logs_dir(self) -> Path:
        return self.output_folder / "logs"

    def source_paths(self, source: SourceConfig | str) -> SourcePaths:
        name = source if isinstance(source, str) else source.name
        output = self.endpoints_dir / f"{name}.txt"
        return SourcePaths(
            output=output,
            history=output.with_name(output.name + HISTORY_SUFFIX),
            last=self.endpoints_dir / f"last_{name}.txt",
        )

    def history_paths(self, config: GlobalConfig) -> list[Path]:
        """Every source history on disk: configured sources first, then leftovers."""

        paths = [self.source_paths(source).history for source in config.sources]
        known = set(paths)
        if self.endpoints_dir.exists():
            for path in sorted(self.endpoints_dir.glob(f"*.txt{HISTORY_SUFFIX}")):
                if path not in known:
                    paths.append(path)
        return paths


__all__ = [
    "CONFIG_ENV_VAR",
    "CONFIG_EXTENSIONS",
    "ConfigRepository",
    "EndpointsLayout",
    "SourcePaths",
    "template_path",
]
