"""Pydantic models describing the configured URL sources."""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_SOURCE_NAME = re.compile(r"^[A-Za-z0-9_-]+$")


class ProducerMode(str, Enum):
    """How a source's external tool hands back its URLs."""

    STREAM = "stream"
    PATH = "path"


class SourceConfig(BaseModel):
    """One external URL producer and how to invoke it."""

    model_config = ConfigDict(frozen=True)

    name: str
    command: str
    mode: ProducerMode = ProducerMode.STREAM
    api_key_env: str | None = None
    timeout: float | None = Field(
        default=None,
        description="Seconds before the producer is killed; null blocks indefinitely.",
    )
    enabled: bool = True

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("source name cannot be empty")
        if not _SOURCE_NAME.match(text):
            raise ValueError(f"source name may only contain letters, digits, '-' and '_': {text!r}")
        return text

    @model_validator(mode="after")
    def _validate_command(self) -> "SourceConfig":
        if not self.command.strip():
            raise ValueError(f"command for source {self.name!r} cannot be empty")
        if self.mode is ProducerMode.PATH and "{output_path}" not in self.command:
            raise ValueError(
                f"source {self.name!r} uses path mode but its command has no {{output_path}} placeholder"
            )
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0 when set")
        return self


class GlobalConfig(BaseModel):
    """Immutable run configuration handed to the scheduler."""

    model_config = ConfigDict(frozen=True)

    sources: tuple[SourceConfig, ...]
    concurrency: int | None = Field(
        default=None,
        description="Maximum producers running at once; null runs every selected source in parallel.",
    )
    shell: str = "sh"
    sort_chunk_size: int = 100_000

    @model_validator(mode="after")
    def _validate_limits(self) -> "GlobalConfig":
        if not self.sources:
            raise ValueError("at least one source must be configured")
        names = [source.name for source in self.sources]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"duplicate source names: {', '.join(duplicates)}")
        if self.concurrency is not None and self.concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        if self.sort_chunk_size < 1:
            raise ValueError("sort_chunk_size must be >= 1")
        return self

    def source(self, name: str) -> SourceConfig | None:
        for source in self.sources:
            if source.name == name:
                return source
        return None

    def enabled_sources(self) -> list[SourceConfig]:
        return [source for source in self.sources if source.enabled]


__all__ = ["GlobalConfig", "ProducerMode", "SourceConfig"]
