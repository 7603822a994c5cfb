"""Exception hierarchy for ufinder."""

from __future__ import annotations


class UfinderError(Exception):
    """Base class for errors surfaced by ufinder."""


class ConfigurationError(UfinderError, ValueError):
    """Invalid top-level configuration detected before any source runs."""


class MergeError(UfinderError):
    """The global merge step could not read or write the master store; carried on the run report."""


__all__ = ["ConfigurationError", "MergeError", "UfinderError"]
