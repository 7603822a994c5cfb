"""Incremental multi-source URL aggregation."""

from .orchestrator import Orchestrator, RunReport

__version__ = "0.1.0"

__all__ = ["Orchestrator", "RunReport", "__version__"]
