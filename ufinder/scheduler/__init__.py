"""Source scheduling."""

from .aggregation import AggregationScheduler, SchedulerResult, Selection

__all__ = ["AggregationScheduler", "SchedulerResult", "Selection"]
