"""Engine components: line-set store → producer → delta tracker → global merger."""

from .lineset import LineSetStore, MergeResult, MergeStats
from .merger import GlobalMergeResult, GlobalMerger, GlobalReport
from .producer import (
    PathProducer,
    ProducerContext,
    ProducerResult,
    ProducerRunner,
    StreamProducer,
    build_producer,
)
from .thread_pool import BoundedWorkerPool
from .tracker import DeltaTracker, SourceReport, TrackerState

__all__ = [
    "BoundedWorkerPool",
    "DeltaTracker",
    "GlobalMergeResult",
    "GlobalMerger",
    "GlobalReport",
    "LineSetStore",
    "MergeResult",
    "MergeStats",
    "PathProducer",
    "ProducerContext",
    "ProducerResult",
    "ProducerRunner",
    "SourceReport",
    "StreamProducer",
    "TrackerState",
    "build_producer",
]
