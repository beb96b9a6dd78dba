"""Batch resolution pipeline and sequential workflow runner.

This package provides:
- BatchPipeline: chunked, concurrent-within-chunk order resolution
- PipelineEventEmitter: observer hooks for progress reporting
- SequentialRunner: one-at-a-time task execution with pacing
"""

from trackmaster.pipeline.batch import BatchPipeline
from trackmaster.pipeline.events import PipelineEventEmitter, PipelineObserver
from trackmaster.pipeline.models import (
    BatchRunResult,
    PipelineSnapshot,
    PipelineState,
    WorkflowSummary,
    compute_progress,
)
from trackmaster.pipeline.sequential import (
    DelayPolicy,
    SequentialRunner,
    TaskOutcome,
    TaskStatus,
)

__all__ = [
    "BatchPipeline",
    "BatchRunResult",
    "DelayPolicy",
    "PipelineEventEmitter",
    "PipelineObserver",
    "PipelineSnapshot",
    "PipelineState",
    "SequentialRunner",
    "TaskOutcome",
    "TaskStatus",
    "WorkflowSummary",
    "compute_progress",
]
