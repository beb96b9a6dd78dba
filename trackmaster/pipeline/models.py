"""Data models for batch resolution and sequential workflows.

Defines the run-owned pipeline state, the immutable snapshots handed to
observers, and the summaries returned to callers.
"""

from collections import Counter
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from trackmaster.models import FailedItem, QueueItem, TrackingResult, TrackingStatus


def compute_progress(completed: int, total: int) -> int:
    """Percentage of orders completed, rounded half-up.

    Args:
        completed: Orders resolved so far.
        total: Orders in the run.

    Returns:
        Integer percentage 0-100 (100 for an empty run).
    """
    if total <= 0:
        return 100
    ratio = Decimal(completed) * 100 / Decimal(total)
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class PipelineSnapshot:
    """Immutable view of a run after a chunk completes."""

    chunk_index: int
    """0-based index of the chunk that just completed."""

    total_chunks: int
    """Number of chunks in the run."""

    completed: int
    """Orders resolved so far."""

    total: int
    """Orders in the run."""

    progress: int
    """Rounded completion percentage."""

    chunk_results: tuple[TrackingResult, ...]
    """Results of the chunk that just completed."""

    status_counts: dict[str, int]
    """Results so far, counted by status value."""


@dataclass
class PipelineState:
    """Mutable state owned by one batch run.

    Only the run that created it folds chunk results in; observers see
    PipelineSnapshot copies.
    """

    total: int
    chunk_size: int
    results: list[TrackingResult] = field(default_factory=list)
    queued: list[QueueItem] = field(default_factory=list)
    flushed_queue: int = 0
    completed: int = 0

    @property
    def total_chunks(self) -> int:
        return -(-self.total // self.chunk_size) if self.total else 0

    @property
    def progress(self) -> int:
        return compute_progress(self.completed, self.total)

    def status_counts(self) -> dict[str, int]:
        counts = Counter(r.status.value for r in self.results)
        return {status.value: counts.get(status.value, 0) for status in TrackingStatus}

    def add_chunk(
        self, chunk_results: list[TrackingResult], queue_items: list[QueueItem]
    ) -> None:
        """Fold one completed chunk into the run."""
        self.results.extend(chunk_results)
        self.queued.extend(queue_items)
        self.completed += len(chunk_results)

    def snapshot(self, chunk_index: int, chunk_results: list[TrackingResult]) -> PipelineSnapshot:
        """Freeze the current state for observers."""
        return PipelineSnapshot(
            chunk_index=chunk_index,
            total_chunks=self.total_chunks,
            completed=self.completed,
            total=self.total,
            progress=self.progress,
            chunk_results=tuple(r.model_copy(deep=True) for r in chunk_results),
            status_counts=self.status_counts(),
        )


@dataclass
class BatchRunResult:
    """Result of a batch resolution run."""

    results: list[TrackingResult]
    """One result per input order, in chunk order."""

    queued: list[QueueItem]
    """Queue items created by this run."""

    status_counts: dict[str, int]
    """Results counted by status value."""

    progress: int
    """Final completion percentage."""

    failures: list[FailedItem] = field(default_factory=list)
    """Failure ledger entries recorded during the run."""

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def visible_results(self) -> list[TrackingResult]:
        """Results shown to the operator (QUEUED orders are held back)."""
        return [r for r in self.results if r.status != TrackingStatus.QUEUED]


@dataclass
class WorkflowSummary:
    """Aggregate outcome of a purchase or fulfillment run."""

    succeeded: int = 0
    """Orders whose remote call succeeded."""

    failed: int = 0
    """Orders that produced a failure ledger entry."""

    skipped: int = 0
    """Orders skipped without a failure (unknown or already done)."""

    failures: list[FailedItem] = field(default_factory=list)
    """Failure ledger entries recorded during the run."""

    @property
    def attempted(self) -> int:
        return self.succeeded + self.failed
