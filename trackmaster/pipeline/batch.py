"""Chunked batch resolution of order rows.

Orders are split into fixed-size chunks. Orders inside a chunk are resolved
concurrently; chunks run one after another so chunk N is fully folded into
the run state, and its progress reported, before chunk N+1 starts.

Example:
    pipeline = BatchPipeline(resolver=resolver, store=store)
    pipeline.events.add_observer(progress_bar)
    result = await pipeline.run(normalize_orders(rows))
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Literal

from trackmaster.models import (
    FailureAction,
    OrderRow,
    QueueItem,
    TrackingResult,
    TrackingStatus,
)
from trackmaster.pipeline.events import PipelineEventEmitter
from trackmaster.pipeline.models import BatchRunResult, PipelineState
from trackmaster.services.failure_ledger import FailureLedger
from trackmaster.services.history import FromLedger, FromProvider, HistoryOutcome, check_history
from trackmaster.services.ledger_store import LedgerStore
from trackmaster.services.tracking_resolver import MISSING_ZIP_NOTE, TrackingResolver

logger = logging.getLogger(__name__)

QueueFlush = Literal["end", "chunk"]


class BatchPipeline:
    """Drives the history check and resolver over many orders.

    Attributes:
        _resolver: Resolver for orders not in the purchase ledger
        _store: Durable store for queue, purchases and session results
        _failures: Failure ledger fed with ERROR and missing-zip outcomes
    """

    DEFAULT_CHUNK_SIZE = 5

    def __init__(
        self,
        resolver: TrackingResolver,
        store: LedgerStore,
        failure_ledger: FailureLedger | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_delay: float = 0.1,
        queue_flush: QueueFlush = "end",
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the pipeline.

        Args:
            resolver: TrackingResolver used on ledger misses.
            store: LedgerStore for the purchase ledger, queue and results.
            failure_ledger: Ledger for failures (defaults to one on store).
            chunk_size: Orders resolved concurrently per chunk.
            chunk_delay: Pause in seconds after each chunk (provider pacing).
            queue_flush: "end" writes queue items once after the run,
                "chunk" writes them after every chunk.
            sleep: Awaitable sleep, injectable for tests.
        """
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        if queue_flush not in ("end", "chunk"):
            raise ValueError(f"Invalid queue_flush={queue_flush!r}")
        self._resolver = resolver
        self._store = store
        self._failures = failure_ledger or FailureLedger(store)
        self._chunk_size = chunk_size
        self._chunk_delay = chunk_delay
        self._queue_flush = queue_flush
        self._sleep = sleep
        self._event_emitter = PipelineEventEmitter()

    @property
    def events(self) -> PipelineEventEmitter:
        """Get event emitter for observer registration."""
        return self._event_emitter

    async def run(self, rows: Sequence[OrderRow]) -> BatchRunResult:
        """Resolve every row and record the outcome.

        Args:
            rows: Deduplicated order rows.

        Returns:
            BatchRunResult with all results, new queue items and counts.
        """
        purchased = self._store.purchased_by_order()
        state = PipelineState(total=len(rows), chunk_size=self._chunk_size)
        failures_before = len(self._failures.entries)

        await self._event_emitter.emit_batch_started(state.total, state.total_chunks)

        for chunk_index, start in enumerate(range(0, len(rows), self._chunk_size)):
            chunk = rows[start:start + self._chunk_size]
            outcomes = [check_history(row, purchased) for row in chunk]
            chunk_results = list(
                await asyncio.gather(*[self._resolve_outcome(o) for o in outcomes])
            )

            state.add_chunk(chunk_results, self._queue_items(chunk_results))
            self._record_failures(chunk_results)
            for result in chunk_results:
                self._log_outcome(result)

            if self._queue_flush == "chunk":
                self._flush_queue(state)

            await self._event_emitter.emit_chunk_completed(
                state.snapshot(chunk_index, chunk_results)
            )
            if self._chunk_delay > 0:
                await self._sleep(self._chunk_delay)

        self._flush_queue(state)
        self._store.replace_session_results(state.results)

        result = BatchRunResult(
            results=state.results,
            queued=state.queued,
            status_counts=state.status_counts(),
            progress=state.progress,
            failures=self._failures.entries[failures_before:],
        )
        logger.info(
            "Finished processing. total=%d counts=%s queued=%d",
            result.total,
            result.status_counts,
            len(result.queued),
        )
        await self._event_emitter.emit_batch_completed(result)
        return result

    async def _resolve_outcome(self, outcome: HistoryOutcome) -> TrackingResult:
        if isinstance(outcome, FromLedger):
            return outcome.result
        if isinstance(outcome, FromProvider):
            return await self._resolver.resolve(outcome.row)
        raise TypeError(f"Unknown history outcome: {outcome!r}")

    @staticmethod
    def _queue_items(results: list[TrackingResult]) -> list[QueueItem]:
        return [
            QueueItem(
                order_number=r.order_number,
                tracking_url=r.tracking_url,
                expected_delivery=r.expected_delivery,
            )
            for r in results
            if r.status == TrackingStatus.QUEUED and r.tracking_url and r.expected_delivery
        ]

    def _flush_queue(self, state: PipelineState) -> None:
        pending = state.queued[state.flushed_queue:]
        if pending:
            self._store.append_queue(pending)
            state.flushed_queue = len(state.queued)

    def _record_failures(self, results: list[TrackingResult]) -> None:
        for r in results:
            if r.status == TrackingStatus.ERROR:
                code = (r.debug_info or {}).get("error_code", "E-3001")
                self._failures.record(r.order_number, FailureAction.PROCESS, code, r.note)
            elif r.status == TrackingStatus.SKIPPED and r.note == MISSING_ZIP_NOTE:
                self._failures.record(r.order_number, FailureAction.PROCESS, "E-2001", r.note)

    @staticmethod
    def _log_outcome(r: TrackingResult) -> None:
        if r.status == TrackingStatus.QUEUED:
            logger.info("Order %s -> Queued (%s)", r.order_number, r.note)
        elif r.status == TrackingStatus.PROCESSED:
            if r.from_ledger:
                logger.info("Order %s -> Loaded from History", r.order_number)
            elif not r.is_7_days_future:
                logger.info("Order %s -> Processed (Warning: %s)", r.order_number, r.note)
            else:
                logger.info("Order %s -> Processed successfully", r.order_number)
        elif r.status == TrackingStatus.ERROR:
            logger.info("Order %s -> Error: %s", r.order_number, r.note)
        else:
            logger.info("Order %s -> Skipped: %s", r.order_number, r.note)
