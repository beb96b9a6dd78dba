"""Observer pattern for batch pipeline events.

Provides the PipelineObserver protocol and PipelineEventEmitter class for
notifying observers of batch progress.
"""

import logging
from typing import Protocol

from trackmaster.pipeline.models import BatchRunResult, PipelineSnapshot

logger = logging.getLogger(__name__)


class PipelineObserver(Protocol):
    """Observer protocol for batch pipeline events.

    Implementations can subscribe via PipelineEventEmitter to render
    progress, update a UI, or log activity.
    """

    async def on_batch_started(self, total_orders: int, total_chunks: int) -> None:
        """Called before the first chunk starts.

        Args:
            total_orders: Orders in the run.
            total_chunks: Chunks the orders were split into.
        """
        ...

    async def on_chunk_completed(self, snapshot: PipelineSnapshot) -> None:
        """Called after each chunk is folded into the run state.

        Args:
            snapshot: Immutable view of the run after the chunk.
        """
        ...

    async def on_batch_completed(self, result: BatchRunResult) -> None:
        """Called once the run and its queue write have finished.

        Args:
            result: Final run result.
        """
        ...


class PipelineEventEmitter:
    """Emits pipeline events to registered observers.

    Exceptions from individual observers are caught and logged to prevent
    one broken observer from stopping event delivery to others.
    """

    def __init__(self) -> None:
        """Initialize emitter with empty observer list."""
        self._observers: list[PipelineObserver] = []

    def add_observer(self, observer: PipelineObserver) -> None:
        """Register an observer to receive pipeline events."""
        self._observers.append(observer)

    async def emit_batch_started(self, total_orders: int, total_chunks: int) -> None:
        """Emit batch started event to all observers."""
        for observer in self._observers:
            try:
                await observer.on_batch_started(total_orders, total_chunks)
            except Exception as e:
                logger.error(
                    "Observer %s failed on_batch_started: %s",
                    type(observer).__name__,
                    e,
                )

    async def emit_chunk_completed(self, snapshot: PipelineSnapshot) -> None:
        """Emit chunk completed event to all observers."""
        for observer in self._observers:
            try:
                await observer.on_chunk_completed(snapshot)
            except Exception as e:
                logger.error(
                    "Observer %s failed on_chunk_completed: %s",
                    type(observer).__name__,
                    e,
                )

    async def emit_batch_completed(self, result: BatchRunResult) -> None:
        """Emit batch completed event to all observers."""
        for observer in self._observers:
            try:
                await observer.on_batch_completed(result)
            except Exception as e:
                logger.error(
                    "Observer %s failed on_batch_completed: %s",
                    type(observer).__name__,
                    e,
                )
