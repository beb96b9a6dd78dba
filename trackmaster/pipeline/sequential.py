"""Sequential task execution with a fixed inter-task delay.

Purchases and fulfillments have non-idempotent remote side effects, so
they run one at a time in input order. The pause between remote calls is
a scheduling parameter of the runner, not part of the handlers.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class TaskStatus(str, Enum):
    """Outcome of one sequential task."""

    succeeded = "succeeded"
    failed = "failed"
    skipped = "skipped"


@dataclass(frozen=True)
class TaskOutcome:
    """Result returned by a task handler.

    Attributes:
        status: How the task ended.
        contacted_remote: Whether a remote call was made (triggers pacing).
    """

    status: TaskStatus
    contacted_remote: bool = False


@dataclass(frozen=True)
class DelayPolicy:
    """Pause applied after tasks that contacted the remote system."""

    seconds: float = 0.0

    def delay_after(self, outcome: TaskOutcome) -> float:
        return self.seconds if outcome.contacted_remote else 0.0


class SequentialRunner:
    """Runs a handler over tasks strictly one after another.

    Example:
        runner = SequentialRunner(DelayPolicy(seconds=0.5))
        outcomes = await runner.run(order_numbers, handle_order)
    """

    def __init__(
        self,
        delay_policy: DelayPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._delay_policy = delay_policy or DelayPolicy()
        self._sleep = sleep

    async def run(
        self,
        tasks: Iterable[Any],
        handler: Callable[[Any], Awaitable[TaskOutcome]],
    ) -> list[TaskOutcome]:
        """Run every task in order.

        The handler is responsible for catching its own per-task errors;
        anything it lets escape stops the run.

        Args:
            tasks: Task inputs in execution order.
            handler: Async handler returning a TaskOutcome.

        Returns:
            Outcomes in task order.
        """
        outcomes: list[TaskOutcome] = []
        for task in tasks:
            outcome = await handler(task)
            outcomes.append(outcome)
            delay = self._delay_policy.delay_after(outcome)
            if delay > 0:
                await self._sleep(delay)
        logger.debug("Sequential run finished: %d tasks", len(outcomes))
        return outcomes
