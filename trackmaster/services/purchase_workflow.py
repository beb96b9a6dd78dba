"""Purchase of full tracking numbers for selected orders.

Purchases are billable, so orders are processed strictly one at a time in
the operator's selection order. A failing order is recorded in the failure
ledger and the run moves on to the next one.
"""

import logging
from collections.abc import Iterable

from trackmaster.clients.tracking_provider import TrackingProviderClient
from trackmaster.errors import ConfigurationError, PurchaseError
from trackmaster.models import (
    FailureAction,
    PurchasedItem,
    TrackingResult,
    TrackingStatus,
    build_tracking_url,
)
from trackmaster.pipeline.models import WorkflowSummary
from trackmaster.pipeline.sequential import (
    DelayPolicy,
    SequentialRunner,
    TaskOutcome,
    TaskStatus,
)
from trackmaster.services.failure_ledger import FailureLedger
from trackmaster.services.ledger_store import LedgerStore

logger = logging.getLogger(__name__)

PURCHASED_NOTE = "Purchased Successfully"


class PurchaseWorkflow:
    """Buys full tracking numbers for PROCESSED-but-masked results.

    Example:
        workflow = PurchaseWorkflow(provider, store)
        summary = await workflow.run(["#1001", "#1002"])
    """

    def __init__(
        self,
        provider: TrackingProviderClient,
        store: LedgerStore,
        failure_ledger: FailureLedger | None = None,
        delay: float = 0.2,
        runner: SequentialRunner | None = None,
    ) -> None:
        self._provider = provider
        self._store = store
        self._failures = failure_ledger or FailureLedger(store)
        self._runner = runner or SequentialRunner(DelayPolicy(seconds=delay))

    async def run(
        self,
        order_numbers: Iterable[str],
        results: list[TrackingResult] | None = None,
    ) -> WorkflowSummary:
        """Purchase tracking numbers for the selected orders.

        Args:
            order_numbers: Selected order numbers, processed in this order.
            results: Session results to update in place; loaded from the
                store when omitted.

        Returns:
            WorkflowSummary with success, failure and skip counts.

        Raises:
            ConfigurationError: E-5001 if no provider API key is configured.
        """
        if not self._provider.api_key:
            raise ConfigurationError.from_code("E-5001")

        session = results if results is not None else self._store.load_session_results()
        by_order = {r.order_number: r for r in session}
        selected = list(order_numbers)
        staged: list[PurchasedItem] = []
        updated: list[TrackingResult] = []
        failures_before = len(self._failures.entries)

        logger.info("Initiating purchase for %d orders...", len(selected))

        async def _purchase(order_number: str) -> TaskOutcome:
            item = by_order.get(order_number)
            if item is None:
                logger.info("Order %s: not in current results. Skipping.", order_number)
                return TaskOutcome(TaskStatus.skipped)

            if not item.hash_id:
                logger.info("Order %s: No Hash ID available. Skipping.", order_number)
                self._failures.record(order_number, FailureAction.BUY, "E-2004")
                return TaskOutcome(TaskStatus.failed)

            if item.has_full_tracking_number:
                logger.info(
                    "Order %s: Already has full tracking number. Skipping.", order_number
                )
                return TaskOutcome(TaskStatus.skipped)

            try:
                full_tracking = await self._provider.buy(item.hash_id)
            except PurchaseError as e:
                logger.info("Order %s Failed: %s", order_number, e)
                self._failures.record(order_number, FailureAction.BUY, "E-3002", str(e))
                return TaskOutcome(TaskStatus.failed, contacted_remote=True)
            except Exception as e:
                logger.error("Order %s purchase raised: %s", order_number, e)
                self._failures.record(order_number, FailureAction.BUY, "E-3002", str(e))
                return TaskOutcome(TaskStatus.failed, contacted_remote=True)

            tracking_url = build_tracking_url(full_tracking)
            item.tracking_number = full_tracking
            item.tracking_url = tracking_url
            item.status = TrackingStatus.PROCESSED
            item.note = PURCHASED_NOTE
            updated.append(item)
            staged.append(
                PurchasedItem(
                    order_number=order_number,
                    tracking_number=full_tracking,
                    tracking_url=tracking_url,
                    expected_delivery=item.expected_delivery,
                    zip=item.zip,
                )
            )
            logger.info("Order %s: Purchased! %s", order_number, full_tracking)
            return TaskOutcome(TaskStatus.succeeded, contacted_remote=True)

        # Completed purchases are written even when the run stops early
        try:
            outcomes = await self._runner.run(selected, _purchase)
        finally:
            if staged:
                self._store.append_purchased(staged)
            if updated:
                self._store.save_results(updated)

        summary = WorkflowSummary(
            succeeded=sum(1 for o in outcomes if o.status == TaskStatus.succeeded),
            failed=sum(1 for o in outcomes if o.status == TaskStatus.failed),
            skipped=sum(1 for o in outcomes if o.status == TaskStatus.skipped),
            failures=self._failures.entries[failures_before:],
        )
        logger.info(
            "Purchase complete. Success: %d, Failed: %d",
            summary.succeeded,
            summary.failed,
        )
        return summary
