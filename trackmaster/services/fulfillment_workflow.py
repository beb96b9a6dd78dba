"""Shopify fulfillment of selected orders.

Each order is checked locally first (Shopify id present, tracking number
purchased), then fulfilled through the two-step fulfillment-order API.
Orders run one at a time in selection order; failures are recorded and
never stop the run.
"""

import logging
from collections.abc import Iterable

import httpx

from trackmaster.clients.shopify import ShopifyClient
from trackmaster.errors import ConfigurationError, StorefrontError
from trackmaster.models import FailureAction, TrackingResult
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


class FulfillmentWorkflow:
    """Marks selected orders fulfilled on Shopify with their tracking number."""

    def __init__(
        self,
        shopify: ShopifyClient,
        store: LedgerStore,
        failure_ledger: FailureLedger | None = None,
        delay: float = 0.5,
        runner: SequentialRunner | None = None,
    ) -> None:
        self._shopify = shopify
        self._store = store
        self._failures = failure_ledger or FailureLedger(store)
        self._runner = runner or SequentialRunner(DelayPolicy(seconds=delay))

    async def run(
        self,
        order_numbers: Iterable[str],
        results: list[TrackingResult] | None = None,
    ) -> WorkflowSummary:
        """Fulfill the selected orders.

        Args:
            order_numbers: Selected order numbers, processed in this order.
            results: Session results; loaded from the store when omitted.

        Returns:
            WorkflowSummary with success, failure and skip counts.

        Raises:
            ConfigurationError: E-5002 if Shopify credentials are missing.
        """
        if not self._shopify.is_configured:
            raise ConfigurationError.from_code("E-5002")

        session = results if results is not None else self._store.load_session_results()
        by_order = {r.order_number: r for r in session}
        selected = list(order_numbers)
        failures_before = len(self._failures.entries)

        logger.info("Initiating Fulfillment for %d orders...", len(selected))

        async def _fulfill(order_number: str) -> TaskOutcome:
            item = by_order.get(order_number)
            if item is None:
                logger.info("Order %s: not in current results. Skipping.", order_number)
                return TaskOutcome(TaskStatus.skipped)

            if not item.shopify_order_id:
                logger.info("Order %s: Missing Shopify ID in CSV. Skipping.", order_number)
                self._failures.record(order_number, FailureAction.FULFILL, "E-1003")
                return TaskOutcome(TaskStatus.failed)

            if not item.has_full_tracking_number:
                logger.info(
                    "Order %s: Invalid tracking number (still encrypted/missing). Buy it first.",
                    order_number,
                )
                self._failures.record(order_number, FailureAction.FULFILL, "E-2003")
                return TaskOutcome(TaskStatus.failed)

            try:
                await self._shopify.fulfill_order(item.shopify_order_id, item.tracking_number)
            except (StorefrontError, httpx.RequestError, ValueError) as e:
                logger.info("Order %s Fulfillment Failed: %s", order_number, e)
                self._failures.record(order_number, FailureAction.FULFILL, "E-4001", str(e))
                return TaskOutcome(TaskStatus.failed, contacted_remote=True)
            except Exception as e:
                logger.error("Order %s fulfillment raised: %s", order_number, e)
                self._failures.record(order_number, FailureAction.FULFILL, "E-4001", str(e))
                return TaskOutcome(TaskStatus.failed, contacted_remote=True)

            logger.info("Order %s: Fulfilled on Shopify!", order_number)
            return TaskOutcome(TaskStatus.succeeded, contacted_remote=True)

        outcomes = await self._runner.run(selected, _fulfill)

        summary = WorkflowSummary(
            succeeded=sum(1 for o in outcomes if o.status == TaskStatus.succeeded),
            failed=sum(1 for o in outcomes if o.status == TaskStatus.failed),
            skipped=sum(1 for o in outcomes if o.status == TaskStatus.skipped),
            failures=self._failures.entries[failures_before:],
        )
        logger.info(
            "Fulfillment complete. Success: %d, Failed: %d",
            summary.succeeded,
            summary.failed,
        )
        return summary
