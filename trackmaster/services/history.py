"""Purchase-ledger short-circuit.

Orders whose full tracking number was already bought are answered from the
local ledger instead of the provider. The decision is made once per order
and returned as a tagged outcome so the caller dispatches on its type.
"""

from collections.abc import Mapping
from dataclasses import dataclass

from trackmaster.models import OrderRow, PurchasedItem, TrackingResult, TrackingStatus

LEDGER_SOURCE = "local_storage"
LEDGER_NOTE = "Loaded from Purchased History"


@dataclass(frozen=True)
class FromLedger:
    """Cache hit: the result was synthesized from a purchase ledger entry."""

    result: TrackingResult


@dataclass(frozen=True)
class FromProvider:
    """Cache miss: the row still has to be resolved against the provider."""

    row: OrderRow


HistoryOutcome = FromLedger | FromProvider


def result_from_purchase(row: OrderRow, purchase: PurchasedItem) -> TrackingResult:
    """Build a PROCESSED result from a ledger entry.

    Bought orders are assumed resolved, so the future-delivery flag is set.
    """
    return TrackingResult(
        order_number=row.order_number,
        shopify_order_id=row.shopify_order_id,
        zip=purchase.zip,
        order_date=row.created_at[:10],
        tracking_number=purchase.tracking_number,
        tracking_url=purchase.tracking_url,
        expected_delivery=purchase.expected_delivery,
        status=TrackingStatus.PROCESSED,
        note=LEDGER_NOTE,
        is_7_days_future=True,
        debug_info={"source": LEDGER_SOURCE},
    )


def check_history(
    row: OrderRow, purchased: Mapping[str, PurchasedItem]
) -> HistoryOutcome:
    """Decide whether an order is answered from the purchase ledger.

    Args:
        row: Order row about to be resolved.
        purchased: Purchase ledger keyed by order number.

    Returns:
        FromLedger with a synthesized result, or FromProvider with the row.
    """
    purchase = purchased.get(row.order_number)
    if purchase is None:
        return FromProvider(row)
    return FromLedger(result_from_purchase(row, purchase))
