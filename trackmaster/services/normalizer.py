"""Order row deduplication.

A Shopify export carries one CSV line per line item, so the same order
number appears several times and only some of those lines carry the
shipping columns.
"""

import logging
from collections.abc import Iterable

from trackmaster.models import OrderRow

logger = logging.getLogger(__name__)


def _has_zip(row: OrderRow) -> bool:
    return bool(row.shipping_zip and row.shipping_zip.strip())


def normalize_orders(rows: Iterable[OrderRow]) -> list[OrderRow]:
    """Collapse rows to one per order number.

    The first row seen for an order number is kept unless it has no zip and
    a later row does. Rows without an order number are dropped (blank
    trailing CSV lines).

    Args:
        rows: Raw order rows in file order.

    Returns:
        One row per distinct order number, ordered by first occurrence.
    """
    unique: dict[str, OrderRow] = {}
    total = 0
    for row in rows:
        total += 1
        order_number = row.order_number
        if not order_number:
            continue
        existing = unique.get(order_number)
        if existing is None:
            unique[order_number] = row
        elif not _has_zip(existing) and _has_zip(row):
            unique[order_number] = row

    logger.info("Found %d unique orders from %d CSV rows.", len(unique), total)
    return list(unique.values())
