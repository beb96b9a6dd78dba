"""Append-only failure ledger.

Every failure in resolution, purchase and fulfillment is recorded here with
its stage, order number, reason and timestamp. The ledger only records
control flow; nothing reads it to make decisions.
"""

import logging

from trackmaster.errors import get_error
from trackmaster.models import FailedItem, FailureAction
from trackmaster.services.ledger_store import LedgerStore
from trackmaster.utils.redaction import sanitize_error_message

logger = logging.getLogger(__name__)


class FailureLedger:
    """Records failures into a LedgerStore and keeps the session's entries.

    Attributes:
        entries: Failures recorded through this ledger instance, in order.
    """

    def __init__(self, store: LedgerStore) -> None:
        self._store = store
        self.entries: list[FailedItem] = []

    def record(
        self,
        order_number: str,
        action: FailureAction,
        code: str | None = None,
        reason: str | None = None,
    ) -> FailedItem:
        """Append a failure.

        Args:
            order_number: Order the failure belongs to.
            action: Workflow stage (PROCESS, BUY, FULFILL).
            code: Registry error code; its message is the default reason.
            reason: Human-readable reason, overrides the registry message.

        Returns:
            The recorded FailedItem.
        """
        if reason is None:
            error_def = get_error(code) if code else None
            reason = error_def.message_template if error_def else "Unknown error"
        reason = sanitize_error_message(reason)

        item = FailedItem(order_number=order_number, action=action, reason=reason, code=code)
        self._store.append_failure(item)
        self.entries.append(item)
        logger.warning(
            "Failure recorded: order=%s action=%s code=%s reason=%s",
            order_number,
            action.value,
            code,
            reason,
        )
        return item
