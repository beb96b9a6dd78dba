"""Durable state for queue, purchase ledger, failure ledger and session results.

All ledgers grow by appending; the only destructive operations are
replacing the session results at the start of a batch run and the
operator-initiated failure ledger clear.

Usage:
    with get_db_context() as db:
        store = SqlLedgerStore(db)
        purchased = store.load_purchased()
        store.append_queue(new_items)
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from trackmaster.db.models import (
    FailedItemRecord,
    PurchasedItemRecord,
    QueueItemRecord,
    SessionResultRecord,
)
from trackmaster.models import (
    FailedItem,
    FailureAction,
    PurchasedItem,
    QueueItem,
    TrackingResult,
)

logger = logging.getLogger(__name__)


class LedgerStore(ABC):
    """Abstract persistence for the operator's durable collections.

    Concrete implementations:
    - SqlLedgerStore: SQLite via SQLAlchemy (CLI)
    - InMemoryLedgerStore: process-local lists (tests, library use)
    """

    @abstractmethod
    def load_queue(self) -> list[QueueItem]:
        """Return queued items in insertion order."""
        ...

    @abstractmethod
    def append_queue(self, items: Iterable[QueueItem]) -> int:
        """Append queued items. Returns the number appended."""
        ...

    @abstractmethod
    def load_purchased(self) -> list[PurchasedItem]:
        """Return the purchase ledger in insertion order."""
        ...

    @abstractmethod
    def append_purchased(self, items: Iterable[PurchasedItem]) -> int:
        """Append purchases. Returns the number appended."""
        ...

    @abstractmethod
    def load_failures(self) -> list[FailedItem]:
        """Return the failure ledger in insertion order."""
        ...

    @abstractmethod
    def append_failure(self, item: FailedItem) -> None:
        """Append one failure ledger entry."""
        ...

    @abstractmethod
    def clear_failures(self) -> int:
        """Delete all failure entries (operator action). Returns count removed."""
        ...

    @abstractmethod
    def load_session_results(self) -> list[TrackingResult]:
        """Return the last batch run's results in run order."""
        ...

    @abstractmethod
    def replace_session_results(self, results: Iterable[TrackingResult]) -> None:
        """Replace the stored session results with a new run's results."""
        ...

    @abstractmethod
    def save_results(self, results: Iterable[TrackingResult]) -> None:
        """Update stored session results in place (e.g. after a purchase)."""
        ...

    def purchased_by_order(self) -> dict[str, PurchasedItem]:
        """Purchase ledger keyed by order number; later entries win."""
        return {item.order_number: item for item in self.load_purchased()}


class InMemoryLedgerStore(LedgerStore):
    """List-backed store with no persistence beyond the process."""

    def __init__(self) -> None:
        self.queue: list[QueueItem] = []
        self.purchased: list[PurchasedItem] = []
        self.failures: list[FailedItem] = []
        self.session_results: dict[str, TrackingResult] = {}

    def load_queue(self) -> list[QueueItem]:
        return list(self.queue)

    def append_queue(self, items: Iterable[QueueItem]) -> int:
        new_items = list(items)
        self.queue.extend(new_items)
        return len(new_items)

    def load_purchased(self) -> list[PurchasedItem]:
        return list(self.purchased)

    def append_purchased(self, items: Iterable[PurchasedItem]) -> int:
        new_items = list(items)
        self.purchased.extend(new_items)
        return len(new_items)

    def load_failures(self) -> list[FailedItem]:
        return list(self.failures)

    def append_failure(self, item: FailedItem) -> None:
        self.failures.append(item)

    def clear_failures(self) -> int:
        count = len(self.failures)
        self.failures.clear()
        return count

    def load_session_results(self) -> list[TrackingResult]:
        return [r.model_copy(deep=True) for r in self.session_results.values()]

    def replace_session_results(self, results: Iterable[TrackingResult]) -> None:
        self.session_results = {
            r.order_number: r.model_copy(deep=True) for r in results
        }

    def save_results(self, results: Iterable[TrackingResult]) -> None:
        for result in results:
            self.session_results[result.order_number] = result.model_copy(deep=True)


class SqlLedgerStore(LedgerStore):
    """SQLAlchemy-backed store.

    Every append flushes and commits so a crash after a workflow step
    never loses what was already recorded.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def load_queue(self) -> list[QueueItem]:
        rows = self._db.scalars(
            select(QueueItemRecord).order_by(QueueItemRecord.id)
        ).all()
        return [
            QueueItem(
                order_number=r.order_number,
                tracking_url=r.tracking_url,
                expected_delivery=r.expected_delivery,
                added_at=r.added_at,
            )
            for r in rows
        ]

    def append_queue(self, items: Iterable[QueueItem]) -> int:
        records = [QueueItemRecord(**item.model_dump()) for item in items]
        self._db.add_all(records)
        self._db.commit()
        return len(records)

    def load_purchased(self) -> list[PurchasedItem]:
        rows = self._db.scalars(
            select(PurchasedItemRecord).order_by(PurchasedItemRecord.id)
        ).all()
        return [
            PurchasedItem(
                order_number=r.order_number,
                tracking_number=r.tracking_number,
                tracking_url=r.tracking_url,
                expected_delivery=r.expected_delivery,
                zip=r.zip,
                purchased_at=r.purchased_at,
            )
            for r in rows
        ]

    def append_purchased(self, items: Iterable[PurchasedItem]) -> int:
        records = [PurchasedItemRecord(**item.model_dump()) for item in items]
        self._db.add_all(records)
        self._db.commit()
        return len(records)

    def load_failures(self) -> list[FailedItem]:
        rows = self._db.scalars(
            select(FailedItemRecord).order_by(FailedItemRecord.id)
        ).all()
        return [
            FailedItem(
                order_number=r.order_number,
                action=FailureAction(r.action),
                reason=r.reason,
                code=r.code,
                failed_at=r.failed_at,
            )
            for r in rows
        ]

    def append_failure(self, item: FailedItem) -> None:
        self._db.add(
            FailedItemRecord(
                order_number=item.order_number,
                action=item.action.value,
                reason=item.reason,
                code=item.code,
                failed_at=item.failed_at,
            )
        )
        self._db.commit()

    def clear_failures(self) -> int:
        count = self._db.scalar(select(func.count()).select_from(FailedItemRecord)) or 0
        self._db.execute(delete(FailedItemRecord))
        self._db.commit()
        logger.info("Cleared %d failure ledger entries", count)
        return count

    def load_session_results(self) -> list[TrackingResult]:
        rows = self._db.scalars(
            select(SessionResultRecord).order_by(SessionResultRecord.position)
        ).all()
        return [TrackingResult.model_validate_json(r.payload) for r in rows]

    def replace_session_results(self, results: Iterable[TrackingResult]) -> None:
        self._db.execute(delete(SessionResultRecord))
        self._db.add_all(
            SessionResultRecord(
                order_number=result.order_number,
                position=position,
                status=result.status.value,
                payload=result.model_dump_json(),
            )
            for position, result in enumerate(results)
        )
        self._db.commit()

    def save_results(self, results: Iterable[TrackingResult]) -> None:
        for result in results:
            record = self._db.get(SessionResultRecord, result.order_number)
            if record is None:
                position = self._db.scalar(
                    select(func.count()).select_from(SessionResultRecord)
                ) or 0
                record = SessionResultRecord(
                    order_number=result.order_number, position=position
                )
                self._db.add(record)
            record.status = result.status.value
            record.payload = result.model_dump_json()
        self._db.commit()
