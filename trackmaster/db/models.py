"""SQLAlchemy ORM models for the TrackMaster state database.

Holds the durable collections the operator keeps across sessions: the
queue of held-back orders, the purchase ledger, the failure ledger, and
the results of the most recent batch run. Uses SQLAlchemy 2.0 style with
Mapped and mapped_column.
"""

from datetime import UTC, datetime

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now_iso() -> str:
    """Generate current UTC timestamp in ISO8601 format."""
    return datetime.now(UTC).isoformat()


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class QueueItemRecord(Base):
    """Order held back by the batch pipeline.

    Append-only; never updated after insertion.
    """

    __tablename__ = "queue_items"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    order_number: Mapped[str] = mapped_column(String(100), nullable=False)
    tracking_url: Mapped[str] = mapped_column(Text, nullable=False)
    expected_delivery: Mapped[str] = mapped_column(String(50), nullable=False)
    added_at: Mapped[str] = mapped_column(String(50), nullable=False, default=utc_now_iso)

    __table_args__ = (Index("idx_queue_items_order_number", "order_number"),)

    def __repr__(self) -> str:
        return f"<QueueItemRecord(order_number={self.order_number!r})>"


class PurchasedItemRecord(Base):
    """Full tracking number bought from the provider.

    Authoritative for its order number: later batch runs short-circuit
    the order without querying the provider.
    """

    __tablename__ = "purchased_items"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    order_number: Mapped[str] = mapped_column(String(100), nullable=False)
    tracking_number: Mapped[str] = mapped_column(String(100), nullable=False)
    tracking_url: Mapped[str] = mapped_column(Text, nullable=False)
    expected_delivery: Mapped[str | None] = mapped_column(String(50), nullable=True)
    zip: Mapped[str] = mapped_column(String(20), nullable=False)
    purchased_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    __table_args__ = (Index("idx_purchased_items_order_number", "order_number"),)

    def __repr__(self) -> str:
        return (
            f"<PurchasedItemRecord(order_number={self.order_number!r}, "
            f"tracking_number={self.tracking_number!r})>"
        )


class FailedItemRecord(Base):
    """Failure ledger entry for any workflow stage."""

    __tablename__ = "failed_items"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    order_number: Mapped[str] = mapped_column(String(100), nullable=False)
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    failed_at: Mapped[str] = mapped_column(String(50), nullable=False, default=utc_now_iso)

    __table_args__ = (Index("idx_failed_items_action", "action"),)

    def __repr__(self) -> str:
        return f"<FailedItemRecord(order_number={self.order_number!r}, action={self.action!r})>"


class SessionResultRecord(Base):
    """TrackingResult from the most recent batch run, stored as JSON.

    Replaced wholesale at the start of every run; updated in place when a
    purchase replaces a masked tracking number.
    """

    __tablename__ = "session_results"

    order_number: Mapped[str] = mapped_column(String(100), primary_key=True)
    position: Mapped[int] = mapped_column(nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso, onupdate=utc_now_iso
    )

    def __repr__(self) -> str:
        return f"<SessionResultRecord(order_number={self.order_number!r}, status={self.status!r})>"
