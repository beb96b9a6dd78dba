"""Local state database (SQLite via SQLAlchemy)."""

from trackmaster.db.connection import get_db_context, get_engine, init_db
from trackmaster.db.models import (
    Base,
    FailedItemRecord,
    PurchasedItemRecord,
    QueueItemRecord,
    SessionResultRecord,
)

__all__ = [
    "Base",
    "FailedItemRecord",
    "PurchasedItemRecord",
    "QueueItemRecord",
    "SessionResultRecord",
    "get_db_context",
    "get_engine",
    "init_db",
]
