"""Root-level pytest fixtures for all tests.

Provides shared fixtures for:
- Order rows and provider candidate payloads
- In-memory ledger store and SQLite-backed store
- A fixed clock for time-based classification
"""

from collections.abc import Callable, Generator
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from trackmaster.clients.tracking_provider import TrackingProviderClient
from trackmaster.db.models import Base
from trackmaster.models import OrderRow
from trackmaster.services.ledger_store import InMemoryLedgerStore, SqlLedgerStore

# Reference "now" used by every time-dependent test
FIXED_NOW = datetime(2024, 3, 20, 12, 0, tzinfo=UTC)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests requiring external services"
    )


# ============================================================================
# Domain Fixtures
# ============================================================================


@pytest.fixture
def fixed_now() -> datetime:
    """Reference time for classification rules."""
    return FIXED_NOW


@pytest.fixture
def make_row() -> Callable[..., OrderRow]:
    """Factory for OrderRow with sensible defaults."""

    def _make(
        order_number: str = "#1001",
        shipping_zip: str = "10001",
        created_at: str = "2024-03-01 10:15:00 -0500",
        shopify_order_id: str | None = "5550001",
    ) -> OrderRow:
        return OrderRow(
            order_number=order_number,
            shipping_zip=shipping_zip,
            created_at=created_at,
            shopify_order_id=shopify_order_id,
        )

    return _make


@pytest.fixture
def make_candidate() -> Callable[..., dict[str, Any]]:
    """Factory for raw provider search items."""

    def _make(
        tracking_number: str = "1Z999AA1****4784",
        status: str = "In Transit",
        expected_delivery: str | None = "2024-03-12T00:00:00Z",
        shipped_date: str | None = "2024-03-02",
        hash_id: str | None = "hash-abc",
        weight: str | None = "2.1 LBS",
    ) -> dict[str, Any]:
        return {
            "tracking_number": tracking_number,
            "status": status,
            "expected_delivery": expected_delivery,
            "shipped_date": shipped_date,
            "hash_id": hash_id,
            "weight": weight,
        }

    return _make


@pytest.fixture
def mock_provider() -> MagicMock:
    """Provider client double with an API key and async search/buy."""
    provider = MagicMock(spec=TrackingProviderClient)
    provider.api_key = "tk_test"
    provider.search = AsyncMock(return_value=[])
    provider.buy = AsyncMock(return_value="1Z999AA10123456784")
    return provider


# ============================================================================
# Store Fixtures
# ============================================================================


@pytest.fixture
def memory_store() -> InMemoryLedgerStore:
    """Empty in-memory ledger store."""
    return InMemoryLedgerStore()


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """In-memory SQLite session with all tables created."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def sql_store(db_session: Session) -> SqlLedgerStore:
    """SQLAlchemy-backed ledger store on an in-memory database."""
    return SqlLedgerStore(db_session)
