"""Tests for the in-memory and SQLAlchemy ledger stores."""

import pytest

from trackmaster.models import (
    FailedItem,
    FailureAction,
    PurchasedItem,
    QueueItem,
    TrackingResult,
    TrackingStatus,
)


def _result(order_number, status=TrackingStatus.PROCESSED, **kwargs):
    return TrackingResult(
        order_number=order_number,
        zip="10001",
        order_date="2024-03-01",
        status=status,
        **kwargs,
    )


def _purchase(order_number, tracking_number):
    return PurchasedItem(
        order_number=order_number,
        tracking_number=tracking_number,
        tracking_url=f"https://www.ups.com/track?tracknum={tracking_number}",
        zip="10001",
    )


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Run every store test against both implementations."""
    return request.getfixturevalue(f"{request.param}_store")


class TestLedgerStore:

    def test_queue_append_and_load_in_order(self, store):
        items = [
            QueueItem(order_number=n, tracking_url="u", expected_delivery="2024-03-22")
            for n in ("#2", "#1")
        ]
        assert store.append_queue(items) == 2
        assert [q.order_number for q in store.load_queue()] == ["#2", "#1"]

    def test_purchased_by_order_later_entry_wins(self, store):
        store.append_purchased([_purchase("#1", "AAA"), _purchase("#1", "BBB")])
        assert store.purchased_by_order()["#1"].tracking_number == "BBB"

    def test_failures_append_and_clear(self, store):
        store.append_failure(
            FailedItem(order_number="#1", action=FailureAction.BUY, reason="x", code="E-3002")
        )
        store.append_failure(
            FailedItem(order_number="#2", action=FailureAction.FULFILL, reason="y")
        )
        loaded = store.load_failures()
        assert [(f.order_number, f.action) for f in loaded] == [
            ("#1", FailureAction.BUY),
            ("#2", FailureAction.FULFILL),
        ]
        assert loaded[0].code == "E-3002"

        assert store.clear_failures() == 2
        assert store.load_failures() == []

    def test_replace_session_results(self, store):
        store.replace_session_results([_result("#1"), _result("#2")])
        store.replace_session_results([_result("#3"), _result("#1")])
        assert [r.order_number for r in store.load_session_results()] == ["#3", "#1"]

    def test_save_results_updates_in_place(self, store):
        store.replace_session_results([
            _result("#1", tracking_number="1Z**"),
            _result("#2"),
        ])
        updated = _result("#1", tracking_number="1ZFULL", note="Purchased Successfully")
        store.save_results([updated])

        loaded = store.load_session_results()
        assert [r.order_number for r in loaded] == ["#1", "#2"]
        assert loaded[0].tracking_number == "1ZFULL"
        assert loaded[0].note == "Purchased Successfully"

    def test_session_results_keep_debug_info(self, store):
        store.replace_session_results([
            _result("#1", debug_info={"segments": [{"zip": "10001", "ok": True}]})
        ])
        assert store.load_session_results()[0].debug_info == {
            "segments": [{"zip": "10001", "ok": True}]
        }

    def test_loaded_models_are_copies(self, store):
        store.replace_session_results([_result("#1")])
        first = store.load_session_results()[0]
        first.note = "changed"
        assert store.load_session_results()[0].note is None
