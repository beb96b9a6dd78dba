"""Tests for the sequential Shopify fulfillment workflow."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from trackmaster.clients.shopify import ShopifyClient
from trackmaster.errors import ConfigurationError, StorefrontError
from trackmaster.models import FailureAction, TrackingResult, TrackingStatus
from trackmaster.pipeline.sequential import DelayPolicy, SequentialRunner
from trackmaster.services.failure_ledger import FailureLedger
from trackmaster.services.fulfillment_workflow import FulfillmentWorkflow


def _result(order_number, tracking_number="1Z999AA10123456784", shopify_order_id="555"):
    return TrackingResult(
        order_number=order_number,
        shopify_order_id=shopify_order_id,
        zip="10001",
        order_date="2024-03-01",
        tracking_number=tracking_number,
        status=TrackingStatus.PROCESSED,
    )


@pytest.fixture
def shopify():
    client = MagicMock(spec=ShopifyClient)
    client.is_configured = True
    client.fulfill_order = AsyncMock(return_value={"id": 1})
    return client


@pytest.fixture
def sleep():
    return AsyncMock()


@pytest.fixture
def workflow(shopify, memory_store, sleep):
    return FulfillmentWorkflow(
        shopify,
        memory_store,
        FailureLedger(memory_store),
        runner=SequentialRunner(DelayPolicy(seconds=0.5), sleep=sleep),
    )


class TestFulfillmentWorkflow:

    async def test_successful_fulfillment(self, workflow, shopify, memory_store, sleep):
        memory_store.replace_session_results([_result("#1001")])

        summary = await workflow.run(["#1001"])

        assert summary.succeeded == 1
        shopify.fulfill_order.assert_awaited_once_with("555", "1Z999AA10123456784")
        sleep.assert_awaited_once_with(0.5)
        assert memory_store.failures == []

    async def test_missing_shopify_id(self, workflow, shopify, memory_store):
        memory_store.replace_session_results([_result("#1001", shopify_order_id=None)])

        summary = await workflow.run(["#1001"])

        assert summary.failed == 1
        shopify.fulfill_order.assert_not_awaited()
        failure = memory_store.failures[0]
        assert failure.action == FailureAction.FULFILL
        assert failure.reason == "Missing Shopify ID in CSV"

    @pytest.mark.parametrize("tracking_number", [None, "1Z999AA1****4784"])
    async def test_masked_or_missing_tracking_makes_no_call(
        self, tracking_number, workflow, shopify, memory_store, sleep
    ):
        memory_store.replace_session_results([
            _result("#1001", tracking_number=tracking_number)
        ])

        summary = await workflow.run(["#1001"])

        assert summary.failed == 1
        shopify.fulfill_order.assert_not_awaited()
        sleep.assert_not_awaited()
        assert memory_store.failures[0].reason == "Invalid tracking number"
        assert memory_store.failures[0].code == "E-2003"

    async def test_storefront_error_is_recorded(self, workflow, shopify, memory_store):
        memory_store.replace_session_results([_result("#1"), _result("#2")])
        shopify.fulfill_order.side_effect = [
            StorefrontError("No fulfillment orders found for this order."),
            {"id": 2},
        ]

        summary = await workflow.run(["#1", "#2"])

        assert summary.succeeded == 1
        assert summary.failed == 1
        assert summary.failures[0].order_number == "#1"
        assert summary.failures[0].reason == "No fulfillment orders found for this order."
        assert summary.failures[0].code == "E-4001"

    async def test_network_error_is_recorded(self, workflow, shopify, memory_store):
        memory_store.replace_session_results([_result("#1")])
        shopify.fulfill_order.side_effect = httpx.ConnectError("unreachable")

        summary = await workflow.run(["#1"])

        assert summary.failed == 1
        assert summary.failures[0].reason == "unreachable"

    async def test_unexpected_error_is_recorded_and_run_continues(
        self, workflow, shopify, memory_store
    ):
        memory_store.replace_session_results([_result("#1"), _result("#2")])
        shopify.fulfill_order.side_effect = [KeyError("id"), {"id": 2}]

        summary = await workflow.run(["#1", "#2"])

        assert summary.succeeded == 1
        assert summary.failed == 1
        assert summary.failures[0].order_number == "#1"
        assert summary.failures[0].action == FailureAction.FULFILL
        assert summary.failures[0].code == "E-4001"
        assert shopify.fulfill_order.await_count == 2

    async def test_missing_credentials_refuses_to_start(self, workflow, shopify, memory_store):
        shopify.is_configured = False

        with pytest.raises(ConfigurationError) as exc_info:
            await workflow.run(["#1"])

        assert exc_info.value.code == "E-5002"
        assert exc_info.value.message == "Shopify credentials missing in Settings"
