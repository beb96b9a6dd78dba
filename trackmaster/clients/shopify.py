"""Shopify fulfillment client.

Implements the two-step fulfillment-order flow of the Shopify Admin API
(2023-10 version): look up the order's fulfillment order, then create a
fulfillment against it with tracking information.
"""

import json
import logging
import re

import httpx

from trackmaster.clients.relay import RelayRouter
from trackmaster.errors import StorefrontError

logger = logging.getLogger(__name__)


class ShopifyClient:
    """Shopify Admin API client for marking orders fulfilled.

    Example:
        client = ShopifyClient(
            store_url="mystore.myshopify.com",
            access_token="shpat_xxxx",
        )
        await client.fulfill_order("5551234567", "1Z999AA10123456784")
    """

    # Shopify Admin API version
    API_VERSION = "2023-10"

    def __init__(
        self,
        store_url: str | None,
        access_token: str | None,
        carrier: str = "UPS",
        api_version: str | None = None,
        timeout: float = 30.0,
        relay: RelayRouter | None = None,
    ) -> None:
        """Initialize ShopifyClient.

        Args:
            store_url: Store domain, with or without scheme/trailing slash.
            access_token: Admin API access token (starts with 'shpat_').
            carrier: Tracking company reported on fulfillments.
            api_version: Admin API version override.
            timeout: Per-request timeout in seconds.
            relay: Optional relay router for outbound calls.
        """
        self._store_url = self._normalize_store_url(store_url or "")
        self._access_token = (access_token or "").strip()
        self._carrier = carrier
        self._api_version = api_version or self.API_VERSION
        self._timeout = timeout
        self._relay = relay or RelayRouter()

    @staticmethod
    def _normalize_store_url(store_url: str) -> str:
        """Strip http(s):// and trailing slashes from a store URL."""
        return re.sub(r"^https?://", "", store_url.strip()).rstrip("/")

    @property
    def is_configured(self) -> bool:
        """True when both store URL and access token are set."""
        return bool(self._store_url and self._access_token)

    def _get_base_url(self) -> str:
        """Construct the Shopify Admin API base URL.

        Returns:
            Full base URL for API requests
        """
        return f"https://{self._store_url}/admin/api/{self._api_version}"

    def _get_headers(self) -> dict[str, str]:
        """Construct HTTP headers for API requests.

        Returns:
            Headers dict with access token and content type
        """
        return {
            "X-Shopify-Access-Token": self._access_token,
            "Content-Type": "application/json",
        }

    async def get_fulfillment_order_id(
        self, client: httpx.AsyncClient, order_id: str
    ) -> int | str:
        """Look up the first fulfillment order of an order.

        Args:
            client: Active httpx client
            order_id: Shopify numeric order ID

        Returns:
            The fulfillment order ID as Shopify returned it.

        Raises:
            StorefrontError: If the lookup fails, the order has none, or the reply
                is malformed.
        """
        url = f"{self._get_base_url()}/orders/{order_id}/fulfillment_orders.json"
        response = await client.get(self._relay.route(url), headers=self._get_headers())
        if not 200 <= response.status_code < 300:
            raise StorefrontError(
                f"Failed to get fulfillment order: {response.text}",
                payload=response.text,
            )

        data = response.json() or {}
        if not isinstance(data, dict):
            raise StorefrontError(f"Unexpected fulfillment order response: {response.text}")
        fulfillment_orders = data.get("fulfillment_orders") or []
        if not isinstance(fulfillment_orders, list) or not fulfillment_orders:
            raise StorefrontError("No fulfillment orders found for this order.")
        first = fulfillment_orders[0]
        if not isinstance(first, dict) or first.get("id") in (None, ""):
            raise StorefrontError(
                "Fulfillment order has no id.", payload=fulfillment_orders
            )
        return first["id"]

    async def create_fulfillment(
        self,
        client: httpx.AsyncClient,
        fulfillment_order_id: int | str,
        tracking_number: str,
    ) -> dict:
        """Create a fulfillment with tracking info and notify the customer.

        Shopify reports validation problems in an ``errors`` key even on
        HTTP success, so that key is checked rather than the status code.

        Args:
            client: Active httpx client
            fulfillment_order_id: ID from get_fulfillment_order_id
            tracking_number: Full carrier tracking number

        Returns:
            The created fulfillment dict.

        Raises:
            StorefrontError: If the response carries ``errors`` or is not an object.
        """
        fulfillment_payload = {
            "fulfillment": {
                "line_items_by_fulfillment_order": [
                    {"fulfillment_order_id": fulfillment_order_id},
                ],
                "tracking_info": {
                    "number": tracking_number,
                    "company": self._carrier,
                },
                "notify_customer": True,
            }
        }
        response = await client.post(
            self._relay.route(f"{self._get_base_url()}/fulfillments.json"),
            headers=self._get_headers(),
            json=fulfillment_payload,
        )
        data = response.json() or {}
        if not isinstance(data, dict):
            raise StorefrontError(f"Unexpected fulfillment response: {response.text}")
        if data.get("errors"):
            raise StorefrontError(json.dumps(data["errors"]), payload=data["errors"])
        return data.get("fulfillment") or {}

    async def fulfill_order(self, order_id: str, tracking_number: str) -> dict:
        """Mark an order fulfilled with the given tracking number.

        Args:
            order_id: Shopify numeric order ID
            tracking_number: Full carrier tracking number

        Returns:
            The created fulfillment dict.

        Raises:
            StorefrontError: On missing credentials or any Shopify rejection.
            httpx.RequestError: On transport failure.
        """
        if not self.is_configured:
            raise StorefrontError("Shopify credentials missing in Settings")

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            fulfillment_order_id = await self.get_fulfillment_order_id(client, order_id)
            logger.debug(
                "Order %s has fulfillment order %s", order_id, fulfillment_order_id
            )
            return await self.create_fulfillment(
                client, fulfillment_order_id, tracking_number
            )
