"""Tracking provider API client.

Wraps the two provider endpoints used by TrackMaster:
- search: find shipments by destination zip within a ship-date window
- buy: exchange a purchase handle (hash id) for the full tracking number
"""

import logging
from typing import Any

import httpx

from trackmaster.clients.relay import RelayRouter
from trackmaster.errors import ProviderError, PurchaseError

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_URL = "https://api.gettnship.com/v2/tracking/search"
DEFAULT_BUY_URL = "https://api.gettnship.com/v2/tracking/buy"


class TrackingProviderClient:
    """Bearer-authenticated client for the tracking provider.

    Example:
        provider = TrackingProviderClient(api_key="tk_live_xxx")
        items = await provider.search({"searchby": "zip_code", "zip": "12345", ...})
        full_number = await provider.buy(items[0]["hash_id"])
    """

    def __init__(
        self,
        api_key: str | None,
        search_url: str = DEFAULT_SEARCH_URL,
        buy_url: str = DEFAULT_BUY_URL,
        timeout: float = 30.0,
        relay: RelayRouter | None = None,
    ) -> None:
        self._api_key = (api_key or "").strip()
        self._search_url = search_url
        self._buy_url = buy_url
        self._timeout = timeout
        self._relay = relay or RelayRouter()

    @property
    def api_key(self) -> str:
        return self._api_key

    def _get_headers(self) -> dict[str, str]:
        """Construct HTTP headers for provider requests.

        Returns:
            Headers dict with bearer token and JSON content type
        """
        return {
            "accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

    async def search(self, payload: dict[str, Any]) -> list[dict[str, Any]]:
        """Run one shipment search.

        Args:
            payload: Search body (searchby, zip, shipped_from, shipped_to,
                showPreshipment, limit).

        Returns:
            Raw candidate dicts from the response's inner ``data.data`` list.

        Raises:
            ProviderError: If the provider answers with a non-success status.
            httpx.RequestError: On transport failure.
        """
        logger.debug("Provider search zip=%s limit=%s", payload.get("zip"), payload.get("limit"))
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.post(
                self._relay.route(self._search_url),
                headers=self._get_headers(),
                json=payload,
            )
            if not 200 <= response.status_code < 300:
                raise ProviderError(response.text, status_code=response.status_code)

            data = response.json() or {}
            if not isinstance(data, dict):
                raise ProviderError(f"Unexpected response: {response.text}")
            inner = data.get("data") or {}
            items = inner.get("data") if isinstance(inner, dict) else None
            return list(items) if isinstance(items, list) else []

    async def buy(self, hash_id: str) -> str:
        """Purchase the full tracking number behind a purchase handle.

        Args:
            hash_id: Opaque purchase handle from a search result.

        Returns:
            The full (unmasked) tracking number.

        Raises:
            PurchaseError: On any failure, prefixed with 'Buy API Error: '.
        """
        try:
            if not self._api_key:
                raise ValueError("API Key is missing in Settings")

            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    self._relay.route(self._buy_url),
                    headers=self._get_headers(),
                    json={"hashid": hash_id},
                )
                if not 200 <= response.status_code < 300:
                    raise ValueError(response.text or response.reason_phrase)

                data = response.json() or {}
                if not isinstance(data, dict):
                    raise ValueError(f"Unexpected response: {response.text}")
                if data.get("success") in (True, "true"):
                    full_number = data.get("message")
                    if not isinstance(full_number, str) or not full_number.strip():
                        raise ValueError("Purchase succeeded without a tracking number")
                    return full_number.strip()

                raise ValueError(
                    data.get("message") or "Unknown error purchasing tracking"
                )
        except (ValueError, httpx.RequestError) as e:
            raise PurchaseError(f"Buy API Error: {e}") from e
