"""Optional relay routing for outbound API calls.

Some operators reach the provider and Shopify through a CORS-style relay
(corsproxy.io by default). With a relay key the target is passed as
``?key=KEY&url=URL``; without one the encoded target is appended directly.
"""

from urllib.parse import quote

DEFAULT_RELAY_URL = "https://corsproxy.io/"


class RelayRouter:
    """Rewrites target URLs to go through a relay when enabled.

    Example:
        router = RelayRouter(enabled=True, api_key="k")
        router.route("https://api.example.com/x")
        # 'https://corsproxy.io/?key=k&url=https%3A%2F%2Fapi.example.com%2Fx'
    """

    def __init__(
        self,
        enabled: bool = False,
        base_url: str = DEFAULT_RELAY_URL,
        api_key: str | None = None,
    ) -> None:
        self._enabled = enabled
        self._base_url = base_url
        self._api_key = (api_key or "").strip()

    @property
    def enabled(self) -> bool:
        return self._enabled

    def route(self, target_url: str) -> str:
        """Return the URL to call for ``target_url``."""
        if not self._enabled:
            return target_url
        encoded = quote(target_url, safe="")
        if self._api_key:
            return f"{self._base_url}?key={self._api_key}&url={encoded}"
        return f"{self._base_url}?{encoded}"
