"""Remote API clients for the tracking provider and Shopify."""

from trackmaster.clients.relay import RelayRouter
from trackmaster.clients.shopify import ShopifyClient
from trackmaster.clients.tracking_provider import TrackingProviderClient

__all__ = ["RelayRouter", "ShopifyClient", "TrackingProviderClient"]
