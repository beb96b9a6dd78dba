"""TrackMaster: tracking-number resolution and Shopify fulfillment for order exports."""

__version__ = "0.1.0"
