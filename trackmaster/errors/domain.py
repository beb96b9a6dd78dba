"""Typed exceptions raised by the remote API clients.

Workflows catch these at the order boundary and turn them into failure
ledger entries; they never escape a batch.

Usage:
    # In a client
    raise ProviderError(f"Zip {zip_code}: {response.text}", status_code=500)

    # In a workflow
    try:
        full = await provider.buy(hash_id)
    except PurchaseError as e:
        ledger.record(order_number, FailureAction.BUY, "E-3002", str(e))
"""


class DomainError(Exception):
    """Base exception for all remote-call errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ProviderError(DomainError):
    """Tracking provider returned a non-success response."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PurchaseError(DomainError):
    """Buying a full tracking number failed."""


class StorefrontError(DomainError):
    """Shopify rejected a fulfillment lookup or creation.

    Attributes:
        payload: Raw error payload from Shopify, if any.
    """

    def __init__(self, message: str, payload: object = None) -> None:
        super().__init__(message)
        self.payload = payload
