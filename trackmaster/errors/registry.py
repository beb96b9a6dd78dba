"""Error code registry with E-XXXX format codes.

This module defines the error code system for TrackMaster, organizing errors
into categories:
- E-1xxx: Order data errors
- E-2xxx: Validation errors
- E-3xxx: Tracking provider errors
- E-4xxx: Storefront (Shopify) errors
- E-5xxx: Configuration / credential errors

Each error includes a code, title, message template, and remediation steps.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(str, Enum):
    """Categories for error codes."""

    DATA = "data"  # E-1xxx: Order data errors
    VALIDATION = "validation"  # E-2xxx: Validation errors
    PROVIDER = "provider"  # E-3xxx: Tracking provider errors
    STOREFRONT = "storefront"  # E-4xxx: Shopify errors
    CONFIG = "config"  # E-5xxx: Configuration errors


@dataclass
class ErrorCode:
    """Definition of an error code with metadata.

    Attributes:
        code: Error code in E-XXXX format.
        category: Error category for grouping.
        title: Short title for display.
        message_template: Message with {placeholders} for context.
        remediation: Action the operator should take to resolve.
        is_retryable: Whether the operation can be retried without operator action.
    """

    code: str
    category: ErrorCategory
    title: str
    message_template: str
    remediation: str
    is_retryable: bool = False


ERROR_REGISTRY: dict[str, ErrorCode] = {
    # Data errors (E-1xxx)
    "E-1001": ErrorCode(
        code="E-1001",
        category=ErrorCategory.DATA,
        title="Missing Required Column",
        message_template="CSV is missing required column '{column}'.",
        remediation="Export orders from Shopify with the Name, Shipping Zip and Created at columns.",
    ),
    "E-1002": ErrorCode(
        code="E-1002",
        category=ErrorCategory.DATA,
        title="No Orders Found",
        message_template="No orders with an order number were found in {source}.",
        remediation="Check that the file is a Shopify order export and is not empty.",
    ),
    "E-1003": ErrorCode(
        code="E-1003",
        category=ErrorCategory.DATA,
        title="Missing Shopify ID",
        message_template="Missing Shopify ID in CSV",
        remediation="Include the Id column in the Shopify export and process the file again.",
    ),
    "E-1004": ErrorCode(
        code="E-1004",
        category=ErrorCategory.DATA,
        title="Unreadable CSV Encoding",
        message_template="{source} is not UTF-8 encoded: {reason}",
        remediation="Re-export the orders from Shopify or save the file as UTF-8 CSV.",
    ),
    # Validation errors (E-2xxx)
    "E-2001": ErrorCode(
        code="E-2001",
        category=ErrorCategory.VALIDATION,
        title="Missing Zip Code",
        message_template="Missing Zip Code",
        remediation="Add a shipping zip to the order and process it again.",
    ),
    "E-2002": ErrorCode(
        code="E-2002",
        category=ErrorCategory.VALIDATION,
        title="Invalid Order Date",
        message_template="Invalid order date '{value}'.",
        remediation="The Created at column must start with a YYYY-MM-DD date.",
    ),
    "E-2003": ErrorCode(
        code="E-2003",
        category=ErrorCategory.VALIDATION,
        title="Invalid Tracking Number",
        message_template="Invalid tracking number",
        remediation="Buy the full tracking number before fulfilling the order.",
    ),
    "E-2004": ErrorCode(
        code="E-2004",
        category=ErrorCategory.VALIDATION,
        title="No Purchase Handle",
        message_template="No Hash ID available",
        remediation="Process the order again so the provider returns a purchasable result.",
    ),
    # Provider errors (E-3xxx)
    "E-3001": ErrorCode(
        code="E-3001",
        category=ErrorCategory.PROVIDER,
        title="Tracking Search Failed",
        message_template="{message}",
        remediation="Check the provider API key and try the order again later.",
        is_retryable=True,
    ),
    "E-3002": ErrorCode(
        code="E-3002",
        category=ErrorCategory.PROVIDER,
        title="Tracking Purchase Failed",
        message_template="{message}",
        remediation="Check the provider account balance and retry the purchase.",
        is_retryable=True,
    ),
    # Storefront errors (E-4xxx)
    "E-4001": ErrorCode(
        code="E-4001",
        category=ErrorCategory.STOREFRONT,
        title="Fulfillment Failed",
        message_template="{message}",
        remediation="Check the order in the Shopify admin and retry the fulfillment.",
        is_retryable=True,
    ),
    # Configuration errors (E-5xxx)
    "E-5001": ErrorCode(
        code="E-5001",
        category=ErrorCategory.CONFIG,
        title="Missing API Key",
        message_template="API Key is missing in Settings",
        remediation="Set provider.api_key in trackmaster.yaml or TRACKMASTER_PROVIDER_API_KEY.",
    ),
    "E-5002": ErrorCode(
        code="E-5002",
        category=ErrorCategory.CONFIG,
        title="Missing Shopify Credentials",
        message_template="Shopify credentials missing in Settings",
        remediation="Set shopify.domain and shopify.access_token in trackmaster.yaml.",
    ),
}


def get_error(code: str) -> ErrorCode | None:
    """Look up error code definition.

    Args:
        code: Error code in E-XXXX format.

    Returns:
        ErrorCode if found, None otherwise.
    """
    return ERROR_REGISTRY.get(code)
