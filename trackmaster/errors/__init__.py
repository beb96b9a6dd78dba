"""Error handling framework for TrackMaster.

This package provides:
- Error code registry with E-XXXX format codes
- Typed exceptions for provider and storefront calls
- Error formatting utilities

Error categories:
- E-1xxx: Order data errors
- E-2xxx: Validation errors
- E-3xxx: Tracking provider errors
- E-4xxx: Storefront errors
- E-5xxx: Configuration errors
"""

from trackmaster.errors.domain import (
    DomainError,
    ProviderError,
    PurchaseError,
    StorefrontError,
)
from trackmaster.errors.formatter import (
    ConfigurationError,
    TrackMasterError,
    format_error,
    format_failure_summary,
)
from trackmaster.errors.registry import (
    ERROR_REGISTRY,
    ErrorCategory,
    ErrorCode,
    get_error,
)

__all__ = [
    # Registry
    "ErrorCode",
    "ErrorCategory",
    "ERROR_REGISTRY",
    "get_error",
    # Domain exceptions
    "DomainError",
    "ProviderError",
    "PurchaseError",
    "StorefrontError",
    # Formatter
    "TrackMasterError",
    "ConfigurationError",
    "format_error",
    "format_failure_summary",
]
