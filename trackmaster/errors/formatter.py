"""Error formatting utilities.

This module provides:
- TrackMasterError exception class for application errors
- Error formatting for operator display
- Failure ledger summaries for workflow output
"""

from dataclasses import dataclass, field

from trackmaster.errors.registry import get_error
from trackmaster.models import FailedItem


@dataclass
class TrackMasterError(Exception):
    """Application error with code, message, and context.

    Attributes:
        code: Error code in E-XXXX format.
        message: Human-readable error message.
        remediation: Action the operator should take to resolve.
        orders: Order numbers affected by the error.
        is_retryable: Whether the operation can be retried without operator action.
        details: Additional context dictionary.
    """

    code: str
    message: str
    remediation: str
    orders: list[str] = field(default_factory=list)
    is_retryable: bool = False
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        """Return string representation of the error."""
        return f"{self.code}: {self.message}"

    @classmethod
    def from_code(cls, code: str, **kwargs: object) -> "TrackMasterError":
        """Create error from registry code with context substitution.

        Args:
            code: Error code in E-XXXX format.
            **kwargs: Context values for message template substitution.
                Special keys 'orders' and 'details' are used for
                TrackMasterError fields rather than message substitution.

        Returns:
            TrackMasterError instance with formatted message.
        """
        orders = kwargs.get("orders", [])
        if not isinstance(orders, list):
            orders = []
        details = kwargs.get("details", {})
        if not isinstance(details, dict):
            details = {}

        error_def = get_error(code)
        if not error_def:
            return cls(
                code=code,
                message=f"Unknown error: {code}",
                remediation="Contact support.",
                orders=orders,
                details=details,
            )

        message = error_def.message_template
        try:
            template_kwargs = {
                k: v for k, v in kwargs.items() if k not in ("orders", "details")
            }
            message = message.format(**template_kwargs)
        except KeyError:
            # Keep template if some placeholders are missing
            pass

        return cls(
            code=error_def.code,
            message=message,
            remediation=error_def.remediation,
            orders=orders,
            is_retryable=error_def.is_retryable,
            details=details,
        )


def format_error(error: TrackMasterError, include_remediation: bool = True) -> str:
    """Format error for display to the operator.

    Args:
        error: The TrackMasterError to format.
        include_remediation: Whether to include remediation steps.

    Returns:
        Multi-line formatted string suitable for terminal display.
    """
    lines = [f"{error.code}: {error.message}"]

    if error.orders:
        if len(error.orders) == 1:
            lines.append(f"  Order: {error.orders[0]}")
        else:
            orders_str = ", ".join(error.orders[:10])
            if len(error.orders) > 10:
                orders_str += f" (and {len(error.orders) - 10} more)"
            lines.append(f"  Affected orders: {orders_str}")

    if include_remediation:
        lines.append(f"  Action: {error.remediation}")

    return "\n".join(lines)


class ConfigurationError(TrackMasterError):
    """A workflow cannot start because required settings are missing.

    Raised before any order is touched, e.g.
    ConfigurationError.from_code("E-5002") when Shopify credentials are unset.
    """


def format_failure_summary(failures: list[FailedItem]) -> str:
    """Summarize failure ledger entries by stage and reason.

    Args:
        failures: Entries recorded during one run.

    Returns:
        Multi-line summary, one line per distinct (action, reason) pair.
    """
    if not failures:
        return "No failures."

    groups: dict[tuple[str, str], list[str]] = {}
    for item in failures:
        key = (item.action.value, item.reason)
        orders = groups.setdefault(key, [])
        if item.order_number not in orders:
            orders.append(item.order_number)

    lines = [f"{len(failures)} failure(s):"]
    for (action, reason), orders in groups.items():
        orders_str = ", ".join(orders[:10])
        if len(orders) > 10:
            orders_str += f" (and {len(orders) - 10} more)"
        lines.append(f"  [{action}] {reason}: {orders_str}")
    return "\n".join(lines)
