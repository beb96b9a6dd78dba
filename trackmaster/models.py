"""Domain models for order tracking resolution and fulfillment."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Character the provider uses to hide digits of an unpurchased tracking number
MASK_CHAR = "*"

# Shopify export column names
CSV_ORDER_NUMBER = "Name"
CSV_SHIPPING_ZIP = "Shipping Zip"
CSV_CREATED_AT = "Created at"
CSV_SHOPIFY_ID = "Id"

UPS_TRACKING_URL = "https://www.ups.com/track?tracknum={tracking_number}"


def utc_now_iso() -> str:
    """Generate current UTC timestamp in ISO8601 format."""
    return datetime.now(UTC).isoformat()


def build_tracking_url(tracking_number: str) -> str:
    """Return the public carrier tracking URL for a tracking number."""
    return UPS_TRACKING_URL.format(tracking_number=tracking_number)


def is_masked(tracking_number: str | None) -> bool:
    """Return True if a tracking number is absent or still partially hidden."""
    return not tracking_number or MASK_CHAR in tracking_number


class TrackingStatus(str, Enum):
    """Outcome of resolving one order.

    QUEUED orders are held back from the operator-facing result set;
    PROCESSED orders are ready for purchase and fulfillment.
    """

    QUEUED = "QUEUED"
    PROCESSED = "PROCESSED"
    SKIPPED = "SKIPPED"
    ERROR = "ERROR"


class FailureAction(str, Enum):
    """Workflow stage that produced a failure ledger entry."""

    PROCESS = "PROCESS"
    BUY = "BUY"
    FULFILL = "FULFILL"


class OrderRow(BaseModel):
    """One order row from a Shopify order export."""

    order_number: str = Field(..., description="Order number (CSV 'Name')")
    shipping_zip: str = Field(default="", description="Raw shipping zip, may be ZIP+4")
    created_at: str = Field(default="", description="Creation timestamp, YYYY-MM-DD prefix")
    shopify_order_id: str | None = Field(None, description="Shopify numeric order id")
    extra: dict[str, str] = Field(default_factory=dict, description="Other CSV columns")

    @classmethod
    def from_csv_row(cls, row: dict[str, Any]) -> "OrderRow":
        """Build an OrderRow from a CSV key -> string mapping.

        Args:
            row: Mapping produced by csv.DictReader (values may be None).

        Returns:
            OrderRow with known columns lifted out and the rest kept in extra.
        """
        known = {CSV_ORDER_NUMBER, CSV_SHIPPING_ZIP, CSV_CREATED_AT, CSV_SHOPIFY_ID}
        shopify_id = (row.get(CSV_SHOPIFY_ID) or "").strip()
        return cls(
            order_number=(row.get(CSV_ORDER_NUMBER) or "").strip(),
            shipping_zip=row.get(CSV_SHIPPING_ZIP) or "",
            created_at=row.get(CSV_CREATED_AT) or "",
            shopify_order_id=shopify_id or None,
            extra={
                str(k): v or ""
                for k, v in row.items()
                if k is not None and k not in known
            },
        )


class TrackingCandidate(BaseModel):
    """One shipment record returned by the tracking provider search."""

    model_config = ConfigDict(extra="ignore")

    status: str = ""
    expected_delivery: str | None = None
    tracking_number: str = ""
    shipped_date: str | None = None
    weight: str | None = None
    hash_id: str | None = None

    @field_validator("status", "tracking_number", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("weight", "expected_delivery", "shipped_date", "hash_id", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        return str(value)


class TrackingResult(BaseModel):
    """Outcome of resolving one order in the current session."""

    order_number: str
    shopify_order_id: str | None = None
    zip: str
    order_date: str
    tracking_number: str | None = None
    hash_id: str | None = None
    tracking_url: str | None = None
    expected_delivery: str | None = None
    weight: str | None = None
    status: TrackingStatus
    note: str | None = None
    is_7_days_future: bool = False
    processed_at: str = Field(default_factory=utc_now_iso)
    debug_info: dict[str, Any] | None = None

    @model_validator(mode="after")
    def queued_has_delivery_info(self) -> "TrackingResult":
        """A QUEUED result always carries a tracking URL and expected delivery."""
        if self.status == TrackingStatus.QUEUED and not (
            self.tracking_url and self.expected_delivery
        ):
            raise ValueError(
                "QUEUED results require tracking_url and expected_delivery"
            )
        return self

    @property
    def has_full_tracking_number(self) -> bool:
        """True when the tracking number is present and not masked."""
        return not is_masked(self.tracking_number)

    @property
    def from_ledger(self) -> bool:
        """True when the result was synthesized from the purchase ledger."""
        return bool(self.debug_info) and self.debug_info.get("source") == "local_storage"


class QueueItem(BaseModel):
    """A resolved order held back until it is old enough to surface."""

    order_number: str
    tracking_url: str
    expected_delivery: str
    added_at: str = Field(default_factory=utc_now_iso)


class PurchasedItem(BaseModel):
    """A full tracking number bought from the provider."""

    order_number: str
    tracking_number: str
    tracking_url: str
    expected_delivery: str | None = None
    zip: str
    purchased_at: str = Field(default_factory=utc_now_iso)


class FailedItem(BaseModel):
    """Failure ledger entry."""

    order_number: str
    action: FailureAction
    reason: str
    code: str | None = Field(None, description="Registry error code (E-XXXX)")
    failed_at: str = Field(default_factory=utc_now_iso)
