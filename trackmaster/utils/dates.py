"""Lenient timestamp parsing for provider and Shopify date strings."""

from datetime import UTC, datetime

_FALLBACK_FORMATS = ("%m/%d/%Y", "%m/%d/%Y %H:%M:%S", "%Y-%m-%d %H:%M:%S %z")

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a date or datetime string into an aware UTC datetime.

    Date-only and naive values are read as UTC. Returns None when the value
    is empty or not recognisable.
    """
    if not value:
        return None
    text = value.strip()
    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        for fmt in _FALLBACK_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def parse_order_date(created_at: str) -> datetime:
    """Parse the YYYY-MM-DD prefix of a Shopify 'Created at' value.

    Raises:
        ValueError: If the prefix is not a valid date.
    """
    return datetime.strptime(created_at[:10], "%Y-%m-%d").replace(tzinfo=UTC)
