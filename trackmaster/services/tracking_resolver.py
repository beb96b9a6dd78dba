"""Per-order tracking resolution.

Resolves one order row into exactly one TrackingResult:

1. Validate and clean the shipping zip
2. Compute the ship-date search window around the order date
3. Query the provider once per zip segment (ZIP+4 is split in two)
4. Pick the best candidate from the aggregated pool
5. Classify the order as QUEUED / PROCESSED using time-based rules

Failures never propagate: every path ends in a TrackingResult with status
ERROR or SKIPPED.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
from pydantic import ValidationError

from trackmaster.clients.tracking_provider import TrackingProviderClient
from trackmaster.errors import ProviderError, TrackMasterError
from trackmaster.models import (
    OrderRow,
    TrackingCandidate,
    TrackingResult,
    TrackingStatus,
    build_tracking_url,
)
from trackmaster.utils.dates import EPOCH, parse_order_date, parse_timestamp

logger = logging.getLogger(__name__)

# Status substrings (lower-case) that mark a shipment as actually moving
VALID_STATUS_KEYWORDS = (
    "transit",
    "delivered",
    "on the way",
    "out for delivery",
    "picked up",
    "arrived",
)

# Search window around the order date
WINDOW_DAYS_BEFORE = 5
WINDOW_DAYS_AFTER = 35

MAX_NOTE_LENGTH = 100

MISSING_ZIP_NOTE = "Missing Zip Code"
NO_ITEMS_NOTE = "No suitable tracking found"
NO_MATCH_NOTE = (
    "Found {count} items but none matched criteria (In Transit/Delivered/On the Way)"
)

_ONE_DAY = timedelta(days=1)


def clean_zip(raw_zip: str | None) -> str:
    """Strip quote characters and surrounding whitespace from a zip."""
    if not raw_zip:
        return ""
    return raw_zip.replace("'", "").replace('"', "").strip()


def split_zip_segments(zip_code: str) -> list[str]:
    """Split a ZIP+4 value into its non-empty segments.

    Shopify stores some zips as '12345-6789' and some carriers index
    shipments under either half, so each half is searched separately.
    """
    if "-" not in zip_code:
        return [zip_code]
    return [segment.strip() for segment in zip_code.split("-") if segment.strip()]


def build_search_window(order_date: datetime) -> tuple[str, str]:
    """Return (shipped_from, shipped_to) as YYYY-MM-DD strings.

    The window opens 5 days before the order (labels created early,
    timezone skew) and closes 35 days after it.
    """
    start = order_date - timedelta(days=WINDOW_DAYS_BEFORE)
    end = order_date + timedelta(days=WINDOW_DAYS_AFTER)
    return start.date().isoformat(), end.date().isoformat()


def is_valid_candidate(candidate: TrackingCandidate, now: datetime) -> bool:
    """Return True if a candidate looks like a real, active shipment."""
    status = candidate.status.lower()
    if any(keyword in status for keyword in VALID_STATUS_KEYWORDS):
        return True
    if candidate.shipped_date:
        return True
    expected = parse_timestamp(candidate.expected_delivery)
    return expected is not None and expected > now


def parse_candidates(
    raw_items: Sequence[Any],
) -> tuple[list[TrackingCandidate], list[dict[str, Any]]]:
    """Validate provider items one by one.

    Returns:
        (candidates, rejected) where rejected lists the pool index and
        validation message of every item that could not be read.
    """
    candidates: list[TrackingCandidate] = []
    rejected: list[dict[str, Any]] = []
    for index, item in enumerate(raw_items):
        try:
            candidates.append(TrackingCandidate.model_validate(item))
        except ValidationError as e:
            logger.debug("Ignoring provider item %d: %s", index, e)
            rejected.append({"index": index, "error": str(e)[:MAX_NOTE_LENGTH]})
    return candidates, rejected


def select_best_candidate(
    candidates: Sequence[TrackingCandidate], now: datetime
) -> TrackingCandidate | None:
    """Pick the valid candidate with the latest expected delivery.

    The latest date is the least likely to be a stale or duplicate label.
    Ties keep the first-seen candidate; missing dates sort as the epoch.

    Args:
        candidates: Aggregated candidates across all zip segments.
        now: Reference time for the future-delivery check.

    Returns:
        The best candidate, or None if no candidate is valid.
    """
    best: TrackingCandidate | None = None
    best_date = EPOCH
    for candidate in candidates:
        if not is_valid_candidate(candidate, now):
            continue
        candidate_date = parse_timestamp(candidate.expected_delivery) or EPOCH
        if best is None or candidate_date > best_date:
            best = candidate
            best_date = candidate_date
    return best


@dataclass(frozen=True)
class Classification:
    """Status decision for an order with a matched candidate."""

    status: TrackingStatus
    note: str | None
    is_7_days_future: bool


def classify(
    order_date: datetime,
    expected_delivery: datetime,
    now: datetime,
    days_for_queue: float,
    days_for_warning: float,
) -> Classification:
    """Apply the hold-back rules to a matched order.

    Rules, first match wins:
    - order younger than days_for_queue -> QUEUED
    - lead time (order -> expected delivery) shorter than days_for_queue -> QUEUED
    - otherwise PROCESSED, with a warning note when the lead time is not
      more than days_for_warning

    Args:
        order_date: Order creation date (midnight UTC).
        expected_delivery: Expected delivery of the matched shipment.
        now: Reference time.
        days_for_queue: Hold-back threshold in days.
        days_for_warning: Warning threshold in days.

    Returns:
        Classification with status, note and the future-delivery flag.
    """
    days_since_order = (now - order_date) / _ONE_DAY
    lead_time_days = (expected_delivery - order_date) / _ONE_DAY
    is_future = lead_time_days > days_for_warning

    if days_since_order < days_for_queue:
        return Classification(
            TrackingStatus.QUEUED, f"Order < {days_for_queue} days old", is_future
        )
    if lead_time_days < days_for_queue:
        return Classification(
            TrackingStatus.QUEUED, f"Delivery less than {days_for_queue} days", is_future
        )
    note = None if is_future else f"Delivery less than {days_for_warning} days"
    return Classification(TrackingStatus.PROCESSED, note, is_future)


class TrackingResolver:
    """Resolves order rows against the tracking provider.

    Attributes:
        _provider: Provider client used for searches
        _limit: Result-count limit sent with every search
        _days_for_queue: Hold-back threshold in days
        _days_for_warning: Warning threshold in days
    """

    def __init__(
        self,
        provider: TrackingProviderClient,
        limit: int = 3000,
        days_for_queue: int = 4,
        days_for_warning: int = 7,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._provider = provider
        self._limit = limit
        self._days_for_queue = days_for_queue
        self._days_for_warning = days_for_warning
        self._clock = clock or (lambda: datetime.now(UTC))

    async def resolve(self, row: OrderRow) -> TrackingResult:
        """Resolve one order. Never raises.

        Args:
            row: Deduplicated order row.

        Returns:
            TrackingResult with status QUEUED, PROCESSED, SKIPPED or ERROR.
        """
        zip_code = clean_zip(row.shipping_zip)
        if not zip_code:
            return TrackingResult(
                order_number=row.order_number,
                shopify_order_id=row.shopify_order_id,
                zip="N/A",
                order_date="N/A",
                status=TrackingStatus.SKIPPED,
                note=MISSING_ZIP_NOTE,
            )

        order_date_str = row.created_at[:10] or "N/A"
        try:
            return await self._resolve(row, zip_code)
        except TrackMasterError as e:
            logger.warning("Order %s resolution failed: %s", row.order_number, e)
            return TrackingResult(
                order_number=row.order_number,
                shopify_order_id=row.shopify_order_id,
                zip=zip_code,
                order_date=order_date_str,
                status=TrackingStatus.ERROR,
                note=e.message[:MAX_NOTE_LENGTH],
                debug_info={"error_code": e.code, **e.details},
            )
        except Exception as e:
            logger.error("Order %s resolution raised: %s", row.order_number, e)
            return TrackingResult(
                order_number=row.order_number,
                shopify_order_id=row.shopify_order_id,
                zip=zip_code,
                order_date=order_date_str,
                status=TrackingStatus.ERROR,
                note=str(e)[:MAX_NOTE_LENGTH],
                debug_info={"error_code": "E-3001"},
            )

    async def _resolve(self, row: OrderRow, zip_code: str) -> TrackingResult:
        try:
            order_date = parse_order_date(row.created_at)
        except ValueError:
            raise TrackMasterError.from_code(
                "E-2002", value=row.created_at, orders=[row.order_number]
            ) from None
        order_date_str = order_date.date().isoformat()
        shipped_from, shipped_to = build_search_window(order_date)

        if not self._provider.api_key:
            raise TrackMasterError.from_code("E-5001", orders=[row.order_number])

        segments = split_zip_segments(zip_code)
        payloads: list[dict[str, Any]] = []
        raw_items: list[dict[str, Any]] = []
        errors: list[str] = []
        segment_status: list[dict[str, Any]] = []

        for segment in segments:
            payload = {
                "searchby": "zip_code",
                "zip": segment,
                "shipped_from": shipped_from,
                "shipped_to": shipped_to,
                "showPreshipment": 1,
                "limit": self._limit,
            }
            payloads.append(payload)
            try:
                items = await self._provider.search(payload)
            except ProviderError as e:
                error = f"Zip {segment}: {e}"
            except (httpx.RequestError, ValueError) as e:
                error = f"Zip {segment} Network Error: {e}"
            else:
                raw_items.extend(items)
                segment_status.append(
                    {"zip": segment, "ok": True, "items": len(items), "error": None}
                )
                continue
            errors.append(error)
            segment_status.append(
                {"zip": segment, "ok": False, "items": 0, "error": error}
            )

        if not raw_items and len(errors) == len(segments):
            raise TrackMasterError.from_code(
                "E-3001",
                message=" | ".join(errors),
                orders=[row.order_number],
                details={
                    "api_payloads": payloads,
                    "segments": segment_status,
                    "errors": errors,
                },
            )

        debug_info: dict[str, Any] = {
            "api_payloads": payloads,
            "raw_response_items": raw_items,
            "segments": segment_status,
        }
        if errors:
            debug_info["errors"] = errors

        now = self._clock()
        candidates, rejected = parse_candidates(raw_items)
        if rejected:
            debug_info["rejected_items"] = rejected
        match = select_best_candidate(candidates, now)
        expected = parse_timestamp(match.expected_delivery) if match else None

        base = {
            "order_number": row.order_number,
            "shopify_order_id": row.shopify_order_id,
            "zip": zip_code,
            "order_date": order_date_str,
            "debug_info": debug_info,
        }

        if match is None:
            if raw_items:
                note = NO_MATCH_NOTE.format(count=len(raw_items))
            else:
                note = NO_ITEMS_NOTE
            return TrackingResult(**base, status=TrackingStatus.SKIPPED, note=note)

        if expected is None:
            # No date to apply the hold-back rules to
            decision = Classification(
                TrackingStatus.PROCESSED,
                f"Delivery less than {self._days_for_warning} days",
                False,
            )
        else:
            decision = classify(
                order_date, expected, now, self._days_for_queue, self._days_for_warning
            )
        return TrackingResult(
            **base,
            tracking_number=match.tracking_number,
            hash_id=match.hash_id,
            tracking_url=build_tracking_url(match.tracking_number),
            expected_delivery=match.expected_delivery,
            weight=match.weight or "N/A",
            status=decision.status,
            note=decision.note,
            is_7_days_future=decision.is_7_days_future,
        )
