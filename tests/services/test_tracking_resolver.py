"""Tests for per-order tracking resolution."""

from datetime import UTC, datetime

import httpx
import pytest

from trackmaster.errors import ProviderError
from trackmaster.models import TrackingCandidate, TrackingStatus
from trackmaster.services.tracking_resolver import (
    TrackingResolver,
    build_search_window,
    classify,
    clean_zip,
    is_valid_candidate,
    select_best_candidate,
    split_zip_segments,
)


def _resolver(provider, now):
    return TrackingResolver(provider, clock=lambda: now)


class TestZipHandling:
    """Tests for zip cleaning and ZIP+4 splitting."""

    def test_clean_zip_strips_quotes_and_whitespace(self):
        assert clean_zip(" '07001 ") == "07001"
        assert clean_zip('"07001"') == "07001"

    def test_clean_zip_empty(self):
        assert clean_zip(None) == ""
        assert clean_zip("  ") == ""

    def test_split_plain_zip(self):
        assert split_zip_segments("10001") == ["10001"]

    def test_split_zip_plus_four(self):
        assert split_zip_segments("10001-1234") == ["10001", "1234"]

    def test_split_drops_empty_segments(self):
        assert split_zip_segments("10001-") == ["10001"]


class TestSearchWindow:

    def test_window_is_five_days_before_to_thirty_five_after(self):
        order_date = datetime(2024, 3, 1, tzinfo=UTC)
        assert build_search_window(order_date) == ("2024-02-25", "2024-04-05")


class TestCandidateSelection:
    """Tests for candidate validity and best-candidate choice."""

    def test_moving_status_is_valid(self, fixed_now):
        c = TrackingCandidate(status="Out For Delivery")
        assert is_valid_candidate(c, fixed_now)

    def test_shipped_date_makes_candidate_valid(self, fixed_now):
        c = TrackingCandidate(status="Label Created", shipped_date="2024-03-02")
        assert is_valid_candidate(c, fixed_now)

    def test_future_delivery_makes_candidate_valid(self, fixed_now):
        c = TrackingCandidate(status="", expected_delivery="2024-03-25")
        assert is_valid_candidate(c, fixed_now)

    def test_stale_label_is_invalid(self, fixed_now):
        c = TrackingCandidate(status="Label Created", expected_delivery="2024-03-10")
        assert not is_valid_candidate(c, fixed_now)

    def test_latest_expected_delivery_wins(self, fixed_now):
        early = TrackingCandidate(
            status="In Transit", tracking_number="A", expected_delivery="2024-03-10"
        )
        late = TrackingCandidate(
            status="In Transit", tracking_number="B", expected_delivery="2024-03-14"
        )
        assert select_best_candidate([early, late], fixed_now).tracking_number == "B"

    def test_tie_keeps_first_seen(self, fixed_now):
        first = TrackingCandidate(
            status="Delivered", tracking_number="A", expected_delivery="2024-03-10"
        )
        second = TrackingCandidate(
            status="Delivered", tracking_number="B", expected_delivery="2024-03-10"
        )
        assert select_best_candidate([first, second], fixed_now).tracking_number == "A"

    def test_no_valid_candidate(self, fixed_now):
        stale = TrackingCandidate(status="Voided", expected_delivery="2024-01-01")
        assert select_best_candidate([stale], fixed_now) is None


class TestClassify:
    """Tests for the hold-back rules."""

    order_date = datetime(2024, 3, 1, tzinfo=UTC)

    def test_young_order_is_queued(self):
        decision = classify(
            datetime(2024, 3, 18, tzinfo=UTC),
            datetime(2024, 3, 30, tzinfo=UTC),
            datetime(2024, 3, 20, 12, tzinfo=UTC),
            4,
            7,
        )
        assert decision.status == TrackingStatus.QUEUED
        assert decision.note == "Order < 4 days old"

    def test_short_lead_time_is_queued(self, fixed_now):
        decision = classify(
            self.order_date, datetime(2024, 3, 3, tzinfo=UTC), fixed_now, 4, 7
        )
        assert decision.status == TrackingStatus.QUEUED
        assert decision.note == "Delivery less than 4 days"
        assert decision.is_7_days_future is False

    def test_short_warning_window_is_processed_with_note(self, fixed_now):
        decision = classify(
            self.order_date, datetime(2024, 3, 6, tzinfo=UTC), fixed_now, 4, 7
        )
        assert decision.status == TrackingStatus.PROCESSED
        assert decision.note == "Delivery less than 7 days"
        assert decision.is_7_days_future is False

    def test_exactly_warning_days_still_warns(self, fixed_now):
        decision = classify(
            self.order_date, datetime(2024, 3, 8, tzinfo=UTC), fixed_now, 4, 7
        )
        assert decision.status == TrackingStatus.PROCESSED
        assert decision.is_7_days_future is False

    def test_long_lead_time_is_processed_clean(self, fixed_now):
        decision = classify(
            self.order_date, datetime(2024, 3, 12, tzinfo=UTC), fixed_now, 4, 7
        )
        assert decision.status == TrackingStatus.PROCESSED
        assert decision.note is None
        assert decision.is_7_days_future is True


class TestTrackingResolver:
    """Tests for TrackingResolver.resolve end to end against a mocked provider."""

    async def test_processed_result(self, mock_provider, make_row, make_candidate, fixed_now):
        mock_provider.search.return_value = [make_candidate()]

        result = await _resolver(mock_provider, fixed_now).resolve(make_row())

        assert result.status == TrackingStatus.PROCESSED
        assert result.tracking_number == "1Z999AA1****4784"
        assert result.tracking_url == "https://www.ups.com/track?tracknum=1Z999AA1****4784"
        assert result.hash_id == "hash-abc"
        assert result.order_date == "2024-03-01"
        assert result.weight == "2.1 LBS"
        assert result.is_7_days_future is True
        assert result.note is None

    async def test_search_payload(self, mock_provider, make_row, fixed_now):
        await _resolver(mock_provider, fixed_now).resolve(make_row())

        payload = mock_provider.search.await_args.args[0]
        assert payload == {
            "searchby": "zip_code",
            "zip": "10001",
            "shipped_from": "2024-02-25",
            "shipped_to": "2024-04-05",
            "showPreshipment": 1,
            "limit": 3000,
        }

    async def test_zip_plus_four_queries_each_segment(
        self, mock_provider, make_row, make_candidate, fixed_now
    ):
        mock_provider.search.side_effect = [[], [make_candidate()]]

        result = await _resolver(mock_provider, fixed_now).resolve(
            make_row(shipping_zip="10001-1234")
        )

        assert mock_provider.search.await_count == 2
        zips = [call.args[0]["zip"] for call in mock_provider.search.await_args_list]
        assert zips == ["10001", "1234"]
        assert result.status == TrackingStatus.PROCESSED
        assert result.zip == "10001-1234"

    async def test_missing_zip_skips_without_calls(self, mock_provider, make_row, fixed_now):
        result = await _resolver(mock_provider, fixed_now).resolve(make_row(shipping_zip=" ' "))

        assert result.status == TrackingStatus.SKIPPED
        assert result.note == "Missing Zip Code"
        assert result.zip == "N/A"
        assert result.order_date == "N/A"
        mock_provider.search.assert_not_awaited()

    async def test_no_items(self, mock_provider, make_row, fixed_now):
        result = await _resolver(mock_provider, fixed_now).resolve(make_row())

        assert result.status == TrackingStatus.SKIPPED
        assert result.note == "No suitable tracking found"

    async def test_items_but_none_valid(self, mock_provider, make_row, make_candidate, fixed_now):
        mock_provider.search.return_value = [
            make_candidate(status="Label Created", shipped_date=None, expected_delivery="2024-03-10"),
            make_candidate(status="Voided", shipped_date=None, expected_delivery=None),
        ]

        result = await _resolver(mock_provider, fixed_now).resolve(make_row())

        assert result.status == TrackingStatus.SKIPPED
        assert result.note == (
            "Found 2 items but none matched criteria (In Transit/Delivered/On the Way)"
        )
        assert len(result.debug_info["raw_response_items"]) == 2

    async def test_match_without_expected_delivery_is_processed(
        self, mock_provider, make_row, make_candidate, fixed_now
    ):
        mock_provider.search.return_value = [make_candidate(expected_delivery=None)]

        result = await _resolver(mock_provider, fixed_now).resolve(make_row())

        assert result.status == TrackingStatus.PROCESSED
        assert result.tracking_number == "1Z999AA1****4784"
        assert result.hash_id == "hash-abc"
        assert result.expected_delivery is None
        assert result.is_7_days_future is False
        assert result.note == "Delivery less than 7 days"

    async def test_malformed_items_do_not_spoil_the_pool(
        self, mock_provider, make_row, make_candidate, fixed_now
    ):
        mock_provider.search.return_value = [
            make_candidate(),
            {"tracking_number": 12345, "status": "Label Created"},
            ["not", "an", "object"],
        ]

        result = await _resolver(mock_provider, fixed_now).resolve(make_row())

        assert result.status == TrackingStatus.PROCESSED
        assert result.tracking_number == "1Z999AA1****4784"
        assert [r["index"] for r in result.debug_info["rejected_items"]] == [2]

    async def test_queued_result_carries_url_and_delivery(
        self, mock_provider, make_row, make_candidate, fixed_now
    ):
        mock_provider.search.return_value = [
            make_candidate(expected_delivery="2024-03-22T00:00:00Z")
        ]

        result = await _resolver(mock_provider, fixed_now).resolve(
            make_row(created_at="2024-03-19T08:00:00-04:00")
        )

        assert result.status == TrackingStatus.QUEUED
        assert result.tracking_url
        assert result.expected_delivery == "2024-03-22T00:00:00Z"

    async def test_all_segments_fail_is_error(self, mock_provider, make_row, fixed_now):
        mock_provider.search.side_effect = ProviderError("Server down", status_code=500)

        result = await _resolver(mock_provider, fixed_now).resolve(
            make_row(shipping_zip="10001-1234")
        )

        assert result.status == TrackingStatus.ERROR
        assert result.note == "Zip 10001: Server down | Zip 1234: Server down"
        assert result.debug_info["error_code"] == "E-3001"
        assert len(result.debug_info["api_payloads"]) == 2

    async def test_network_error_message(self, mock_provider, make_row, fixed_now):
        mock_provider.search.side_effect = httpx.ConnectError("connection refused")

        result = await _resolver(mock_provider, fixed_now).resolve(make_row())

        assert result.status == TrackingStatus.ERROR
        assert result.note == "Zip 10001 Network Error: connection refused"

    async def test_error_note_is_truncated(self, mock_provider, make_row, fixed_now):
        mock_provider.search.side_effect = ProviderError("x" * 300, status_code=502)

        result = await _resolver(mock_provider, fixed_now).resolve(make_row())

        assert result.status == TrackingStatus.ERROR
        assert len(result.note) == 100

    async def test_partial_segment_failure_still_resolves(
        self, mock_provider, make_row, make_candidate, fixed_now
    ):
        mock_provider.search.side_effect = [
            ProviderError("Bad zip", status_code=400),
            [make_candidate()],
        ]

        result = await _resolver(mock_provider, fixed_now).resolve(
            make_row(shipping_zip="10001-1234")
        )

        assert result.status == TrackingStatus.PROCESSED
        assert result.debug_info["errors"] == ["Zip 10001: Bad zip"]
        segments = result.debug_info["segments"]
        assert [s["ok"] for s in segments] == [False, True]

    async def test_invalid_order_date_is_error(self, mock_provider, make_row, fixed_now):
        result = await _resolver(mock_provider, fixed_now).resolve(
            make_row(created_at="yesterday")
        )

        assert result.status == TrackingStatus.ERROR
        assert result.debug_info["error_code"] == "E-2002"
        mock_provider.search.assert_not_awaited()

    async def test_missing_api_key_is_error(self, mock_provider, make_row, fixed_now):
        mock_provider.api_key = ""

        result = await _resolver(mock_provider, fixed_now).resolve(make_row())

        assert result.status == TrackingStatus.ERROR
        assert result.note == "API Key is missing in Settings"
        assert result.debug_info["error_code"] == "E-5001"
        mock_provider.search.assert_not_awaited()

    async def test_unexpected_exception_becomes_error(self, mock_provider, make_row, fixed_now):
        mock_provider.search.side_effect = RuntimeError("boom")

        result = await _resolver(mock_provider, fixed_now).resolve(make_row())

        assert result.status == TrackingStatus.ERROR
        assert result.note == "boom"


@pytest.mark.parametrize(
    "weight,expected",
    [("3 LBS", "3 LBS"), (None, "N/A"), ("", "N/A")],
)
async def test_weight_defaults_to_na(
    weight, expected, mock_provider, make_row, make_candidate, fixed_now
):
    mock_provider.search.return_value = [make_candidate(weight=weight)]

    result = await _resolver(mock_provider, fixed_now).resolve(make_row())

    assert result.weight == expected
