"""Tests for the error code registry and formatter."""

import re

from trackmaster.errors import (
    ERROR_REGISTRY,
    ConfigurationError,
    ErrorCategory,
    TrackMasterError,
    format_error,
    format_failure_summary,
    get_error,
)
from trackmaster.models import FailedItem, FailureAction

_CATEGORY_PREFIX = {
    ErrorCategory.DATA: "E-1",
    ErrorCategory.VALIDATION: "E-2",
    ErrorCategory.PROVIDER: "E-3",
    ErrorCategory.STOREFRONT: "E-4",
    ErrorCategory.CONFIG: "E-5",
}


class TestErrorRegistry:

    def test_codes_follow_format(self):
        for code, error in ERROR_REGISTRY.items():
            assert re.fullmatch(r"E-\d{4}", code)
            assert error.code == code

    def test_code_prefix_matches_category(self):
        for code, error in ERROR_REGISTRY.items():
            assert code.startswith(_CATEGORY_PREFIX[error.category])

    def test_every_code_has_remediation(self):
        for error in ERROR_REGISTRY.values():
            assert error.remediation

    def test_get_error_unknown(self):
        assert get_error("E-9999") is None


class TestTrackMasterError:

    def test_from_code_formats_template(self):
        error = TrackMasterError.from_code("E-2002", value="yesterday", orders=["#1001"])
        assert error.message == "Invalid order date 'yesterday'."
        assert error.orders == ["#1001"]
        assert str(error) == "E-2002: Invalid order date 'yesterday'."

    def test_from_code_keeps_template_on_missing_placeholder(self):
        error = TrackMasterError.from_code("E-1001")
        assert error.message == "CSV is missing required column '{column}'."

    def test_from_code_unknown(self):
        error = TrackMasterError.from_code("E-9999")
        assert error.message == "Unknown error: E-9999"

    def test_configuration_error_is_trackmaster_error(self):
        error = ConfigurationError.from_code("E-5001")
        assert isinstance(error, ConfigurationError)
        assert isinstance(error, TrackMasterError)
        assert error.message == "API Key is missing in Settings"

    def test_format_error_lists_orders(self):
        error = TrackMasterError.from_code(
            "E-2002", value="x", orders=[f"#{i}" for i in range(12)]
        )
        text = format_error(error)
        assert "Affected orders: #0, #1" in text
        assert "(and 2 more)" in text
        assert "Action:" in text


class TestFailureSummary:

    def test_format_failure_summary(self):
        failures = [
            FailedItem(order_number="#1", action=FailureAction.BUY, reason="No Hash ID available"),
            FailedItem(order_number="#2", action=FailureAction.BUY, reason="No Hash ID available"),
            FailedItem(order_number="#3", action=FailureAction.FULFILL, reason="Invalid tracking number"),
        ]
        summary = format_failure_summary(failures)
        assert summary.splitlines() == [
            "3 failure(s):",
            "  [BUY] No Hash ID available: #1, #2",
            "  [FULFILL] Invalid tracking number: #3",
        ]
        assert format_failure_summary([]) == "No failures."
