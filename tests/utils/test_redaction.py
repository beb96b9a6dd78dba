"""Tests for credential redaction."""

from trackmaster.utils.redaction import redact_for_logging, sanitize_error_message


class TestRedactForLogging:

    def test_redacts_credentials_in_config_tree(self):
        data = {
            "provider": {"api_key": "tk_live_123", "limit": 3000},
            "shopify": {"domain": "s.myshopify.com", "access_token": "shpat_abc"},
        }
        result = redact_for_logging(data)
        assert result["provider"]["api_key"] == "***REDACTED***"
        assert result["provider"]["limit"] == 3000
        assert result["shopify"]["access_token"] == "***REDACTED***"
        assert result["shopify"]["domain"] == "s.myshopify.com"

    def test_empty_credentials_stay_visible(self):
        assert redact_for_logging({"api_key": ""}) == {"api_key": ""}

    def test_does_not_mutate_input(self):
        data = {"outer": {"access_token": "tok"}}
        redact_for_logging(data)
        assert data == {"outer": {"access_token": "tok"}}

    def test_handles_list_of_dicts(self):
        data = {"items": [{"token": "leaked", "zip": "10001"}, "plain"]}
        result = redact_for_logging(data)
        assert result["items"][0] == {"token": "***REDACTED***", "zip": "10001"}
        assert result["items"][1] == "plain"

    def test_custom_patterns(self):
        result = redact_for_logging({"hashid": "h1", "api_key": "k"}, frozenset({"hashid"}))
        assert result == {"hashid": "***REDACTED***", "api_key": "k"}


class TestSanitizeErrorMessage:

    def test_none_passes_through(self):
        assert sanitize_error_message(None) is None

    def test_redacts_bearer_token(self):
        result = sanitize_error_message("401 Authorization: Bearer tk_live_123 rejected")
        assert "tk_live_123" not in result
        assert result.endswith("rejected")

    def test_redacts_json_token(self):
        result = sanitize_error_message('{"access_token": "shpat_abc", "ok": false}')
        assert "shpat_abc" not in result
        assert '"ok": false' in result

    def test_redacts_key_value(self):
        result = sanitize_error_message("GET /?api_key=tk_live_123&zip=10001")
        assert "tk_live_123" not in result
        assert "&zip=10001" in result

    def test_plain_message_unchanged(self):
        message = "Zip 10001: Too many requests"
        assert sanitize_error_message(message) == message

    def test_truncates(self):
        result = sanitize_error_message("x" * 50, max_length=20)
        assert len(result) == 20
        assert result.endswith("...")
