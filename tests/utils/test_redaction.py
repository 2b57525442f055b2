"""Tests for secret redaction utility."""

import pytest


class TestRedactForLogging:

    def test_redacts_sensitive_keys(self):
        from src.utils.redaction import redact_for_logging

        data = {"apikey": "abc123", "persona": "Ana", "Authorization": "Bearer abc"}
        result = redact_for_logging(data)
        assert result["apikey"] == "***REDACTED***"
        assert result["Authorization"] == "***REDACTED***"
        assert result["persona"] == "Ana"

    def test_preserves_non_sensitive(self):
        from src.utils.redaction import redact_for_logging

        data = {"model": "claude-haiku-4-5", "usage": {"input": 10, "output": 2}}
        assert redact_for_logging(data) == data

    def test_handles_nested_dict(self):
        from src.utils.redaction import redact_for_logging

        data = {"delivery": {"api_token": "tok123", "instance_key": "main"}}
        result = redact_for_logging(data)
        assert result["delivery"]["api_token"] == "***REDACTED***"
        assert result["delivery"]["instance_key"] == "main"

    def test_handles_list_of_dicts(self):
        from src.utils.redaction import redact_for_logging

        data = {"attempts": [{"password": "leaked", "convention": "bearer"}]}
        result = redact_for_logging(data)
        assert result["attempts"][0]["password"] == "***REDACTED***"
        assert result["attempts"][0]["convention"] == "bearer"

    def test_container_keys_redacted_whole(self):
        from src.utils.redaction import redact_for_logging

        result = redact_for_logging({"headers": {"Content-Type": "application/json"}})
        assert result["headers"] == "***REDACTED***"

    def test_empty_dict(self):
        from src.utils.redaction import redact_for_logging

        assert redact_for_logging({}) == {}


class TestSanitizeErrorMessage:

    @pytest.mark.parametrize(
        "message,secret",
        [
            ("Authorization: Bearer sk-abc.def", "sk-abc.def"),
            ("authorization: Apikey gw-777 denied", "gw-777"),
            ('{"apikey": "k-123"}', "k-123"),
            ("token=abc123 rejected", "abc123"),
            ('password = "hunter2"', "hunter2"),
        ],
    )
    def test_redacts_values(self, message, secret):
        from src.utils.redaction import sanitize_error_message

        result = sanitize_error_message(message)
        assert secret not in result
        assert "***REDACTED***" in result

    def test_truncates(self):
        from src.utils.redaction import sanitize_error_message

        result = sanitize_error_message("x" * 50, max_length=10)
        assert result == "xxxxxxx..."

    def test_none_passes_through(self):
        from src.utils.redaction import sanitize_error_message

        assert sanitize_error_message(None) is None


class TestMaskSecret:

    def test_masks(self):
        from src.utils.redaction import mask_secret

        assert mask_secret("sk-ant-1234567890") == "****7890"
        assert mask_secret("short") == "****"
        assert mask_secret("") == "(not set)"
        assert mask_secret(None) == "(not set)"


class TestGatewayExcerpts:

    def test_keeps_key_name_and_surrounding_text(self):
        from src.utils.redaction import sanitize_error_message

        body = '{"status": 401, "apikey": "tok-live", "message": "Unauthorized"}'
        result = sanitize_error_message(body)
        assert '"apikey": ***REDACTED***' in result
        assert '"message": "Unauthorized"' in result

    def test_attempt_fields_survive_metadata_redaction(self):
        from src.utils.redaction import redact_for_logging

        data = {"delivery": {"attempts": [{"convention": "apikey", "status_code": 401}]}}
        result = redact_for_logging(data)
        assert result["delivery"]["attempts"][0]["convention"] == "apikey"
        assert result["delivery"]["attempts"][0]["status_code"] == 401
