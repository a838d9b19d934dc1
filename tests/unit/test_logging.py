"""Unit tests for logging configuration."""

import logging

import structlog

from alan_captcha.config import AlanCaptchaSettings
from alan_captcha.shared.logging import get_logger, log_with_context
from alan_captcha.shared.logging_config import (
    filter_exceptions,
    redact_sensitive_fields,
    setup_logging,
)


class TestRedaction:
    def test_secrets_are_redacted(self):
        event = redact_sensitive_fields(
            None,
            "info",
            {
                "event": "captcha_validation_passed",
                "api_key": "private",
                "jwt": "signed.token",
                "refresh_token": "r",
                "path": "/login",
            },
        )
        assert event["api_key"] == "***REDACTED***"
        assert event["jwt"] == "***REDACTED***"
        assert event["refresh_token"] == "***REDACTED***"
        assert event["path"] == "/login"
        assert event["event"] == "captcha_validation_passed"

    def test_reserved_fields_untouched(self):
        event = redact_sensitive_fields(None, "info", {"event": "token_rotated", "level": "info"})
        assert event == {"event": "token_rotated", "level": "info"}


class TestExceptions:
    def test_exc_info_becomes_exception_text(self):
        try:
            raise ValueError("boom")
        except ValueError as e:
            event = filter_exceptions(None, "error", {"event": "x", "exc_info": e})
        assert "exc_info" not in event
        assert "ValueError: boom" in event["exception"]


class TestSetup:
    def test_json_setup_emits_json(self, caplog):
        caplog.set_level(logging.INFO)
        try:
            setup_logging(AlanCaptchaSettings(log_format="json"))
            get_logger("alan_captcha.test").info("captcha_bypassed", path="/about")
            out = caplog.text
            assert '"event": "captcha_bypassed"' in out
            assert '"path": "/about"' in out
        finally:
            structlog.reset_defaults()

    def test_log_with_context_binds(self):
        log = log_with_context(get_logger(__name__), path="/login")
        assert log is not None
