"""Unit tests for AlanCaptchaSettings."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from alan_captcha.config import DEFAULT_BASE_URL, AlanCaptchaSettings

_ENV_VARS = (
    "ALAN_CAPTCHA_BASE_URL",
    "ALAN_CAPTCHA_API_KEY",
    "ALAN_CAPTCHA_TIMEOUT_SECONDS",
    "ALAN_CAPTCHA_INCLUDE_PATHS",
    "ALAN_CAPTCHA_EXCLUDE_PATHS",
    "ALAN_CAPTCHA_FAIL_OPEN",
    "ALAN_CAPTCHA_LOG_LEVEL",
    "ALAN_CAPTCHA_LOG_FORMAT",
)


@pytest.fixture
def clean_env(monkeypatch):
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


class TestDefaults:
    def test_defaults(self, clean_env):
        s = AlanCaptchaSettings()
        assert s.base_url == DEFAULT_BASE_URL
        assert s.api_key == ""
        assert s.include_paths == []
        assert s.exclude_paths == []
        assert s.timeout_seconds == 5.0
        assert s.fail_open is True
        assert s.log_format == "console"
        assert s.is_configured is False


class TestEnvironment:
    def test_loads_prefixed_vars(self, clean_env):
        clean_env.setenv("ALAN_CAPTCHA_API_KEY", "secret")
        clean_env.setenv("ALAN_CAPTCHA_INCLUDE_PATHS", '["/login", "*.json"]')
        clean_env.setenv("ALAN_CAPTCHA_EXCLUDE_PATHS", '["/health"]')
        clean_env.setenv("ALAN_CAPTCHA_TIMEOUT_SECONDS", "2.5")
        s = AlanCaptchaSettings()
        assert s.api_key == "secret"
        assert s.is_configured is True
        assert s.include_paths == ["/login", "*.json"]
        assert s.exclude_paths == ["/health"]
        assert s.timeout_seconds == 2.5

    def test_unprefixed_vars_are_ignored(self, clean_env):
        clean_env.setenv("API_KEY", "wrong")
        assert AlanCaptchaSettings().api_key == ""

    def test_base_url_trailing_slash_stripped(self, clean_env):
        clean_env.setenv("ALAN_CAPTCHA_BASE_URL", "https://captcha.internal///")
        assert AlanCaptchaSettings().base_url == "https://captcha.internal"

    def test_log_format_normalised(self, clean_env):
        clean_env.setenv("ALAN_CAPTCHA_LOG_FORMAT", "JSON")
        assert AlanCaptchaSettings().log_format == "json"


class TestValidation:
    def test_unknown_log_format_rejected(self, clean_env):
        clean_env.setenv("ALAN_CAPTCHA_LOG_FORMAT", "xml")
        with pytest.raises(PydanticValidationError):
            AlanCaptchaSettings()

    @pytest.mark.parametrize("timeout", ["0", "-1"])
    def test_non_positive_timeout_rejected(self, clean_env, timeout):
        clean_env.setenv("ALAN_CAPTCHA_TIMEOUT_SECONDS", timeout)
        with pytest.raises(PydanticValidationError):
            AlanCaptchaSettings()
