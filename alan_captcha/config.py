"""
Alan Captcha configuration via pydantic-settings.

All settings are loaded from environment variables prefixed with
``ALAN_CAPTCHA_`` (and a .env file). List settings are JSON-encoded, e.g.
``ALAN_CAPTCHA_INCLUDE_PATHS='["/login", "/api/*"]'``.
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "https://api.alancaptcha.com"


class AlanCaptchaSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ALAN_CAPTCHA_", env_file=".env", extra="ignore"
    )

    # Remote service
    base_url: str = DEFAULT_BASE_URL
    api_key: str = ""
    timeout_seconds: float = Field(default=5.0, gt=0)

    # Middleware
    include_paths: list[str] = []
    exclude_paths: list[str] = []
    # Treat service disruption as a passed captcha
    fail_open: bool = True

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("log_format")
    @classmethod
    def _known_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("console", "json"):
            raise ValueError("log_format must be 'console' or 'json'")
        return v

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)
