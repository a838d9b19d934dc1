"""
Alan Captcha error hierarchy.

AlanCaptchaError is the base for all typed errors. The middleware relies on
the split between the three subclasses:

- ServiceError       → upstream disruption, the middleware fails open
- InvalidInputError  → malformed client proof material, the middleware denies
- ConfigurationError → deployment mistake, never caught by the middleware
"""

from __future__ import annotations

from typing import Any, Optional


class AlanCaptchaError(Exception):
    """Base error. All typed errors inherit from this."""

    error_code: str = "alan_captcha_error"

    def __init__(self, message: str, *, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload: dict = {"error": self.message, "code": self.error_code}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ServiceError(AlanCaptchaError):
    """The remote service answered with a non-200 status or was unreachable.

    ``status`` is None when no HTTP response was received at all.
    """

    error_code = "service_error"

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        body: Any = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message, details=details)
        self.status = status
        self.body = body

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["status"] = self.status
        return payload


class InvalidInputError(AlanCaptchaError):
    error_code = "invalid_input"


class ConfigurationError(AlanCaptchaError):
    error_code = "configuration_error"
