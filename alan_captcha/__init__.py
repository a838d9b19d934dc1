"""
Alan Captcha client library and route-protecting middleware.

The framework integrations live in ``alan_captcha.middleware.flask_hook`` and
``alan_captcha.middleware.asgi`` and are imported on demand so neither Flask
nor Starlette is required to use the client.
"""

from .config import AlanCaptchaSettings
from .errors import (
    AlanCaptchaError,
    ConfigurationError,
    InvalidInputError,
    ServiceError,
)
from .infrastructure.captcha.alan import AlanApi
from .infrastructure.http_client import HttpClient, Transport, TransportResponse
from .middleware.core import (
    CaptchaDecision,
    CaptchaMiddleware,
    CaptchaRequest,
    RejectedResponse,
    ValidationResult,
)
from .shared.path_matcher import PathMatcher, should_validate

__version__ = "1.0.0"

__all__ = [
    "AlanApi",
    "AlanCaptchaError",
    "AlanCaptchaSettings",
    "CaptchaDecision",
    "CaptchaMiddleware",
    "CaptchaRequest",
    "ConfigurationError",
    "HttpClient",
    "InvalidInputError",
    "PathMatcher",
    "RejectedResponse",
    "ServiceError",
    "Transport",
    "TransportResponse",
    "ValidationResult",
    "should_validate",
]
