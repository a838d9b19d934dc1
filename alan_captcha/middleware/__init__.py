"""
Captcha middleware.

``core`` is framework-agnostic; ``flask_hook`` and ``asgi`` adapt it to Flask
and Starlette/FastAPI respectively.
"""

from .core import (
    CaptchaDecision,
    CaptchaMiddleware,
    CaptchaRequest,
    RejectedResponse,
    ValidationResult,
)

__all__ = [
    "CaptchaDecision",
    "CaptchaMiddleware",
    "CaptchaRequest",
    "RejectedResponse",
    "ValidationResult",
]
