"""
Flask integration for the captcha middleware.

Registers a ``before_request`` hook that validates protected routes and
short-circuits with a 403 when the captcha is rejected. The per-request
"validation attempted" flag lives on ``flask.g``.

Example:
    >>> from flask import Flask
    >>> from alan_captcha.middleware import CaptchaMiddleware
    >>> from alan_captcha.middleware.flask_hook import init_app
    >>> app = Flask(__name__)
    >>> init_app(app, CaptchaMiddleware(api_key="...", include_paths=["/login"]))
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from flask import Flask, Response, g, request

from alan_captcha.middleware.core import CaptchaMiddleware, CaptchaRequest, RejectedResponse

_G_ATTEMPTED = "alan_captcha_attempted"


def _parsed_body() -> Optional[Mapping[str, Any]]:
    if request.method.upper() != "POST":
        return None
    if request.is_json:
        body = request.get_json(silent=True)
        return body if isinstance(body, Mapping) else None
    return request.form


def build_captcha_request() -> CaptchaRequest:
    """Snapshot the current ``flask.request`` for the middleware."""
    return CaptchaRequest.from_mapping(
        method=request.method,
        path=request.path,
        headers=list(request.headers.items()),
        parsed_body=_parsed_body(),
    )


def _to_flask_response(rejection: Any) -> Any:
    if isinstance(rejection, RejectedResponse):
        return Response(
            rejection.body, status=rejection.status_code, headers=dict(rejection.headers)
        )
    return rejection


def init_app(app: Flask, middleware: CaptchaMiddleware) -> None:
    """Register the captcha check on ``app``.

    Args:
        app: Flask application instance
        middleware: Configured middleware; its rejection factory may return
            any Flask response value
    """

    @app.before_request
    def enforce_captcha():
        decision = middleware.evaluate(build_captcha_request())
        setattr(g, _G_ATTEMPTED, decision.validation_attempted)
        if decision.allowed:
            return None
        return _to_flask_response(middleware.on_captcha_validation_failed())


def validation_had_been_processed() -> bool:
    """True when the captcha check ran for the current request."""
    return bool(g.get(_G_ATTEMPTED, False))
