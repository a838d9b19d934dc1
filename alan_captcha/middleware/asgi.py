"""
ASGI (Starlette / FastAPI) integration for the captcha middleware.

Run with:
    app.add_middleware(AlanCaptchaASGIMiddleware, middleware=CaptchaMiddleware(...))

The request body is buffered so the captcha check can read the
``alan-solution`` field and is then replayed to the downstream app
unchanged. Bodies larger than ``max_body_size`` are rejected without being
buffered in full. An unparseable body counts as missing proof. The blocking
API call runs in Starlette's threadpool.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from alan_captcha.middleware.core import CaptchaMiddleware, CaptchaRequest, RejectedResponse
from alan_captcha.shared.logging import get_logger

log = get_logger(__name__)

STATE_ATTEMPTED = "alan_captcha_attempted"

DEFAULT_MAX_BODY_SIZE = 1024 * 1024

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def _read_body(receive: Receive, max_size: int) -> Optional[bytes]:
    """Buffer the request body; None once it grows past ``max_size`` bytes."""
    chunks: list[bytes] = []
    size = 0
    more_body = True
    while more_body:
        message = await receive()
        if message["type"] != "http.request":
            break
        chunk = message.get("body", b"")
        size += len(chunk)
        if size > max_size:
            return None
        chunks.append(chunk)
        more_body = message.get("more_body", False)
    return b"".join(chunks)


def _replay(body: bytes, receive: Receive) -> Receive:
    """Receive callable that yields ``body`` once, then defers to ``receive``."""
    sent = False

    async def replay() -> Message:
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


async def _parse_body(request: Request) -> Optional[Mapping[str, Any]]:
    content_type = request.headers.get("content-type", "").split(";", 1)[0].strip().lower()
    if content_type == "application/json":
        try:
            body = await request.json()
        except ValueError:
            return None
        return body if isinstance(body, Mapping) else None

    if content_type in _FORM_CONTENT_TYPES:
        try:
            form = await request.form()
        except (MultiPartException, HTTPException, ValueError, KeyError) as e:
            log.info(
                "captcha_body_unparseable",
                path=request.url.path,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None
        fields: dict[str, str] = {}
        for name, value in form.multi_items():
            if isinstance(value, str):
                fields.setdefault(name, value)
        await form.close()
        return fields

    return None


class AlanCaptchaASGIMiddleware:
    def __init__(
        self,
        app: ASGIApp,
        middleware: CaptchaMiddleware,
        max_body_size: int = DEFAULT_MAX_BODY_SIZE,
    ) -> None:
        self.app = app
        self.middleware = middleware
        self.max_body_size = max_body_size

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        state = scope.setdefault("state", {})
        request = Request(scope, receive)
        captcha_request = CaptchaRequest.from_mapping(
            method=request.method,
            path=request.url.path,
            headers=list(request.headers.items()),
        )

        if not self.middleware.requires_validation(captcha_request):
            state[STATE_ATTEMPTED] = False
            await self.app(scope, receive, send)
            return

        if request.method.upper() == "POST":
            original_receive = receive
            body = await _read_body(original_receive, self.max_body_size)
            if body is None:
                log.warning(
                    "captcha_body_too_large",
                    path=captcha_request.path,
                    max_body_size=self.max_body_size,
                )
                state[STATE_ATTEMPTED] = True
                await self._reject(scope, original_receive, send)
                return
            receive = _replay(body, original_receive)
            captcha_request.parsed_body = await _parse_body(
                Request(scope, _replay(body, original_receive))
            )

        decision = await run_in_threadpool(self.middleware.evaluate, captcha_request)
        state[STATE_ATTEMPTED] = decision.validation_attempted

        if decision.allowed:
            await self.app(scope, receive, send)
            return
        await self._reject(scope, receive, send)

    async def _reject(self, scope: Scope, receive: Receive, send: Send) -> None:
        rejection = self.middleware.on_captcha_validation_failed()
        if isinstance(rejection, RejectedResponse):
            rejection = Response(
                content=rejection.body,
                status_code=rejection.status_code,
                headers=dict(rejection.headers),
            )
        await rejection(scope, receive, send)


def validation_had_been_processed(request: Request) -> bool:
    """True when the captcha check ran for ``request``."""
    return bool(getattr(request.state, STATE_ATTEMPTED, False))
