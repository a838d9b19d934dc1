"""Transport protocol and the default httpx-backed implementation."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol

import httpx

JSON_CONTENT_TYPE = "application/json"


@dataclass
class TransportResponse:
    """Normalised result of one HTTP exchange.

    ``headers`` is keyed by lower-case header name. ``body`` is the decoded
    JSON document when the response declared ``application/json`` and parsed
    cleanly, otherwise the raw text.
    """

    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None
    content_length: int = 0


class Transport(Protocol):
    """AlanApi depends on this, not on HttpClient, so tests can swap it.

    Network failures should surface as ``httpx.HTTPError`` or ``OSError``;
    AlanApi turns both into ServiceError.
    """

    def send(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        body: Optional[str] = None,
    ) -> TransportResponse: ...

    def get(
        self, url: str, headers: Optional[Mapping[str, str]] = None
    ) -> TransportResponse: ...

    def post(
        self,
        url: str,
        body: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> TransportResponse: ...


def _decode_body(headers: Mapping[str, str], text: str) -> Any:
    # Exact, case-sensitive match: "application/json; charset=utf-8" stays raw
    if headers.get("content-type") != JSON_CONTENT_TYPE:
        return text
    try:
        return json.loads(text)
    except ValueError:
        return text


def _content_length(headers: Mapping[str, str], payload: bytes) -> int:
    raw = headers.get("content-length")
    if raw is not None and raw.strip().isdigit():
        return int(raw)
    return len(payload)


class HttpClient:
    """Thin sync wrapper around httpx.Client with a configurable timeout.

    No retries. Network failures surface as ``httpx.HTTPError``.
    """

    def __init__(
        self,
        timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def send(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        body: Optional[str] = None,
    ) -> TransportResponse:
        method = method.upper()
        content = body if method != "GET" else None
        response = self._client.request(
            method, url, headers=dict(headers or {}), content=content
        )

        # Last value wins for repeated headers
        response_headers = {
            name.lower(): value for name, value in response.headers.multi_items()
        }
        return TransportResponse(
            status=response.status_code,
            headers=response_headers,
            body=_decode_body(response_headers, response.text),
            content_length=_content_length(response_headers, response.content),
        )

    def get(
        self, url: str, headers: Optional[Mapping[str, str]] = None
    ) -> TransportResponse:
        return self.send("GET", url, headers)

    def post(
        self,
        url: str,
        body: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> TransportResponse:
        return self.send("POST", url, headers, body)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
