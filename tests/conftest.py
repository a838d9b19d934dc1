"""
Shared test configuration.

Patches dotenv so pydantic-settings never reads a real .env file during
tests, and provides in-memory fakes for the transport and the API client.
Tests control config exclusively through monkeypatch.setenv().
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

import pytest

from alan_captcha.errors import InvalidInputError, ServiceError
from alan_captcha.infrastructure.captcha.alan import AlanApi
from alan_captcha.infrastructure.http_client import TransportResponse


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    """Prevent pydantic-settings from loading .env files in all tests."""
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})


class FakeTransport:
    """Records every call and answers with a preset response."""

    def __init__(self, response: Optional[TransportResponse] = None) -> None:
        self.response = response or TransportResponse(status=200, body={})
        self.calls: list[dict[str, Any]] = []

    def send(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        body: Optional[str] = None,
    ) -> TransportResponse:
        self.calls.append(
            {"method": method, "url": url, "headers": dict(headers or {}), "body": body}
        )
        return self.response

    def get(self, url, headers=None):
        return self.send("GET", url, headers)

    def post(self, url, body=None, headers=None):
        return self.send("POST", url, headers, body)


class FakeCaptchaApi:
    """CaptchaApi stand-in; ``outcome`` is a bool or an exception to raise."""

    def __init__(self, outcome: Any = True) -> None:
        self.outcome = outcome
        self.challenge_calls: list[tuple[str, str, list]] = []
        self.widget_calls: list[tuple[str, str]] = []

    def _resolve(self) -> bool:
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return bool(self.outcome)

    def challenge_validate(
        self, api_key: str, token: str, puzzle_solutions: Sequence[Any]
    ) -> bool:
        self.challenge_calls.append((api_key, token, list(puzzle_solutions)))
        return self._resolve()

    def widget_validate(self, api_key: str, encoded_solution_field: str) -> bool:
        self.widget_calls.append((api_key, encoded_solution_field))
        return self._resolve()


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def make_api():
    """Build an AlanApi over a FakeTransport answering with ``status``/``body``."""
    def _make(status: int = 200, body: Any = None):
        transport = FakeTransport(TransportResponse(status=status, body=body))
        return AlanApi(transport), transport

    return _make


@pytest.fixture
def fake_api():
    return FakeCaptchaApi()


@pytest.fixture
def service_error():
    return ServiceError("upstream down", status=503, body="unavailable")


@pytest.fixture
def invalid_input_error():
    return InvalidInputError("bad payload")
