"""
Framework-agnostic captcha middleware.

Given a request, CaptchaMiddleware decides whether the route is protected,
extracts proof material and asks the Alan API whether it is valid.

Proof material, in order of precedence:
1. ``X-Alan-JWT`` + ``X-Alan-Solution`` headers (solution is a JSON array)
2. ``alan-solution`` field of a POST body (JSON ``{"jwt", "solutions"}``)

Failure policy:
- ServiceError       → allowed when ``fail_open`` (default), denied otherwise
- InvalidInputError  → denied
- ConfigurationError → raised to the host

The instance only holds configuration. Whether validation was attempted is
returned with every decision, so concurrent requests never share it.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Iterable, Mapping, Optional, TypeVar, Union

from alan_captcha.config import AlanCaptchaSettings
from alan_captcha.errors import ConfigurationError, InvalidInputError, ServiceError
from alan_captcha.infrastructure.captcha.alan import AlanApi
from alan_captcha.infrastructure.captcha.protocol import CaptchaApi
from alan_captcha.infrastructure.http_client import HttpClient
from alan_captcha.shared.logging import get_logger, log_with_context
from alan_captcha.shared.path_matcher import PathMatcher

log = get_logger(__name__)

JWT_HEADER = "X-Alan-JWT"
SOLUTION_HEADER = "X-Alan-Solution"
SOLUTION_FIELD = "alan-solution"

R = TypeVar("R")


@dataclass
class CaptchaRequest:
    """The parts of an inbound request the middleware looks at.

    ``headers`` maps lower-case header names to every value received.
    ``parsed_body`` is the decoded form or JSON body, if any.
    """

    method: str
    path: str
    headers: dict[str, list[str]] = field(default_factory=dict)
    parsed_body: Optional[Mapping[str, Any]] = None

    @classmethod
    def from_mapping(
        cls,
        method: str,
        path: str,
        headers: Union[Mapping[str, Any], Iterable[tuple[str, str]], None] = None,
        parsed_body: Optional[Mapping[str, Any]] = None,
    ) -> "CaptchaRequest":
        """Build a request from a header mapping or ``(name, value)`` pairs."""
        items: Iterable[tuple[str, Any]]
        if headers is None:
            items = ()
        elif isinstance(headers, Mapping):
            items = headers.items()
        else:
            items = headers

        normalised: dict[str, list[str]] = {}
        for name, value in items:
            values = value if isinstance(value, (list, tuple)) else [value]
            normalised.setdefault(name.lower(), []).extend(str(v) for v in values)
        return cls(
            method=method, path=path, headers=normalised, parsed_body=parsed_body
        )

    def has_header(self, name: str) -> bool:
        return bool(self.headers.get(name.lower()))

    def header(self, name: str) -> Optional[str]:
        values = self.headers.get(name.lower())
        return values[0] if values else None


@dataclass(frozen=True)
class CaptchaDecision:
    allowed: bool
    validation_attempted: bool


@dataclass(frozen=True)
class ValidationResult(Generic[R]):
    response: R
    validation_attempted: bool


@dataclass(frozen=True)
class RejectedResponse:
    """Framework-neutral rejection returned when no factory is configured."""

    status_code: int = 403
    body: bytes = b""
    headers: Mapping[str, str] = field(default_factory=dict)


class CaptchaMiddleware:
    def __init__(
        self,
        api_key: str = "",
        include_paths: Iterable[str] = (),
        exclude_paths: Iterable[str] = (),
        api: Optional[CaptchaApi] = None,
        fail_open: bool = True,
        rejection_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        self._api_key = api_key
        self._matcher = PathMatcher(tuple(include_paths), tuple(exclude_paths))
        self._api = api
        self._fail_open = fail_open
        self._rejection_factory = rejection_factory

    @classmethod
    def from_settings(
        cls, settings: AlanCaptchaSettings, api: Optional[CaptchaApi] = None
    ) -> "CaptchaMiddleware":
        if not settings.is_configured:
            log.warning("captcha_api_key_missing", include_paths=settings.include_paths)
        if api is None:
            api = AlanApi(
                HttpClient(timeout=settings.timeout_seconds),
                base_url=settings.base_url,
            )
        return cls(
            api_key=settings.api_key,
            include_paths=settings.include_paths,
            exclude_paths=settings.exclude_paths,
            api=api,
            fail_open=settings.fail_open,
        )

    # ── configuration ────────────────────────────────────────────────────────

    @property
    def api(self) -> CaptchaApi:
        if self._api is None:
            self._api = AlanApi()
        return self._api

    @property
    def matcher(self) -> PathMatcher:
        return self._matcher

    @property
    def fail_open(self) -> bool:
        return self._fail_open

    def set_alan_api(self, api: CaptchaApi) -> "CaptchaMiddleware":
        self._api = api
        return self

    def set_api_key(self, api_key: str) -> "CaptchaMiddleware":
        self._api_key = api_key
        return self

    def set_include_paths(self, include_paths: Iterable[str]) -> "CaptchaMiddleware":
        self._matcher = PathMatcher(tuple(include_paths), self._matcher.exclude_patterns)
        return self

    def set_exclude_paths(self, exclude_paths: Iterable[str]) -> "CaptchaMiddleware":
        self._matcher = PathMatcher(self._matcher.include_patterns, tuple(exclude_paths))
        return self

    def set_rejection_factory(self, factory: Callable[[], Any]) -> "CaptchaMiddleware":
        self._rejection_factory = factory
        return self

    def on_captcha_validation_failed(self) -> Any:
        """Response returned to the client when the captcha is rejected.

        Subclass or pass ``rejection_factory`` to produce a response native to
        the host framework.
        """
        if self._rejection_factory is not None:
            return self._rejection_factory()
        return RejectedResponse()

    # ── request processing ───────────────────────────────────────────────────

    def requires_validation(self, request: CaptchaRequest) -> bool:
        return self._matcher.should_validate(request.path)

    def evaluate(self, request: CaptchaRequest) -> CaptchaDecision:
        """Decide whether ``request`` may reach the downstream handler."""
        request_log = log_with_context(log, method=request.method, path=request.path)
        if not self.requires_validation(request):
            request_log.debug("captcha_bypassed")
            return CaptchaDecision(allowed=True, validation_attempted=False)

        if not self._api_key:
            raise ConfigurationError("CaptchaMiddleware has no private api key set")

        try:
            is_valid = self._validate(request)
        except ServiceError as e:
            request_log.warning(
                "captcha_service_unavailable",
                status=e.status,
                error=e.message,
                fail_open=self._fail_open,
            )
            is_valid = self._fail_open
        except InvalidInputError as e:
            request_log.info("captcha_invalid_solution", error=e.message)
            is_valid = False

        if is_valid:
            request_log.info("captcha_validation_passed")
        else:
            request_log.info("captcha_validation_failed")
        return CaptchaDecision(allowed=is_valid, validation_attempted=True)

    def process(
        self, request: CaptchaRequest, handler: Callable[[CaptchaRequest], R]
    ) -> ValidationResult[Any]:
        """Run ``handler`` when the captcha passes, else build the rejection."""
        decision = self.evaluate(request)
        if decision.allowed:
            response = handler(request)
        else:
            response = self.on_captcha_validation_failed()
        return ValidationResult(
            response=response, validation_attempted=decision.validation_attempted
        )

    def _validate(self, request: CaptchaRequest) -> bool:
        if request.has_header(JWT_HEADER) and request.has_header(SOLUTION_HEADER):
            token = request.header(JWT_HEADER) or ""
            solutions = _decode_solutions(request.header(SOLUTION_HEADER) or "")
            return self.api.challenge_validate(self._api_key, token, solutions)

        if request.method.upper() == "POST":
            encoded = _solution_from_body(request.parsed_body)
            if encoded is not None:
                return self.api.widget_validate(self._api_key, encoded)

        return False


def _decode_solutions(encoded: str) -> list[Any]:
    try:
        solutions = json.loads(encoded)
    except ValueError as e:
        raise InvalidInputError(f"{SOLUTION_HEADER} is not valid JSON") from e
    if not isinstance(solutions, list):
        raise InvalidInputError(f"{SOLUTION_HEADER} must be a JSON array")
    return solutions


def _solution_from_body(body: Optional[Mapping[str, Any]]) -> Optional[str]:
    if not isinstance(body, Mapping):
        return None
    value = body.get(SOLUTION_FIELD)
    return value if isinstance(value, str) else None
