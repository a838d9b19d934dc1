"""Alan Captcha API client.

Implements the three service endpoints over any ``Transport``:

- POST /challenge           → issue one or more signed challenge tokens
- POST /challenge/validate  → check puzzle solutions against a token
- GET  /health              → service liveness

Any non-200 answer or network failure raises ServiceError. Malformed widget
payloads raise InvalidInputError before the network is touched.
"""

from __future__ import annotations

import json
from typing import Any, Optional, Sequence, Union

import httpx
from pydantic import ValidationError

from alan_captcha.config import DEFAULT_BASE_URL
from alan_captcha.errors import InvalidInputError, ServiceError
from alan_captcha.infrastructure.http_client import (
    JSON_CONTENT_TYPE,
    HttpClient,
    Transport,
    TransportResponse,
)
from alan_captcha.schemas.widget import (
    ChallengeRequest,
    ChallengeValidateRequest,
    WidgetSolution,
)
from alan_captcha.shared.logging import get_logger

log = get_logger(__name__)

_JSON_HEADERS = {"Content-Type": JSON_CONTENT_TYPE}


def _positive_or_none(value: int) -> Optional[int]:
    # 0 means "use the service default" and is omitted from the request
    return value if value > 0 else None


class AlanApi:
    def __init__(
        self,
        http_client: Optional[Transport] = None,
        base_url: str = DEFAULT_BASE_URL,
    ) -> None:
        self._http: Transport = http_client if http_client is not None else HttpClient()
        self._base_url = base_url.rstrip("/")

    @property
    def base_url(self) -> str:
        return self._base_url

    def set_http_client(self, http_client: Transport) -> "AlanApi":
        self._http = http_client
        return self

    def set_base_url(self, base_url: str) -> "AlanApi":
        self._base_url = base_url.rstrip("/")
        return self

    def challenge(
        self,
        site_key: str,
        monitor_tag: str = "general",
        number_of_puzzles: int = 0,
        difficulty: int = 0,
        rounds: int = 0,
        number_of_challenges: int = 0,
    ) -> Union[str, list[str]]:
        """Request one or more challenges for ``site_key``.

        Args:
            site_key: Public site key the challenge is scoped to.
            monitor_tag: Form identifier used for statistics; must be
                preconfigured in the Alan backend.
            number_of_puzzles: Puzzles per challenge (0 = site default).
            difficulty: Puzzle complexity (0 = site default).
            rounds: Rounds per puzzle (0 = site default).
            number_of_challenges: Challenges to issue (0 = one).

        Returns:
            The signed challenge token, or a list of tokens when the service
            issues several.
        """
        payload = ChallengeRequest(
            site_key=site_key,
            monitor_tag=monitor_tag,
            number_of_challenges=_positive_or_none(number_of_challenges),
            number_of_puzzles=_positive_or_none(number_of_puzzles),
            difficulty=_positive_or_none(difficulty),
            rounds=_positive_or_none(rounds),
        ).to_payload()

        response = self._post("/challenge", payload)
        if response.status == 200:
            return self._field(response, "jwt")
        raise self._status_error("Failed to request challenge from API", response)

    def challenge_validate(
        self, api_key: str, token: str, puzzle_solutions: Sequence[Any]
    ) -> bool:
        """Check ``puzzle_solutions`` against the challenge ``token``.

        Returns True if valid, False if invalid. Raises ServiceError on
        service or network disruption.
        """
        payload = ChallengeValidateRequest(
            key=api_key, jwt=token, puzzle_solutions=list(puzzle_solutions)
        ).to_payload()

        response = self._post("/challenge/validate", payload)
        if response.status == 200:
            return bool(self._field(response, "success"))
        raise self._status_error("Failed to validate challenge with API", response)

    def widget_validate(self, api_key: str, encoded_solution_field: str) -> bool:
        """Validate the JSON ``alan-solution`` field posted by the widget."""
        try:
            solution = WidgetSolution.model_validate(json.loads(encoded_solution_field))
        except (ValueError, TypeError, ValidationError) as e:
            raise InvalidInputError(
                "alan-solution must be a JSON object with fields jwt and solutions",
                details=str(e),
            ) from e
        return self.challenge_validate(api_key, solution.jwt, solution.solutions)

    def health(self) -> bool:
        response = self._request("GET", "/health")
        if response.status == 200:
            return bool(self._field(response, "success"))
        raise self._status_error("API health request failed", response)

    # ── internals ────────────────────────────────────────────────────────────

    def _post(self, path: str, payload: dict[str, Any]) -> TransportResponse:
        return self._request("POST", path, json.dumps(payload))

    def _request(
        self, method: str, path: str, body: Optional[str] = None
    ) -> TransportResponse:
        url = f"{self._base_url}{path}"
        try:
            if method == "GET":
                return self._http.get(url)
            return self._http.post(url, body, _JSON_HEADERS)
        except (httpx.HTTPError, OSError) as e:
            log.error(
                "alan_api_request_failed",
                url=url,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ServiceError(f"Request to {url} failed: {e}") from e

    @staticmethod
    def _field(response: TransportResponse, name: str) -> Any:
        body = response.body
        if not isinstance(body, dict) or name not in body:
            log.error("alan_api_malformed_response", field=name, status=response.status)
            raise ServiceError(
                f"API response is missing field {name!r}",
                status=response.status,
                body=body,
            )
        return body[name]

    @staticmethod
    def _status_error(message: str, response: TransportResponse) -> ServiceError:
        body = response.body
        log.error(
            "alan_api_error",
            status=response.status,
            response_text=str(body)[:200],
        )
        rendered = body if isinstance(body, str) else json.dumps(body, default=str)
        return ServiceError(
            f"{message}: {response.status}:{rendered}",
            status=response.status,
            body=body,
        )
