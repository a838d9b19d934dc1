"""CaptchaApi protocol — the middleware depends on this, not the concrete client."""

from typing import Any, Protocol, Sequence


class CaptchaApi(Protocol):
    def challenge_validate(
        self, api_key: str, token: str, puzzle_solutions: Sequence[Any]
    ) -> bool: ...

    def widget_validate(self, api_key: str, encoded_solution_field: str) -> bool: ...
