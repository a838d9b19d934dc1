"""
Payload DTOs exchanged with the Alan Captcha widget and API.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class WidgetSolution(BaseModel):
    """Decoded ``alan-solution`` form field posted by the browser widget.

    The widget serialises ``{"jwt": "...", "solutions": [...]}``; solutions are
    paired by position with the puzzles embedded in the challenge token.
    """

    model_config = ConfigDict(extra="ignore")

    jwt: str
    solutions: list[Any]


class ChallengeRequest(BaseModel):
    """Body of ``POST /challenge``.

    Numeric tuning fields are left out of the dump when unset (None) so the
    service applies its site-key defaults.
    """

    model_config = ConfigDict(populate_by_name=True)

    site_key: str = Field(alias="siteKey")
    monitor_tag: str = Field(default="general", alias="monitorTag")
    number_of_challenges: Optional[int] = Field(default=None, alias="numberOfChallenges")
    number_of_puzzles: Optional[int] = Field(default=None, alias="numberOfPuzzles")
    difficulty: Optional[int] = None
    rounds: Optional[int] = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ChallengeValidateRequest(BaseModel):
    """Body of ``POST /challenge/validate``."""

    model_config = ConfigDict(populate_by_name=True)

    key: str
    jwt: str
    puzzle_solutions: list[Any] = Field(alias="puzzleSolutions")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
