"""
Include/exclude path matching for the captcha middleware.

Each configured pattern is one of:

- a literal path          "/login"
- a shell glob            "/api/*", "*.json"
- a delimited regex       "/^\\/admin\\//", "#^/shop/.*#i", "@cart@"

A path is tested against a pattern list in this order: exact membership,
then per pattern a glob match, then a regex match. Patterns that are not
delimited regexes are escaped and anchored, so a literal only ever matches
the exact path.

The regex detection is a heuristic: a pattern is a regex when it starts
with one of ``/ @ #`` and the same character closes it, optionally
followed by flag letters. ``"/api/"`` is therefore the regex ``api``
(matching anywhere in the path), not a literal. Use ``"/api/*"`` or the
exact path when a prefix or literal is meant.
This is stricter than a last-character test: a pattern such as ``"/x#"``
is a literal here, and PCRE would have rejected it as a regex anyway.
"""

from __future__ import annotations

import fnmatch
import functools
import re
from typing import Optional, Pattern, Sequence

from alan_captcha.shared.logging import get_logger

log = get_logger(__name__)

REGEX_DELIMITERS = frozenset("/@#")
REGEX_FLAG_LETTERS = frozenset("imsxADSUXJun")

_FLAG_MAP = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
}

# Unescaped "$" (not preceded by a backslash)
_DOLLAR = re.compile(r"(?<!\\)\$")


def _split_delimited(pattern: str) -> Optional[tuple[str, str]]:
    """Return ``(body, flags)`` for ``<d>body<d>flags``, else None."""
    if len(pattern) < 3 or pattern[0] not in REGEX_DELIMITERS:
        return None
    delimiter = pattern[0]
    closing = pattern.rfind(delimiter)
    if closing <= 1:
        return None
    flags = pattern[closing + 1 :]
    if any(letter not in REGEX_FLAG_LETTERS for letter in flags):
        return None
    return pattern[1:closing], flags


def is_delimited_regex(pattern: str) -> bool:
    return _split_delimited(pattern) is not None


class CompiledPattern:
    __slots__ = ("regex", "anchored")

    def __init__(self, regex: Pattern[str], anchored: bool) -> None:
        self.regex = regex
        self.anchored = anchored

    def matches(self, path: str) -> bool:
        if self.anchored:
            return self.regex.match(path) is not None
        return self.regex.search(path) is not None


@functools.lru_cache(maxsize=512)
def compile_pattern(pattern: str) -> Optional[CompiledPattern]:
    """Compile a configured pattern; None when the regex is invalid."""
    split = _split_delimited(pattern)
    if split is None:
        # Literal: escaped and anchored on both ends
        body, letters = "^" + re.escape(pattern) + "$", ""
    else:
        body, letters = split

    flags = 0
    for letter in letters:
        flags |= _FLAG_MAP.get(letter, 0)
    if "D" in letters and "m" not in letters:
        body = _DOLLAR.sub(r"\\Z", body)

    try:
        regex = re.compile(body, flags)
    except re.error as e:
        log.warning("path_pattern_invalid", pattern=pattern, error=str(e))
        return None
    return CompiledPattern(regex, anchored="A" in letters)


def matches(path: str, patterns: Sequence[str]) -> bool:
    if not patterns:
        return False
    if path in patterns:
        return True

    for pattern in patterns:
        if fnmatch.fnmatchcase(path, pattern):
            return True
        compiled = compile_pattern(pattern)
        if compiled is not None and compiled.matches(path):
            return True
    return False


def should_validate(
    path: str,
    include_patterns: Sequence[str],
    exclude_patterns: Sequence[str],
) -> bool:
    """Decide whether ``path`` requires captcha validation.

    Nothing configured means nothing is validated. Exclusion wins over
    inclusion.
    """
    if not include_patterns and not exclude_patterns:
        return False
    if matches(path, exclude_patterns):
        return False
    return matches(path, include_patterns)


class PathMatcher:
    """Immutable include/exclude configuration bound to ``should_validate``."""

    def __init__(
        self,
        include_patterns: Sequence[str] = (),
        exclude_patterns: Sequence[str] = (),
    ) -> None:
        self._include = tuple(include_patterns)
        self._exclude = tuple(exclude_patterns)

    @property
    def include_patterns(self) -> tuple[str, ...]:
        return self._include

    @property
    def exclude_patterns(self) -> tuple[str, ...]:
        return self._exclude

    def should_validate(self, path: str) -> bool:
        return should_validate(path, self._include, self._exclude)

    def __repr__(self) -> str:
        return f"PathMatcher(include={self._include!r}, exclude={self._exclude!r})"
