"""
API level model — a comparable platform API level.

Levels come from user-facing strings ("29", "Q", "current", or an
in-development codename). Finalized levels carry their integer; preview
levels (``current`` and active codenames) sort after every finalized
level and report the future sentinel from ``final_or_future_int()``.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import total_ordering

FUTURE_API_LEVEL_INT = 10000

# Codenames of releases that have been finalized, mapped to their API level.
FINAL_CODENAMES: dict[str, int] = {
    "G": 9,
    "I": 14,
    "J": 16,
    "J-MR1": 17,
    "J-MR2": 18,
    "K": 19,
    "L": 21,
    "L-MR1": 22,
    "M": 23,
    "N": 24,
    "N-MR1": 25,
    "O": 26,
    "O-MR1": 27,
    "P": 28,
    "Q": 29,
    "R": 30,
}


class ApiLevelError(ValueError):
    """Raised when a string cannot be parsed as an API level."""


@total_ordering
@dataclass(frozen=True)
class ApiLevel:
    """A platform API level, either finalized or preview."""

    value: str
    number: int
    is_preview: bool = False

    @classmethod
    def final(cls, number: int) -> ApiLevel:
        """A finalized level with no validation of the number."""
        return cls(value=str(number), number=number)

    @classmethod
    def preview(cls, codename: str) -> ApiLevel:
        return cls(value=codename, number=FUTURE_API_LEVEL_INT, is_preview=True)

    def is_current(self) -> bool:
        return self.value == "current"

    def final_or_future_int(self) -> int:
        """The integer level, or the future sentinel for previews."""
        if self.is_preview:
            return FUTURE_API_LEVEL_INT
        return self.number

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ApiLevel):
            return NotImplemented
        return self.number < other.number

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ApiLevel):
            return NotImplemented
        return self.number == other.number and self.is_preview == other.is_preview

    def __hash__(self) -> int:
        return hash((self.number, self.is_preview))

    def __str__(self) -> str:
        return self.value


FUTURE_API_LEVEL = ApiLevel.preview("current")
SDK_VERSION_ANDROID10 = ApiLevel.final(29)


def api_level_from_user(
    raw: str,
    active_codenames: list[str] | tuple[str, ...] = (),
) -> ApiLevel:
    """Parse a user-supplied API level string.

    Args:
        raw: The string from a build definition, e.g. ``"29"``, ``"Q"``,
            ``"current"``, or an in-development codename.
        active_codenames: Codenames of releases still in development.

    Returns:
        The parsed ApiLevel.

    Raises:
        ApiLevelError: If the string is empty or not recognized.
    """
    if raw == "":
        raise ApiLevelError("API level string must be non-empty")

    if raw == "current":
        return FUTURE_API_LEVEL

    if raw in active_codenames:
        return ApiLevel.preview(raw)

    if raw in FINAL_CODENAMES:
        return ApiLevel.final(FINAL_CODENAMES[raw])

    try:
        number = int(raw)
    except ValueError as e:
        raise ApiLevelError(
            f'"{raw}" could not be parsed as an integer and is not a recognized codename'
        ) from e

    return ApiLevel.final(number)
