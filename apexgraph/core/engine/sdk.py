"""
SDK level resolver (pure).

Picks the highest SDK version a module may build against under a ceiling.
No I/O, no graph access.
"""

from __future__ import annotations

from apexgraph.core.models.api_level import ApiLevel, ApiLevelError, api_level_from_user


class SdkVersionError(ValueError):
    """Raised when no candidate version satisfies the ceiling."""


def choose_sdk_version(
    version_list: list[str],
    max_sdk_version: ApiLevel,
    active_codenames: list[str] | tuple[str, ...] = (),
) -> str:
    """Return the highest version in ``version_list`` that is <= the ceiling.

    Callers pass versions in ascending order, so the list is scanned from
    the end and the first match wins. With ``max_sdk_version`` at 10 and
    ``["9", "11"]`` this returns ``"9"``.

    Args:
        version_list: Candidate versions, ascending.
        max_sdk_version: The highest acceptable level.
        active_codenames: Codenames of releases still in development.

    Returns:
        The chosen version string, exactly as given.

    Raises:
        SdkVersionError: If nothing qualifies or a candidate fails to parse.
    """
    for version in reversed(version_list):
        try:
            level = api_level_from_user(version, active_codenames)
        except ApiLevelError as e:
            raise SdkVersionError(
                f"not found a version(<={max_sdk_version}) in versionList: "
                f"{version_list}: {e}"
            ) from e
        if level <= max_sdk_version:
            return version

    raise SdkVersionError(
        f"not found a version(<={max_sdk_version}) in versionList: {version_list}"
    )
