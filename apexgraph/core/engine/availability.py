"""
Availability predicate (pure).

Decides whether a module's ``apex_available`` list lets it be packaged
into a given bundle, or installed on the platform.
"""

from __future__ import annotations

AVAILABLE_TO_PLATFORM = "//apex_available:platform"
AVAILABLE_TO_ANY_APEX = "//apex_available:anyapex"
AVAILABLE_TO_GKI_APEX = "com.android.gki.*"

GKI_APEX_PREFIX = "com.android.gki."

SENTINELS = frozenset({AVAILABLE_TO_PLATFORM, AVAILABLE_TO_ANY_APEX, AVAILABLE_TO_GKI_APEX})


def check_available_for_apex(what: str, apex_available: list[str]) -> bool:
    """Whether ``what`` (a bundle name or the platform sentinel) is allowed.

    An empty list means "platform only". Otherwise the name must be
    listed, or be covered by the any-apex wildcard (never the platform),
    or be a GKI bundle covered by the GKI wildcard.
    """
    if not apex_available:
        return what == AVAILABLE_TO_PLATFORM

    return (
        what in apex_available
        or (what != AVAILABLE_TO_PLATFORM and AVAILABLE_TO_ANY_APEX in apex_available)
        or (what.startswith(GKI_APEX_PREFIX) and AVAILABLE_TO_GKI_APEX in apex_available)
    )
