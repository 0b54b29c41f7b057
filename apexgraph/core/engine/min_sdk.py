"""
Min-SDK enforcement — every payload dependency of an updatable bundle
must support the bundle's ``min_sdk_version``.

The walk itself belongs to the host engine; this module only supplies
the per-edge decision.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from apexgraph.adapters.base import GraphNode, ModuleContext
from apexgraph.core.models.api_level import ApiLevel

logger = logging.getLogger(__name__)


def check_min_sdk_version(
    ctx: ModuleContext,
    min_sdk_version: ApiLevel,
    allowlist: Mapping[str, ApiLevel],
) -> int:
    """Report payload dependencies that do not support ``min_sdk_version``.

    Skipped entirely for host builds, coverage builds, and unfinalized
    levels (``current`` or an in-development codename).

    A dependency is exempt when ``allowlist`` grandfathers it at a level
    no higher than ``min_sdk_version``.

    Args:
        ctx: Context of the bundle (or APK) being checked.
        min_sdk_version: The bundle's minimum SDK level.
        allowlist: Module name → grandfathered finalized level.

    Returns:
        Number of violations reported.
    """
    if ctx.host():
        return 0

    if ctx.config.coverage_enabled:
        logger.debug("%s: coverage build, min_sdk_version not enforced", ctx.module_name())
        return 0

    if min_sdk_version.is_preview:
        return 0

    codenames = ctx.config.active_codenames
    violations = 0

    def check(ctx: ModuleContext, from_node: GraphNode, to_node: GraphNode, external: bool) -> bool:
        nonlocal violations
        if external:
            # Stable interface outside the payload boundary.
            return False

        from_apex = from_node.apex_module()
        if from_apex is not None and not from_apex.dep_is_in_same_apex(to_node):
            return False

        to_apex = to_node.apex_module()
        if to_apex is None:
            return False

        reason = to_apex.should_support_sdk_version(min_sdk_version, codenames)
        if reason is not None:
            to_name = ctx.other_module_name(to_node)
            grandfathered = allowlist.get(to_name)
            if grandfathered is None or grandfathered > min_sdk_version:
                ctx.other_module_error(
                    to_node,
                    f'should support min_sdk_version({min_sdk_version}) for "{ctx.module_name()}": '
                    f"{reason}. Dependency path: {ctx.path_string()}",
                )
                violations += 1
                return False
        return True

    ctx.walk_payload_deps(check)
    return violations
