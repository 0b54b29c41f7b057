"""
APEX dependency registry — which modules each bundle reaches.

Maps ``module -> {bundle -> is_direct}``:

    registry.directly_in_apex("com.foo", "libbar") is True   → libbar is listed by com.foo
    registry.directly_in_apex("com.foo", "libbaz") is False  → libbaz is only reached transitively
    "com.foo" not in registry.apexes_for_module("libqux")    → libqux is not built for com.foo

Entries only ever grow: a bundle can go from indirect to direct for a
module, never back. ``reset()`` clears everything and belongs to the
build-pass lifecycle: call it between independent passes, never while
another pass is writing.

One instance is created per process by the entry point and passed to the
executor and use cases. Every method takes the same lock.
"""

from __future__ import annotations

import logging
import threading

from apexgraph.core.models.apex import ApexInfo

logger = logging.getLogger(__name__)


class ApexDependencyRegistry:
    """Thread-safe, monotonic module → bundle membership map."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._apex_names: dict[str, dict[str, bool]] = {}

    def update_apex_dependency(self, info: ApexInfo, module_name: str, direct_dep: bool) -> None:
        """Mark ``module_name`` as reached by every bundle ``info`` stands for.

        Each bundle (the variation itself and every ``in_apexes`` entry) is
        upgraded independently: ``existing or direct_dep``.
        """
        with self._lock:
            apexes_for_module = self._apex_names.setdefault(module_name, {})
            for apex_name in [info.apex_variation_name, *info.in_apexes]:
                apexes_for_module[apex_name] = apexes_for_module.get(apex_name, False) or direct_dep

    def directly_in_apex(self, apex_name: str, module_name: str) -> bool:
        """Whether the bundle lists the module in its own contents."""
        with self._lock:
            return self._apex_names.get(module_name, {}).get(apex_name, False)

    def directly_in_all_apexes(self, apex_names: list[str], module_name: str) -> bool:
        """Whether every listed bundle lists the module; True for an empty list."""
        with self._lock:
            apexes_for_module = self._apex_names.get(module_name, {})
            return all(apexes_for_module.get(name, False) for name in apex_names)

    def directly_in_any_apex(self, module_name: str, host: bool) -> bool:
        """Whether any bundle lists the module. Hosts have no bundles."""
        if host:
            return False
        with self._lock:
            return any(self._apex_names.get(module_name, {}).values())

    def in_any_apex(self, module_name: str) -> bool:
        """Whether any bundle reaches the module, directly or not."""
        with self._lock:
            return bool(self._apex_names.get(module_name))

    def apexes_for_module(self, module_name: str) -> set[str]:
        """Every bundle that reaches the module, directly or not."""
        with self._lock:
            return set(self._apex_names.get(module_name, {}))

    def snapshot(self) -> dict[str, dict[str, bool]]:
        """A sorted deep copy of the whole map, for reports."""
        with self._lock:
            return {
                module: dict(sorted(apexes.items()))
                for module, apexes in sorted(self._apex_names.items())
            }

    def reset(self) -> None:
        """Forget every entry. Not safe while a pass is still writing."""
        with self._lock:
            count = len(self._apex_names)
            self._apex_names.clear()
        logger.debug("Dependency registry reset (%d modules dropped)", count)

    def __len__(self) -> int:
        with self._lock:
            return len(self._apex_names)
