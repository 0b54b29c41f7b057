"""
APEX module capability — what a module must offer to get bundle variants.

``ApexModule`` is the capability interface every consumer depends on.
``ApexModuleBase`` is the reusable implementation; concrete module kinds
hold one and hand it out from ``GraphNode.apex_module()`` instead of
inheriting from it.

Lifecycle of one base:
    1. Collection phase: bundles call ``build_for_apex()`` (thread-safe).
    2. Mutation phase (bottom-up): ``update_unique_apex_variations_for_deps()``
       then ``create_apex_variations()``, which freezes the requirement set
       and splits the module into a platform replica plus one replica per
       (merged) requirement.
    3. After mutation every replica carries exactly one ``ApexInfo``.
"""

from __future__ import annotations

import bisect
import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable

from apexgraph.adapters.base import GraphNode, ModuleContext
from apexgraph.core.engine.availability import (
    AVAILABLE_TO_PLATFORM,
    SENTINELS,
    check_available_for_apex,
)
from apexgraph.core.engine.merge import merge_apex_variations
from apexgraph.core.engine.sdk import choose_sdk_version
from apexgraph.core.models.apex import ApexInfo, ApexProperties
from apexgraph.core.models.api_level import ApiLevel, ApiLevelError, api_level_from_user

logger = logging.getLogger(__name__)


class PhaseOrderError(RuntimeError):
    """Raised when the host engine breaks the collection/mutation ordering."""


class ApexModule(ABC):
    """Capability interface of a module that can be built per bundle."""

    @property
    @abstractmethod
    def properties(self) -> ApexProperties:
        """User-declared and mutated APEX properties."""

    @abstractmethod
    def can_have_apex_variants(self) -> bool:
        """Whether bundle variants may be created for this module at all."""

    @abstractmethod
    def build_for_apex(self, info: ApexInfo) -> None:
        """Request a variant for a bundle. Collection phase only."""

    @abstractmethod
    def apex_variations(self) -> list[ApexInfo]:
        """Requirements accumulated so far (pre-merge)."""

    @abstractmethod
    def apex_variation_name(self) -> str:
        """Variation this replica was built for; '' for platform."""

    @abstractmethod
    def in_apexes(self) -> list[str]:
        """Bundles this replica is packaged into."""

    @abstractmethod
    def is_for_platform(self) -> bool:
        """Shortcut for ``apex_variation_name() == ''``."""

    @abstractmethod
    def set_apex_info(self, info: ApexInfo) -> None:
        """Attach the resolved requirement to a replica. Mutator only."""

    @abstractmethod
    def apex_available(self) -> list[str]:
        """The declared availability list."""

    @abstractmethod
    def available_for(self, what: str) -> bool:
        """Whether the module may go into bundle ``what`` (or the platform)."""

    @abstractmethod
    def not_available_for_platform(self) -> bool: ...

    @abstractmethod
    def set_not_available_for_platform(self) -> None: ...

    @abstractmethod
    def updatable(self) -> bool:
        """Whether this replica belongs to an updatable bundle."""

    @abstractmethod
    def test_for(self) -> list[str]:
        """Bundles whose private parts this module may access as a test."""

    @abstractmethod
    def is_installable_to_apex(self) -> bool: ...

    @abstractmethod
    def dep_is_in_same_apex(self, dep: GraphNode) -> bool:
        """Whether ``dep`` is packaged into the same bundle as this module."""

    @abstractmethod
    def should_support_sdk_version(
        self,
        sdk_version: ApiLevel,
        active_codenames: list[str] | tuple[str, ...] = (),
    ) -> str | None:
        """None if the module supports ``sdk_version``, else the reason."""

    @abstractmethod
    def choose_sdk_version(
        self,
        version_list: list[str],
        max_sdk_version: ApiLevel,
        active_codenames: list[str] | tuple[str, ...] = (),
    ) -> str:
        """Highest version in ``version_list`` not above ``max_sdk_version``."""

    @abstractmethod
    def unique_apex_variations(self) -> bool:
        """Whether the module needs one variant per concrete bundle."""

    @abstractmethod
    def unique_apex_variations_for_deps(self) -> bool:
        """Whether a same-bundle dependency forced unique variants."""

    @abstractmethod
    def update_unique_apex_variations_for_deps(self, mctx: ModuleContext) -> None: ...

    @abstractmethod
    def create_apex_variations(self, mctx: ModuleContext) -> list[GraphNode]: ...

    @abstractmethod
    def replicate(self) -> ApexModule:
        """A copy for a new graph replica of the owning module."""


class ApexModuleBase(ApexModule):
    """Default implementation of the APEX capability.

    Args:
        name: Owning module name (for messages).
        apex_available: Bundles allowed to contain the module.
        min_sdk_version: Lowest API level the module supports, if declared.
        unique_apex_variations: Never merge this module's variants.
        installable_to_apex: Whether the module is a file inside a bundle.
        test_for: Bundles this module tests.
        same_apex_filter: Optional override of ``dep_is_in_same_apex``.
        can_have_apex_variants: False for modules such as NDK stubs.
    """

    def __init__(
        self,
        name: str,
        apex_available: list[str] | None = None,
        min_sdk_version: str | None = None,
        unique_apex_variations: bool = False,
        installable_to_apex: bool = False,
        test_for: list[str] | None = None,
        same_apex_filter: Callable[[GraphNode], bool] | None = None,
        can_have_apex_variants: bool = True,
    ):
        self._name = name
        self._properties = ApexProperties(apex_available=list(apex_available or []))
        self._min_sdk_version = min_sdk_version
        self._unique_apex_variations = unique_apex_variations
        self._installable_to_apex = installable_to_apex
        self._test_for = list(test_for or [])
        self._same_apex_filter = same_apex_filter
        self._can_have_apex_variants = can_have_apex_variants

        self._apex_variations_lock = threading.Lock()  # guards _apex_variations during collection
        self._apex_variations: list[ApexInfo] = []
        self._frozen = False

    # ── Declared state ──────────────────────────────────────────

    @property
    def name(self) -> str:
        return self._name

    @property
    def properties(self) -> ApexProperties:
        return self._properties

    @property
    def min_sdk_version(self) -> str | None:
        return self._min_sdk_version

    def can_have_apex_variants(self) -> bool:
        return self._can_have_apex_variants

    def apex_available(self) -> list[str]:
        return self._properties.apex_available

    def available_for(self, what: str) -> bool:
        return check_available_for_apex(what, self._properties.apex_available)

    def not_available_for_platform(self) -> bool:
        return self._properties.not_available_for_platform

    def set_not_available_for_platform(self) -> None:
        self._properties.not_available_for_platform = True

    def test_for(self) -> list[str]:
        return list(self._test_for)

    def is_installable_to_apex(self) -> bool:
        return self._installable_to_apex

    def unique_apex_variations(self) -> bool:
        return self._unique_apex_variations

    def unique_apex_variations_for_deps(self) -> bool:
        return self._properties.unique_apex_variations_for_deps

    def dep_is_in_same_apex(self, dep: GraphNode) -> bool:
        # A dependency is packaged alongside its user unless the module
        # kind says it comes from outside the bundle (e.g. stubs).
        if self._same_apex_filter is not None:
            return self._same_apex_filter(dep)
        return True

    # ── Resolved state (after mutation) ─────────────────────────

    def apex_variation_name(self) -> str:
        return self._properties.info.apex_variation_name

    def in_apexes(self) -> list[str]:
        return self._properties.info.in_apexes

    def is_for_platform(self) -> bool:
        return self._properties.info.apex_variation_name == ""

    def updatable(self) -> bool:
        return self._properties.info.updatable

    def set_apex_info(self, info: ApexInfo) -> None:
        self._properties.info = info

    # ── Collection ──────────────────────────────────────────────

    def build_for_apex(self, info: ApexInfo) -> None:
        """Record a bundle requirement; repeated names are ignored.

        Raises:
            PhaseOrderError: If the module has already been mutated.
        """
        with self._apex_variations_lock:
            if self._frozen:
                raise PhaseOrderError(
                    f"{self._name}: requirement for '{info.apex_variation_name}' "
                    "recorded after variant mutation"
                )
            for existing in self._apex_variations:
                if existing.apex_variation_name == info.apex_variation_name:
                    return
            self._apex_variations.append(info)

    def apex_variations(self) -> list[ApexInfo]:
        return list(self._apex_variations)

    # ── SDK checks ──────────────────────────────────────────────

    def should_support_sdk_version(
        self,
        sdk_version: ApiLevel,
        active_codenames: list[str] | tuple[str, ...] = (),
    ) -> str | None:
        if self._min_sdk_version is None:
            return "min_sdk_version is not specified"
        try:
            own = api_level_from_user(self._min_sdk_version, active_codenames)
        except ApiLevelError as e:
            return str(e)
        if own > sdk_version:
            return f"newer SDK({own})"
        return None

    def choose_sdk_version(
        self,
        version_list: list[str],
        max_sdk_version: ApiLevel,
        active_codenames: list[str] | tuple[str, ...] = (),
    ) -> str:
        return choose_sdk_version(version_list, max_sdk_version, active_codenames)

    # ── Mutation ────────────────────────────────────────────────

    def update_unique_apex_variations_for_deps(self, mctx: ModuleContext) -> None:
        """Inherit the unique-variants requirement from same-bundle deps.

        Bundle membership is compared through ``in_apexes`` rather than
        ``dep_is_in_same_apex`` because only direct inclusion in a common
        bundle matters here.
        """

        def visit(dep: GraphNode) -> None:
            dep_apex = dep.apex_module()
            if dep_apex is None:
                return
            if _any_in_same_apex(dep_apex.apex_variations(), self._apex_variations) and (
                dep_apex.unique_apex_variations() or dep_apex.unique_apex_variations_for_deps()
            ):
                self._properties.unique_apex_variations_for_deps = True

        mctx.visit_direct_deps(visit)

    def check_apex_available_property(self, mctx: ModuleContext) -> None:
        """Report every ``apex_available`` entry that names no module."""
        for name in self._properties.apex_available:
            if name in SENTINELS:
                continue
            if not mctx.other_module_exists(name) and not mctx.config.allow_missing_dependencies:
                mctx.property_error("apex_available", f'"{name}" is not a valid module name')

    def create_apex_variations(self, mctx: ModuleContext) -> list[GraphNode]:
        """Split the module into a platform replica plus one per requirement.

        Returns:
            The new replicas in label order, or an empty list when no
            bundle asked for this module.
        """
        with self._apex_variations_lock:
            self._frozen = True

        if not self._apex_variations:
            return []

        self.check_apex_available_property(mctx)

        codenames = mctx.config.active_codenames
        aliases: list[tuple[str, str]] = []
        if not self._unique_apex_variations and not self._properties.unique_apex_variations_for_deps:
            variations, aliases = merge_apex_variations(self._apex_variations, codenames)
        else:
            variations = list(self._apex_variations)

        variations.sort(key=lambda info: info.apex_variation_name)
        labels = [""] + [info.apex_variation_name for info in variations]

        mctx.set_default_dependency_variation("")
        modules = mctx.create_variations(labels)

        for i, mod in enumerate(modules):
            apex = mod.apex_module()
            if apex is None:
                raise PhaseOrderError(
                    f"{self._name}: replica '{mod.variation}' lost its apex capability"
                )
            if i == 0:
                # Uninstallable platform variants still exist so that
                # side-effect outputs can depend on them.
                if not mctx.host() and not apex.available_for(AVAILABLE_TO_PLATFORM):
                    mod.make_uninstallable()
            else:
                apex.set_apex_info(variations[i - 1])

        for alias, target in aliases:
            mctx.create_alias_variation(alias, target)

        logger.debug(
            "%s: %d requirement(s) -> variants %s",
            self._name,
            len(self._apex_variations),
            labels,
        )
        return modules

    def replicate(self) -> ApexModuleBase:
        clone = ApexModuleBase(
            name=self._name,
            apex_available=self._properties.apex_available,
            min_sdk_version=self._min_sdk_version,
            unique_apex_variations=self._unique_apex_variations,
            installable_to_apex=self._installable_to_apex,
            test_for=self._test_for,
            same_apex_filter=self._same_apex_filter,
            can_have_apex_variants=self._can_have_apex_variants,
        )
        clone._properties = self._properties.model_copy(deep=True)
        clone._apex_variations = [info.model_copy(deep=True) for info in self._apex_variations]
        clone._frozen = self._frozen
        return clone

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self._name!r} variation={self.apex_variation_name()!r}>"


def _any_in_same_apex(a: list[ApexInfo], b: list[ApexInfo]) -> bool:
    """Whether the two requirement lists share any concrete bundle."""
    a_apexes = [name for info in a for name in info.in_apexes]
    b_apexes = sorted(name for info in b for name in info.in_apexes)
    for name in a_apexes:
        index = bisect.bisect_left(b_apexes, name)
        if index < len(b_apexes) and b_apexes[index] == name:
            return True
    return False
