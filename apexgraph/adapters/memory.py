"""
In-memory graph engine — a complete host engine for graph.yml declarations.

Used by the CLI and the tests in place of a real build system. It keeps
every module replica in memory, resolves edges through variant labels,
aliases and per-module default labels, and records errors instead of
raising them.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from apexgraph.adapters.base import GraphNode, ModuleContext, PayloadDepsCallback
from apexgraph.core.apex_module import ApexModule, ApexModuleBase
from apexgraph.core.models.graph import ApexDecl, BuildConfig, GraphDecl, ModuleDecl
from apexgraph.core.models.report import ModuleError

logger = logging.getLogger(__name__)


class ErrorLog:
    """Thread-safe sink for module errors."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._errors: list[ModuleError] = []

    def record(self, error: ModuleError) -> None:
        with self._lock:
            self._errors.append(error)
        logger.debug("error recorded: %s", error)

    @property
    def errors(self) -> list[ModuleError]:
        with self._lock:
            return list(self._errors)

    def for_module(self, name: str) -> list[ModuleError]:
        return [e for e in self.errors if e.module == name]

    def clear(self) -> None:
        with self._lock:
            self._errors.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._errors)


class MemoryNode(GraphNode):
    """One replica of a module (or a bundle) held by ``MemoryGraph``."""

    def __init__(
        self,
        name: str,
        deps: list[str],
        variation: str = "",
        apex: ApexModule | None = None,
        stubs: bool = False,
        bundle: ApexDecl | None = None,
    ):
        self._name = name
        self._variation = variation
        self._apex = apex
        self.deps = list(deps)
        self.stubs = stubs
        self.bundle = bundle
        self.installable = True

    @property
    def name(self) -> str:
        return self._name

    @property
    def variation(self) -> str:
        return self._variation

    @property
    def is_bundle(self) -> bool:
        return self.bundle is not None

    def apex_module(self) -> ApexModule | None:
        return self._apex

    def make_uninstallable(self) -> None:
        self.installable = False

    def replicate(self, variation: str) -> MemoryNode:
        return MemoryNode(
            name=self._name,
            deps=self.deps,
            variation=variation,
            apex=self._apex.replicate() if self._apex is not None else None,
            stubs=self.stubs,
            bundle=self.bundle,
        )


class MemoryGraph:
    """A mutable module graph built from a ``GraphDecl``.

    Features:
        - Split a module into labelled replicas
        - Alias labels and set a default label per module
        - Resolve edges the way a variant-aware build graph does
        - Walk payload dependencies with path tracking
    """

    def __init__(self, decl: GraphDecl, errors: ErrorLog | None = None):
        self.decl = decl
        self.errors = errors or ErrorLog()
        self._lock = threading.Lock()  # guards the three tables below
        self._variants: dict[str, dict[str, MemoryNode]] = {}
        self._aliases: dict[str, dict[str, str]] = {}
        self._default_variation: dict[str, str] = {}

        for mod in decl.modules:
            self._variants[mod.name] = {"": self._build_node(mod)}
        for apex in decl.apexes:
            self._variants[apex.name] = {"": MemoryNode(apex.name, apex.contents, bundle=apex)}

        self._check_references()

    @property
    def config(self) -> BuildConfig:
        return self.decl.config

    def _build_node(self, mod: ModuleDecl) -> MemoryNode:
        apex: ApexModule | None = None
        if mod.apex_capable:
            external = set(mod.external_deps)
            apex = ApexModuleBase(
                name=mod.name,
                apex_available=mod.apex_available,
                min_sdk_version=mod.min_sdk_version,
                unique_apex_variations=mod.unique_apex_variations,
                installable_to_apex=mod.installable_to_apex,
                test_for=mod.test_for,
                same_apex_filter=self._same_apex_filter(external),
            )
        return MemoryNode(mod.name, mod.deps + mod.external_deps, apex=apex, stubs=mod.stubs)

    def _same_apex_filter(self, external: set[str]) -> Callable[[GraphNode], bool]:
        def same_apex(dep: GraphNode) -> bool:
            if dep.name in external:
                return False
            return not self.is_stubs(dep.name)

        return same_apex

    def _check_references(self) -> None:
        if self.config.allow_missing_dependencies:
            return
        for name, variants in self._variants.items():
            prop = "contents" if variants[""].is_bundle else "deps"
            for dep in variants[""].deps:
                if dep not in self._variants:
                    self.errors.record(
                        ModuleError(
                            module=name,
                            property=prop,
                            message=f'depends on undefined module "{dep}"',
                        )
                    )

    # ── Lookup ──────────────────────────────────────────────────

    def exists(self, name: str) -> bool:
        return name in self._variants

    def is_stubs(self, name: str) -> bool:
        variants = self._variants.get(name)
        return bool(variants) and next(iter(variants.values())).stubs

    def module_names(self) -> list[str]:
        return [m.name for m in self.decl.modules]

    def bundles(self) -> list[MemoryNode]:
        return [self._variants[a.name][""] for a in self.decl.apexes]

    def variants(self, name: str) -> list[str]:
        """Labels of every replica of ``name``, in creation order."""
        with self._lock:
            return list(self._variants.get(name, {}))

    def aliases(self, name: str) -> dict[str, str]:
        with self._lock:
            return dict(self._aliases.get(name, {}))

    def default_variation(self, name: str) -> str:
        with self._lock:
            return self._default_variation.get(name, "")

    def node(self, name: str, variation: str = "") -> MemoryNode | None:
        """Resolve ``name`` at ``variation``: exact label, then alias, then default."""
        with self._lock:
            return self._resolve(name, [variation])

    def _resolve(self, name: str, labels: list[str]) -> MemoryNode | None:
        variants = self._variants.get(name)
        if not variants:
            return None
        aliases = self._aliases.get(name, {})
        for label in labels:
            if label in variants:
                return variants[label]
            if label in aliases:
                return variants[aliases[label]]
        return variants.get(self._default_variation.get(name, ""))

    def direct_deps(self, node: MemoryNode) -> list[MemoryNode]:
        """Resolve the outgoing edges of one replica."""
        if node.is_bundle:
            labels = [node.name]
        else:
            labels = [node.variation]
            apex = node.apex_module()
            if apex is not None:
                labels += apex.in_apexes()
        with self._lock:
            resolved = [self._resolve(dep, labels) for dep in node.deps]
        return [d for d in resolved if d is not None]

    # ── Mutation ────────────────────────────────────────────────

    def split(self, name: str, labels: list[str]) -> list[MemoryNode]:
        """Replace the module with one replica per label."""
        with self._lock:
            original = self._variants[name][""]
            replicas = [original.replicate(label) for label in labels]
            self._variants[name] = {r.variation: r for r in replicas}
        logger.debug("split %s into %s", name, labels)
        return replicas

    def add_alias(self, name: str, alias: str, target: str) -> None:
        with self._lock:
            if alias != target:
                self._aliases.setdefault(name, {})[alias] = target

    def set_default(self, name: str, variation: str) -> None:
        with self._lock:
            self._default_variation[name] = variation

    def context(self, node: MemoryNode) -> MemoryModuleContext:
        return MemoryModuleContext(self, node)

    # ── Walks ───────────────────────────────────────────────────

    def walk_deps(
        self,
        root: MemoryNode,
        visit: Callable[[MemoryNode, MemoryNode, list[MemoryNode]], bool],
    ) -> None:
        """Depth-first walk; ``visit(from, to, path)`` returns whether to descend.

        Every edge is reported; a replica is descended into at most once.
        """
        descended: set[tuple[str, str]] = {(root.name, root.variation)}
        path: list[MemoryNode] = [root]

        def walk(parent: MemoryNode) -> None:
            for child in self.direct_deps(parent):
                path.append(child)
                try:
                    descend = visit(parent, child, path)
                    key = (child.name, child.variation)
                    if descend and key not in descended:
                        descended.add(key)
                        walk(child)
                finally:
                    path.pop()

        walk(root)


class MemoryModuleContext(ModuleContext):
    """``ModuleContext`` over a ``MemoryGraph`` replica."""

    def __init__(self, graph: MemoryGraph, node: MemoryNode):
        self._graph = graph
        self._node = node
        self._walk_path: list[MemoryNode] = []

    @property
    def config(self) -> BuildConfig:
        return self._graph.config

    def module(self) -> MemoryNode:
        return self._node

    def host(self) -> bool:
        return self._graph.config.host

    def visit_direct_deps(self, visit: Callable[[GraphNode], None]) -> None:
        for dep in self._graph.direct_deps(self._node):
            visit(dep)

    def other_module_exists(self, name: str) -> bool:
        return self._graph.exists(name)

    def set_default_dependency_variation(self, variation: str) -> None:
        self._graph.set_default(self._node.name, variation)

    def create_variations(self, variations: list[str]) -> list[GraphNode]:
        return list(self._graph.split(self._node.name, variations))

    def create_alias_variation(self, alias: str, target: str) -> None:
        self._graph.add_alias(self._node.name, alias, target)

    def walk_payload_deps(self, callback: PayloadDepsCallback) -> None:
        def visit(parent: MemoryNode, child: MemoryNode, path: list[MemoryNode]) -> bool:
            if child.apex_module() is None:
                return False
            self._walk_path = path
            try:
                return callback(self, parent, child, child.stubs)
            finally:
                self._walk_path = []

        self._graph.walk_deps(self._node, visit)

    def path_string(self) -> str:
        return " -> ".join(n.name for n in self._walk_path)

    def property_error(self, prop: str, message: str) -> None:
        self._record(self._node, message, prop=prop, kind="config")

    def module_error(self, message: str) -> None:
        self._record(self._node, message, kind="config")

    def other_module_error(self, other: GraphNode, message: str) -> None:
        self._record(other, message, kind="policy")

    def _record(self, node: GraphNode, message: str, prop: str | None = None, kind: str = "config") -> None:
        self._graph.errors.record(
            ModuleError(
                module=node.name,
                variation=node.variation,
                property=prop,
                kind=kind,
                message=message,
            )
        )
