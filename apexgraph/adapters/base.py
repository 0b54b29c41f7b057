"""
Graph engine base — the protocol contract between the mutator and a host graph.

The apex mutator never builds or walks the dependency graph itself. It
talks to a host engine only through these two interfaces: ``GraphNode``
for a single module replica and ``ModuleContext`` for "the module being
processed right now" plus the graph operations it may request.

Contract the host must honor:
    - Requirement collection finishes for every module before any module
      starts variant mutation (phase barrier).
    - A module's mutation step runs only after all of its direct
      dependencies have finished theirs (bottom-up order).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from apexgraph.core.apex_module import ApexModule
    from apexgraph.core.models.graph import BuildConfig

# (ctx, from, to, is_external) -> descend into `to`?
PayloadDepsCallback = Callable[["ModuleContext", "GraphNode", "GraphNode", bool], bool]


class GraphNode(ABC):
    """One replica of a module in the host graph."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Module name, shared by every replica of the module."""

    @property
    @abstractmethod
    def variation(self) -> str:
        """Variant label of this replica ('' for platform / unsplit)."""

    @abstractmethod
    def apex_module(self) -> ApexModule | None:
        """The APEX capability of this node, or None if it has none."""

    @abstractmethod
    def make_uninstallable(self) -> None:
        """Keep the replica in the graph but drop its install action."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r} variation={self.variation!r}>"


class ModuleContext(ABC):
    """The host engine's view of the module currently being processed."""

    @property
    @abstractmethod
    def config(self) -> BuildConfig:
        """Build-wide configuration."""

    @abstractmethod
    def module(self) -> GraphNode:
        """The node being processed."""

    def module_name(self) -> str:
        return self.module().name

    @abstractmethod
    def host(self) -> bool:
        """Whether the current target is a host (non-device) target."""

    @abstractmethod
    def visit_direct_deps(self, visit: Callable[[GraphNode], None]) -> None:
        """Call ``visit`` for each direct dependency of the module."""

    @abstractmethod
    def other_module_exists(self, name: str) -> bool:
        """Whether a module or bundle called ``name`` exists in the graph."""

    @abstractmethod
    def set_default_dependency_variation(self, variation: str) -> None:
        """Variant used for edges that did not ask for a specific one."""

    @abstractmethod
    def create_variations(self, variations: list[str]) -> list[GraphNode]:
        """Split the module into one replica per label, in label order."""

    @abstractmethod
    def create_alias_variation(self, alias: str, target: str) -> None:
        """Resolve edges asking for ``alias`` to the ``target`` replica."""

    @abstractmethod
    def walk_payload_deps(self, callback: PayloadDepsCallback) -> None:
        """Walk the module's transitive payload dependencies.

        ``callback`` is called once per edge; returning False prunes the
        walk below that edge.
        """

    @abstractmethod
    def path_string(self) -> str:
        """Dependency path to the edge currently being walked."""

    @abstractmethod
    def property_error(self, prop: str, message: str) -> None:
        """Record a configuration error against a property of the module."""

    @abstractmethod
    def module_error(self, message: str) -> None:
        """Record a configuration error against the module."""

    @abstractmethod
    def other_module_error(self, other: GraphNode, message: str) -> None:
        """Record a policy error against another module (e.g. a dependency)."""

    def other_module_name(self, other: GraphNode) -> str:
        return other.name

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} module={self.module_name()!r}>"
