"""
Engine executor — one build pass over a module graph.

The executor drives the three phases of apex variant mutation over a
host graph and collects everything into a ``BuildReport``.

Flow:
    collect requirements (parallel per bundle)
        ── barrier ──
    mutate variants (bottom-up levels, parallel within a level)
        ── barrier ──
    enforce min_sdk_version (parallel per updatable bundle)

Errors are fail-soft per module: every phase runs for every module and
all errors are reported together in the report. Only unresolved
references in the graph itself skip the phases, since edges to missing
modules cannot be walked.

Worker threads are named after their phase (``apexgraph-collect_0``...)
so debug logs show which pool a line came from.
"""

from __future__ import annotations

import concurrent.futures
import logging
import threading
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime

from apexgraph.adapters.memory import MemoryGraph, MemoryNode
from apexgraph.core.apex_module import PhaseOrderError
from apexgraph.core.dependency_registry import ApexDependencyRegistry
from apexgraph.core.engine.min_sdk import check_min_sdk_version
from apexgraph.core.models.apex import ApexInfo
from apexgraph.core.models.graph import ApexDecl
from apexgraph.core.models.api_level import ApiLevel, ApiLevelError, api_level_from_user
from apexgraph.core.models.report import ModuleError

logger = logging.getLogger(__name__)


class GraphError(Exception):
    """Raised when the module graph cannot be ordered (dependency cycle)."""


@dataclass
class BuildReport:
    """Result of one build pass."""

    operation_id: str = ""
    phases_run: list[str] = field(default_factory=list)
    variants: dict[str, list[str]] = field(default_factory=dict)
    aliases: dict[str, dict[str, str]] = field(default_factory=dict)
    uninstallable: list[str] = field(default_factory=list)
    registry: dict[str, dict[str, bool]] = field(default_factory=dict)
    errors: list[ModuleError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def status(self) -> str:
        return "ok" if self.ok else "failed"

    @property
    def variant_count(self) -> int:
        return sum(len(v) for v in self.variants.values())

    def to_dict(self) -> dict:
        return {
            "operation_id": self.operation_id,
            "status": self.status,
            "phases_run": self.phases_run,
            "variants": self.variants,
            "aliases": self.aliases,
            "uninstallable": self.uninstallable,
            "registry": self.registry,
            "errors": [e.model_dump(mode="json") for e in self.errors],
        }


# ── Ordering ─────────────────────────────────────────────────────────


def bottom_up_levels(graph: MemoryGraph) -> list[list[str]]:
    """Group modules so every module comes after all of its dependencies.

    Kahn's algorithm, one round per level. Bundles and undefined names
    are ignored; only module → module edges order the pass.

    Raises:
        GraphError: If the modules form a dependency cycle.
    """
    names = graph.module_names()
    known = set(names)
    deps = {n: {d for d in _decl_deps(graph, n) if d in known and d != n} for n in names}
    for n in names:
        if n in _decl_deps(graph, n):
            raise GraphError(f"Module '{n}' depends on itself")

    in_degree = {n: len(deps[n]) for n in names}
    dependents: dict[str, list[str]] = {n: [] for n in names}
    for n in names:
        for d in deps[n]:
            dependents[d].append(n)

    levels: list[list[str]] = []
    ready = [n for n in names if in_degree[n] == 0]
    processed = 0
    while ready:
        levels.append(ready)
        processed += len(ready)
        next_ready: list[str] = []
        for n in ready:
            for successor in dependents[n]:
                in_degree[successor] -= 1
                if in_degree[successor] == 0:
                    next_ready.append(successor)
        ready = next_ready

    if processed < len(names):
        stuck = sorted(n for n, deg in in_degree.items() if deg > 0)
        raise GraphError(f"Dependency cycle detected among modules: {', '.join(stuck)}")

    return levels


def _decl_deps(graph: MemoryGraph, name: str) -> list[str]:
    mod = graph.decl.get_module(name)
    if mod is None:
        return []
    return mod.deps + mod.external_deps


# ── Phases ───────────────────────────────────────────────────────────


def collect_apex_requirements(
    graph: MemoryGraph,
    registry: ApexDependencyRegistry,
    workers: int = 4,
) -> None:
    """Record every bundle's requirement on the modules it packages.

    Each bundle walks its contents and their same-bundle dependencies.
    Modules listed in the bundle's own contents are registered as direct
    members, everything reached through them as indirect.

    A bundle whose own min_sdk_version does not parse gets a property
    error and collects nothing; the other bundles carry on.
    """
    codenames = graph.config.active_codenames

    def collect(bundle: MemoryNode) -> None:
        decl = _bundle_decl(bundle)
        ctx = graph.context(bundle)
        try:
            api_level_from_user(decl.min_sdk_version, codenames)
        except ApiLevelError as e:
            ctx.property_error("min_sdk_version", str(e))
            return

        info = ApexInfo(
            apex_variation_name=decl.name,
            min_sdk_version=decl.min_sdk_version,
            updatable=decl.updatable,
            required_sdks=list(decl.required_sdks),
            in_apexes=[decl.name],
        )

        def visit(parent: MemoryNode, child: MemoryNode, path: list[MemoryNode]) -> bool:
            child_apex = child.apex_module()
            if child.stubs or child_apex is None or not child_apex.can_have_apex_variants():
                return False
            parent_apex = parent.apex_module()
            if parent_apex is not None and not parent_apex.dep_is_in_same_apex(child):
                return False

            if not child_apex.available_for(decl.name):
                ctx.module_error(
                    f'requires "{child.name}" that doesn\'t list the APEX under '
                    f"'apex_available'. Dependency path: {' -> '.join(n.name for n in path)}"
                )

            child_apex.build_for_apex(info)
            registry.update_apex_dependency(info, child.name, direct_dep=parent.is_bundle)
            return True

        graph.walk_deps(bundle, visit)
        logger.debug("collected requirements for bundle %s", decl.name)

    _run_parallel(collect, graph.bundles(), workers, "collect")


def mutate_variants(
    graph: MemoryGraph,
    levels: list[list[str]],
    workers: int = 4,
) -> None:
    """Create apex variants level by level.

    Raises:
        PhaseOrderError: If a module is reached before one of its
            dependencies has finished mutating (levels out of order).
    """
    finished: set[str] = set()
    finished_lock = threading.Lock()
    known = set(graph.module_names())

    def mutate(name: str) -> None:
        with finished_lock:
            pending = sorted(d for d in _decl_deps(graph, name) if d in known and d not in finished)
        if pending:
            raise PhaseOrderError(
                f"{name}: dependencies {pending} have not finished variant mutation"
            )

        node = graph.node(name)
        if node is None:
            raise GraphError(f"Module '{name}' vanished from the graph during mutation")
        apex = node.apex_module()
        if apex is not None and apex.can_have_apex_variants():
            ctx = graph.context(node)
            apex.update_unique_apex_variations_for_deps(ctx)
            apex.create_apex_variations(ctx)

        with finished_lock:
            finished.add(name)

    for level in levels:
        _run_parallel(mutate, level, workers, "mutate")


def enforce_min_sdk(
    graph: MemoryGraph,
    allowlist: Mapping[str, ApiLevel],
    workers: int = 4,
) -> int:
    """Run the min_sdk_version check for every updatable bundle.

    Returns:
        Total number of violations reported.
    """
    codenames = graph.config.active_codenames
    totals: list[int] = []
    totals_lock = threading.Lock()

    def check(bundle: MemoryNode) -> None:
        decl = _bundle_decl(bundle)
        if not decl.updatable:
            return
        try:
            level = api_level_from_user(decl.min_sdk_version, codenames)
        except ApiLevelError:
            logger.debug("%s: unparsable min_sdk_version, reported during collection", decl.name)
            return
        ctx = graph.context(bundle)
        count = check_min_sdk_version(ctx, level, allowlist)
        with totals_lock:
            totals.append(count)

    _run_parallel(check, graph.bundles(), workers, "min_sdk")
    return sum(totals)


def _bundle_decl(bundle: MemoryNode) -> ApexDecl:
    if bundle.bundle is None:
        raise GraphError(f"'{bundle.name}' is not a bundle")
    return bundle.bundle


def _run_parallel(fn, items: list, workers: int, phase: str) -> None:
    """Apply ``fn`` to every item on a bounded pool; waits for all of them.

    The first exception raised by any item is re-raised once every item
    has finished.
    """
    if not items:
        return
    with concurrent.futures.ThreadPoolExecutor(
        max_workers=max(1, workers),
        thread_name_prefix=f"apexgraph-{phase}",
    ) as pool:
        futures = [pool.submit(fn, item) for item in items]
        concurrent.futures.wait(futures)
    for future in futures:
        future.result()


# ── Pass ─────────────────────────────────────────────────────────────


def run_build_pass(
    graph: MemoryGraph,
    registry: ApexDependencyRegistry,
    allowlist: Mapping[str, ApiLevel],
    workers: int | None = None,
    operation_id: str | None = None,
) -> BuildReport:
    """Run collection, mutation, and policy phases over ``graph``.

    Every phase runs even when an earlier one reported errors, so one
    pass surfaces every configuration and policy problem. The phases are
    skipped only when the graph already holds unresolved references.

    The registry is written but not reset; resetting between passes is
    the caller's responsibility.

    Raises:
        GraphError: If the module graph has a cycle.
        PhaseOrderError: If the phase contract is broken.
    """
    workers = workers or graph.config.workers
    report = BuildReport(operation_id=operation_id or generate_operation_id())

    levels = bottom_up_levels(graph)

    unresolved = len(graph.errors)
    if unresolved:
        logger.warning("%d unresolved reference(s) in the graph, no phase will run", unresolved)
    else:
        report.phases_run.append("collect")
        collect_apex_requirements(graph, registry, workers)
        logger.info("collect: %d bundle(s), %d module(s) reached", len(graph.bundles()), len(registry))

        report.phases_run.append("mutate")
        mutate_variants(graph, levels, workers)
        logger.info("mutate: %d level(s)", len(levels))

        report.phases_run.append("min_sdk")
        violations = enforce_min_sdk(graph, allowlist, workers)
        logger.info("min_sdk: %d violation(s)", violations)

    for name in graph.module_names():
        report.variants[name] = graph.variants(name)
        aliases = graph.aliases(name)
        if aliases:
            report.aliases[name] = aliases
        platform = graph.node(name, "")
        if platform is not None and not platform.installable:
            report.uninstallable.append(name)

    report.registry = registry.snapshot()
    report.errors = graph.errors.errors

    if report.ok:
        logger.info("✓ pass %s: %d variant(s)", report.operation_id, report.variant_count)
    else:
        logger.warning("✗ pass %s: %d error(s)", report.operation_id, len(report.errors))
    return report


def generate_operation_id() -> str:
    """Generate a unique build pass ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"pass-{now}-{short}"
