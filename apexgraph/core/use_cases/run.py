"""
Run use case — one full build pass over a graph definition.

Loads graph.yml and the min-SDK allow-list, builds the in-memory graph,
runs collection, mutation and policy phases, and returns the report.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from apexgraph.adapters.memory import MemoryGraph
from apexgraph.core.apex_module import PhaseOrderError
from apexgraph.core.config.allowlist import load_allowlist
from apexgraph.core.config.loader import ConfigError, find_graph_file, graph_root, load_graph
from apexgraph.core.dependency_registry import ApexDependencyRegistry
from apexgraph.core.engine.executor import BuildReport, GraphError, run_build_pass
from apexgraph.core.models.graph import GraphDecl
from apexgraph.core.observability.logging_config import apply_logger_levels

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Result of running a build pass."""

    report: BuildReport | None = None
    graph: GraphDecl | None = None
    config_path: Path | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.report is not None and self.report.ok

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["graph_name"] = self.graph.name if self.graph else ""
        result["config_path"] = str(self.config_path)
        if self.report:
            result["report"] = self.report.to_dict()
        return result


def run_pass(
    config_path: Path | None = None,
    registry: ApexDependencyRegistry | None = None,
    workers: int | None = None,
) -> RunResult:
    """Load a graph and run one build pass over it.

    The registry is reset before the pass: passes over independent graphs
    must not see each other's memberships.

    Args:
        config_path: Optional explicit path to graph.yml.
        registry: Registry to fill. A fresh one is created if None.
        workers: Worker pool size; defaults to ``config.workers``.

    Returns:
        RunResult with the build report, or an error message.
    """
    result = RunResult()

    # ── Load graph config ────────────────────────────────────────
    try:
        if config_path is None:
            config_path = find_graph_file()
        if config_path is None:
            result.error = "No graph.yml found."
            return result

        graph_decl = load_graph(config_path)
        result.graph = graph_decl
        result.config_path = config_path

        allowlist_path = None
        if graph_decl.config.min_sdk_allowlist:
            allowlist_path = graph_root(config_path) / graph_decl.config.min_sdk_allowlist
        allowlist = load_allowlist(allowlist_path)
        apply_logger_levels(graph_decl.config.log_levels)

    except ConfigError as e:
        result.error = str(e)
        return result

    # ── Run the pass ─────────────────────────────────────────────
    if registry is None:
        registry = ApexDependencyRegistry()
    registry.reset()

    graph = MemoryGraph(graph_decl)
    try:
        result.report = run_build_pass(graph, registry, allowlist, workers=workers)
    except (GraphError, PhaseOrderError) as e:
        result.error = str(e)
        return result

    return result
