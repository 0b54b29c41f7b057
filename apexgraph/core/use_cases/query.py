"""
Query use case — which bundles reach a module, and how.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from apexgraph.core.dependency_registry import ApexDependencyRegistry
from apexgraph.core.use_cases.run import run_pass


@dataclass
class QueryResult:
    """Bundle membership of one module after a build pass."""

    module: str = ""
    apexes: dict[str, bool] = field(default_factory=dict)  # bundle -> direct?
    in_any_apex: bool = False
    directly_in_any_apex: bool = False
    variants: list[str] = field(default_factory=list)
    pass_errors: int = 0
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "module": self.module,
            "apexes": self.apexes,
            "in_any_apex": self.in_any_apex,
            "directly_in_any_apex": self.directly_in_any_apex,
            "variants": self.variants,
            "pass_errors": self.pass_errors,
        }


def query_module(
    module: str,
    config_path: Path | None = None,
    registry: ApexDependencyRegistry | None = None,
) -> QueryResult:
    """Run a pass and report the registry's view of ``module``."""
    result = QueryResult(module=module)
    registry = registry or ApexDependencyRegistry()

    run = run_pass(config_path=config_path, registry=registry)
    if run.error or run.graph is None or run.report is None:
        result.error = run.error or "Build pass produced no report"
        return result

    if run.graph.get_module(module) is None:
        result.error = f"Unknown module '{module}'"
        return result

    host = run.graph.config.host
    result.apexes = {
        name: registry.directly_in_apex(name, module)
        for name in sorted(registry.apexes_for_module(module))
    }
    result.in_any_apex = registry.in_any_apex(module)
    result.directly_in_any_apex = registry.directly_in_any_apex(module, host)
    result.variants = run.report.variants.get(module, [])
    result.pass_errors = len(run.report.errors)
    return result
