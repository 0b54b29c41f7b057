"""
Config check use case — validate graph.yml and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from apexgraph.adapters.memory import MemoryGraph
from apexgraph.core.config.loader import ConfigError, find_graph_file, load_graph
from apexgraph.core.engine.availability import SENTINELS
from apexgraph.core.engine.executor import GraphError, bottom_up_levels
from apexgraph.core.models.api_level import ApiLevelError, api_level_from_user
from apexgraph.core.models.graph import GraphDecl
from apexgraph.core.observability.logging_config import is_valid_level


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    graph: GraphDecl | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "graph_name": self.graph.name if self.graph else None,
            "module_count": len(self.graph.modules) if self.graph else 0,
            "apex_count": len(self.graph.apexes) if self.graph else 0,
        }


def check_config(config_path: Path | None = None) -> ConfigCheckResult:
    """Validate a graph definition and report issues.

    Args:
        config_path: Optional explicit path to graph.yml.

    Returns:
        ConfigCheckResult with validation status and any issues.
    """
    result = ConfigCheckResult()

    if config_path is None:
        config_path = find_graph_file()
    if config_path is None:
        result.errors.append("No graph.yml found.")
        return result
    result.config_path = config_path

    try:
        graph = load_graph(config_path)
        result.graph = graph
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    # Semantic checks
    if not graph.modules:
        result.warnings.append("No modules defined. Nothing will be mutated.")
    if not graph.apexes:
        result.warnings.append("No apexes defined. Every module stays platform-only.")

    # Duplicate names across modules and apexes
    names = [m.name for m in graph.modules] + [a.name for a in graph.apexes]
    dupes = {n for n in names if names.count(n) > 1}
    if dupes:
        result.errors.append(f"Duplicate module names: {', '.join(sorted(dupes))}")

    codenames = graph.config.active_codenames

    # Bundle contents must be apex-capable modules
    for apex in graph.apexes:
        for content in apex.contents:
            mod = graph.get_module(content)
            if mod is None:
                continue  # reported below as an undefined reference
            if not mod.apex_capable:
                result.errors.append(
                    f"Apex '{apex.name}' lists '{content}', which cannot have apex variants"
                )
        try:
            api_level_from_user(apex.min_sdk_version, codenames)
        except ApiLevelError as e:
            result.errors.append(f"Apex '{apex.name}': min_sdk_version: {e}")

    for mod in graph.modules:
        if mod.min_sdk_version is not None:
            try:
                api_level_from_user(mod.min_sdk_version, codenames)
            except ApiLevelError as e:
                result.errors.append(f"Module '{mod.name}': min_sdk_version: {e}")
        for name in mod.apex_available:
            if name not in SENTINELS and graph.get_apex(name) is None:
                result.warnings.append(
                    f"Module '{mod.name}' lists unknown apex '{name}' in apex_available"
                )

    for name, level in graph.config.log_levels.items():
        if not is_valid_level(level):
            result.warnings.append(f"config.log_levels: unknown level '{level}' for '{name}'")

    # Undefined references and cycles, as the engine would see them
    memory = MemoryGraph(graph)
    result.errors.extend(str(e) for e in memory.errors.errors)
    try:
        bottom_up_levels(memory)
    except GraphError as e:
        result.errors.append(str(e))

    result.valid = len(result.errors) == 0
    return result
