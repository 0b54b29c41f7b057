"""
Configuration loader — reads graph.yml into domain models.

This is the primary entry point for loading a graph definition. It
reads YAML, validates against Pydantic schemas, applies environment
overrides, and returns typed domain objects.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from apexgraph.core.models.graph import GraphDecl

logger = logging.getLogger(__name__)

# Default config filename
GRAPH_CONFIG_FILE = "graph.yml"

_TRUE_VALUES = ("1", "true", "yes", "on")


class ConfigError(Exception):
    """Raised when a graph definition is invalid or missing."""


def find_graph_file(start_dir: Path | None = None) -> Path | None:
    """Search for graph.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to graph.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / GRAPH_CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def env_is_true(name: str) -> bool:
    """Whether an environment variable is set to a truthy value."""
    return os.environ.get(name, "").strip().lower() in _TRUE_VALUES


def load_graph(path: Path | None = None) -> GraphDecl:
    """Load and validate a graph definition.

    Args:
        path: Explicit path to graph.yml. If None, searches upward.

    Returns:
        Validated GraphDecl model.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    if path is None:
        path = find_graph_file()

    if path is None:
        raise ConfigError(
            f"No {GRAPH_CONFIG_FILE} found. Create one, or specify --config."
        )

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading graph config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        graph = GraphDecl.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid graph configuration: {e}") from e

    # Coverage builds are switched on from the environment, as the build system does.
    if env_is_true("EMMA_INSTRUMENT"):
        graph.config.emma_instrument = True

    logger.info(
        "Loaded graph '%s' with %d modules and %d apexes",
        graph.name or path.parent.name,
        len(graph.modules),
        len(graph.apexes),
    )
    return graph


def graph_root(config_path: Path) -> Path:
    """Get the directory holding a graph file."""
    return config_path.parent.resolve()
