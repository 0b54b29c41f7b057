"""
Min-SDK allow-list loader.

Some modules predate min_sdk_version enforcement and are grandfathered at
a fixed finalized API level. The table is data: the default ships in
``apexgraph/core/data/min_sdk_allowlist.yml`` and a graph may point at
its own file through ``config.min_sdk_allowlist``.

File format::

    version: 1
    modules:
      libfoo: 30
      libbar: 29
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from apexgraph.core.config.loader import ConfigError
from apexgraph.core.models.api_level import ApiLevel

logger = logging.getLogger(__name__)

DEFAULT_ALLOWLIST_PATH = Path(__file__).parent.parent / "data" / "min_sdk_allowlist.yml"


def parse_allowlist(data: object, source: str = "<data>") -> dict[str, ApiLevel]:
    """Turn a parsed allow-list document into ``name -> ApiLevel``.

    Raises:
        ConfigError: If the document is not a mapping of names to integers.
    """
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {source}, got {type(data).__name__}")

    modules = data.get("modules", {})
    if not isinstance(modules, dict):
        raise ConfigError(f"'modules' in {source} must be a mapping of name to API level")

    allowlist: dict[str, ApiLevel] = {}
    for name, level in modules.items():
        if isinstance(level, bool) or not isinstance(level, int):
            raise ConfigError(
                f"Allow-list entry '{name}' in {source} must be a finalized integer API level, got {level!r}"
            )
        allowlist[str(name)] = ApiLevel.final(level)
    return allowlist


def load_allowlist(path: Path | None = None) -> dict[str, ApiLevel]:
    """Load the min-SDK allow-list.

    Args:
        path: Override file. Defaults to the packaged table.

    Raises:
        ConfigError: If the file is missing or malformed.
    """
    path = path or DEFAULT_ALLOWLIST_PATH
    if not path.is_file():
        raise ConfigError(f"Allow-list file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot load allow-list {path}: {e}") from e

    allowlist = parse_allowlist(data, str(path))
    logger.debug("Loaded %d min_sdk allow-list entries from %s", len(allowlist), path)
    return allowlist
