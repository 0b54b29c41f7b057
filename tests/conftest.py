"""
Shared test fixtures and configuration.
"""

import logging
import textwrap
from pathlib import Path

import pytest

from apexgraph.adapters.memory import MemoryGraph
from apexgraph.core.dependency_registry import ApexDependencyRegistry
from apexgraph.core.models.graph import ApexDecl, BuildConfig, GraphDecl, ModuleDecl


def make_graph(
    modules: list[ModuleDecl],
    apexes: list[ApexDecl] | None = None,
    **config,
) -> MemoryGraph:
    """Build an in-memory graph from declarations."""
    decl = GraphDecl(
        name="test",
        config=BuildConfig(**config),
        modules=modules,
        apexes=apexes or [],
    )
    return MemoryGraph(decl)


@pytest.fixture
def graph_factory():
    """Factory building a MemoryGraph from module and apex declarations."""
    return make_graph


@pytest.fixture
def registry() -> ApexDependencyRegistry:
    """A fresh dependency registry."""
    return ApexDependencyRegistry()


@pytest.fixture
def shared_graph() -> MemoryGraph:
    """Three bundles with identical requirements sharing one library."""
    return make_graph(
        modules=[
            ModuleDecl(
                name="libshared",
                deps=["libdep"],
                apex_available=["//apex_available:anyapex"],
                min_sdk_version="29",
            ),
            ModuleDecl(
                name="libdep",
                apex_available=["//apex_available:anyapex", "//apex_available:platform"],
                min_sdk_version="29",
            ),
        ],
        apexes=[
            ApexDecl(name="com.android.a", min_sdk_version="29", contents=["libshared"]),
            ApexDecl(name="com.android.b", min_sdk_version="29", contents=["libshared"]),
            ApexDecl(name="com.android.c", min_sdk_version="29", contents=["libshared"]),
        ],
    )


@pytest.fixture
def graph_yml(tmp_path: Path) -> Path:
    """A valid graph.yml with one merged and one violating module."""
    content = textwrap.dedent("""\
        version: 1
        name: sample
        config:
          workers: 2
        modules:
          - name: libshared
            deps: [libdep]
            apex_available: ["//apex_available:anyapex"]
            min_sdk_version: "29"
          - name: libdep
            apex_available: ["//apex_available:anyapex", "//apex_available:platform"]
            min_sdk_version: "29"
          - name: libplatform
        apexes:
          - name: com.android.a
            min_sdk_version: "29"
            updatable: true
            contents: [libshared]
          - name: com.android.b
            min_sdk_version: "29"
            contents: [libshared]
    """)
    path = tmp_path / "graph.yml"
    path.write_text(content)
    return path


@pytest.fixture
def restore_logging():
    """Put the root logger, its handlers and the apexgraph loggers back."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    handler_levels = [h.level for h in handlers]
    level = root.level
    yield root
    for name, obj in list(logging.root.manager.loggerDict.items()):
        if name.startswith("apexgraph") and isinstance(obj, logging.Logger):
            obj.setLevel(logging.NOTSET)
    for handler, handler_level in zip(handlers, handler_levels):
        handler.setLevel(handler_level)
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
