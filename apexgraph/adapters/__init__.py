"""Adapters — bindings to a host build graph.

Public re-exports for convenient access. The in-memory engine lives in
``apexgraph.adapters.memory``.
"""

from apexgraph.adapters.base import GraphNode, ModuleContext, PayloadDepsCallback

__all__ = [
    "GraphNode",
    "ModuleContext",
    "PayloadDepsCallback",
]
