"""apexgraph — per-bundle build variants for module dependency graphs."""

__version__ = "0.1.0"
