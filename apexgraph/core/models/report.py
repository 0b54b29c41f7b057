"""
Module error model — what the engine's error sinks record.

Errors are attributed to a module (and, for property errors, to the
offending property). Reporting one never aborts the pass: every module
of a phase runs, and the pass fails afterwards if any error was recorded.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class ModuleError(BaseModel):
    """A configuration error or policy violation attributed to a module."""

    module: str
    variation: str = ""
    property: str | None = None
    kind: Literal["config", "policy"] = "config"
    message: str

    def __str__(self) -> str:
        where = self.module
        if self.variation:
            where += f" [{self.variation}]"
        if self.property:
            return f"{where}: {self.property}: {self.message}"
        return f"{where}: {self.message}"
