"""
Graph declaration models — loaded from graph.yml.

A graph file declares the build configuration, the modules of the build
graph, and the bundles (APEXes) that package them. These are
declarations only; the in-memory engine turns them into live nodes.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from apexgraph.core.models.apex import SdkRef


class BuildConfig(BaseModel):
    """Build-wide switches consulted by the mutator and policy checks."""

    host: bool = False                        # building for the host, not a device
    allow_missing_dependencies: bool = False
    emma_instrument: bool = False             # Java coverage
    native_coverage: bool = False
    clang_coverage: bool = False
    active_codenames: list[str] = Field(default_factory=list)
    workers: int = 4
    min_sdk_allowlist: str | None = None      # override path for the allow-list
    log_levels: dict[str, str] = Field(default_factory=dict)  # logger (relative to apexgraph) -> level

    @property
    def coverage_enabled(self) -> bool:
        return self.emma_instrument or self.native_coverage or self.clang_coverage


class ModuleDecl(BaseModel):
    """A build module that may be packaged into bundles.

    ``apex_capable`` modules take part in variant mutation; the rest are
    plain graph nodes (e.g. NDK stubs) that never get bundle variants.
    """

    model_config = ConfigDict(coerce_numbers_to_str=True)  # min_sdk_version: 29

    name: str
    deps: list[str] = Field(default_factory=list)
    external_deps: list[str] = Field(default_factory=list)  # linked, never packaged alongside
    apex_capable: bool = True
    apex_available: list[str] = Field(default_factory=list)
    min_sdk_version: str | None = None
    unique_apex_variations: bool = False
    stubs: bool = False          # a stable interface; edges to it cross the payload boundary
    installable_to_apex: bool = True
    test_for: list[str] = Field(default_factory=list)


class ApexDecl(BaseModel):
    """A bundle definition: its requirements and its direct contents."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: str
    min_sdk_version: str = "current"
    updatable: bool = False
    required_sdks: list[SdkRef] = Field(default_factory=list)
    contents: list[str] = Field(default_factory=list)


class GraphDecl(BaseModel):
    """Root of a graph.yml file."""

    version: int = 1
    name: str = ""
    config: BuildConfig = Field(default_factory=BuildConfig)
    modules: list[ModuleDecl] = Field(default_factory=list)
    apexes: list[ApexDecl] = Field(default_factory=list)

    def get_module(self, name: str) -> ModuleDecl | None:
        for mod in self.modules:
            if mod.name == name:
                return mod
        return None

    def get_apex(self, name: str) -> ApexDecl | None:
        for apex in self.apexes:
            if apex.name == name:
                return apex
        return None

    def names(self) -> set[str]:
        """Every module and bundle name declared in the graph."""
        return {m.name for m in self.modules} | {a.name for a in self.apexes}
