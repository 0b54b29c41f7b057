"""
APEX requirement models — what a bundle asks of a member module.

An ``ApexInfo`` describes one bundle-specific build requirement. Bundle
definitions attach one to every module they contain; the variant mutator
later folds equivalent requirements together and assigns exactly one
``ApexInfo`` to each resulting module variant.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from apexgraph.core.models.api_level import ApiLevel, api_level_from_user


class SdkRef(BaseModel):
    """A required companion SDK at a fixed version."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: str
    version: str


class ApexInfo(BaseModel):
    """A bundle-specific build requirement for one module.

    ``in_apexes`` lists every concrete bundle this (possibly merged)
    requirement stands for. Before merging it normally holds just the
    bundle named by ``apex_variation_name``.
    """

    apex_variation_name: str = ""     # empty = platform
    min_sdk_version: str = "current"  # serialized ApiLevel
    updatable: bool = False
    required_sdks: list[SdkRef] = Field(default_factory=list)
    in_apexes: list[str] = Field(default_factory=list)

    def min_sdk_level(self, active_codenames: list[str] | tuple[str, ...] = ()) -> ApiLevel:
        """Parsed form of ``min_sdk_version``."""
        return api_level_from_user(self.min_sdk_version, active_codenames)

    def merged_name(self, active_codenames: list[str] | tuple[str, ...] = ()) -> str:
        """Key shared by every requirement that would compile identically.

        Built from the numeric min SDK level and each required SDK in
        list order, e.g. ``apex29_myapex-sdk_1``.
        """
        name = "apex" + str(self.min_sdk_level(active_codenames).final_or_future_int())
        for sdk in self.required_sdks:
            name += "_" + sdk.name + "_" + sdk.version
        return name


class ApexProperties(BaseModel):
    """Per-module APEX configuration and mutated state."""

    # Bundles allowed to contain this module. Supports the
    # "//apex_available:platform", "//apex_available:anyapex" and
    # "com.android.gki.*" sentinels. Empty means platform only.
    apex_available: list[str] = Field(default_factory=list)

    # ── Mutated (set by the variant mutator, never by users) ─────
    info: ApexInfo = Field(default_factory=ApexInfo)
    not_available_for_platform: bool = False
    unique_apex_variations_for_deps: bool = False
