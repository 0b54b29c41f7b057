"""
Domain models — Pydantic types for apex variant mutation.

All models are re-exported here for convenient access:

    from apexgraph.core.models import ApexInfo, ApiLevel, GraphDecl, ModuleError
"""

from apexgraph.core.models.apex import ApexInfo, ApexProperties, SdkRef
from apexgraph.core.models.api_level import (
    FUTURE_API_LEVEL,
    SDK_VERSION_ANDROID10,
    ApiLevel,
    ApiLevelError,
    api_level_from_user,
)
from apexgraph.core.models.graph import ApexDecl, BuildConfig, GraphDecl, ModuleDecl
from apexgraph.core.models.report import ModuleError

__all__ = [
    # apex.py
    "ApexInfo",
    "ApexProperties",
    "SdkRef",
    # api_level.py
    "FUTURE_API_LEVEL",
    "SDK_VERSION_ANDROID10",
    "ApiLevel",
    "ApiLevelError",
    "api_level_from_user",
    # graph.py
    "ApexDecl",
    "BuildConfig",
    "GraphDecl",
    "ModuleDecl",
    # report.py
    "ModuleError",
]
