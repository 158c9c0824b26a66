"""
Build status adapter for Azure DevOps and Team Foundation Server.

``AzureDevOpsAdapter`` is the developer-facing surface: initialize it with
project settings, then iterate the streams returned by
``finished_builds_since`` and ``running_builds`` to receive normalized
``BuildInfo`` records.
"""

from .adapters import AzureDevOpsAdapter, BuildStream, StreamState
from .config import IntegrationSettings, load_settings
from .core import BuildInfo, BuildStatus, DefinitionCache, shared_definition_cache

__all__ = [
    "AzureDevOpsAdapter",
    "BuildInfo",
    "BuildStatus",
    "BuildStream",
    "DefinitionCache",
    "IntegrationSettings",
    "StreamState",
    "load_settings",
    "shared_definition_cache",
]
