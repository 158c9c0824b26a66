"""
Build server adapters.

``AzureDevOpsAdapter`` owns initialization, definition caching and stream
creation; ``BuildStream`` is the cancellable async iterator it hands out.
HTTP clients live in :mod:`buildwatch.adapters.api`.
"""

from .azure_devops import PLUGIN_NAME, AzureDevOpsAdapter
from .base import AdapterError, AlreadyInitializedError, APIError, BuildQueryService, MalformedRevisionError, NotInitializedError
from .stream import BuildStream, StreamState

__all__ = [
    "AdapterError",
    "AlreadyInitializedError",
    "APIError",
    "AzureDevOpsAdapter",
    "BuildQueryService",
    "BuildStream",
    "MalformedRevisionError",
    "NotInitializedError",
    "PLUGIN_NAME",
    "StreamState",
]
