"""
HTTP clients for build servers.

``BaseAPIClient`` handles transport concerns (pooling, retries, error
conversion); concrete clients such as ``AzureDevOpsClient`` implement the
:class:`~buildwatch.adapters.base.BuildQueryService` protocol on top of it.
"""

from .azure_devops import AzureDevOpsClient, parse_build
from .base import BaseAPIClient

__all__ = [
    "AzureDevOpsClient",
    "BaseAPIClient",
    "parse_build",
]
