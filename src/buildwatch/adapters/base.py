"""
Protocols the adapter consumes.

The adapter never talks HTTP itself. It depends on a :class:`BuildQueryService`
for the two server round trips it needs; the bundled
:class:`~buildwatch.adapters.api.azure_devops.AzureDevOpsClient` is the
production implementation and tests substitute in-memory doubles.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional, Protocol, Sequence

from ..core.errors import AdapterError, AlreadyInitializedError, APIError, MalformedRevisionError, NotInitializedError
from ..core.models import RawBuildRecord


class BuildQueryService(Protocol):
    """Asynchronous access to a build server."""

    async def resolve_definitions(self, definition_filter: Optional[str]) -> Optional[str]:
        """Return an opaque description of the matching build definitions, or ``None`` when none match."""

    async def query_builds(
        self,
        definitions: str,
        since_date: Optional[datetime] = None,
        running: Optional[bool] = None,
    ) -> Sequence[RawBuildRecord]:
        """Return builds of ``definitions`` in server order."""

    async def aclose(self) -> None:
        """Release network resources."""


ClientFactory = Callable[[str, str], BuildQueryService]
VariableResolver = Callable[[str], str]

__all__ = [
    "AdapterError",
    "AlreadyInitializedError",
    "APIError",
    "BuildQueryService",
    "ClientFactory",
    "MalformedRevisionError",
    "NotInitializedError",
    "VariableResolver",
]
