"""
Build server adapter for Azure DevOps and Team Foundation Server (2015 and later).

Lifecycle
---------
Hosts create an adapter, call :meth:`AzureDevOpsAdapter.initialize` once and
then ask for streams of finished or running builds, usually on a timer.
Adapters are cheap to recreate; the expensive build definition lookup is
shared through a :class:`~buildwatch.core.cache.DefinitionCache` so a
recreated adapter for the same project and filter skips it.

An adapter whose settings are unusable (malformed project URL, missing token)
does not raise: it stays inert and behaves like a project without builds.

The first :meth:`AzureDevOpsAdapter.finished_builds_since` call on each
adapter yields nothing. Hosts make that call once at setup with a baseline
date, and replaying its result would duplicate builds they already show.
"""

from __future__ import annotations

import asyncio
import weakref
from datetime import UTC, datetime
from typing import Any, Callable, Mapping, Optional, Sequence

import httpx

from ..config import IntegrationSettings
from ..core.cache import DefinitionCache, make_cache_key, shared_definition_cache
from ..core.errors import AlreadyInitializedError, NotInitializedError
from ..core.logging import get_logger, log_progress
from ..core.models import RawBuildRecord, StreamRequest
from .api.azure_devops import AzureDevOpsClient
from .base import BuildQueryService, ClientFactory, VariableResolver
from .stream import BuildStream, StreamCancelled

PLUGIN_NAME = "Azure DevOps and Team Foundation Server (since TFS2015)"


def _default_client_factory(project_url: str, token: str) -> BuildQueryService:
    return AzureDevOpsClient(project_url, token)


def is_well_formed_url(value: Optional[str]) -> bool:
    """Return ``True`` for absolute http(s) URLs with a host and no whitespace."""

    if not value or any(char.isspace() for char in value):
        return False
    try:
        url = httpx.URL(value)
    except (httpx.InvalidURL, TypeError, ValueError):
        return False
    return url.scheme in {"http", "https"} and bool(url.host)


class AzureDevOpsAdapter:
    """
    Polls one Azure DevOps project for builds.

    Parameters
    ----------
    cache:
        Definition cache shared with other adapters. Defaults to the process
        wide :data:`~buildwatch.core.cache.shared_definition_cache`.
    client_factory:
        Builds the query client from ``(project_url, token)``.
    clock:
        Time source for the durations of running builds.
    """

    def __init__(
        self,
        *,
        cache: Optional[DefinitionCache] = None,
        client_factory: Optional[ClientFactory] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._cache = cache if cache is not None else shared_definition_cache
        self._client_factory = client_factory or _default_client_factory
        self._clock = clock or (lambda: datetime.now(UTC))
        self._initialized = False
        self._settings: Optional[IntegrationSettings] = None
        self._project_url: Optional[str] = None
        self._client: Optional[BuildQueryService] = None
        self._definitions: Optional[str] = None
        self._definitions_task: Optional[asyncio.Task[Optional[str]]] = None
        self._open_streams: "weakref.WeakSet[BuildStream]" = weakref.WeakSet()
        self._disposed = False
        self.has_ignored_first_finished_query = False
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    # ------------------------------------------------------------------ lifecycle

    def initialize(
        self,
        settings_source: IntegrationSettings | Mapping[str, Any],
        *,
        replace_variables: Optional[VariableResolver] = None,
    ) -> None:
        """
        Read settings and prepare the query client.

        Must run inside the event loop that will consume the streams, because
        the build definition prefetch is scheduled on it.

        Raises
        ------
        AlreadyInitializedError
            If the adapter was initialized before, successfully or not.
        """

        if self._initialized:
            raise AlreadyInitializedError(f"{self.__class__.__name__} is already initialized.")
        self._initialized = True

        if isinstance(settings_source, IntegrationSettings):
            settings = settings_source
        else:
            settings = IntegrationSettings.read_from(settings_source)
        self._settings = settings

        if not settings.is_valid():
            log_progress(self.logger, "Settings incomplete; adapter stays inert", phase="initialize", status="inert")
            return

        project_url = replace_variables(settings.project_url) if replace_variables else settings.project_url
        if not is_well_formed_url(project_url) or not (settings.api_token or "").strip():
            log_progress(self.logger, "Project URL or token unusable; adapter stays inert", phase="initialize", status="inert", extra={"project_url": project_url})
            return

        self._project_url = project_url
        self._client = self._client_factory(project_url, settings.api_token)

        cached = self._cache.take_or_clear(self.cache_key)
        if cached is not None:
            self._definitions = cached
            log_progress(self.logger, "Build definitions reused from cache", phase="initialize", status="ready", extra={"cache": "hit", "cache_key": self.cache_key})
            return

        self._definitions_task = self._start_prefetch(self._client, settings.build_definition_filter)
        log_progress(self.logger, "Build definitions prefetch started", phase="initialize", status="ready", extra={"cache": "miss", "cache_key": self.cache_key})

    async def dispose(self) -> None:
        """Release the query client. Safe to call more than once."""

        if self._disposed:
            return
        self._disposed = True
        # Streams still waiting on the prefetch or a query end empty.
        for stream in list(self._open_streams):
            stream.cancel()
        self._open_streams.clear()
        task, self._definitions_task = self._definitions_task, None
        if task is not None and not task.done():
            task.cancel()
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    async def __aenter__(self) -> "AzureDevOpsAdapter":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()

    # ------------------------------------------------------------------ properties

    @property
    def unique_key(self) -> str:
        """The configured project URL, identifying the build server for the host."""

        if self._settings is None:
            raise NotInitializedError(f"{self.__class__.__name__} is not yet initialized.")
        return self._settings.project_url

    @property
    def cache_key(self) -> str:
        if self._settings is None or self._project_url is None:
            raise NotInitializedError(f"{self.__class__.__name__} is not yet initialized.")
        return make_cache_key(self._project_url, self._settings.build_definition_filter)

    @property
    def is_inert(self) -> bool:
        return self._client is None

    # ------------------------------------------------------------------ streams

    def finished_builds_since(self, since_date: Optional[datetime] = None) -> BuildStream:
        """
        Stream builds finished since ``since_date``.

        The first call on an adapter returns an empty stream.
        """

        request = StreamRequest(since_date=since_date, running=False)
        if not self.has_ignored_first_finished_query:
            self.has_ignored_first_finished_query = True
            return BuildStream(request, suppressed=True)
        return self._stream(request)

    def running_builds(self) -> BuildStream:
        """Stream builds that are currently queued or running."""

        return self._stream(StreamRequest(since_date=None, running=True))

    def _stream(self, request: StreamRequest) -> BuildStream:
        if self._client is None:
            return BuildStream(request, clock=self._clock)
        stream = BuildStream(
            request,
            resolve_definitions=self._resolve_definitions,
            query_builds=self._query_builds,
            clock=self._clock,
        )
        self._open_streams.add(stream)
        return stream

    # ------------------------------------------------------------------ internals

    def _start_prefetch(self, client: BuildQueryService, definition_filter: Optional[str]) -> asyncio.Task[Optional[str]]:
        task = asyncio.get_running_loop().create_task(client.resolve_definitions(definition_filter))
        task.add_done_callback(self._observe_prefetch)
        return task

    def _observe_prefetch(self, task: asyncio.Task[Optional[str]]) -> None:
        # Marks the failure as retrieved even when no stream awaits the task.
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.debug("Build definitions prefetch failed", extra={"phase": "prefetch", "error": str(error)})

    async def _resolve_definitions(self, stream: BuildStream) -> Optional[str]:
        client = self._client
        if client is None or self._settings is None:
            return None
        if self._definitions is not None:
            return self._definitions
        if self._definitions_task is None:
            self._definitions_task = self._start_prefetch(client, self._settings.build_definition_filter)

        task = self._definitions_task
        try:
            definitions = await stream.wait_for(asyncio.shield(task))
        except StreamCancelled:
            raise
        except Exception:
            # A failed prefetch is reported once; the next stream resolves again.
            if self._definitions_task is task:
                self._definitions_task = None
            self.logger.warning("Build definitions could not be resolved", extra={"phase": "resolve", "cache_key": self.cache_key})
            raise

        if not definitions:
            return None
        if self._definitions is None:
            self._definitions = definitions
            self._cache.set(self.cache_key, definitions)
            self.logger.debug("Build definitions cached", extra={"cache_key": self.cache_key, "definitions": definitions})
        return self._definitions

    async def _query_builds(self, definitions: str, request: StreamRequest) -> Sequence[RawBuildRecord]:
        client = self._client
        if client is None:
            return []
        return await client.query_builds(definitions, request.since_date, request.running)
