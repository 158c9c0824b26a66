"""
Cancellable asynchronous stream of :class:`BuildInfo` records.

A :class:`BuildStream` is lazy: nothing happens until the host starts iterating
it, in whatever task and event loop it chooses. The stream suspends at exactly
two points, while waiting for the build definitions and while waiting for the
build query. :meth:`BuildStream.cancel` interrupts either wait (or stops
between items) and the iteration then simply ends; cancellation is never
reported as an error. Any other failure at a suspension point propagates out of
the ``async for`` loop.

Items whose source revision cannot be parsed are dropped one by one, the rest
of the query still flows.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional, Sequence, TypeVar

from ..core.builder import create_build_info
from ..core.errors import MalformedRevisionError
from ..core.logging import get_logger
from ..core.models import BuildInfo, RawBuildRecord, StreamRequest

T = TypeVar("T")

DefinitionResolver = Callable[["BuildStream"], Awaitable[Optional[str]]]
BuildQuery = Callable[[str, StreamRequest], Awaitable[Sequence[RawBuildRecord]]]

LOGGER = get_logger(__name__)


class StreamState(str, Enum):
    CREATED = "created"
    SUPPRESSED = "suppressed"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class StreamCancelled(Exception):
    """Internal signal raised at a suspension point after :meth:`BuildStream.cancel`."""


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _task_is_cancelling() -> bool:
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0


class BuildStream:
    """
    Async iterator producing normalized builds for one request.

    Parameters
    ----------
    request:
        Date and running filters forwarded to the build query.
    resolve_definitions:
        Coroutine function returning the definitions to query. ``None`` marks
        an inert source: the stream completes without items.
    query_builds:
        Coroutine function running the build query.
    suppressed:
        When ``True`` the stream completes without items and without touching
        the source.
    clock:
        Time source used for durations of running builds.
    """

    def __init__(
        self,
        request: StreamRequest,
        *,
        resolve_definitions: Optional[DefinitionResolver] = None,
        query_builds: Optional[BuildQuery] = None,
        suppressed: bool = False,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.request = request
        self.state = StreamState.SUPPRESSED if suppressed else StreamState.CREATED
        self.error: Optional[BaseException] = None
        self.emitted = 0
        self._resolve_definitions = resolve_definitions
        self._query_builds = query_builds
        self._clock = clock
        self._cancelled = False
        self._pending: Optional[asyncio.Future[Any]] = None
        self._iterator: Optional[AsyncIterator[BuildInfo]] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Stop the stream; a pending wait is interrupted and no further items are produced."""

        self._cancelled = True
        pending = self._pending
        if pending is not None and not pending.done():
            pending.cancel()

    async def wait_for(self, awaitable: Awaitable[T]) -> T:
        """
        Await ``awaitable`` as a suspension point of this stream.

        Raises :class:`StreamCancelled` when the wait ends because of
        :meth:`cancel`. Cancellation of the surrounding task is propagated
        untouched.
        """

        if self._cancelled:
            raise StreamCancelled()
        future = asyncio.ensure_future(awaitable)
        self._pending = future
        try:
            return await future
        except asyncio.CancelledError:
            if self._cancelled and not _task_is_cancelling():
                raise StreamCancelled() from None
            raise
        finally:
            self._pending = None

    def __aiter__(self) -> "BuildStream":
        return self

    async def __anext__(self) -> BuildInfo:
        if self._iterator is None:
            self._iterator = self._produce()
        return await self._iterator.__anext__()

    async def collect(self) -> List[BuildInfo]:
        """Drain the stream into a list."""

        return [item async for item in self]

    async def _produce(self) -> AsyncIterator[BuildInfo]:
        if self.state is StreamState.SUPPRESSED or self._resolve_definitions is None or self._query_builds is None or self._cancelled:
            self.state = StreamState.COMPLETED
            return

        self.state = StreamState.ACTIVE
        try:
            definitions = await self._resolve_definitions(self)
            if not definitions:
                LOGGER.info("No build definitions resolved; stream ends empty", extra={"state": "completed"})
                self.state = StreamState.COMPLETED
                return

            records = await self.wait_for(self._query_builds(definitions, self.request))
            now = self._clock()
            for record in records:
                if self._cancelled:
                    break
                try:
                    info = create_build_info(record, now=now)
                except MalformedRevisionError as exc:
                    LOGGER.warning("Dropping build with malformed revision", extra={"build_id": record.build_number, "error": str(exc)})
                    continue
                self.emitted += 1
                yield info
        except StreamCancelled:
            LOGGER.debug("Build stream cancelled", extra={"state": "cancelled", "emitted": self.emitted})
        except Exception as exc:
            self.state = StreamState.FAILED
            self.error = exc
            LOGGER.error("Build stream failed", extra={"state": "failed", "error": str(exc)})
            raise

        self.state = StreamState.COMPLETED
        LOGGER.debug("Build stream completed", extra={"state": "completed", "emitted": self.emitted})
