from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import List, Optional, Sequence

import pytest
from typer.testing import CliRunner

from buildwatch.adapters import AzureDevOpsAdapter
from buildwatch.core.cache import DefinitionCache
from buildwatch.core.models import RawBuildRecord

SHA = "0123456789abcdef0123456789abcdef01234567"
OTHER_SHA = "fedcba9876543210fedcba9876543210fedcba98"
T0 = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)

SETTINGS = {
    "project_url": "https://ci.example/org/proj",
    "api_token": "abc",
    "build_definition_filter": "*",
}


def make_record(
    build_number: str = "20240501.1",
    *,
    status: Optional[str] = "completed",
    result: Optional[str] = "succeeded",
    start_time: Optional[datetime] = T0,
    finish_time: Optional[datetime] = None,
    source_version: str = SHA,
    web_url: Optional[str] = "https://ci.example/org/proj/_build/results?buildId=1",
) -> RawBuildRecord:
    return RawBuildRecord(
        build_number=build_number,
        status=status,
        result=result,
        start_time=start_time,
        finish_time=finish_time,
        source_version=source_version,
        web_url=web_url,
    )


class FakeBuildService:
    """In-memory BuildQueryService recording every call."""

    def __init__(self, definitions: Optional[str] = "1,2", builds: Sequence[RawBuildRecord] = ()) -> None:
        self.definitions = definitions
        self.builds: List[RawBuildRecord] = list(builds)
        self.resolve_error: Optional[Exception] = None
        self.query_error: Optional[Exception] = None
        self.resolve_gate: Optional[asyncio.Event] = None
        self.query_gate: Optional[asyncio.Event] = None
        self.query_started = asyncio.Event()
        self.resolve_calls: List[Optional[str]] = []
        self.query_calls: List[tuple] = []
        self.closed = 0

    async def resolve_definitions(self, definition_filter):  # type: ignore[no-untyped-def]
        self.resolve_calls.append(definition_filter)
        if self.resolve_gate is not None:
            await self.resolve_gate.wait()
        if self.resolve_error is not None:
            raise self.resolve_error
        return self.definitions

    async def query_builds(self, definitions, since_date=None, running=None):  # type: ignore[no-untyped-def]
        self.query_calls.append((definitions, since_date, running))
        self.query_started.set()
        if self.query_gate is not None:
            await self.query_gate.wait()
        if self.query_error is not None:
            raise self.query_error
        return list(self.builds)

    async def aclose(self) -> None:
        self.closed += 1


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def cache() -> DefinitionCache:
    return DefinitionCache()


@pytest.fixture
def make_adapter(cache):  # type: ignore[no-untyped-def]
    def _factory(service: FakeBuildService, *, clock=None) -> AzureDevOpsAdapter:  # type: ignore[no-untyped-def]
        return AzureDevOpsAdapter(cache=cache, client_factory=lambda url, token: service, clock=clock)

    return _factory


@pytest.fixture()
def cli_runner() -> CliRunner:
    return CliRunner()
