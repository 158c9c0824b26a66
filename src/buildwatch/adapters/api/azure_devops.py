"""
Azure DevOps (and TFS >= 2015) build REST client.

Only two endpoints are used: ``build/definitions`` to resolve the definitions
matching a name filter, and ``build/builds`` to list builds of those
definitions. Authentication uses a personal access token sent as HTTP Basic
credentials with an empty user name.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, List, Mapping, Optional

import httpx

from ...core.errors import APIError
from ...core.models import RawBuildRecord
from .base import DEFAULT_ATTEMPTS, DEFAULT_TIMEOUT, BaseAPIClient

API_VERSION = "2.0"
RUNNING_STATUS_FILTER = "cancelling,inProgress,none,notStarted,postponed"
FINISHED_STATUS_FILTER = "completed"


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _format_min_time(value: datetime) -> str:
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S")


def parse_build(payload: Mapping[str, Any]) -> RawBuildRecord:
    """Convert one entry of a ``build/builds`` response into a :class:`RawBuildRecord`."""

    links = payload.get("_links")
    web = links.get("web") if isinstance(links, Mapping) else None
    web_url = web.get("href") if isinstance(web, Mapping) else None

    return RawBuildRecord(
        build_number=str(payload.get("buildNumber") or payload.get("id") or ""),
        status=payload.get("status"),
        result=payload.get("result"),
        start_time=_parse_timestamp(payload.get("startTime")),
        finish_time=_parse_timestamp(payload.get("finishTime")),
        source_version=str(payload.get("sourceVersion") or ""),
        web_url=web_url,
    )


def _values(payload: Any, endpoint: str) -> List[Mapping[str, Any]]:
    if not isinstance(payload, Mapping):
        raise APIError(f"Unexpected payload for Azure DevOps {endpoint}.")
    values = payload.get("value")
    if values is None:
        return []
    if not isinstance(values, list):
        raise APIError(f"Azure DevOps {endpoint} response has no value list.")
    return [item for item in values if isinstance(item, Mapping)]


class AzureDevOpsClient(BaseAPIClient):
    """Build queries against one Azure DevOps project."""

    def __init__(
        self,
        project_url: str,
        token: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = DEFAULT_ATTEMPTS,
        backoff: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers = {
            "Accept": "application/json",
            "User-Agent": "buildwatch",
        }
        super().__init__(
            base_url=project_url.rstrip("/") + "/_apis/",
            timeout=timeout,
            default_headers=headers,
            auth=httpx.BasicAuth("", token),
            max_attempts=max_attempts,
            backoff=backoff,
            transport=transport,
        )

    async def resolve_definitions(self, definition_filter: Optional[str]) -> Optional[str]:
        """
        Resolve the ids of build definitions whose name matches ``definition_filter``.

        Returns the ids joined with commas, ready to be passed to
        :meth:`query_builds`, or ``None`` when no definition matches.
        """

        params = {"api-version": API_VERSION}
        if definition_filter and definition_filter.strip():
            params["name"] = definition_filter.strip()
        payload = await self._get_json("build/definitions", params=params)
        ids = [str(item["id"]) for item in _values(payload, "build definitions") if item.get("id") is not None]
        if not ids:
            return None
        return ",".join(ids)

    async def query_builds(
        self,
        definitions: str,
        since_date: Optional[datetime] = None,
        running: Optional[bool] = None,
    ) -> List[RawBuildRecord]:
        params = {"api-version": API_VERSION, "definitions": definitions}
        if since_date is not None:
            params["minFinishTime"] = _format_min_time(since_date)
        if running:
            params["statusFilter"] = RUNNING_STATUS_FILTER
        elif running is False:
            params["statusFilter"] = FINISHED_STATUS_FILTER
        payload = await self._get_json("build/builds", params=params)
        return [parse_build(item) for item in _values(payload, "builds")]
