"""
Domain records shared by the adapter, the stream and the CLI.

``RawBuildRecord`` mirrors what the build service reports; ``BuildInfo`` is the
normalized record handed to the host. Both are immutable and carry no identity
beyond their field values.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from .errors import MalformedRevisionError

IN_PROGRESS_STATUS = "inProgress"

_REVISION_PATTERN = re.compile(r"^[0-9a-fA-F]{40}$")


class BuildStatus(str, Enum):
    """Canonical build outcome, independent of the server vocabulary."""

    UNKNOWN = "unknown"
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    FAILURE = "failure"
    STOPPED = "stopped"
    UNSTABLE = "unstable"


@dataclass(frozen=True, slots=True)
class RawBuildRecord:
    """
    One build execution as reported by the build service.

    Attributes
    ----------
    build_number:
        Server build number. Opaque, frequently not numeric (``20240101.3``).
    status:
        Lifecycle word such as ``inProgress``, ``completed`` or ``notStarted``.
    result:
        Outcome word such as ``succeeded`` or ``failed``; empty while running.
    start_time, finish_time:
        Timezone aware timestamps when the server reported them.
    source_version:
        Revision the build was produced from.
    web_url:
        Link to the build summary page.
    """

    build_number: str
    status: Optional[str] = None
    result: Optional[str] = None
    start_time: Optional[datetime] = None
    finish_time: Optional[datetime] = None
    source_version: str = ""
    web_url: Optional[str] = None

    @property
    def is_in_progress(self) -> bool:
        return self.status == IN_PROGRESS_STATUS


@dataclass(frozen=True, slots=True)
class BuildInfo:
    """Normalized build record emitted to the host."""

    id: str
    start_date: datetime
    status: BuildStatus
    description: str
    tooltip: str
    commit_hashes: Tuple[str, ...] = field(default_factory=tuple)
    url: Optional[str] = None
    show_in_build_report_tab: bool = False


@dataclass(frozen=True, slots=True)
class StreamRequest:
    """
    Parameters of one stream invocation.

    ``running`` is tri-state: ``True`` only in-progress builds, ``False`` only
    finished builds, ``None`` unfiltered.
    """

    since_date: Optional[datetime] = None
    running: Optional[bool] = None


def parse_revision(value: Optional[str]) -> str:
    """
    Parse a git object id, returning it lower-cased.

    Raises
    ------
    MalformedRevisionError
        If ``value`` is not a 40 character hexadecimal string.
    """

    candidate = (value or "").strip()
    if not _REVISION_PATTERN.match(candidate):
        raise MalformedRevisionError(f"'{value}' is not a valid revision id.")
    return candidate.lower()
