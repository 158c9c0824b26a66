"""
Status and duration normalization.

Azure DevOps reports a lifecycle word (``status``) and an outcome word
(``result``) per build. The helpers here fold those into :class:`BuildStatus`
and a short human-readable duration.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Mapping, Optional

from .models import IN_PROGRESS_STATUS, BuildStatus

UNKNOWN_DURATION = "???"

_NOT_STARTED_STATUSES = frozenset({"none", "notStarted", "postponed"})

_RESULT_MAP: Mapping[str, BuildStatus] = {
    "failed": BuildStatus.FAILURE,
    "canceled": BuildStatus.STOPPED,
    "succeeded": BuildStatus.SUCCESS,
    "partiallySucceeded": BuildStatus.UNSTABLE,
}


class BuildDurationFormatter:
    """Render millisecond counts as ``5s``, ``1min 05s`` or ``2h 03min 04s``."""

    def format(self, duration_ms: Optional[int]) -> str:
        if duration_ms is None:
            return ""
        total_seconds = max(0, int(duration_ms)) // 1000
        hours, remainder = divmod(total_seconds, 3600)
        minutes, seconds = divmod(remainder, 60)
        if hours:
            return f"{hours}h {minutes:02d}min {seconds:02d}s"
        if minutes:
            return f"{minutes}min {seconds:02d}s"
        return f"{seconds}s"


_duration_formatter = BuildDurationFormatter()


def map_result(result: Optional[str]) -> BuildStatus:
    """Map a server result word to a :class:`BuildStatus`; unknown words map to ``UNKNOWN``."""

    return _RESULT_MAP.get(result or "", BuildStatus.UNKNOWN)


def _elapsed_ms(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() * 1000)


def format_duration(
    status: Optional[str],
    start: Optional[datetime],
    finish: Optional[datetime],
    *,
    now: Optional[datetime] = None,
) -> str:
    """
    Describe how long a build ran (or has been running).

    Returns an empty string for builds that never started, the elapsed time
    since ``start`` for running builds and ``finish - start`` otherwise. A
    finished build without a finish time yields ``"???"``.
    """

    if status is None or status in _NOT_STARTED_STATUSES or start is None:
        return ""
    if status == IN_PROGRESS_STATUS:
        current = now or datetime.now(UTC)
        return _duration_formatter.format(_elapsed_ms(start, current))
    if finish is None:
        return UNKNOWN_DURATION
    return _duration_formatter.format(_elapsed_ms(start, finish))
