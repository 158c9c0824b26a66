"""Assembly of :class:`BuildInfo` records from raw server builds."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Optional

from .models import BuildInfo, BuildStatus, RawBuildRecord, parse_revision
from .status import format_duration, map_result

# Builds without a start time sort after every real build in start-ordered views.
UNSET_START_OFFSET = timedelta(hours=1)


def create_build_info(record: RawBuildRecord, *, now: Optional[datetime] = None) -> BuildInfo:
    """
    Normalize ``record`` into a :class:`BuildInfo`.

    Raises
    ------
    MalformedRevisionError
        If the record's source version is not a revision id.
    """

    current = now or datetime.now(UTC)
    duration = format_duration(record.status, record.start_time, record.finish_time, now=current)

    if record.is_in_progress:
        status = BuildStatus.IN_PROGRESS
        state_word = record.status or ""
    else:
        status = map_result(record.result)
        state_word = record.result or ""

    return BuildInfo(
        id=record.build_number,
        start_date=record.start_time or current + UNSET_START_OFFSET,
        status=status,
        description=f"{duration} {record.build_number}",
        tooltip="\n".join((state_word.title(), duration, record.build_number)),
        commit_hashes=(parse_revision(record.source_version),),
        url=record.web_url,
        show_in_build_report_tab=False,
    )
