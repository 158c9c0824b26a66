from __future__ import annotations

from datetime import timedelta

import pytest

from buildwatch.core.models import BuildStatus
from buildwatch.core.status import UNKNOWN_DURATION, BuildDurationFormatter, format_duration, map_result
from conftest import T0


@pytest.mark.parametrize(
    ("result", "expected"),
    [
        ("succeeded", BuildStatus.SUCCESS),
        ("failed", BuildStatus.FAILURE),
        ("canceled", BuildStatus.STOPPED),
        ("partiallySucceeded", BuildStatus.UNSTABLE),
        ("", BuildStatus.UNKNOWN),
        ("foo", BuildStatus.UNKNOWN),
        (None, BuildStatus.UNKNOWN),
        ("Succeeded", BuildStatus.UNKNOWN),
    ],
)
def test_map_result(result, expected):
    assert map_result(result) is expected


@pytest.mark.parametrize("status", [None, "none", "notStarted", "postponed"])
def test_format_duration_empty_for_unstarted_builds(status):
    assert format_duration(status, T0, T0 + timedelta(seconds=30)) == ""


def test_format_duration_empty_without_start():
    assert format_duration("completed", None, T0) == ""
    assert format_duration("inProgress", None, None, now=T0) == ""


def test_format_duration_finished_build():
    assert format_duration("completed", T0, T0 + timedelta(milliseconds=5000)) == "5s"


def test_format_duration_finished_without_finish_time():
    assert format_duration("completed", T0, None) == UNKNOWN_DURATION == "???"


def test_format_duration_in_progress_uses_now():
    short = format_duration("inProgress", T0, None, now=T0 + timedelta(seconds=42))
    longer = format_duration("inProgress", T0, None, now=T0 + timedelta(minutes=3, seconds=7))

    assert short == "42s"
    assert longer == "3min 07s"


def test_duration_formatter_ranges():
    formatter = BuildDurationFormatter()

    assert formatter.format(None) == ""
    assert formatter.format(0) == "0s"
    assert formatter.format(999) == "0s"
    assert formatter.format(65_000) == "1min 05s"
    assert formatter.format((2 * 3600 + 3 * 60 + 4) * 1000) == "2h 03min 04s"
    assert formatter.format(30 * 3600 * 1000) == "30h 00min 00s"
    assert formatter.format(-5000) == "0s"


def test_duration_formatter_is_deterministic_and_monotonic():
    formatter = BuildDurationFormatter()
    samples = [0, 1_000, 59_000, 60_000, 61_000, 3_599_000, 3_600_000, 7_265_000]
    rendered = [formatter.format(value) for value in samples]

    assert rendered == [formatter.format(value) for value in samples]
    assert len(set(rendered)) == len(rendered)
