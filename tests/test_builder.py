from __future__ import annotations

from datetime import timedelta

import pytest

from buildwatch.core.builder import UNSET_START_OFFSET, create_build_info
from buildwatch.core.errors import MalformedRevisionError
from buildwatch.core.models import BuildStatus, parse_revision
from conftest import SHA, T0, make_record


def test_create_build_info_for_finished_build():
    record = make_record(finish_time=T0 + timedelta(seconds=5))

    info = create_build_info(record, now=T0 + timedelta(hours=2))

    assert info.id == "20240501.1"
    assert info.start_date == T0
    assert info.status is BuildStatus.SUCCESS
    assert info.description == "5s 20240501.1"
    assert info.tooltip == "Succeeded\n5s\n20240501.1"
    assert info.commit_hashes == (SHA,)
    assert info.url == record.web_url
    assert info.show_in_build_report_tab is False


@pytest.mark.parametrize("result", ["failed", "succeeded", "", None, "canceled"])
def test_in_progress_build_is_always_in_progress(result):
    record = make_record(status="inProgress", result=result)

    info = create_build_info(record, now=T0 + timedelta(seconds=90))

    assert info.status is BuildStatus.IN_PROGRESS
    assert info.description == "1min 30s 20240501.1"
    assert info.tooltip.splitlines()[0] == "Inprogress"


def test_missing_start_time_uses_future_sentinel():
    now = T0 + timedelta(days=1)
    record = make_record(status="notStarted", result=None, start_time=None)

    info = create_build_info(record, now=now)

    assert info.start_date == now + UNSET_START_OFFSET
    assert info.description == " 20240501.1"
    assert info.status is BuildStatus.UNKNOWN


def test_partially_succeeded_tooltip_is_title_cased():
    record = make_record(result="partiallySucceeded", finish_time=None)

    info = create_build_info(record, now=T0)

    assert info.status is BuildStatus.UNSTABLE
    assert info.tooltip == "Partiallysucceeded\n???\n20240501.1"


def test_malformed_revision_raises():
    with pytest.raises(MalformedRevisionError):
        create_build_info(make_record(source_version="not-a-sha"), now=T0)


def test_parse_revision_normalizes_case_and_whitespace():
    assert parse_revision(f"  {SHA.upper()} ") == SHA


@pytest.mark.parametrize("value", [None, "", "abc", SHA[:-1], SHA + "0", "g" * 40])
def test_parse_revision_rejects_invalid_values(value):
    with pytest.raises(MalformedRevisionError):
        parse_revision(value)
