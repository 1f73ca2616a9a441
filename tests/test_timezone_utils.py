import datetime

import pytz

from timezone_utils import (
    convert_to_local,
    days_between_local,
    is_same_local_day,
    parse_iso_datetime,
    to_local_date,
)


def test_parse_accepts_z_suffix_and_naive_values():
    assert parse_iso_datetime("2026-10-19T05:00:00Z") == datetime.datetime(2026, 10, 19, 5, tzinfo=pytz.utc)
    assert parse_iso_datetime("2026-10-19T05:00:00").tzinfo is not None


def test_convert_to_local(local_tz):
    local = convert_to_local("2026-10-19T20:00:00+00:00")
    assert local.date() == datetime.date(2026, 10, 20)
    assert local.utcoffset() == datetime.timedelta(hours=7)


def test_bare_date_string_is_a_local_date(monkeypatch):
    monkeypatch.setenv("APP_TIMEZONE", "America/Los_Angeles")
    assert to_local_date("2026-10-19") == datetime.date(2026, 10, 19)


def test_local_day_comparisons(local_tz):
    assert is_same_local_day("2026-10-19T00:30:00+07:00", "2026-10-19T16:00:00+00:00")
    assert not is_same_local_day("2026-10-19T16:00:00+00:00", "2026-10-19T18:00:00+00:00")
    assert days_between_local("2026-10-18T12:00:00Z", "2026-10-19T01:00:00Z") == 1
    assert days_between_local("2026-10-19T01:00:00Z", "2026-10-18T12:00:00Z") == -1
