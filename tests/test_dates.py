import time

import pytest

from pktbroker.dates import Date, days_between, days_since, parse_date


def test_ordering_by_year_month_day():
    assert Date(2019, 12, 31) < Date(2020, 1, 1)
    assert Date(2020, 1, 31) < Date(2020, 2, 1)
    assert Date(2020, 2, 1) < Date(2020, 2, 2)
    assert Date(2020, 2, 2) == Date(2020, 2, 2)


def test_str_is_zero_padded():
    assert str(Date(2021, 3, 4)) == "2021-03-04"


def test_parse_round_trips_through_str():
    date = Date(1999, 11, 23)
    assert parse_date(str(date)) == date


def test_parse_accepts_bytes():
    assert parse_date(b"2021-03-04") == Date(2021, 3, 4)


def test_parse_ignores_trailing_text_after_day():
    assert parse_date("2021-03-04T10:00:00") == Date(2021, 3, 4)


def test_parse_non_digits_read_as_zero():
    assert parse_date("abcd-ef-gh") == Date(0, 0, 0)


def test_parse_short_text_raises():
    with pytest.raises(ValueError):
        parse_date("2021-03")


def test_to_time_is_local_midnight_of_date():
    date = Date(2022, 7, 15)
    local = time.localtime(date.to_time())
    assert (local.tm_year, local.tm_mon, local.tm_mday) == (2022, 7, 15)
    assert (local.tm_hour, local.tm_min, local.tm_sec) == (0, 0, 0)


def test_days_between_same_date_is_zero():
    date = Date(2020, 6, 1)
    assert days_between(date, date) == 0


def test_days_between_is_antisymmetric():
    a = Date(2020, 1, 1)
    b = Date(2020, 1, 20)
    assert days_between(a, b) == -days_between(b, a)
    assert days_between(a, b) > 0


def test_days_since_counts_whole_days():
    date = Date(2020, 1, 1)
    now = date.to_time() + 5 * 86400 + 3600
    assert days_since(date, now) == 5


def test_days_since_truncates_toward_zero_for_future():
    date = Date(2020, 1, 10)
    now = date.to_time() - 3600
    assert days_since(date, now) == 0