import datetime

from core.utils import (
    add_months, date_range, format_duration, minutes_between, month_bounds,
    month_name, parse_date, parse_datetime, round_half_up, week_bounds,
)


def test_month_name():
    assert month_name(1) == "January"
    assert month_name(12) == "December"


def test_add_months_clamps_to_month_end():
    assert add_months(datetime.date(2026, 1, 31), 1) == datetime.date(2026, 2, 28)
    assert add_months(datetime.date(2026, 11, 15), 3) == datetime.date(2027, 2, 15)
    assert add_months(datetime.date(2026, 10, 19), 12) == datetime.date(2027, 10, 19)


def test_parse_date_variants():
    assert parse_date("2026-10-19") == datetime.date(2026, 10, 19)
    assert parse_date("2026-10-19T08:30:00") == datetime.date(2026, 10, 19)
    assert parse_date(datetime.datetime(2026, 10, 19, 8, 30)) == datetime.date(2026, 10, 19)
    assert parse_date("19/10/2026") is None
    assert parse_date("") is None
    assert parse_date(None) is None


def test_parse_datetime_date_becomes_midnight():
    assert parse_datetime("2026-10-19") == datetime.datetime(2026, 10, 19)
    assert parse_datetime(datetime.date(2026, 10, 19)) == datetime.datetime(2026, 10, 19)
    assert parse_datetime("not a timestamp") is None


def test_minutes_between_floors():
    start = datetime.datetime(2026, 10, 19, 9, 0)
    assert minutes_between(start, start + datetime.timedelta(minutes=95, seconds=59)) == 95


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.49) == 2
    assert round_half_up(0) == 0


def test_format_duration():
    assert format_duration(150) == "2h 30m"
    assert format_duration(45) == "45m"
    assert format_duration(120) == "2h"
    assert format_duration(0) == "0m"
    assert format_duration(None) == "0m"


def test_week_bounds_start_on_monday():
    # Sunday belongs to the week that started the Monday before
    assert week_bounds(datetime.date(2026, 10, 25)) == (datetime.date(2026, 10, 19), datetime.date(2026, 10, 25))
    assert week_bounds(datetime.date(2026, 10, 19)) == (datetime.date(2026, 10, 19), datetime.date(2026, 10, 25))


def test_month_bounds_and_range():
    start, end = month_bounds(datetime.date(2026, 2, 14))
    assert (start, end) == (datetime.date(2026, 2, 1), datetime.date(2026, 2, 28))
    assert len(list(date_range(start, end))) == 28
