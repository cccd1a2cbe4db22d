from datetime import date, datetime, timedelta, timezone

import pytest

from utils.date_util import Clock
from utils.week_range import (
    build_calendar_cells,
    build_week_href,
    format_week_label,
    get_month_range,
    month_of,
    parse_iso_date,
    resolve_week_range,
)


def fixed_clock(value: datetime) -> Clock:
    ms = int(value.timestamp() * 1000)
    return Clock(wall_clock_ms=lambda: ms)


WEDNESDAY = fixed_clock(datetime(2025, 3, 12, 3, 0, tzinfo=timezone.utc))


def test_resolve_week_range_for_explicit_week():
    week = resolve_week_range("2025-03-12")

    assert week.start == date(2025, 3, 10)
    assert week.end == date(2025, 3, 16)
    assert week.end_exclusive == date(2025, 3, 17)
    assert week.previous_start == date(2025, 3, 3)
    assert week.next_start == date(2025, 3, 17)
    assert week.label == "3월 10 ~ 16일 주간"
    assert week.param == "2025-03-10"


def test_resolve_week_range_across_months():
    week = resolve_week_range("2025-04-02")

    assert week.start == date(2025, 3, 31)
    assert week.end == date(2025, 4, 6)
    assert week.label == "3월 31일 ~ 4월 6일 주간"


@pytest.mark.parametrize("week_param", [None, "", "2025-02-30", "2025/03/12", "12-03-2025", ["2025-03-12"], 20250312])
def test_invalid_week_param_falls_back_to_clock(week_param):
    week = resolve_week_range(week_param, WEDNESDAY)
    assert week.start == date(2025, 3, 10)
    assert week.param == "2025-03-10"


def test_clock_fallback_uses_utc_calendar_date():
    # KST 기준으로는 3/17(월)이지만 UTC 날짜는 3/16(일)
    clock = fixed_clock(datetime(2025, 3, 16, 20, 0, tzinfo=timezone.utc))
    assert resolve_week_range(None, clock).start == date(2025, 3, 10)


def test_week_can_start_on_sunday():
    week = resolve_week_range("2025-03-12", week_starts_on=0)
    assert week.start == date(2025, 3, 9)
    assert week.end == date(2025, 3, 15)


def test_every_day_falls_inside_its_week():
    day = date(2024, 12, 20)
    for _ in range(60):
        week = resolve_week_range(day.isoformat())
        assert week.start <= day <= week.end
        assert week.end - week.start == timedelta(days=6)
        assert week.start.weekday() == 0
        assert week.next_start - week.previous_start == timedelta(days=14)
        assert resolve_week_range(week.param).param == week.param
        day += timedelta(days=1)


def test_format_week_label_across_years():
    assert format_week_label(date(2024, 12, 30), date(2025, 1, 5)) == "12월 30일 ~ 1월 5일 주간"


def test_build_week_href_replaces_only_week():
    href = build_week_href(
        "/api/manager/counseling/reservations",
        {"date": "2025-03-12", "week": "2025-03-10", "tag": ["a", "b"], "empty": None},
        date(2025, 3, 17),
    )
    assert href == "/api/manager/counseling/reservations?date=2025-03-12&tag=a&tag=b&week=2025-03-17"


def test_build_week_href_without_existing_params():
    assert build_week_href("/reservations", {}, "2025-03-03") == "/reservations?week=2025-03-03"


def test_build_week_href_encodes_values():
    href = build_week_href("/r", {"q": "상담 예약"}, date(2025, 3, 3))
    assert href == "/r?q=%EC%83%81%EB%8B%B4+%EC%98%88%EC%95%BD&week=2025-03-03"


def test_month_range():
    leap = get_month_range(2024, 2)
    assert (leap.start, leap.end) == ("2024-02-01", "2024-02-29")
    assert get_month_range(2023, 2).end == "2023-02-28"
    december = get_month_range(2025, 12)
    assert (december.start, december.end) == ("2025-12-01", "2025-12-31")
    assert december.end_date == date(2025, 12, 31)
    assert month_of("2025-03-12").start == "2025-03-01"


def test_calendar_cells_start_on_sunday():
    cells = build_calendar_cells(2025, 3)

    assert len(cells) == 42
    assert cells[0].date == "2025-02-23"
    assert cells[0].in_current_month is False
    assert cells[6].date == "2025-03-01"
    assert cells[6].label == 1
    assert cells[6].in_current_month is True
    assert cells[-1].date == "2025-04-05"
    assert sum(c.in_current_month for c in cells) == 31


def test_parse_iso_date_is_strict():
    assert parse_iso_date("2025-03-12") == date(2025, 3, 12)
    assert parse_iso_date("2025-02-30") is None
    assert parse_iso_date("2025-3-12") is None
    assert parse_iso_date(None) is None
