from datetime import date, datetime, time, timezone

from utils.date_util import (
    CLIENT_CONTEXT,
    Clock,
    add_days,
    add_minutes,
    end_of_week,
    format_iso_date,
    format_kst_datetime_label,
    js_weekday,
    start_of_week,
    to_utc_date,
    to_utc_datetime,
)


class ManualWallClock:
    def __init__(self, value: datetime):
        self.ms = int(value.timestamp() * 1000)

    def __call__(self) -> int:
        return self.ms


WALL_NOW = datetime(2025, 3, 12, 3, 0, tzinfo=timezone.utc)


def test_clock_without_initialization_returns_wall_clock():
    clock = Clock(wall_clock_ms=ManualWallClock(WALL_NOW))
    assert clock.now() == WALL_NOW


def test_server_clock_adds_elapsed_time_to_reference():
    wall = ManualWallClock(WALL_NOW)
    clock = Clock(wall_clock_ms=wall)
    clock.init_server_clock("2025-01-01T00:00:00Z")

    wall.ms += 1500

    assert clock.now() == datetime(2025, 1, 1, 0, 0, 1, 500000, tzinfo=timezone.utc)


def test_server_clock_ignores_unparseable_reference():
    clock = Clock(wall_clock_ms=ManualWallClock(WALL_NOW))
    clock.init_server_clock("not-a-date")
    assert clock.now() == WALL_NOW


def test_clear_server_clock_falls_back_to_wall_clock():
    clock = Clock(wall_clock_ms=ManualWallClock(WALL_NOW))
    clock.init_server_clock("2025-01-01T00:00:00Z")
    clock.clear_server_clock()
    assert clock.now() == WALL_NOW


def test_client_clock_applies_offset():
    wall = ManualWallClock(WALL_NOW)
    clock = Clock(context=CLIENT_CONTEXT, wall_clock_ms=wall)
    clock.init_client_clock("2025-03-12T03:01:00Z")

    assert clock.client_offset_ms == 60_000
    wall.ms += 2000
    assert clock.now() == datetime(2025, 3, 12, 3, 1, 2, tzinfo=timezone.utc)

    clock.clear_client_clock()
    assert clock.client_offset_ms == 0


def test_client_offset_is_not_used_in_server_context():
    clock = Clock(wall_clock_ms=ManualWallClock(WALL_NOW))
    clock.init_client_clock("2030-01-01T00:00:00Z")
    assert clock.now() == WALL_NOW


def test_clocks_do_not_share_state():
    first = Clock(wall_clock_ms=ManualWallClock(WALL_NOW))
    second = Clock(wall_clock_ms=ManualWallClock(WALL_NOW))
    first.init_server_clock("2020-01-01T00:00:00Z")
    assert second.now() == WALL_NOW


def test_today_kst_crosses_midnight_before_utc():
    # UTC 3/11 15:30 == KST 3/12 00:30
    clock = Clock(wall_clock_ms=ManualWallClock(datetime(2025, 3, 11, 15, 30, tzinfo=timezone.utc)))
    assert clock.today_kst() == date(2025, 3, 12)


def test_to_utc_datetime_parses_various_inputs():
    assert to_utc_datetime(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)
    assert to_utc_datetime("2025-03-10T09:00:00+09:00") == datetime(2025, 3, 10, 0, 0, tzinfo=timezone.utc)
    assert to_utc_datetime(datetime(2025, 3, 10, 9, 0)) == datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


def test_to_utc_date_uses_utc_calendar_day():
    assert to_utc_date("2025-03-10T23:30:00-09:00") == date(2025, 3, 11)
    assert to_utc_date(date(2025, 3, 10)) == date(2025, 3, 10)
    assert format_iso_date("2025-03-10T10:00:00Z") == "2025-03-10"


def test_add_days_and_add_minutes():
    assert add_days("2025-02-28", 1) == date(2025, 3, 1)
    assert add_minutes(time(9, 30), 30) == time(10, 0)
    assert add_minutes(time(23, 45), 30) == time(0, 15)


def test_week_boundaries():
    sunday = date(2025, 3, 16)
    assert js_weekday(sunday) == 0
    assert start_of_week(sunday) == date(2025, 3, 10)
    assert end_of_week(sunday) == date(2025, 3, 16)
    assert start_of_week(sunday, week_starts_on=0) == date(2025, 3, 16)


def test_format_kst_datetime_label():
    assert format_kst_datetime_label(date(2025, 3, 10), time(14, 0)) == "2025. 03. 10. (월) 14:00"
    assert format_kst_datetime_label(date(2025, 3, 16), time(8, 30)) == "2025. 03. 16. (일) 08:30"
