"""
주간/월간 범위 계산 유틸

모든 계산은 UTC 달력 날짜(시각 제거) 단위로 한다.
"""

import calendar
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Mapping, Optional, Sequence, Union
from urllib.parse import urlencode

from utils.date_util import (
    Clock,
    DateLike,
    add_days,
    end_of_week,
    format_day_label,
    format_iso_date,
    format_month_label,
    start_of_week,
    to_utc_date,
)

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# 0=일요일 기준, 1=월요일
DEFAULT_WEEK_STARTS_ON = 1
CALENDAR_CELL_COUNT = 42

QueryValue = Union[str, Sequence[str], None]


@dataclass(frozen=True)
class WeekRange:
    start: date
    end: date
    end_exclusive: date
    previous_start: date
    next_start: date
    label: str
    param: str


@dataclass(frozen=True)
class MonthRange:
    start: str
    end: str

    @property
    def start_date(self) -> date:
        return date.fromisoformat(self.start)

    @property
    def end_date(self) -> date:
        return date.fromisoformat(self.end)


@dataclass(frozen=True)
class CalendarCell:
    date: str
    label: int
    in_current_month: bool


def parse_iso_date(value) -> Optional[date]:
    """엄격한 YYYY-MM-DD 문자열만 날짜로 인정한다"""
    if not isinstance(value, str) or not ISO_DATE_PATTERN.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        # 2025-02-30 처럼 형식만 맞는 값
        return None


def format_week_label(start: date, end: date) -> str:
    start_month = format_month_label(start)
    end_month = format_month_label(end)
    start_day = format_day_label(start)
    end_day = format_day_label(end)
    if start.year == end.year and start.month == end.month:
        return f"{start_month} {start_day.replace('일', '')} ~ {end_day} 주간"
    return f"{start_month} {start_day} ~ {end_month} {end_day} 주간"


def resolve_week_range(
    week_param: QueryValue = None,
    clock: Optional[Clock] = None,
    week_starts_on: int = DEFAULT_WEEK_STARTS_ON,
) -> WeekRange:
    """쿼리 파라미터(신뢰할 수 없음)로부터 주간 범위를 계산

    형식이 잘못된 값은 없는 것으로 보고 clock 의 현재 날짜를 기준으로 삼는다.
    """
    requested = parse_iso_date(week_param)
    if requested is not None:
        reference = requested
    else:
        reference = to_utc_date((clock or Clock()).now())

    start = start_of_week(reference, week_starts_on)
    end = end_of_week(start, week_starts_on)
    next_start = add_days(start, 7)
    return WeekRange(
        start=start,
        end=end,
        end_exclusive=next_start,
        previous_start=add_days(start, -7),
        next_start=next_start,
        label=format_week_label(start, end),
        param=format_iso_date(start),
    )


def build_week_href(
    base_path: str,
    existing_params: Mapping[str, QueryValue],
    target_week_start: DateLike,
) -> str:
    """기존 쿼리를 유지하면서 week 만 교체한 이동 링크"""
    pairs = []
    for key, value in existing_params.items():
        if key == "week":
            continue
        if isinstance(value, str):
            pairs.append((key, value))
        elif isinstance(value, (list, tuple)):
            pairs.extend((key, item) for item in value if isinstance(item, str))
    pairs.append(("week", format_iso_date(target_week_start)))
    return f"{base_path}?{urlencode(pairs)}"


def get_month_range(year: int, month: int) -> MonthRange:
    _, last_day = calendar.monthrange(year, month)
    return MonthRange(
        start=date(year, month, 1).isoformat(),
        end=date(year, month, last_day).isoformat(),
    )


def build_calendar_cells(year: int, month: int) -> List[CalendarCell]:
    """일요일부터 시작하는 6주(42칸) 달력"""
    first_day = date(year, month, 1)
    grid_start = start_of_week(first_day, week_starts_on=0)
    cells = []
    for index in range(CALENDAR_CELL_COUNT):
        cell_date = grid_start + timedelta(days=index)
        cells.append(
            CalendarCell(
                date=cell_date.isoformat(),
                label=cell_date.day,
                in_current_month=cell_date.month == month,
            )
        )
    return cells


def month_of(value: DateLike) -> MonthRange:
    day = to_utc_date(value)
    return get_month_range(day.year, day.month)
