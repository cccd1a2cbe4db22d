"""
중앙 시간 유틸

서버/클라이언트 모두 UTC 기준으로 계산하고, 화면에 보여줄 문자열만 Asia/Seoul 로 변환한다.
"현재 시각"은 요청마다 생성되는 Clock 객체에서만 얻는다. 모듈 전역 상태를 두지 않으므로
요청 사이에 시계 상태가 새어나가지 않는다.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Optional, Union
from zoneinfo import ZoneInfo
import time as _time

KST = ZoneInfo("Asia/Seoul")

SERVER_CONTEXT = "server"
CLIENT_CONTEXT = "client"

KOREAN_WEEKDAYS = ("월", "화", "수", "목", "금", "토", "일")

DateLike = Union[str, int, float, datetime, date]


def _system_wall_clock_ms() -> int:
    return _time.time_ns() // 1_000_000


def _parse_instant(value) -> Optional[datetime]:
    """입력값을 UTC aware datetime 으로 변환. 해석할 수 없으면 None"""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)

    # bool 은 int 의 하위 타입이므로 제외
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return _parse_instant(datetime.fromisoformat(text))
        except ValueError:
            return None

    return None


def _to_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def _from_ms(value_ms: int) -> datetime:
    return datetime.fromtimestamp(value_ms / 1000, tz=timezone.utc)


@dataclass(frozen=True)
class ServerClock:
    base_time_ms: int
    captured_at_ms: int


@dataclass(frozen=True)
class ClientOffset:
    offset_ms: int


class Clock:
    """요청/페이지 단위의 "현재 시각" 컨텍스트

    - server 컨텍스트: init_server_clock 으로 기준 시각을 잡고, 이후 경과 시간만 더한다.
    - client 컨텍스트: 서버가 내려준 시각과 로컬 시계의 차이(offset)를 더한다.
    - 둘 다 없으면 로컬 시각을 그대로 사용한다.

    입력값을 해석하지 못해도 예외를 던지지 않고 실제 현재 시각으로 대체한다.
    """

    def __init__(
        self,
        context: str = SERVER_CONTEXT,
        wall_clock_ms: Callable[[], int] = _system_wall_clock_ms,
    ) -> None:
        self.context = context
        self._wall_clock_ms = wall_clock_ms
        self._server_clock: Optional[ServerClock] = None
        self._client_offset: Optional[ClientOffset] = None

    def init_server_clock(self, reference: Optional[DateLike] = None) -> None:
        captured_at = self._wall_clock_ms()
        parsed = _parse_instant(reference) if reference is not None else None
        base = _to_ms(parsed) if parsed is not None else captured_at
        self._server_clock = ServerClock(base_time_ms=base, captured_at_ms=captured_at)

    def init_client_clock(self, server_reference: DateLike) -> None:
        local_now = self._wall_clock_ms()
        parsed = _parse_instant(server_reference)
        server_ms = _to_ms(parsed) if parsed is not None else local_now
        self._client_offset = ClientOffset(offset_ms=server_ms - local_now)

    def clear_server_clock(self) -> None:
        self._server_clock = None

    def clear_client_clock(self) -> None:
        self._client_offset = None

    @property
    def client_offset_ms(self) -> int:
        return self._client_offset.offset_ms if self._client_offset else 0

    def now(self) -> datetime:
        local_now = self._wall_clock_ms()

        if self.context == CLIENT_CONTEXT and self._client_offset is not None:
            return _from_ms(local_now + self._client_offset.offset_ms)

        if self._server_clock is not None:
            elapsed = local_now - self._server_clock.captured_at_ms
            return _from_ms(self._server_clock.base_time_ms + elapsed)

        return _from_ms(local_now)

    def today_kst(self) -> date:
        return self.now().astimezone(KST).date()

    def __repr__(self):
        return f"<Clock(context={self.context}, server={self._server_clock}, client={self._client_offset})>"


def to_utc_datetime(value: Optional[DateLike]) -> datetime:
    """해석 가능한 값은 UTC datetime 으로, 그렇지 않으면 현재 시각"""
    parsed = _parse_instant(value)
    return parsed if parsed is not None else datetime.now(timezone.utc)


def to_utc_date(value: Optional[DateLike]) -> date:
    """UTC 기준 달력 날짜 (시각 제거)"""
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    return to_utc_datetime(value).date()


def format_iso_date(value: DateLike) -> str:
    return to_utc_date(value).isoformat()


def add_days(value: DateLike, days: int) -> date:
    return to_utc_date(value) + timedelta(days=days)


def add_minutes(value: time, minutes: int) -> time:
    """시각에 분을 더한다 (자정을 넘기면 다음 날 시각으로 순환)"""
    total = value.hour * 60 + value.minute + minutes
    return time((total // 60) % 24, total % 60)


def js_weekday(value: date) -> int:
    """0=일요일 ... 6=토요일"""
    return (value.weekday() + 1) % 7


def start_of_week(value: DateLike, week_starts_on: int = 1) -> date:
    day = to_utc_date(value)
    diff = (js_weekday(day) - week_starts_on + 7) % 7
    return day - timedelta(days=diff)


def end_of_week(value: DateLike, week_starts_on: int = 1) -> date:
    return start_of_week(value, week_starts_on) + timedelta(days=6)


def format_kst_datetime_label(counseling_date: date, start_time: time) -> str:
    """예: 2025. 03. 10. (월) 14:00 (Asia/Seoul 기준, 프로세스 로케일과 무관)"""
    local = datetime.combine(counseling_date, start_time, tzinfo=KST)
    weekday = KOREAN_WEEKDAYS[local.weekday()]
    return f"{local.year}. {local.month:02d}. {local.day:02d}. ({weekday}) {local.hour:02d}:{local.minute:02d}"


def format_month_label(value: DateLike) -> str:
    return f"{to_utc_datetime(value).astimezone(KST).month}월"


def format_day_label(value: DateLike) -> str:
    return f"{to_utc_datetime(value).astimezone(KST).day}일"
