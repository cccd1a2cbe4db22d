"""
상담 슬롯 시간 규칙 및 응답 변환 헬퍼
"""

import re
from collections import OrderedDict
from datetime import date, time
from typing import Dict, Iterable, List, Tuple

from models.counseling_reservation import CounselingReservation
from models.counseling_slot import SLOT_OPEN, CounselingSlot
from schemas.counseling import ReservationResponse, SlotResponse, TimelineItem
from utils.date_util import add_minutes

COUNSELING_SLOT_INTERVAL_MINUTES = 30
COUNSELING_START_HOUR = 8
COUNSELING_END_HOUR = 12  # 이 시각은 시작 시간으로 쓸 수 없다

TIME_LABEL_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_slot_time(label: str) -> time:
    """'9:30' / '09:30' 형식의 시작 시간을 검증 후 time 으로 변환

    Raises:
        ValueError: 형식이 틀렸거나 운영 시간(08:00~11:30, 30분 단위) 밖인 경우
    """
    match = TIME_LABEL_PATTERN.match(label.strip()) if isinstance(label, str) else None
    if not match:
        raise ValueError("잘못된 시간 형식입니다.")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if (
        minutes >= 60
        or minutes % COUNSELING_SLOT_INTERVAL_MINUTES != 0
        or hours < COUNSELING_START_HOUR
        or hours >= COUNSELING_END_HOUR
    ):
        raise ValueError("허용되지 않은 시간 범위입니다.")
    return time(hours, minutes)


def build_daily_timeline() -> List[TimelineItem]:
    """하루 동안 생성 가능한 슬롯 시작 시간 목록"""
    items = []
    minutes = COUNSELING_START_HOUR * 60
    while minutes < COUNSELING_END_HOUR * 60:
        start = time(minutes // 60, minutes % 60)
        items.append(TimelineItem(label=start.strftime("%H:%M"), time=start))
        minutes += COUNSELING_SLOT_INTERVAL_MINUTES
    return items


def slot_end_time(slot: CounselingSlot) -> time:
    return add_minutes(slot.start_time, slot.duration_minutes or COUNSELING_SLOT_INTERVAL_MINUTES)


def summarize_open_by_date(slots: Iterable[CounselingSlot]) -> List[Tuple[date, int]]:
    """날짜별 남은(open) 슬롯 수. 슬롯이 있는 날짜는 0 이어도 포함"""
    summary: Dict[date, int] = OrderedDict()
    for slot in slots:
        summary.setdefault(slot.counseling_date, 0)
        if slot.status == SLOT_OPEN:
            summary[slot.counseling_date] += 1
    return list(summary.items())


def to_reservation_response(reservation: CounselingReservation) -> ReservationResponse:
    return ReservationResponse.model_validate(reservation)


def to_slot_response(slot: CounselingSlot, include_reservations: bool = True) -> SlotResponse:
    return SlotResponse(
        id=slot.id,
        counseling_date=slot.counseling_date,
        start_time=slot.start_time,
        end_time=slot_end_time(slot),
        duration_minutes=slot.duration_minutes,
        status=slot.status,
        notes=slot.notes,
        reservations=[to_reservation_response(r) for r in slot.reservations] if include_reservations else [],
    )
