"""
공개 상담 예약 API 라우터
"""

from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from config.clients import SolapiClient
from config.dependencies import get_clock, get_sms_client, get_sms_retry_policy
from config.exception import InternalError
from counseling.booking import reserve_slot
from counseling.notifications import send_reservation_confirmation
from counseling.slots import summarize_open_by_date
from database import get_db
from logs.logging_util import LoggerSingleton
from models.counseling_question import CounselingQuestion
from models.counseling_slot import SLOT_BOOKED, SLOT_OPEN, CounselingSlot
from schemas.counseling import (
    AvailabilityResponse,
    CalendarCellResponse,
    MonthSummaryItem,
    PublicSlot,
    QuestionResponse,
    ReservationCreate,
    ReservationCreatedResponse,
)
from utils.date_util import Clock
from utils.week_range import build_calendar_cells, get_month_range, parse_iso_date
import logging

logger = LoggerSingleton.get_logger(logger_name="counseling", level=logging.INFO)

router = APIRouter(prefix="/api/counseling", tags=["Counseling"])


@router.get("/availability", response_model=AvailabilityResponse)
def get_availability(
    date: Optional[str] = None,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """공개 예약 화면: 월별 남은 슬롯 수 + 선택 날짜의 슬롯 + 추가 질문"""
    today = clock.today_kst()
    requested = parse_iso_date(date)
    # 형식이 틀리거나 지난 날짜는 오늘로
    selected = requested if requested is not None and requested >= today else today
    month = get_month_range(selected.year, selected.month)

    try:
        slots = (
            db.query(CounselingSlot)
            .filter(
                CounselingSlot.status.in_([SLOT_OPEN, SLOT_BOOKED]),
                CounselingSlot.counseling_date >= month.start_date,
                CounselingSlot.counseling_date <= month.end_date,
            )
            .order_by(CounselingSlot.counseling_date, CounselingSlot.start_time)
            .all()
        )
        questions = (
            db.query(CounselingQuestion)
            .filter(CounselingQuestion.is_active.is_(True))
            .order_by(CounselingQuestion.position, CounselingQuestion.created_at)
            .all()
        )
    except SQLAlchemyError:
        logger.exception(f"Public availability fetch failed: date={selected}")
        raise InternalError("상담 가능 시간을 불러오지 못했습니다.", code="AVAILABILITY_FETCH_FAILED")

    return AvailabilityResponse(
        today=today,
        selected_date=selected,
        month_start=month.start_date,
        month_end=month.end_date,
        month_summary=[MonthSummaryItem(date=d, open=count) for d, count in summarize_open_by_date(slots)],
        day_slots=[PublicSlot.model_validate(s) for s in slots if s.counseling_date == selected],
        calendar=[CalendarCellResponse.model_validate(c) for c in build_calendar_cells(selected.year, selected.month)],
        questions=[QuestionResponse.model_validate(q) for q in questions],
    )


@router.post("/reservations", response_model=ReservationCreatedResponse)
def create_reservation(
    data: ReservationCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    sms_client: SolapiClient = Depends(get_sms_client),
    retry_policy: tuple[int, float] = Depends(get_sms_retry_policy),
):
    """상담 예약 신청 (공개)"""
    logger.info(f"Reservation requested: slot_id={data.slot_id}")

    booking = reserve_slot(db, data)

    # 커밋 이후에만 문자 발송 예약
    max_attempts, backoff_seconds = retry_policy
    background_tasks.add_task(
        send_reservation_confirmation,
        sms_client,
        booking,
        max_attempts=max_attempts,
        backoff_seconds=backoff_seconds,
    )
    return ReservationCreatedResponse()
