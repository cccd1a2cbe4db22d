"""
상담 관리(매니저/원장) API 라우터
"""

import uuid
from typing import Optional
from fastapi import APIRouter, Depends, Request
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload
from auth.dependencies import require_manager
from config.dependencies import get_clock
from config.exception import Conflict, InternalError, NotFound, ValidationFailed
from counseling.booking import find_confirmed_reservation
from counseling.slots import (
    COUNSELING_SLOT_INTERVAL_MINUTES,
    build_daily_timeline,
    parse_slot_time,
    to_slot_response,
)
from database import get_db
from logs.logging_util import LoggerSingleton
from models.counseling_question import CounselingQuestion
from models.counseling_reservation import RESERVATION_CANCELLED, CounselingReservation
from models.counseling_slot import SLOT_BOOKED, SLOT_OPEN, CounselingSlot
from models.user import User
from schemas.counseling import (
    ActionResult,
    ManagerReservationListResponse,
    ManagerSlotListResponse,
    QuestionCreate,
    QuestionListResponse,
    QuestionMove,
    QuestionResponse,
    QuestionUpdate,
    ReservationMemoUpdate,
    ReservationStatusUpdate,
    SlotCreate,
    SlotCreateResponse,
    SlotDuplicate,
    SlotNotesUpdate,
    SlotStatusUpdate,
    WeekRangeResponse,
)
from utils.date_util import Clock
from utils.week_range import build_week_href, month_of, parse_iso_date, resolve_week_range
import logging

logger = LoggerSingleton.get_logger(logger_name="counseling_manager", level=logging.INFO)

router = APIRouter(prefix="/api/manager/counseling", tags=["Counseling Manager"])

QUESTION_POSITION_STEP = 10


def _get_slot_or_404(db: Session, slot_id: uuid.UUID) -> CounselingSlot:
    slot = db.get(CounselingSlot, slot_id)
    if not slot:
        raise NotFound("슬롯을 찾을 수 없습니다.", code="SLOT_NOT_FOUND")
    return slot


def _get_question_or_404(db: Session, question_id: uuid.UUID) -> CounselingQuestion:
    question = db.get(CounselingQuestion, question_id)
    if not question:
        raise NotFound("질문을 찾을 수 없습니다.", code="QUESTION_NOT_FOUND")
    return question


def _commit(db: Session, *, failure_message: str, conflict_message: Optional[str] = None) -> None:
    """커밋 실패를 사용자 메시지로 변환 (원본 오류는 로그에만)"""
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        if conflict_message is None:
            logger.exception(failure_message)
            raise InternalError(failure_message)
        logger.warning(f"Integrity conflict: {conflict_message}")
        raise Conflict(conflict_message)
    except SQLAlchemyError:
        db.rollback()
        logger.exception(failure_message)
        raise InternalError(failure_message)


def _query_slots_between(db: Session, start, end):
    return (
        db.query(CounselingSlot)
        .options(selectinload(CounselingSlot.reservations))
        .filter(CounselingSlot.counseling_date >= start, CounselingSlot.counseling_date <= end)
        .order_by(CounselingSlot.counseling_date, CounselingSlot.start_time)
        .all()
    )


##### 슬롯 #####

@router.get("/slots", response_model=ManagerSlotListResponse)
def list_slots(
    date: Optional[str] = None,
    manager: User = Depends(require_manager),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """선택 날짜가 속한 달의 슬롯 + 예약 목록"""
    selected = parse_iso_date(date) or clock.today_kst()
    month = month_of(selected)

    logger.info(f"Fetching slots: month={month.start}~{month.end}, manager_id={manager.id}")
    slots = _query_slots_between(db, month.start_date, month.end_date)

    return ManagerSlotListResponse(
        selected_date=selected,
        month_start=month.start_date,
        month_end=month.end_date,
        timeline=build_daily_timeline(),
        total=len(slots),
        slots=[to_slot_response(s) for s in slots],
    )


@router.post("/slots", response_model=SlotCreateResponse)
def create_slots(
    data: SlotCreate,
    manager: User = Depends(require_manager),
    db: Session = Depends(get_db),
):
    """예약 가능 시간 등록 (이미 있는 시간은 건너뜀)"""
    try:
        start_times = sorted({parse_slot_time(label) for label in data.times})
    except ValueError as e:
        raise ValidationFailed(str(e), code="INVALID_SLOT_TIME")

    existing = {
        row.start_time
        for row in db.query(CounselingSlot.start_time).filter(
            CounselingSlot.counseling_date == data.counseling_date
        )
    }
    new_times = [t for t in start_times if t not in existing]

    for start_time in new_times:
        db.add(
            CounselingSlot(
                counseling_date=data.counseling_date,
                start_time=start_time,
                duration_minutes=COUNSELING_SLOT_INTERVAL_MINUTES,
                status=SLOT_OPEN,
                notes=data.notes,
                created_by=manager.id,
                updated_by=manager.id,
            )
        )
    _commit(
        db,
        failure_message="예약 가능 시간을 저장하지 못했습니다.",
        conflict_message="다른 요청에서 같은 시간이 먼저 등록되었습니다. 다시 시도해주세요.",
    )

    logger.info(f"Slots created: date={data.counseling_date}, created={len(new_times)}, manager_id={manager.id}")
    return SlotCreateResponse(created=len(new_times), skipped=len(start_times) - len(new_times))


@router.patch("/slots/{slot_id}/status", response_model=ActionResult)
def update_slot_status(
    slot_id: uuid.UUID,
    data: SlotStatusUpdate,
    manager: User = Depends(require_manager),
    db: Session = Depends(get_db),
):
    """슬롯 상태 수동 변경. closed 는 무조건 허용"""
    slot = _get_slot_or_404(db, slot_id)
    confirmed = find_confirmed_reservation(db, slot.id)

    if data.status == SLOT_OPEN and confirmed:
        raise Conflict("이미 예약된 시간입니다. 상담 예약을 취소한 뒤 다시 열어주세요.", code="SLOT_HAS_RESERVATION")
    if data.status == SLOT_BOOKED and not confirmed:
        raise Conflict("확정된 예약이 없는 시간은 예약 완료로 바꿀 수 없습니다.", code="SLOT_WITHOUT_RESERVATION")

    slot.status = data.status
    slot.updated_by = manager.id
    _commit(db, failure_message="슬롯 상태를 변경하지 못했습니다.")

    logger.info(f"Slot status updated: id={slot_id}, status={data.status}, manager_id={manager.id}")
    return ActionResult()


@router.patch("/slots/{slot_id}/notes", response_model=ActionResult)
def update_slot_notes(
    slot_id: uuid.UUID,
    data: SlotNotesUpdate,
    manager: User = Depends(require_manager),
    db: Session = Depends(get_db),
):
    slot = _get_slot_or_404(db, slot_id)
    slot.notes = data.notes
    slot.updated_by = manager.id
    _commit(db, failure_message="메모를 저장하지 못했습니다.")
    return ActionResult()


@router.post("/slots/{slot_id}/duplicate", response_model=SlotCreateResponse)
def duplicate_slot(
    slot_id: uuid.UUID,
    data: SlotDuplicate,
    manager: User = Depends(require_manager),
    db: Session = Depends(get_db),
):
    """같은 시간의 슬롯을 다른 날짜에 open 으로 복제"""
    source = db.get(CounselingSlot, slot_id)
    if not source:
        raise NotFound("원본 슬롯을 찾을 수 없습니다.", code="SLOT_NOT_FOUND")

    exists = (
        db.query(CounselingSlot.id)
        .filter(
            CounselingSlot.counseling_date == data.target_date,
            CounselingSlot.start_time == source.start_time,
        )
        .first()
    )
    if exists:
        return SlotCreateResponse(created=0, skipped=1)

    db.add(
        CounselingSlot(
            counseling_date=data.target_date,
            start_time=source.start_time,
            duration_minutes=source.duration_minutes or COUNSELING_SLOT_INTERVAL_MINUTES,
            status=SLOT_OPEN,
            notes=source.notes,
            created_by=manager.id,
            updated_by=manager.id,
        )
    )
    _commit(
        db,
        failure_message="슬롯을 복제하지 못했습니다.",
        conflict_message="다른 요청에서 같은 시간이 먼저 등록되었습니다. 다시 시도해주세요.",
    )

    logger.info(f"Slot duplicated: source={slot_id}, target_date={data.target_date}, manager_id={manager.id}")
    return SlotCreateResponse(created=1, skipped=0)


@router.delete("/slots/{slot_id}", response_model=ActionResult)
def delete_slot(
    slot_id: uuid.UUID,
    manager: User = Depends(require_manager),
    db: Session = Depends(get_db),
):
    slot = _get_slot_or_404(db, slot_id)
    if find_confirmed_reservation(db, slot.id):
        raise Conflict("확정된 예약이 있는 시간은 삭제할 수 없습니다.", code="SLOT_HAS_RESERVATION")

    db.delete(slot)
    _commit(db, failure_message="슬롯을 삭제하지 못했습니다.")

    logger.info(f"Slot deleted: id={slot_id}, manager_id={manager.id}")
    return ActionResult()


##### 예약 #####

@router.get("/reservations", response_model=ManagerReservationListResponse)
def list_reservations(
    request: Request,
    date: Optional[str] = None,
    view: Optional[str] = None,
    week: Optional[str] = None,
    manager: User = Depends(require_manager),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """일/주 단위 예약 현황 (날짜, 시작 시간 순)"""
    selected = parse_iso_date(date) or clock.today_kst()
    view = view if view in ("day", "week") else "week"
    week_range = resolve_week_range(week if parse_iso_date(week) else selected.isoformat(), clock)

    if view == "day":
        range_start, range_end = selected, selected
    else:
        range_start, range_end = week_range.start, week_range.end

    logger.info(f"Fetching reservations: {range_start}~{range_end}, view={view}, manager_id={manager.id}")
    slots = _query_slots_between(db, range_start, range_end)
    # 예약이 한 번도 없었던 슬롯은 제외
    slots = [s for s in slots if s.reservations]

    params = {}
    for key, value in request.query_params.multi_items():
        params.setdefault(key, []).append(value)

    return ManagerReservationListResponse(
        selected_date=selected,
        view=view,
        range_start=range_start,
        range_end=range_end,
        week=WeekRangeResponse.model_validate(week_range),
        previous_week_href=build_week_href(request.url.path, params, week_range.previous_start),
        next_week_href=build_week_href(request.url.path, params, week_range.next_start),
        total=sum(len(s.reservations) for s in slots),
        slots=[to_slot_response(s) for s in slots],
    )


@router.patch("/reservations/{reservation_id}/status", response_model=ActionResult)
def update_reservation_status(
    reservation_id: uuid.UUID,
    data: ReservationStatusUpdate,
    manager: User = Depends(require_manager),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """예약 상태 변경. 취소하면 슬롯을 다시 열고, 확정/완료면 슬롯을 예약 완료로"""
    reservation = db.get(CounselingReservation, reservation_id)
    if not reservation:
        raise NotFound("존재하지 않는 예약입니다.", code="RESERVATION_NOT_FOUND")

    slot = reservation.slot
    reservation.status = data.status
    reservation.managed_by = manager.id
    reservation.managed_at = clock.now()

    if data.status == RESERVATION_CANCELLED:
        # 닫힌 슬롯은 닫힌 채로 둔다
        if slot.status == SLOT_BOOKED:
            slot.status = SLOT_OPEN
    else:
        slot.status = SLOT_BOOKED
    slot.updated_by = manager.id

    _commit(
        db,
        failure_message="예약 상태를 업데이트하지 못했습니다.",
        conflict_message="이미 다른 예약이 확정된 시간입니다.",
    )

    logger.info(f"Reservation status updated: id={reservation_id}, status={data.status}, manager_id={manager.id}")
    return ActionResult()


@router.patch("/reservations/{reservation_id}/memo", response_model=ActionResult)
def update_reservation_memo(
    reservation_id: uuid.UUID,
    data: ReservationMemoUpdate,
    manager: User = Depends(require_manager),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    reservation = db.get(CounselingReservation, reservation_id)
    if not reservation:
        raise NotFound("존재하지 않는 예약입니다.", code="RESERVATION_NOT_FOUND")

    reservation.memo = data.memo
    reservation.managed_by = manager.id
    reservation.managed_at = clock.now()
    _commit(db, failure_message="메모를 저장하지 못했습니다.")
    return ActionResult()


##### 추가 질문 #####

@router.get("/questions", response_model=QuestionListResponse)
def list_questions(
    manager: User = Depends(require_manager),
    db: Session = Depends(get_db),
):
    questions = (
        db.query(CounselingQuestion)
        .order_by(CounselingQuestion.position, CounselingQuestion.created_at)
        .all()
    )
    return QuestionListResponse(
        total=len(questions),
        questions=[QuestionResponse.model_validate(q) for q in questions],
    )


@router.post("/questions", response_model=QuestionResponse)
def create_question(
    data: QuestionCreate,
    manager: User = Depends(require_manager),
    db: Session = Depends(get_db),
):
    """질문 추가 (맨 뒤에 배치)"""
    last_position = db.query(func.max(CounselingQuestion.position)).scalar() or 0

    question = CounselingQuestion(
        field_key=f"question_{uuid.uuid4().hex[:10]}",
        prompt=data.prompt,
        field_type=data.field_type,
        is_required=data.is_required,
        position=last_position + QUESTION_POSITION_STEP,
        created_by=manager.id,
        updated_by=manager.id,
    )
    db.add(question)
    _commit(db, failure_message="질문을 추가하지 못했습니다.")
    db.refresh(question)

    logger.info(f"Question created: id={question.id}, manager_id={manager.id}")
    return QuestionResponse.model_validate(question)


@router.patch("/questions/{question_id}", response_model=QuestionResponse)
def update_question(
    question_id: uuid.UUID,
    data: QuestionUpdate,
    manager: User = Depends(require_manager),
    db: Session = Depends(get_db),
):
    question = _get_question_or_404(db, question_id)
    question.prompt = data.prompt
    question.field_type = data.field_type
    question.is_required = data.is_required
    question.is_active = data.is_active
    question.updated_by = manager.id
    _commit(db, failure_message="질문을 수정하지 못했습니다.")
    db.refresh(question)
    return QuestionResponse.model_validate(question)


@router.delete("/questions/{question_id}", response_model=ActionResult)
def delete_question(
    question_id: uuid.UUID,
    manager: User = Depends(require_manager),
    db: Session = Depends(get_db),
):
    question = _get_question_or_404(db, question_id)
    db.delete(question)
    _commit(db, failure_message="질문을 삭제하지 못했습니다.")

    logger.info(f"Question deleted: id={question_id}, manager_id={manager.id}")
    return ActionResult()


@router.post("/questions/{question_id}/move", response_model=ActionResult)
def move_question(
    question_id: uuid.UUID,
    data: QuestionMove,
    manager: User = Depends(require_manager),
    db: Session = Depends(get_db),
):
    """바로 위/아래 질문과 순서를 맞바꾼다"""
    questions = (
        db.query(CounselingQuestion)
        .order_by(CounselingQuestion.position, CounselingQuestion.created_at)
        .all()
    )
    index = next((i for i, q in enumerate(questions) if q.id == question_id), None)
    if index is None:
        raise NotFound("질문을 찾을 수 없습니다.", code="QUESTION_NOT_FOUND")

    target_index = index - 1 if data.direction == "up" else index + 1
    if target_index < 0 or target_index >= len(questions):
        raise ValidationFailed("더 이상 이동할 수 없습니다.", code="QUESTION_MOVE_OUT_OF_RANGE")

    current, target = questions[index], questions[target_index]
    current.position, target.position = target.position, current.position
    current.updated_by = target.updated_by = manager.id
    _commit(db, failure_message="질문 순서를 변경하지 못했습니다.")
    return ActionResult()
