"""
상담 예약 확정 로직 (슬롯 중복 예약 방지)

슬롯 상태 전이:
    open   -> booked  : 예약 신청 (조건부 업데이트로 한 번만 성공)
    open|booked -> closed : 매니저 수동 처리
    booked -> open    : 자동 전이 없음 (매니저가 예약을 취소할 때만)

상태 변경은 WHERE status='open' 조건부 UPDATE 로 하고, 영향받은 행이 정확히 1개일 때만
예약을 저장한다. 슬롯당 확정 예약은 부분 유니크 인덱스 기준 최대 1건.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date, time

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from config.exception import BadRequest, InternalError
from logs.logging_util import LoggerSingleton
from models.counseling_reservation import RESERVATION_CONFIRMED, CounselingReservation
from models.counseling_slot import SLOT_BOOKED, SLOT_OPEN, CounselingSlot
from schemas.counseling import ReservationCreate

logger = LoggerSingleton.get_logger(logger_name="counseling", level=logging.INFO)

MSG_SLOT_NOT_FOUND = "예약 가능한 시간이 없습니다."
MSG_SLOT_NOT_OPEN = "이미 예약이 완료되었거나 닫힌 시간입니다."
MSG_ALREADY_RESERVED = "이미 예약이 확정된 시간입니다."


@dataclass(frozen=True)
class BookingResult:
    """커밋된 예약 정보 (세션이 닫힌 뒤에도 쓸 수 있도록 값만 보관)"""
    reservation_id: uuid.UUID
    slot_id: uuid.UUID
    student_name: str
    contact_phone: str
    counseling_date: date
    start_time: time


def find_confirmed_reservation(db: Session, slot_id: uuid.UUID):
    return (
        db.query(CounselingReservation.id)
        .filter(
            CounselingReservation.slot_id == slot_id,
            CounselingReservation.status == RESERVATION_CONFIRMED,
        )
        .first()
    )


def claim_slot(db: Session, slot_id: uuid.UUID) -> bool:
    """open 상태인 슬롯을 booked 로 바꾼다. 이 호출이 바꾼 경우에만 True

    커밋하지 않는다. 호출한 쪽 트랜잭션 안에서 예약 저장과 함께 커밋되어야 한다.
    """
    result = db.execute(
        update(CounselingSlot)
        .where(CounselingSlot.id == slot_id, CounselingSlot.status == SLOT_OPEN)
        .values(status=SLOT_BOOKED)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def reserve_slot(db: Session, data: ReservationCreate) -> BookingResult:
    """공개 예약 신청을 처리한다.

    Raises:
        AppException: 가용성 충돌은 400, 저장소 오류는 500 (원본 오류는 응답에 노출하지 않음)
    """
    slot_id = data.slot_id

    try:
        slot = db.get(CounselingSlot, slot_id)
    except SQLAlchemyError:
        logger.exception(f"Slot lookup failed: slot_id={slot_id}")
        raise InternalError("상담 시간을 확인하지 못했습니다.", code="SLOT_LOOKUP_FAILED")

    if slot is None:
        raise BadRequest(MSG_SLOT_NOT_FOUND, code="SLOT_NOT_FOUND")

    if slot.status != SLOT_OPEN:
        raise BadRequest(MSG_SLOT_NOT_OPEN, code="SLOT_NOT_OPEN")

    # 슬롯 상태와 예약 테이블이 어긋난 경우(이전 부분 실패 등) 대비
    try:
        existing = find_confirmed_reservation(db, slot_id)
    except SQLAlchemyError:
        logger.exception(f"Reservation check failed: slot_id={slot_id}")
        raise InternalError("예약 가능 여부를 확인하지 못했습니다.", code="RESERVATION_CHECK_FAILED")

    if existing is not None:
        logger.warning(f"Slot is open but already has a confirmed reservation: slot_id={slot_id}")
        raise BadRequest(MSG_ALREADY_RESERVED, code="SLOT_ALREADY_RESERVED")

    counseling_date, start_time = slot.counseling_date, slot.start_time

    try:
        if not claim_slot(db, slot_id):
            db.rollback()
            logger.warning(f"Slot was booked by a concurrent request: slot_id={slot_id}")
            raise BadRequest(MSG_SLOT_NOT_OPEN, code="SLOT_NOT_OPEN")

        reservation = CounselingReservation(
            slot_id=slot_id,
            student_name=data.student_name,
            contact_phone=data.contact_phone,
            academic_record=data.academic_record,
            target_university=data.target_university,
            question=data.question,
            additional_answers=data.additional_answers,
            status=RESERVATION_CONFIRMED,
        )
        db.add(reservation)
        db.flush()
        reservation_id = reservation.id
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(f"Confirmed reservation already exists (unique index): slot_id={slot_id}")
        raise BadRequest(MSG_ALREADY_RESERVED, code="SLOT_ALREADY_RESERVED")
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Reservation insert failed: slot_id={slot_id}")
        raise InternalError("예약 신청을 저장하지 못했습니다.", code="RESERVATION_SAVE_FAILED")

    logger.info(f"Reservation confirmed: id={reservation_id}, slot_id={slot_id}")
    return BookingResult(
        reservation_id=reservation_id,
        slot_id=slot_id,
        student_name=data.student_name,
        contact_phone=data.contact_phone,
        counseling_date=counseling_date,
        start_time=start_time,
    )
