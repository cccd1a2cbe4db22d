"""
상담 예약 확인 문자 발송

예약 커밋 이후 BackgroundTasks 로 실행된다. 자체 재시도(지수 백오프)를 가지며
실패해도 로그만 남기고 예약 결과에는 영향을 주지 않는다.
"""

import asyncio
import logging
import os
from typing import Optional

from config.clients import SmsSendError, SolapiClient
from counseling.booking import BookingResult
from logs.logging_util import LoggerSingleton
from utils.date_util import format_kst_datetime_label
from utils.phone import normalize_dialable_number

logger = LoggerSingleton.get_logger(logger_name="notification", level=logging.INFO)


def build_confirmation_message(booking: BookingResult) -> str:
    academy_name = os.getenv("ACADEMY_NAME", "학원")
    location_line = os.getenv("COUNSELING_LOCATION_LINE")
    display_name = booking.student_name.strip() or "예약자"

    lines = [
        f"[{academy_name} 상담 예약 안내]",
        f"{display_name}님, 상담 예약이 확정되었습니다.",
        f"• 상담일시: {format_kst_datetime_label(booking.counseling_date, booking.start_time)}",
    ]
    if location_line:
        lines.append(f"• 상담장소: {location_line}")
    lines.append("예약에 변경 사항이 있으면 학원으로 연락주세요.")
    return "\n".join(lines)


async def send_reservation_confirmation(
    sms_client: Optional[SolapiClient],
    booking: BookingResult,
    max_attempts: int = 3,
    backoff_seconds: float = 1.0,
) -> bool:
    """예약 확인 문자 발송. 성공 여부만 반환하고 예외는 밖으로 던지지 않는다."""
    if sms_client is None or not sms_client.enabled:
        logger.info(f"SMS disabled, skipping confirmation: reservation_id={booking.reservation_id}")
        return False

    to = normalize_dialable_number(booking.contact_phone)
    if not to:
        logger.warning(f"상담 예약 연락처 형식이 올바르지 않아 문자 발송을 건너뜁니다: reservation_id={booking.reservation_id}")
        return False

    text = build_confirmation_message(booking)
    attempts = max(1, max_attempts)

    for attempt in range(1, attempts + 1):
        try:
            await sms_client.send(to, text)
            logger.info(f"Confirmation SMS sent: reservation_id={booking.reservation_id}, attempt={attempt}")
            return True
        except SmsSendError as e:
            logger.warning(
                f"Confirmation SMS failed: reservation_id={booking.reservation_id}, "
                f"attempt={attempt}/{attempts}, error={e}"
            )
        except Exception:
            logger.exception(f"Unexpected error while sending SMS: reservation_id={booking.reservation_id}")
            return False

        if attempt < attempts:
            await asyncio.sleep(backoff_seconds * (2 ** (attempt - 1)))

    logger.error(f"예약 확인 문자 발송에 최종 실패했습니다: reservation_id={booking.reservation_id}, slot_id={booking.slot_id}")
    return False
