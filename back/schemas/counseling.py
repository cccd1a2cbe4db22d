"""
상담 슬롯/예약/질문 스키마

요청 본문은 프론트엔드 규약에 맞춰 camelCase(slotId, studentName ...)로 받고,
응답은 DB 컬럼과 같은 snake_case 로 내려준다.
"""

import datetime
import uuid
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from utils.phone import is_korean_mobile, normalize_phone_digits
from utils.week_range import parse_iso_date


def _parse_uuid(value: Any, message: str) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise ValueError(message)


def _parse_date(value: Any, message: str) -> datetime.date:
    if isinstance(value, datetime.date):
        return value
    parsed = parse_iso_date(value)
    if parsed is None:
        raise ValueError(message)
    return parsed


def _trim_optional(value: Any, max_length: int, label: str) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if len(text) > max_length:
        raise ValueError(f"{label}은(는) {max_length}자 이내로 입력해주세요.")
    return text


def normalize_answers(value: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """추가 질문 응답을 문자열 맵으로 정리 (None 값은 제외)"""
    if not value:
        return {}
    answers = {}
    for key, raw in value.items():
        if raw is None:
            continue
        if isinstance(raw, bool):
            answers[key] = "true" if raw else "false"
        else:
            answers[key] = str(raw)
    return answers


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


##### 공개 예약 #####

class ReservationCreate(CamelModel):
    """공개 상담 예약 신청"""
    slot_id: uuid.UUID = Field(..., description="상담 슬롯 ID")
    student_name: str = Field(..., description="학생 이름")
    contact_phone: str = Field(..., description="연락처 (숫자만 저장)")
    academic_record: Optional[str] = Field(None, description="성적")
    target_university: Optional[str] = Field(None, description="희망 대학")
    question: Optional[str] = Field(None, description="문의 내용")
    additional_answers: Dict[str, str] = Field(default_factory=dict, description="추가 질문 응답")

    @field_validator("slot_id", mode="before")
    @classmethod
    def validate_slot_id(cls, value):
        return _parse_uuid(value, "유효한 상담 슬롯이 아닙니다.")

    @field_validator("student_name", mode="before")
    @classmethod
    def validate_student_name(cls, value):
        text = str(value or "").strip()
        if not text:
            raise ValueError("학생 이름을 입력해주세요.")
        return text

    @field_validator("contact_phone", mode="before")
    @classmethod
    def validate_contact_phone(cls, value):
        digits = normalize_phone_digits(value if isinstance(value, str) else None)
        if not is_korean_mobile(digits):
            raise ValueError("휴대폰 번호는 010으로 시작하는 숫자만 입력해주세요.")
        return digits

    @field_validator("academic_record", "target_university", mode="before")
    @classmethod
    def validate_short_text(cls, value, info):
        label = "성적" if info.field_name == "academic_record" else "희망 대학"
        return _trim_optional(value, 200, label)

    @field_validator("question", mode="before")
    @classmethod
    def validate_question(cls, value):
        return _trim_optional(value, 500, "문의 내용")

    @field_validator("additional_answers", mode="before")
    @classmethod
    def validate_additional_answers(cls, value):
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ValueError("추가 질문 응답 형식이 올바르지 않습니다.")
        return normalize_answers(value)


class ReservationCreatedResponse(BaseModel):
    success: bool = True


class PublicSlot(BaseModel):
    id: uuid.UUID
    start_time: datetime.time
    status: str

    model_config = ConfigDict(from_attributes=True)


class MonthSummaryItem(BaseModel):
    date: datetime.date
    open: int


class CalendarCellResponse(BaseModel):
    date: str
    label: int
    in_current_month: bool

    model_config = ConfigDict(from_attributes=True)


class QuestionResponse(BaseModel):
    id: uuid.UUID
    field_key: str
    prompt: str
    field_type: str
    is_required: bool
    is_active: bool
    position: int

    model_config = ConfigDict(from_attributes=True)


class AvailabilityResponse(BaseModel):
    """공개 예약 화면 데이터"""
    today: datetime.date
    selected_date: datetime.date
    month_start: datetime.date
    month_end: datetime.date
    month_summary: List[MonthSummaryItem]
    day_slots: List[PublicSlot]
    calendar: List[CalendarCellResponse]
    questions: List[QuestionResponse]


##### 매니저: 슬롯 #####

SlotStatus = Literal["open", "booked", "closed"]
ReservationStatus = Literal["confirmed", "completed", "cancelled"]


class ReservationResponse(BaseModel):
    id: uuid.UUID
    slot_id: uuid.UUID
    student_name: str
    contact_phone: str
    academic_record: Optional[str] = None
    target_university: Optional[str] = None
    question: Optional[str] = None
    additional_answers: Dict[str, Any] = Field(default_factory=dict)
    status: str
    memo: Optional[str] = None
    managed_at: Optional[datetime.datetime] = None
    created_at: Optional[datetime.datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SlotResponse(BaseModel):
    id: uuid.UUID
    counseling_date: datetime.date
    start_time: datetime.time
    end_time: datetime.time
    duration_minutes: int
    status: str
    notes: Optional[str] = None
    reservations: List[ReservationResponse] = Field(default_factory=list)


class TimelineItem(BaseModel):
    label: str
    time: datetime.time


class ManagerSlotListResponse(BaseModel):
    selected_date: datetime.date
    month_start: datetime.date
    month_end: datetime.date
    timeline: List[TimelineItem]
    total: int
    slots: List[SlotResponse]


class SlotCreate(CamelModel):
    counseling_date: datetime.date
    times: List[str] = Field(..., description="HH:MM 목록")
    notes: Optional[str] = None

    @field_validator("counseling_date", mode="before")
    @classmethod
    def validate_counseling_date(cls, value):
        return _parse_date(value, "유효한 날짜를 선택해주세요.")

    @field_validator("times")
    @classmethod
    def validate_times(cls, value):
        if not value:
            raise ValueError("예약 가능 시간을 선택해주세요.")
        return value

    @field_validator("notes", mode="before")
    @classmethod
    def validate_notes(cls, value):
        return _trim_optional(value, 500, "메모")


class SlotCreateResponse(BaseModel):
    success: bool = True
    created: int
    skipped: int


class SlotStatusUpdate(CamelModel):
    status: SlotStatus


class SlotNotesUpdate(CamelModel):
    notes: Optional[str] = None

    @field_validator("notes", mode="before")
    @classmethod
    def validate_notes(cls, value):
        return _trim_optional(value, 500, "메모")


class SlotDuplicate(CamelModel):
    target_date: datetime.date

    @field_validator("target_date", mode="before")
    @classmethod
    def validate_target_date(cls, value):
        return _parse_date(value, "유효한 날짜를 입력해주세요.")


##### 매니저: 예약 #####

class WeekRangeResponse(BaseModel):
    start: datetime.date
    end: datetime.date
    end_exclusive: datetime.date
    previous_start: datetime.date
    next_start: datetime.date
    label: str
    param: str

    model_config = ConfigDict(from_attributes=True)


class ManagerReservationListResponse(BaseModel):
    selected_date: datetime.date
    view: Literal["day", "week"]
    range_start: datetime.date
    range_end: datetime.date
    week: WeekRangeResponse
    previous_week_href: str
    next_week_href: str
    total: int
    slots: List[SlotResponse]


class ReservationStatusUpdate(CamelModel):
    status: ReservationStatus


class ReservationMemoUpdate(CamelModel):
    memo: Optional[str] = None

    @field_validator("memo", mode="before")
    @classmethod
    def validate_memo(cls, value):
        return _trim_optional(value, 1000, "메모")


##### 매니저: 추가 질문 #####

class QuestionCreate(CamelModel):
    prompt: str
    field_type: Literal["text", "textarea"] = "text"
    is_required: bool = False

    @field_validator("prompt", mode="before")
    @classmethod
    def validate_prompt(cls, value):
        text = _trim_optional(value, 200, "질문 내용")
        if not text:
            raise ValueError("질문 내용을 입력해주세요.")
        return text


class QuestionUpdate(QuestionCreate):
    is_active: bool = True


class QuestionMove(CamelModel):
    direction: Literal["up", "down"]


class QuestionListResponse(BaseModel):
    total: int
    questions: List[QuestionResponse]


class ActionResult(BaseModel):
    success: bool = True
