"""
상담 예약(CounselingReservation) 모델
"""

import uuid
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index, JSON, Uuid, text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from database import Base

RESERVATION_CONFIRMED = "confirmed"
RESERVATION_COMPLETED = "completed"
RESERVATION_CANCELLED = "cancelled"
RESERVATION_STATUSES = (RESERVATION_CONFIRMED, RESERVATION_COMPLETED, RESERVATION_CANCELLED)


class CounselingReservation(Base):
    """상담 예약 신청 (공개 폼에서 생성, 매니저가 관리)"""
    __tablename__ = "counseling_reservations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    slot_id = Column(Uuid, ForeignKey("counseling_slots.id", ondelete="CASCADE"), nullable=False, index=True)

    # 신청 정보
    student_name = Column(String(100), nullable=False)
    contact_phone = Column(String(20), nullable=False)  # 숫자만 저장
    academic_record = Column(String(200), nullable=True)  # 성적/내신
    target_university = Column(String(200), nullable=True)  # 희망 대학
    question = Column(Text, nullable=True)
    additional_answers = Column(JSON, nullable=False, default=dict)  # 추가 질문 응답 (field_key -> 답변)

    # 관리 정보
    status = Column(String(20), nullable=False, default=RESERVATION_CONFIRMED)
    memo = Column(Text, nullable=True)
    managed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    managed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # 관계
    slot = relationship("CounselingSlot", back_populates="reservations")

    __table_args__ = (
        # 슬롯당 확정 예약은 하나만 존재할 수 있다
        Index(
            "uq_counseling_reservation_confirmed_slot",
            "slot_id",
            unique=True,
            postgresql_where=text("status = 'confirmed'"),
            sqlite_where=text("status = 'confirmed'"),
        ),
    )

    def __repr__(self):
        return f"<CounselingReservation(id={self.id}, slot_id={self.slot_id}, status={self.status})>"
