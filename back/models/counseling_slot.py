"""
상담 슬롯(CounselingSlot) 모델
"""

import uuid
from sqlalchemy import Column, Integer, Date, Time, Text, String, DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from database import Base

SLOT_OPEN = "open"
SLOT_BOOKED = "booked"
SLOT_CLOSED = "closed"
SLOT_STATUSES = (SLOT_OPEN, SLOT_BOOKED, SLOT_CLOSED)

DEFAULT_DURATION_MINUTES = 30


class CounselingSlot(Base):
    """예약 가능한 상담 시간 (정원 1명)"""
    __tablename__ = "counseling_slots"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    counseling_date = Column(Date, nullable=False, index=True)  # 상담 날짜
    start_time = Column(Time, nullable=False)  # 시작 시간
    duration_minutes = Column(Integer, nullable=False, default=DEFAULT_DURATION_MINUTES)
    status = Column(String(20), nullable=False, default=SLOT_OPEN)  # open, booked, closed
    notes = Column(Text, nullable=True)  # 메모

    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # 관계
    reservations = relationship(
        "CounselingReservation",
        back_populates="slot",
        cascade="all, delete-orphan",
        order_by="CounselingReservation.created_at",
    )

    __table_args__ = (
        UniqueConstraint("counseling_date", "start_time", name="uq_counseling_slot_date_time"),
    )

    def __repr__(self):
        return f"<CounselingSlot(id={self.id}, date={self.counseling_date}, start={self.start_time}, status={self.status})>"
