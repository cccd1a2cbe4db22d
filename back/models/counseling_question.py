"""
상담 추가 질문(CounselingQuestion) 모델
"""

import uuid
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Uuid
from sqlalchemy.sql import func
from database import Base

FIELD_TYPES = ("text", "textarea")


class CounselingQuestion(Base):
    """예약 폼에 노출되는 추가 질문"""
    __tablename__ = "counseling_questions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    field_key = Column(String(50), unique=True, nullable=False)  # additional_answers 의 키
    prompt = Column(String(200), nullable=False)
    field_type = Column(String(20), nullable=False, default="text")
    is_required = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    position = Column(Integer, nullable=False, default=0)  # 정렬 순서

    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<CounselingQuestion(id={self.id}, field_key={self.field_key}, position={self.position})>"
