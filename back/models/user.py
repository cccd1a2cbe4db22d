"""
사용자(User) 모델 - 원장/매니저/강사/학생 계정
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func
from database import Base

# 역할 구분
ROLE_PRINCIPAL = "principal"
ROLE_MANAGER = "manager"
ROLE_TEACHER = "teacher"
ROLE_STUDENT = "student"
ROLES = (ROLE_PRINCIPAL, ROLE_MANAGER, ROLE_TEACHER, ROLE_STUDENT)

# 상담 슬롯/예약을 관리할 수 있는 역할
ADMIN_ROLES = frozenset({ROLE_MANAGER, ROLE_PRINCIPAL})


class User(Base):
    """사용자 모델"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    full_name = Column(String(100), nullable=True)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=ROLE_STUDENT)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def is_manager(self) -> bool:
        return self.role in ADMIN_ROLES

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username}, role={self.role})>"
