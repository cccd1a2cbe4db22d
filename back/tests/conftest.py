"""
테스트 공통 설정

앱 import 전에 환경변수를 잡아 운영 DB/문자 설정을 쓰지 않도록 한다.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ.pop("SOLAPI_API_KEY", None)
os.environ.pop("BOOTSTRAP_PRINCIPAL_EMAIL", None)

from datetime import date, datetime, time, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app import app
from auth.security import create_access_token
from config.clients import SmsSendError
from config.dependencies import get_clock, get_sms_client, get_sms_retry_policy
from database import Base, get_db
from models.counseling_question import CounselingQuestion
from models.counseling_reservation import RESERVATION_CONFIRMED, CounselingReservation
from models.counseling_slot import SLOT_OPEN, CounselingSlot
from models.user import ROLE_MANAGER, ROLE_STUDENT, User
from utils.date_util import Clock

# 2025-03-12(수) 12:00 KST
FIXED_NOW = datetime(2025, 3, 12, 3, 0, tzinfo=timezone.utc)


class FakeSmsClient:
    """발송 내역만 기록하는 문자 클라이언트"""

    def __init__(self, enabled: bool = True, fail_times: int = 0):
        self.enabled = enabled
        self.fail_times = fail_times
        self.calls = []

    async def send(self, to: str, text: str) -> dict:
        self.calls.append((to, text))
        if len(self.calls) <= self.fail_times:
            raise SmsSendError("temporary failure")
        return {"statusCode": "2000"}


class SteppingWallClock:
    """테스트에서 직접 흘려보내는 벽시계 (ms)"""

    def __init__(self, start_ms: int):
        self.value = start_ms

    def __call__(self) -> int:
        return self.value

    def advance(self, ms: int) -> None:
        self.value += ms


def make_fixed_clock() -> Clock:
    clock = Clock(wall_clock_ms=SteppingWallClock(int(FIXED_NOW.timestamp() * 1000)))
    clock.init_server_clock()
    return clock


@pytest.fixture
def engine(tmp_path):
    # 동시성 테스트를 위해 스레드마다 별도 커넥션을 쓰는 파일 DB
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sms_client():
    return FakeSmsClient()


@pytest.fixture
def client(session_factory, sms_client):
    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_clock] = make_fixed_clock
    app.dependency_overrides[get_sms_client] = lambda: sms_client
    app.dependency_overrides[get_sms_retry_policy] = lambda: (3, 0.0)

    yield TestClient(app)

    app.dependency_overrides.clear()


def _create_user(db, username: str, role: str) -> User:
    user = User(
        email=f"{username}@example.com",
        username=username,
        full_name=username,
        hashed_password="not-used",
        role=role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def _auth_headers(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def manager(db):
    return _create_user(db, "manager1", ROLE_MANAGER)


@pytest.fixture
def manager_headers(manager):
    return _auth_headers(manager)


@pytest.fixture
def student_headers(db):
    return _auth_headers(_create_user(db, "student1", ROLE_STUDENT))


@pytest.fixture
def make_slot(db):
    def _make_slot(counseling_date=date(2025, 3, 10), start_time=time(14, 0), status=SLOT_OPEN, notes=None):
        slot = CounselingSlot(
            counseling_date=counseling_date,
            start_time=start_time,
            duration_minutes=30,
            status=status,
            notes=notes,
        )
        db.add(slot)
        db.commit()
        db.refresh(slot)
        return slot

    return _make_slot


@pytest.fixture
def make_reservation(db):
    def _make_reservation(slot, status=RESERVATION_CONFIRMED, student_name="기존학생"):
        reservation = CounselingReservation(
            slot_id=slot.id,
            student_name=student_name,
            contact_phone="01099998888",
            additional_answers={},
            status=status,
        )
        db.add(reservation)
        db.commit()
        db.refresh(reservation)
        return reservation

    return _make_reservation


@pytest.fixture
def make_question(db):
    def _make_question(prompt: str, position: int, is_active: bool = True):
        question = CounselingQuestion(
            field_key=f"question_{position}",
            prompt=prompt,
            field_type="text",
            is_required=False,
            is_active=is_active,
            position=position,
        )
        db.add(question)
        db.commit()
        db.refresh(question)
        return question

    return _make_question


def reservation_payload(slot_id, **overrides) -> dict:
    payload = {
        "slotId": str(slot_id),
        "studentName": "홍길동",
        "contactPhone": "010-1234-5678",
        "academicRecord": "내신 2.1",
        "targetUniversity": "한국예술종합학교",
        "question": "포트폴리오 준비 방법이 궁금합니다.",
        "additionalAnswers": {"question_10": "고2", "question_20": None},
    }
    payload.update(overrides)
    return payload
