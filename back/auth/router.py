"""
인증 관련 API 라우터
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from database import get_db
from models.user import ROLE_PRINCIPAL, ROLE_STUDENT, User
from schemas.user import RoleUpdate, UserCreate, UserLogin, UserResponse, Token
from auth.security import verify_password, get_password_hash, create_access_token
from auth.dependencies import get_current_active_user, require_principal
from config.exception import BadRequest, NotFound, Unauthorized
from logs.logging_util import LoggerSingleton
import logging
import os

# 로거 설정
logger = LoggerSingleton.get_logger(logger_name="auth", level=logging.INFO)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _initial_role(email: str) -> str:
    """첫 원장 계정은 BOOTSTRAP_PRINCIPAL_EMAIL 로 지정, 나머지는 학생으로 가입"""
    bootstrap_email = os.getenv("BOOTSTRAP_PRINCIPAL_EMAIL")
    if bootstrap_email and bootstrap_email.strip().lower() == email.lower():
        return ROLE_PRINCIPAL
    return ROLE_STUDENT


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(user_data: UserCreate, db: Session = Depends(get_db)):
    """
    회원가입

    Args:
        user_data: 사용자 등록 정보
        db: 데이터베이스 세션

    Returns:
        UserResponse: 생성된 사용자 정보
    """
    logger.info(f"Registration attempt: username={user_data.username}")

    if db.query(User).filter(User.email == user_data.email).first():
        logger.warning(f"Registration failed: Email already exists - {user_data.email}")
        raise BadRequest("이미 가입된 이메일입니다.", code="AUTH_EMAIL_TAKEN")

    if db.query(User).filter(User.username == user_data.username).first():
        logger.warning(f"Registration failed: Username already exists - {user_data.username}")
        raise BadRequest("이미 사용 중인 아이디입니다.", code="AUTH_USERNAME_TAKEN")

    new_user = User(
        email=user_data.email,
        username=user_data.username,
        full_name=user_data.full_name,
        hashed_password=get_password_hash(user_data.password),
        role=_initial_role(user_data.email),
        is_active=True,
    )

    db.add(new_user)
    db.commit()
    db.refresh(new_user)

    logger.info(f"User registered successfully: id={new_user.id}, role={new_user.role}")
    return new_user


@router.post("/login", response_model=Token)
def login(user_credentials: UserLogin, db: Session = Depends(get_db)):
    """
    로그인

    Returns:
        Token: JWT 액세스 토큰
    """
    logger.info(f"Login attempt: username={user_credentials.username}")

    user = db.query(User).filter(User.username == user_credentials.username).first()

    if not user or not verify_password(user_credentials.password, user.hashed_password):
        logger.warning(f"Login failed: Invalid credentials - username={user_credentials.username}")
        raise Unauthorized("아이디 또는 비밀번호가 올바르지 않습니다.", code="AUTH_INVALID_CREDENTIALS")

    if not user.is_active:
        logger.warning(f"Login failed: Inactive user - username={user_credentials.username}")
        raise BadRequest("비활성화된 계정입니다.", code="AUTH_INACTIVE_USER")

    # sub는 문자열이어야 함
    access_token = create_access_token(data={"sub": str(user.id), "role": user.role})

    logger.info(f"Login successful: user_id={user.id}, role={user.role}")
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/me", response_model=UserResponse)
def get_current_user_info(current_user: User = Depends(get_current_active_user)):
    """현재 로그인한 사용자 정보 조회"""
    return current_user


@router.patch("/users/{user_id}/role", response_model=UserResponse)
def update_user_role(
    user_id: int,
    data: RoleUpdate,
    principal: User = Depends(require_principal),
    db: Session = Depends(get_db),
):
    """구성원 역할 변경 (원장 전용)"""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFound("사용자를 찾을 수 없습니다.", code="USER_NOT_FOUND")

    user.role = data.role
    db.commit()
    db.refresh(user)

    logger.info(f"Role updated: user_id={user.id}, role={user.role}, by={principal.id}")
    return user
