"""
인증/권한 관련 의존성 주입
"""

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from config.exception import BadRequest, Forbidden, Unauthorized
from database import get_db
from models.user import ROLE_PRINCIPAL, User
from auth.security import decode_access_token

# Bearer 토큰 스키마 (헤더가 없으면 직접 401 처리)
security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    JWT 토큰에서 현재 사용자 정보 추출

    Args:
        credentials: Bearer 토큰
        db: 데이터베이스 세션

    Returns:
        User: 현재 사용자 객체

    Raises:
        AppException: 토큰이 없거나 유효하지 않은 경우 401
    """
    if credentials is None:
        raise Unauthorized()

    payload = decode_access_token(credentials.credentials)
    if payload is None or payload.get("sub") is None:
        raise Unauthorized("유효하지 않은 인증 정보입니다.", code="AUTH_INVALID_TOKEN")

    # sub는 문자열로 저장됨
    try:
        user_id = int(payload["sub"])
    except (ValueError, TypeError):
        raise Unauthorized("유효하지 않은 인증 정보입니다.", code="AUTH_INVALID_TOKEN")

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise Unauthorized("사용자를 찾을 수 없습니다.", code="AUTH_USER_NOT_FOUND")

    return user


def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """현재 활성 사용자 확인"""
    if not current_user.is_active:
        raise BadRequest("비활성화된 계정입니다.", code="AUTH_INACTIVE_USER")
    return current_user


def require_manager(
    current_user: User = Depends(get_current_active_user)
) -> User:
    """매니저/원장 전용"""
    if not current_user.is_manager:
        raise Forbidden("관리자 권한이 필요합니다.")
    return current_user


def require_principal(
    current_user: User = Depends(get_current_active_user)
) -> User:
    """원장 전용"""
    if current_user.role != ROLE_PRINCIPAL:
        raise Forbidden("원장 권한이 필요합니다.")
    return current_user
