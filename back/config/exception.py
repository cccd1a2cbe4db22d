from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import Any, Dict, Optional
import logging

DEFAULT_VALIDATION_MESSAGE = "입력값을 확인해주세요."
DEFAULT_INTERNAL_MESSAGE = "서버 내부 오류가 발생했습니다."


class ErrorResponse(BaseModel):
    success: bool = False
    code: str
    error: str
    details: Optional[Dict[str, Any]] = None


class AppException(Exception):
    """애플리케이션 전역에서 사용하는 커스텀 예외.

    - code: 서비스 내 식별 가능한 에러 코드 (예: SLOT_ALREADY_BOOKED)
    - status_code: HTTP 상태 코드
    - message: 사용자에게 전달할 메시지 (응답의 error 필드)
    - details: 디버깅/추가 정보 (옵션)
    - log_level: 기록 레벨 (logging.INFO, WARNING, ERROR 등)
    """

    def __init__(
        self,
        *,
        code: str,
        status_code: int,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        log_level: int = logging.ERROR,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.status_code = status_code
        self.message = message
        self.details = details or {}
        self.log_level = log_level

    def to_response(self) -> JSONResponse:
        payload = ErrorResponse(code=self.code, error=self.message, details=self.details or None)
        return JSONResponse(status_code=self.status_code, content=jsonable_encoder(payload))


# 본문 자체가 JSON 객체가 아닌 경우 (pydantic 영문 메시지 대신 기본 문구)
MALFORMED_BODY_ERROR_TYPES = frozenset({"json_invalid", "json_type", "model_attributes_type", "model_type", "dict_type"})


def first_validation_message(errors: list) -> str:
    """pydantic 에러 목록에서 사용자에게 보여줄 첫 메시지만 추출"""
    if not errors or errors[0].get("type") in MALFORMED_BODY_ERROR_TYPES:
        return DEFAULT_VALIDATION_MESSAGE
    if errors[0].get("type") == "missing":
        field = errors[0].get("loc", ("",))[-1]
        return f"필수 입력값이 누락되었습니다. ({field})"
    message = str(errors[0].get("msg") or "")
    # field_validator 에서 ValueError 로 올린 메시지는 접두어가 붙는다
    for prefix in ("Value error, ", "Assertion failed, "):
        if message.startswith(prefix):
            return message[len(prefix):]
    return message or DEFAULT_VALIDATION_MESSAGE


def public_validation_errors(errors: list) -> list:
    """응답에 실을 검증 오류 요약. ctx(예외 객체)와 원본 입력값은 제외"""
    return [
        {"loc": [str(part) for part in error.get("loc", ())], "type": error.get("type"), "msg": error.get("msg")}
        for error in errors
    ]


def register_exception_handlers(app) -> None:
    """FastAPI 앱에 전역 예외 핸들러를 등록합니다."""
    logger = logging.getLogger("exception")

    @app.exception_handler(AppException)
    async def handle_app_exception(request: Request, exc: AppException):
        logger.log(exc.log_level, f"AppException: {exc.code} - {exc.message} | path={request.url.path}")
        return exc.to_response()

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        # 입력 검증 실패는 서버 오류가 아니므로 INFO 로만 남긴다
        logger.info("ValidationError on %s: %s", request.url.path, public_validation_errors(exc.errors()))
        payload = ErrorResponse(
            code="REQUEST_VALIDATION_ERROR",
            error=first_validation_message(exc.errors()),
            details={"errors": public_validation_errors(exc.errors())},
        )
        return JSONResponse(status_code=400, content=jsonable_encoder(payload))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        payload = ErrorResponse(code=f"HTTP_{exc.status_code}", error=str(exc.detail))
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(payload),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s: %s", request.url.path, str(exc))
        payload = ErrorResponse(code="INTERNAL_SERVER_ERROR", error=DEFAULT_INTERNAL_MESSAGE)
        return JSONResponse(status_code=500, content=jsonable_encoder(payload))


# 편의 유틸리티: 자주 쓰는 예외 생성기
def BadRequest(message: str, *, code: str = "BAD_REQUEST", details: Optional[Dict[str, Any]] = None) -> AppException:
    return AppException(code=code, status_code=400, message=message, details=details, log_level=logging.WARNING)


def ValidationFailed(message: str, *, code: str = "VALIDATION_ERROR", details: Optional[Dict[str, Any]] = None) -> AppException:
    return AppException(code=code, status_code=400, message=message, details=details, log_level=logging.INFO)


def Unauthorized(message: str = "인증이 필요합니다.", *, code: str = "UNAUTHORIZED", details: Optional[Dict[str, Any]] = None) -> AppException:
    return AppException(code=code, status_code=401, message=message, details=details, log_level=logging.WARNING)


def Forbidden(message: str = "접근 권한이 없습니다.", *, code: str = "FORBIDDEN", details: Optional[Dict[str, Any]] = None) -> AppException:
    return AppException(code=code, status_code=403, message=message, details=details, log_level=logging.WARNING)


def NotFound(message: str = "리소스를 찾을 수 없습니다.", *, code: str = "NOT_FOUND", details: Optional[Dict[str, Any]] = None) -> AppException:
    return AppException(code=code, status_code=404, message=message, details=details, log_level=logging.INFO)


def Conflict(message: str = "충돌이 발생했습니다.", *, code: str = "CONFLICT", details: Optional[Dict[str, Any]] = None) -> AppException:
    return AppException(code=code, status_code=409, message=message, details=details, log_level=logging.WARNING)


def InternalError(message: str = DEFAULT_INTERNAL_MESSAGE, *, code: str = "INTERNAL_SERVER_ERROR", details: Optional[Dict[str, Any]] = None) -> AppException:
    return AppException(code=code, status_code=500, message=message, details=details, log_level=logging.ERROR)
