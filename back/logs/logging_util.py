"""
로깅 유틸리티 - 싱글톤 로거 관리
"""
import logging
import os
import sys
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

KST = ZoneInfo("Asia/Seoul")


class KstFormatter(logging.Formatter):
    """서버 로케일/타임존과 무관하게 한국 시간으로 기록"""

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        created = datetime.fromtimestamp(record.created, tz=KST)
        return created.strftime(datefmt or "%Y-%m-%d %H:%M:%S")


def resolve_level(default: int) -> int:
    """LOG_LEVEL 환경변수가 있으면 우선 적용"""
    name = os.getenv("LOG_LEVEL")
    if not name:
        return default
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else default


class LoggerSingleton:
    """
    싱글톤 패턴의 로거 팩토리
    """
    _loggers = {}

    @classmethod
    def get_logger(cls, logger_name: str = "app", level: int = logging.INFO) -> logging.Logger:
        """
        지정된 이름의 로거를 반환합니다. 이미 생성된 경우 기존 로거를 반환합니다.

        Args:
            logger_name: 로거 이름 (기능 단위: counseling, auth ...)
            level: 로그 레벨 (기본값: INFO, LOG_LEVEL 환경변수가 우선)

        Returns:
            logging.Logger: 설정된 로거 인스턴스
        """
        if logger_name in cls._loggers:
            return cls._loggers[logger_name]

        level = resolve_level(level)
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)

        # 핸들러가 없는 경우에만 추가 (중복 방지)
        if not logger.handlers:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(level)
            console_handler.setFormatter(
                KstFormatter(fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
            logger.addHandler(console_handler)

        cls._loggers[logger_name] = logger
        return logger
