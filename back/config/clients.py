#####################################################
#                                                   #
#               클라이언트 의존성 정의                 #
#                                                   #
#####################################################

from datetime import datetime, timezone
from typing import Optional
import hashlib
import hmac
import logging
import os
import secrets

import httpx
from dotenv import load_dotenv

from logs.logging_util import LoggerSingleton
from utils.phone import normalize_dialable_number

load_dotenv()

logger = LoggerSingleton.get_logger(logger_name="sms", level=logging.INFO)

SOLAPI_DEFAULT_BASE_URL = "https://api.solapi.com"
SOLAPI_SEND_PATH = "/messages/v4/send"


class SmsSendError(Exception):
    """문자 발송 실패 (재시도 대상)"""


# Solapi REST API 클라이언트
class SolapiClient:
    def __init__(
        self,
        api_key: Optional[str],
        api_secret: Optional[str],
        sender_number: Optional[str],
        base_url: str = SOLAPI_DEFAULT_BASE_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ) -> None:
        self.api_key = api_key
        self.api_secret = api_secret
        self.sender = normalize_dialable_number(sender_number)
        self._http = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

        if not (api_key and api_secret):
            logger.warning("SOLAPI_API_KEY 또는 SOLAPI_API_SECRET이 설정되지 않았습니다. 문자 발송이 비활성화됩니다.")
        elif not self.sender:
            logger.warning("SOLAPI_SENDER_NUMBER가 올바르지 않습니다. 문자 발송이 비활성화됩니다.")

    @property
    def enabled(self) -> bool:
        return bool(self.api_key and self.api_secret and self.sender)

    def _authorization_header(self) -> str:
        # HMAC-SHA256(secret, date + salt)
        date = datetime.now(timezone.utc).isoformat(timespec="seconds")
        salt = secrets.token_hex(16)
        signature = hmac.new(
            self.api_secret.encode(), f"{date}{salt}".encode(), hashlib.sha256
        ).hexdigest()
        return f"HMAC-SHA256 apiKey={self.api_key}, date={date}, salt={salt}, signature={signature}"

    async def send(self, to: str, text: str) -> dict:
        """단건 문자 발송. 실패 시 SmsSendError"""
        payload = {"message": {"to": to, "from": self.sender, "text": text}}
        try:
            response = await self._http.post(
                SOLAPI_SEND_PATH,
                json=payload,
                headers={"Authorization": self._authorization_header()},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise SmsSendError(str(e)) from e
        return response.json()

    async def aclose(self) -> None:
        await self._http.aclose()


# 모든 클라이언트 인스턴스를 담을 컨테이너 클래스
class ClientContainer:
    def __init__(self):
        self.sms_client = None
        self.sms_max_attempts = 3
        self.sms_backoff_seconds = 1.0


# 클라이언트들을 초기화하는 함수
def initialize_clients() -> ClientContainer:
    container = ClientContainer()
    container.sms_client = SolapiClient(
        api_key=os.getenv("SOLAPI_API_KEY"),
        api_secret=os.getenv("SOLAPI_API_SECRET"),
        sender_number=os.getenv("SOLAPI_SENDER_NUMBER"),
        base_url=os.getenv("SOLAPI_BASE_URL", SOLAPI_DEFAULT_BASE_URL),
    )
    # 문자 재시도 정책 (예약 트랜잭션과 독립)
    container.sms_max_attempts = int(os.getenv("SMS_MAX_ATTEMPTS", "3"))
    container.sms_backoff_seconds = float(os.getenv("SMS_BACKOFF_SECONDS", "1.0"))
    return container


async def close_clients(container: ClientContainer) -> None:
    if container.sms_client is not None:
        await container.sms_client.aclose()
