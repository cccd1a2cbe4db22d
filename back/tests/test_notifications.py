import hashlib
import hmac
import json
import uuid
from datetime import date, time

import httpx
import pytest

from config.clients import SmsSendError, SolapiClient
from counseling import notifications
from counseling.booking import BookingResult
from counseling.notifications import build_confirmation_message, send_reservation_confirmation
from conftest import FakeSmsClient


def _booking(**overrides) -> BookingResult:
    values = dict(
        reservation_id=uuid.uuid4(),
        slot_id=uuid.uuid4(),
        student_name="홍길동",
        contact_phone="01012345678",
        counseling_date=date(2025, 3, 10),
        start_time=time(14, 0),
    )
    values.update(overrides)
    return BookingResult(**values)


@pytest.fixture
def recorded_sleeps(monkeypatch):
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr(notifications.asyncio, "sleep", fake_sleep)
    return delays


def test_confirmation_message(monkeypatch):
    monkeypatch.setenv("ACADEMY_NAME", "한빛미술학원")
    monkeypatch.setenv("COUNSELING_LOCATION_LINE", "본관 3층 상담실")

    message = build_confirmation_message(_booking())

    assert message.splitlines() == [
        "[한빛미술학원 상담 예약 안내]",
        "홍길동님, 상담 예약이 확정되었습니다.",
        "• 상담일시: 2025. 03. 10. (월) 14:00",
        "• 상담장소: 본관 3층 상담실",
        "예약에 변경 사항이 있으면 학원으로 연락주세요.",
    ]


def test_confirmation_message_defaults(monkeypatch):
    monkeypatch.delenv("ACADEMY_NAME", raising=False)
    monkeypatch.delenv("COUNSELING_LOCATION_LINE", raising=False)

    message = build_confirmation_message(_booking(student_name="  "))

    assert message.startswith("[학원 상담 예약 안내]\n예약자님,")
    assert "상담장소" not in message


@pytest.mark.asyncio
async def test_send_retries_with_exponential_backoff(recorded_sleeps):
    sms_client = FakeSmsClient(fail_times=2)

    sent = await send_reservation_confirmation(sms_client, _booking(), max_attempts=3, backoff_seconds=1.0)

    assert sent is True
    assert len(sms_client.calls) == 3
    assert recorded_sleeps == [1.0, 2.0]


@pytest.mark.asyncio
async def test_send_gives_up_after_max_attempts(recorded_sleeps):
    sms_client = FakeSmsClient(fail_times=10)

    sent = await send_reservation_confirmation(sms_client, _booking(), max_attempts=4, backoff_seconds=0.5)

    assert sent is False
    assert len(sms_client.calls) == 4
    assert recorded_sleeps == [0.5, 1.0, 2.0]


@pytest.mark.asyncio
async def test_send_skips_disabled_client():
    sms_client = FakeSmsClient(enabled=False)

    assert await send_reservation_confirmation(sms_client, _booking()) is False
    assert await send_reservation_confirmation(None, _booking()) is False
    assert sms_client.calls == []


@pytest.mark.asyncio
async def test_send_skips_undialable_number():
    sms_client = FakeSmsClient()

    assert await send_reservation_confirmation(sms_client, _booking(contact_phone="123")) is False
    assert sms_client.calls == []


@pytest.mark.asyncio
async def test_unexpected_error_is_not_retried(recorded_sleeps):
    class BrokenSmsClient(FakeSmsClient):
        async def send(self, to, text):
            self.calls.append((to, text))
            raise RuntimeError("boom")

    sms_client = BrokenSmsClient()

    assert await send_reservation_confirmation(sms_client, _booking()) is False
    assert len(sms_client.calls) == 1
    assert recorded_sleeps == []


##### Solapi client #####

def _solapi_client(handler, **kwargs) -> SolapiClient:
    http_client = httpx.AsyncClient(base_url="https://api.solapi.com", transport=httpx.MockTransport(handler))
    options = dict(api_key="test-key", api_secret="test-secret", sender_number="02-1234-5678")
    options.update(kwargs)
    return SolapiClient(http_client=http_client, **options)


def test_solapi_client_enabled_flag():
    handler = lambda request: httpx.Response(200, json={})
    assert _solapi_client(handler).enabled is True
    assert _solapi_client(handler, api_key=None).enabled is False
    assert _solapi_client(handler, sender_number="12").enabled is False


@pytest.mark.asyncio
async def test_solapi_send_signs_request():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["request"] = request
        return httpx.Response(200, json={"groupId": "G1", "statusCode": "2000"})

    client = _solapi_client(handler)
    result = await client.send("01012345678", "안녕하세요")
    await client.aclose()

    request = captured["request"]
    assert result == {"groupId": "G1", "statusCode": "2000"}
    assert request.method == "POST"
    assert request.url.path == "/messages/v4/send"
    assert json.loads(request.content) == {
        "message": {"to": "01012345678", "from": "0212345678", "text": "안녕하세요"}
    }

    scheme, _, params = request.headers["Authorization"].partition(" ")
    assert scheme == "HMAC-SHA256"
    fields = dict(part.split("=", 1) for part in params.split(", "))
    assert fields["apiKey"] == "test-key"
    expected = hmac.new(
        b"test-secret", f"{fields['date']}{fields['salt']}".encode(), hashlib.sha256
    ).hexdigest()
    assert fields["signature"] == expected


@pytest.mark.asyncio
async def test_solapi_send_raises_on_http_error():
    client = _solapi_client(lambda request: httpx.Response(500, json={"errorCode": "Internal"}))

    with pytest.raises(SmsSendError):
        await client.send("01012345678", "text")
    await client.aclose()
