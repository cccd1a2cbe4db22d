"""
휴대폰 번호 정규화/검증
"""

import re
from typing import Optional

NON_DIGIT_PATTERN = re.compile(r"\D")

# 010 으로 시작하는 10~11자리 휴대폰 번호
KOREAN_MOBILE_PATTERN = re.compile(r"^01[0-9]{8,9}$")

# 발신번호 등 일반 전화번호의 최소 자릿수
MIN_PHONE_DIGITS = 9


def normalize_phone_digits(value: Optional[str]) -> str:
    """숫자 이외의 문자를 모두 제거 (010-1234-5678 -> 01012345678)"""
    if not value:
        return ""
    return NON_DIGIT_PATTERN.sub("", value.strip())


def is_korean_mobile(value: str) -> bool:
    return bool(KOREAN_MOBILE_PATTERN.match(value))


def normalize_dialable_number(value: Optional[str]) -> Optional[str]:
    """문자 발송용 번호. 너무 짧으면 None"""
    digits = normalize_phone_digits(value)
    if len(digits) < MIN_PHONE_DIGITS:
        return None
    return digits
