"""
월 단위 기간 유틸리티

- 월 키: "YYYY-MM"
- 납부일: 월 키 + 납부일 (해당 월 말일로 보정)
"""
import calendar
import re
from datetime import date, datetime
from typing import Iterator, Optional, Union

MONTH_KEY_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


def month_key(value: Union[date, datetime]) -> str:
    """날짜 → "YYYY-MM" """
    return f"{value.year:04d}-{value.month:02d}"


def parse_month(key: str) -> date:
    """
    "YYYY-MM" → 해당 월 1일

    Raises:
        ValueError: 형식이 맞지 않거나 월 범위를 벗어난 경우
    """
    match = MONTH_KEY_PATTERN.match(str(key).strip())
    if not match:
        raise ValueError(f"월 형식이 올바르지 않습니다 (YYYY-MM): {key!r}")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ValueError(f"월 범위가 올바르지 않습니다: {key!r}")
    return date(year, month, 1)


def is_month_key(key: str) -> bool:
    try:
        parse_month(key)
    except ValueError:
        return False
    return True


def add_months(start: date, months: int) -> date:
    """월 단위 이동 (결과는 항상 1일)"""
    y = start.year + (start.month - 1 + months) // 12
    m = (start.month - 1 + months) % 12 + 1
    return date(y, m, 1)


def iter_months(start: date, end: date) -> Iterator[str]:
    """start가 속한 월부터 end가 속한 월까지 (양끝 포함)"""
    current = start.replace(day=1)
    last = end.replace(day=1)
    while current <= last:
        yield month_key(current)
        current = add_months(current, 1)


def due_date_for(month: str, due_day: int) -> date:
    """
    월 키와 납부일로 납부 기한 계산

    납부일이 해당 월의 말일을 넘으면 말일로 보정 (2월 31일 → 2월 28/29일)
    """
    first = parse_month(month)
    last_day = calendar.monthrange(first.year, first.month)[1]
    day = min(max(int(due_day), 1), last_day)
    return first.replace(day=day)


def parse_timestamp(value: Optional[Union[str, date, datetime]]) -> Optional[datetime]:
    """
    ISO 날짜/일시 문자열 파싱

    "2024-01-15", "2024-01-15T10:00:00", "2024-01-15T10:00:00.000Z" 모두 허용
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None
