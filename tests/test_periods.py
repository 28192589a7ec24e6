"""
Unit tests for month/period utilities
"""

import pytest
import sys
from datetime import date, datetime
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.billing.periods import (
    add_months,
    due_date_for,
    is_month_key,
    iter_months,
    month_key,
    parse_month,
    parse_timestamp,
)


class TestMonthKeys:
    """월 키 파싱/생성"""

    def test_month_key(self):
        assert month_key(date(2024, 3, 12)) == "2024-03"
        assert month_key(datetime(2023, 11, 1, 8, 30)) == "2023-11"

    def test_parse_month(self):
        assert parse_month("2024-02") == date(2024, 2, 1)

    @pytest.mark.parametrize("value", ["2024-13", "2024-00", "2024-1", "24-01", "2024/01", ""])
    def test_invalid_month_keys(self, value):
        with pytest.raises(ValueError):
            parse_month(value)
        assert not is_month_key(value)

    def test_add_months_crosses_year(self):
        assert add_months(date(2023, 11, 20), 3) == date(2024, 2, 1)
        assert add_months(date(2024, 1, 5), -1) == date(2023, 12, 1)


class TestIterMonths:
    """등록 월 ~ 현재 월"""

    def test_inclusive_range(self):
        months = list(iter_months(date(2024, 1, 15), date(2024, 4, 20)))
        assert months == ["2024-01", "2024-02", "2024-03", "2024-04"]

    def test_same_month(self):
        assert list(iter_months(date(2024, 3, 31), date(2024, 3, 1))) == ["2024-03"]

    def test_start_after_end(self):
        assert list(iter_months(date(2024, 5, 1), date(2024, 3, 1))) == []


class TestDueDate:
    """납부 기한 계산"""

    def test_regular_day(self):
        assert due_date_for("2024-02", 10) == date(2024, 2, 10)

    def test_clamped_to_month_end(self):
        assert due_date_for("2024-02", 31) == date(2024, 2, 29)
        assert due_date_for("2023-02", 31) == date(2023, 2, 28)
        assert due_date_for("2024-04", 31) == date(2024, 4, 30)


class TestParseTimestamp:
    """ISO 일시 파싱"""

    def test_date_only(self):
        assert parse_timestamp("2024-01-15") == datetime(2024, 1, 15)

    def test_zulu_suffix(self):
        parsed = parse_timestamp("2024-01-15T10:00:00.000Z")
        assert parsed.date() == date(2024, 1, 15)
        assert parsed.utcoffset().total_seconds() == 0

    def test_date_object(self):
        assert parse_timestamp(date(2024, 2, 1)) == datetime(2024, 2, 1)

    @pytest.mark.parametrize("value", [None, "", "not-a-date"])
    def test_invalid_values(self, value):
        assert parse_timestamp(value) is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
