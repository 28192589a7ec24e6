"""
Unit tests for billing models (store-boundary normalization)

Tests cover:
1. Number / boolean coercion
2. due_day defaults and range
3. monthly_fees de-duplication and ordering
4. Loose nested shapes (discounts, players map)
5. Payment parsing
"""

import pytest
import sys
from datetime import date
from pathlib import Path

from pydantic import ValidationError

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.billing.models import (
    CategoryFeeConfig,
    MonthlyFee,
    Payment,
    PaymentStatus,
    PlayerRecord,
    to_bool,
    to_number,
)


class TestCoercionHelpers:
    """숫자/불리언 강제 변환"""

    @pytest.mark.parametrize("value,expected", [
        (50, 50.0),
        ("50", 50.0),
        ("12.5", 12.5),
        ("abc", 0.0),
        (None, 0.0),
        (float("nan"), 0.0),
        (float("inf"), 0.0),
    ])
    def test_to_number(self, value, expected):
        assert to_number(value) == expected

    def test_to_number_zero_uses_default(self):
        assert to_number(0, 10) == 10
        assert to_number("0", 10) == 10

    @pytest.mark.parametrize("value,expected", [
        (True, True),
        (False, False),
        ("true", True),
        ("Yes", True),
        ("1", True),
        ("false", False),
        ("", False),
        (1, True),
        (0, False),
        (None, False),
    ])
    def test_to_bool(self, value, expected):
        assert to_bool(value) is expected


class TestCategoryFeeConfig:
    """카테고리 회비 설정 정규화"""

    def test_default_config(self):
        config = CategoryFeeConfig(category_id="c1", name="U12")
        assert config.base_amount == 0
        assert config.due_day == 10
        assert config.is_variable_amount is False
        assert config.monthly_fees == []
        assert config.players == {}
        assert config.discounts.siblings.enabled is False
        assert config.discounts.siblings.is_percentage is False
        assert config.discounts.custom_discounts == []

    def test_loose_numbers_and_booleans(self):
        config = CategoryFeeConfig(
            category_id="c1",
            name="U12",
            base_amount="80",
            due_day="5",
            is_variable_amount="true"
        )
        assert config.base_amount == 80.0
        assert config.due_day == 5
        assert config.is_variable_amount is True

    @pytest.mark.parametrize("value,expected", [
        (None, 10),
        (0, 10),
        ("abc", 10),
        (45, 31),
        (-3, 1),
        (28, 28),
    ])
    def test_due_day_normalization(self, value, expected):
        assert CategoryFeeConfig(due_day=value).due_day == expected

    def test_monthly_fees_sorted_and_deduplicated(self):
        """같은 월은 나중 항목 우선"""
        config = CategoryFeeConfig(
            category_id="c1",
            name="U12",
            due_day=15,
            monthly_fees=[
                {"month": "2024-03", "amount": 10},
                {"month": "2024-01", "amount": "5", "due_day": 3},
                {"month": "2024-03", "amount": 20},
            ]
        )
        assert [f.month for f in config.monthly_fees] == ["2024-01", "2024-03"]
        assert config.monthly_fees[0].amount == 5.0
        assert config.monthly_fees[0].due_day == 3
        assert config.monthly_fees[1].amount == 20.0
        # 월별 납부일이 없으면 카테고리 납부일
        assert config.monthly_fees[1].due_day == 15

    def test_invalid_month_rejected(self):
        with pytest.raises(ValidationError):
            CategoryFeeConfig(monthly_fees=[{"month": "March", "amount": 10}])

    def test_malformed_nested_shapes(self):
        config = CategoryFeeConfig(
            category_id="c1",
            name="U12",
            monthly_fees="not-a-list",
            discounts=None,
            players={"p1": "yes", "p2": {"active": "true", "custom_amount": "0"}, 7: {"active": 1}}
        )
        assert config.monthly_fees == []
        assert config.discounts.siblings.enabled is False
        assert config.is_player_active("p1") is False
        assert config.is_player_active("p2") is True
        assert config.players["p2"].custom_amount is None
        assert config.is_player_active("7") is True
        assert config.is_player_active("missing") is False

    def test_custom_discount_months_coercion(self):
        config = CategoryFeeConfig(discounts={
            "siblings": {"enabled": "1", "amount": "10", "is_percentage": "false"},
            "custom_discounts": [{"name": "A", "amount": "5", "months": "2024-01"}]
        })
        assert config.discounts.siblings.enabled is True
        assert config.discounts.siblings.amount == 10.0
        assert config.discounts.siblings.is_percentage is False
        assert config.discounts.custom_discounts[0].months == []
        assert config.discounts.custom_discounts[0].id

    def test_to_document_is_json_ready(self):
        config = CategoryFeeConfig(category_id="c1", name="U12", monthly_fees=[{"month": "2024-01", "amount": 1}])
        doc = config.to_document()
        assert doc["monthly_fees"][0] == {"month": "2024-01", "amount": 1.0, "due_day": 10, "description": ""}
        assert doc["created_at"] is None


class TestMonthlyFee:

    def test_zero_due_day_is_unset(self):
        assert MonthlyFee(month="2024-01", due_day=0).due_day is None

    def test_month_is_trimmed(self):
        assert MonthlyFee(month=" 2024-01 ").month == "2024-01"


class TestPayment:
    """납부 기록 파싱"""

    def test_parse_stored_document(self):
        payment = Payment(**{
            "id": "pay-1",
            "player_id": "p1",
            "player_name": "김민준",
            "category_id": "c1",
            "category_name": "U12",
            "amount": 50,
            "month": "2024-02",
            "due_date": "2024-02-10T00:00:00Z",
            "payment_date": None,
            "status": "overdue",
            "payment_method": "",
        })
        assert payment.due_date == date(2024, 2, 10)
        assert payment.status == PaymentStatus.OVERDUE
        assert payment.payment_method is None
        assert payment.is_settled is False

    def test_to_document_excludes_id(self):
        payment = Payment(id="x", player_id="p1", month="2024-02", due_date=date(2024, 2, 10), status="paid")
        doc = payment.to_document()
        assert "id" not in doc
        assert doc["due_date"] == "2024-02-10"
        assert doc["status"] == "paid"


class TestPlayerRecord:

    def test_string_flags(self):
        player = PlayerRecord(id="p1", full_name="김민준", active="true", created_at="2024-02-01")
        assert player.active is True
        assert player.created_at.month == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
