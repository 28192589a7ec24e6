"""
할인 계산

1. 형제 할인: 기본 금액 기준
2. 월 지정 할인: 형제 할인이 적용된 금액 기준, 목록 순서상 첫 번째 일치 항목 1개만

결과가 음수여도 보정하지 않는다 (호출 측에서 경고).
"""
from typing import Optional

from .models import CustomDiscount, DiscountConfig


def _discount_value(amount: float, value: float, is_percentage: bool) -> float:
    return amount * (value / 100) if is_percentage else value


def find_custom_discount(discounts: DiscountConfig, month: str) -> Optional[CustomDiscount]:
    """해당 월에 적용되는 첫 번째 월 지정 할인"""
    for discount in discounts.custom_discounts:
        if discount.applies_to(month):
            return discount
    return None


def apply_discounts(base_amount: float, discounts: Optional[DiscountConfig], month: str) -> float:
    """
    기본 금액에 할인 적용

    Args:
        base_amount: 해당 월 기본 금액
        discounts: 카테고리 할인 설정
        month: "YYYY-MM"

    Returns:
        할인 후 금액 (음수 가능)
    """
    amount = float(base_amount)
    if discounts is None:
        return amount

    siblings = discounts.siblings
    if siblings.enabled:
        amount -= _discount_value(amount, siblings.amount, siblings.is_percentage)

    custom = find_custom_discount(discounts, month)
    if custom:
        amount -= _discount_value(amount, custom.amount, custom.is_percentage)

    return amount
