"""
Billing Module

클럽 회비 관리
- 카테고리별 회비 설정 (고정/월별 변동 금액, 형제/특정 월 할인)
- 선수별 월 납부 기록 자동 생성 (납부완료 기록 보존, 멱등 재생성)
- 월별 납부 현황, 납부 상태 변경, 납부 알림
"""

from .router import router as billing_router
from .errors import BillingError, NotFound, InvalidConfig, PersistenceError, PermissionDenied
from .models import (
    PaymentStatus,
    PaymentMethod,
    NotificationType,
    CategoryFeeConfig,
    Payment,
)
from .service import PaymentService, get_payment_service
from .dependencies import ClubMemberContext, CollaboratorRole

__all__ = [
    "billing_router",
    "BillingError",
    "NotFound",
    "InvalidConfig",
    "PersistenceError",
    "PermissionDenied",
    "PaymentStatus",
    "PaymentMethod",
    "NotificationType",
    "CategoryFeeConfig",
    "Payment",
    "PaymentService",
    "get_payment_service",
    "ClubMemberContext",
    "CollaboratorRole",
]
