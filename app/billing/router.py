"""
Billing Router

클럽 회비 관리 API
- 카테고리 회비 설정
- 선수별 납부 기록/계정
- 월별 납부 현황/요약
- 납부 상태 변경
- 납부 알림
"""

from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from loguru import logger

from .dependencies import (
    ClubMemberContext,
    get_current_club_member,
    require_finance_manage,
    require_finance_view,
)
from .errors import BillingError
from .models import (
    BulkRegenerationReport,
    CategoryFeeConfig,
    ConfigSaveResult,
    MonthlySummary,
    NotificationCreate,
    Payment,
    PaymentNotification,
    PaymentStatusUpdate,
    PlayerAccount,
    RegenerationResult,
)
from .periods import is_month_key
from .service import PaymentService, get_payment_service

router = APIRouter(prefix="/clubs/{club_id}/billing", tags=["Billing"])


@contextmanager
def billing_errors():
    """회비 엔진 예외 → HTTPException"""
    try:
        yield
    except BillingError as e:
        if e.status_code >= 500:
            logger.error(f"회비 처리 실패: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.message)


def _require_month(month: str) -> str:
    if not is_month_key(month):
        raise HTTPException(status_code=400, detail="월 형식은 YYYY-MM 입니다")
    return month


# =============================================
# Fee Configuration
# =============================================

@router.get("/categories/{category_id}/fees", response_model=CategoryFeeConfig)
async def get_fee_config(
    club_id: str,
    category_id: str,
    member: ClubMemberContext = Depends(require_finance_view),
    service: PaymentService = Depends(get_payment_service)
):
    """카테고리 회비 설정 (없으면 기본 설정 생성)"""
    with billing_errors():
        return await service.get_config(club_id, category_id)


@router.put("/categories/{category_id}/fees", response_model=ConfigSaveResult)
async def save_fee_config(
    club_id: str,
    category_id: str,
    config: Dict[str, Any] = Body(...),
    member: ClubMemberContext = Depends(require_finance_manage),
    service: PaymentService = Depends(get_payment_service)
):
    """
    카테고리 회비 설정 저장

    저장 후 카테고리 활성 선수 전체의 납부 기록을 재생성하고 결과 요약을 반환합니다.
    """
    with billing_errors():
        result = await service.save_config(club_id, {**config, "category_id": category_id})
    logger.info(f"회비 설정 저장 요청: club={club_id} category={category_id} by={member.member_id}")
    return result


# =============================================
# Player Payments
# =============================================

@router.post("/players/{player_id}/regenerate", response_model=RegenerationResult)
async def regenerate_player(
    club_id: str,
    player_id: str,
    member: ClubMemberContext = Depends(require_finance_manage),
    service: PaymentService = Depends(get_payment_service)
):
    with billing_errors():
        return await service.regenerate(club_id, player_id)


@router.get("/players/{player_id}/payments", response_model=List[Payment])
async def get_player_payments(
    club_id: str,
    player_id: str,
    member: ClubMemberContext = Depends(get_current_club_member),
    service: PaymentService = Depends(get_payment_service)
):
    """선수 납부 기록 (재생성 후 조회, 월 오름차순)"""
    with billing_errors():
        member.check_player_access(player_id)
        return await service.get_player_payments(club_id, player_id)


@router.get("/players/{player_id}/account", response_model=PlayerAccount)
async def get_player_account(
    club_id: str,
    player_id: str,
    member: ClubMemberContext = Depends(get_current_club_member),
    service: PaymentService = Depends(get_payment_service)
):
    """선수 계정 (납부/미납/연체 합계, 잔액)"""
    with billing_errors():
        member.check_player_access(player_id)
        return await service.get_player_account(club_id, player_id)


# =============================================
# Monthly Overview
# =============================================

@router.get("/payments", response_model=List[Payment])
async def get_monthly_payments(
    club_id: str,
    month: str = Query(..., description="YYYY-MM"),
    member: ClubMemberContext = Depends(require_finance_view),
    service: PaymentService = Depends(get_payment_service)
):
    with billing_errors():
        return await service.get_monthly_payments(club_id, _require_month(month))


@router.get("/summary", response_model=MonthlySummary)
async def get_monthly_summary(
    club_id: str,
    month: str = Query(..., description="YYYY-MM"),
    member: ClubMemberContext = Depends(require_finance_view),
    service: PaymentService = Depends(get_payment_service)
):
    """월간 요약 (수금액, 상태별 건수, 카테고리별 수금액, 상태 분포)"""
    with billing_errors():
        return await service.get_monthly_summary(club_id, _require_month(month))


@router.patch("/payments/{payment_id}/status", response_model=Payment)
async def update_payment_status(
    club_id: str,
    payment_id: str,
    update: PaymentStatusUpdate,
    member: ClubMemberContext = Depends(require_finance_manage),
    service: PaymentService = Depends(get_payment_service)
):
    """
    납부 상태 변경

    미납/연체로 되돌리면 다음 재생성 때 현재 설정 기준으로 다시 계산됩니다.
    """
    with billing_errors():
        return await service.set_payment_status(club_id, payment_id, update)


@router.post("/sweep", response_model=BulkRegenerationReport)
async def sweep_club(
    club_id: str,
    member: ClubMemberContext = Depends(require_finance_manage),
    service: PaymentService = Depends(get_payment_service)
):
    """클럽 활성 선수 전체 재생성"""
    with billing_errors():
        return await service.sweep_club(club_id)


# =============================================
# Notifications
# =============================================

@router.get("/players/{player_id}/notifications", response_model=List[PaymentNotification])
async def list_notifications(
    club_id: str,
    player_id: str,
    category_id: Optional[str] = None,
    member: ClubMemberContext = Depends(get_current_club_member),
    service: PaymentService = Depends(get_payment_service)
):
    with billing_errors():
        member.check_player_access(player_id)
        return await service.list_notifications(club_id, player_id, category_id)


@router.post("/players/{player_id}/notifications", response_model=PaymentNotification, status_code=201)
async def create_notification(
    club_id: str,
    player_id: str,
    data: NotificationCreate,
    member: ClubMemberContext = Depends(require_finance_manage),
    service: PaymentService = Depends(get_payment_service)
):
    if data.player_id != player_id:
        raise HTTPException(status_code=400, detail="선수 ID가 일치하지 않습니다")
    with billing_errors():
        return await service.create_notification(club_id, data)


@router.patch("/notifications/{notification_id}/read", response_model=PaymentNotification)
async def mark_notification_read(
    club_id: str,
    notification_id: str,
    member: ClubMemberContext = Depends(get_current_club_member),
    service: PaymentService = Depends(get_payment_service)
):
    with billing_errors():
        notification = await service.get_notification(club_id, notification_id)
        member.check_player_access(notification.player_id)
        return await service.mark_notification_read(club_id, notification_id)


@router.post("/notifications/overdue")
async def send_overdue_reminders(
    club_id: str,
    month: str = Query(..., description="YYYY-MM"),
    member: ClubMemberContext = Depends(require_finance_manage),
    service: PaymentService = Depends(get_payment_service)
):
    """해당 월 연체 선수에게 연체 알림 발송 (이미 보낸 건 제외)"""
    with billing_errors():
        created = await service.send_overdue_reminders(club_id, _require_month(month))
    return {"month": month, "created": created}
