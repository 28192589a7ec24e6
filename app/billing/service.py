"""
Payment Service

회비 엔진 진입점
- 회비 설정 조회/저장 (저장 시 카테고리 활성 선수 전체 재생성)
- 월별/선수별 납부 기록 조회 (선수별 조회는 항상 재생성 후 조회)
- 납부 상태 변경, 선수 계정/월간 요약, 납부 알림
"""
import asyncio
from datetime import datetime
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional, Union

from loguru import logger

from database.store import PAYMENTS, DocumentStore
from .config_store import FeeConfigStore
from .directory import ClubDirectory
from .errors import NotFound, PersistenceError
from .generator import PaymentGenerator
from .models import (
    BulkRegenerationReport,
    CategoryFeeConfig,
    ConfigSaveResult,
    MonthlySummary,
    NotificationCreate,
    NotificationType,
    Payment,
    PaymentNotification,
    PaymentStatus,
    PaymentStatusUpdate,
    PlayerAccount,
    RegenerationResult,
)
from .notifications import NotificationService, format_amount


class PaymentService:
    """회비 서비스 (상태 없음, 저장소/시계 주입)"""

    def __init__(
        self,
        store: DocumentStore,
        clock: Optional[Callable[[], datetime]] = None,
        concurrency: Optional[int] = None,
        atomic: Optional[bool] = None
    ):
        self.store = store
        self.clock = clock or datetime.now
        self.directory = ClubDirectory(store)
        self.configs = FeeConfigStore(store, self.directory, self.clock)
        self.generator = PaymentGenerator(
            store,
            self.configs,
            self.directory,
            clock=self.clock,
            concurrency=concurrency,
            atomic=atomic
        )
        self.notifications = NotificationService(store, self.directory, self.clock)

    # =============================================
    # 회비 설정
    # =============================================

    async def get_config(self, club_id: str, category_id: str) -> CategoryFeeConfig:
        """
        회비 설정 조회 (없으면 기본 설정 생성)

        Raises:
            NotFound: 카테고리 없음
        """
        return await asyncio.to_thread(self.configs.get_config, club_id, category_id)

    async def save_config(
        self,
        club_id: str,
        config: Union[CategoryFeeConfig, Dict[str, Any]]
    ) -> ConfigSaveResult:
        """
        회비 설정 저장 후 카테고리 활성 선수 전체 재생성

        Raises:
            InvalidConfig: 필수 필드 누락/값 오류 (아무것도 저장하지 않음)
        """
        saved = await asyncio.to_thread(self.configs.save_config, club_id, config)
        report = await self.generator.regenerate_category(club_id, saved)
        return ConfigSaveResult(config=saved, regeneration=report)

    # =============================================
    # 납부 기록
    # =============================================

    async def regenerate(self, club_id: str, player_id: str) -> RegenerationResult:
        return await self.generator.regenerate(club_id, player_id)

    async def get_monthly_payments(self, club_id: str, month: str) -> List[Payment]:
        """
        클럽 전체 월별 납부 기록 (재생성 없음)
        """
        rows = await asyncio.to_thread(self.store.query, club_id, PAYMENTS, month=month)
        payments = [Payment(**row) for row in rows]
        payments.sort(key=lambda p: (p.player_name, p.player_id))
        return payments

    async def get_player_payments(self, club_id: str, player_id: str) -> List[Payment]:
        """
        선수 납부 기록 (항상 재생성 후 조회)
        """
        await self.generator.regenerate(club_id, player_id)
        rows = await asyncio.to_thread(self.store.query, club_id, PAYMENTS, player_id=player_id)
        payments = [Payment(**row) for row in rows]
        payments.sort(key=lambda p: p.month)
        return payments

    async def set_payment_status(
        self,
        club_id: str,
        payment_id: str,
        update: PaymentStatusUpdate
    ) -> Payment:
        """
        납부 상태 직접 변경 (재생성 없음, 재시도 없음)

        - paid: 납부일이 없으면 현재 시각으로 기록
        - pending/overdue: 납부일/방식 초기화 (다음 재생성 대상이 됨)

        Raises:
            NotFound: 납부 기록 없음
        """
        return await asyncio.to_thread(self._set_payment_status, club_id, payment_id, update)

    def _set_payment_status(
        self,
        club_id: str,
        payment_id: str,
        update: PaymentStatusUpdate
    ) -> Payment:
        current = self.store.get(club_id, PAYMENTS, payment_id)
        if current is None:
            raise NotFound(f"납부 기록을 찾을 수 없습니다: {payment_id}")
        previous = Payment(**{**current, "id": payment_id})

        now = self.clock()
        changes: Dict[str, Any] = {
            "status": update.status.value,
            "updated_at": now.isoformat(),
        }
        if update.status == PaymentStatus.PAID:
            paid_at = update.payment_date or previous.payment_date or now
            changes["payment_date"] = paid_at.isoformat()
            if update.payment_method:
                changes["payment_method"] = update.payment_method.value
        else:
            changes["payment_date"] = None
            changes["payment_method"] = None
        if update.notes is not None:
            changes["notes"] = update.notes

        updated = self.store.update(club_id, PAYMENTS, payment_id, changes)
        if updated is None:
            raise NotFound(f"납부 기록을 찾을 수 없습니다: {payment_id}")
        payment = Payment(**{**updated, "id": payment_id})
        logger.info(
            f"납부 상태 변경: club={club_id} payment={payment_id} "
            f"{previous.status.value} → {payment.status.value}"
        )

        if payment.is_settled and not previous.is_settled:
            try:
                self.notifications.notify_payment(
                    club_id,
                    payment,
                    NotificationType.CONFIRMATION,
                    f"{payment.month} 회비 {format_amount(payment.amount)} 납부가 확인되었습니다"
                )
            except PersistenceError as e:
                logger.warning(f"납부 확인 알림 저장 실패: payment={payment_id}: {e}")

        return payment

    # =============================================
    # 계정/요약
    # =============================================

    async def get_player_account(self, club_id: str, player_id: str) -> PlayerAccount:
        """선수 계정: 상태별 합계 + 잔액 (미납 + 연체)"""
        payments = await self.get_player_payments(club_id, player_id)
        player = await asyncio.to_thread(self.directory.get_player, club_id, player_id)
        if player is None and not payments:
            raise NotFound(f"선수를 찾을 수 없습니다: {player_id}")

        totals = {status: 0.0 for status in PaymentStatus}
        for payment in payments:
            totals[payment.status] += payment.amount

        player_name = player.full_name if player else payments[-1].player_name
        return PlayerAccount(
            player_id=player_id,
            player_name=player_name,
            payments=payments,
            total_paid=totals[PaymentStatus.PAID],
            total_pending=totals[PaymentStatus.PENDING],
            total_overdue=totals[PaymentStatus.OVERDUE],
            balance=totals[PaymentStatus.PENDING] + totals[PaymentStatus.OVERDUE]
        )

    async def get_monthly_summary(self, club_id: str, month: str) -> MonthlySummary:
        """월간 요약: 수금액, 상태별 건수/금액, 카테고리별 수금액, 상태 분포(%)"""
        payments = await self.get_monthly_payments(club_id, month)
        active_players = await asyncio.to_thread(self.directory.list_active_players, club_id)

        summary = MonthlySummary(month=month, active_members=len(active_players))
        for payment in payments:
            if payment.status == PaymentStatus.PAID:
                summary.paid_count += 1
                summary.total_collected += payment.amount
                summary.collected_by_category[payment.category_id] = (
                    summary.collected_by_category.get(payment.category_id, 0.0) + payment.amount
                )
            elif payment.status == PaymentStatus.PENDING:
                summary.pending_count += 1
                summary.pending_amount += payment.amount
            elif payment.status == PaymentStatus.OVERDUE:
                summary.overdue_count += 1
                summary.overdue_amount += payment.amount

        total = len(payments) or 1
        summary.status_distribution = {
            "up_to_date": summary.paid_count / total * 100,
            "pending": summary.pending_count / total * 100,
            "overdue": summary.overdue_count / total * 100,
        }
        return summary

    async def sweep_club(self, club_id: str) -> BulkRegenerationReport:
        """클럽 활성 선수 전체 재생성 (야간 작업용)"""
        players = await asyncio.to_thread(self.directory.list_active_players, club_id)
        return await self.generator.regenerate_players(club_id, [p.id for p in players])

    # =============================================
    # 알림
    # =============================================

    async def create_notification(self, club_id: str, data: NotificationCreate) -> PaymentNotification:
        return await asyncio.to_thread(self.notifications.create, club_id, data)

    async def list_notifications(
        self,
        club_id: str,
        player_id: str,
        category_id: Optional[str] = None
    ) -> List[PaymentNotification]:
        return await asyncio.to_thread(
            self.notifications.list_for_player, club_id, player_id, category_id
        )

    async def get_notification(self, club_id: str, notification_id: str) -> PaymentNotification:
        return await asyncio.to_thread(self.notifications.get, club_id, notification_id)

    async def mark_notification_read(self, club_id: str, notification_id: str) -> PaymentNotification:
        return await asyncio.to_thread(self.notifications.mark_read, club_id, notification_id)

    async def send_overdue_reminders(self, club_id: str, month: str) -> int:
        return await asyncio.to_thread(self.notifications.send_overdue_reminders, club_id, month)


@lru_cache()
def get_payment_service() -> PaymentService:
    """Supabase 저장소 기반 서비스 (FastAPI Depends 용)"""
    from database.supabase_client import SupabaseDocumentStore

    return PaymentService(SupabaseDocumentStore())
