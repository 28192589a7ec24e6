"""
납부 알림

- 납부 안내 / 연체 안내 / 납부 확인
- 선수+카테고리 기준 최신순 조회
"""
from datetime import datetime, timezone
from typing import Callable, List, Optional

from loguru import logger

from app.config import billing_config
from database.store import PAYMENT_NOTIFICATIONS, PAYMENTS, DocumentStore
from .directory import ClubDirectory
from .errors import NotFound
from .models import (
    NotificationCreate,
    NotificationType,
    Payment,
    PaymentNotification,
    PaymentStatus,
)


def format_amount(amount: float) -> str:
    return f"{billing_config.currency_symbol}{amount:,.0f}"


def created_sort_key(notification: PaymentNotification) -> datetime:
    """정렬용 생성 시각 (naive 값은 UTC 기준, 없으면 가장 오래된 값)"""
    created = notification.created_at
    if created is None:
        return datetime.min.replace(tzinfo=timezone.utc)
    if created.tzinfo is None:
        return created.replace(tzinfo=timezone.utc)
    return created


class NotificationService:
    """납부 알림 서비스"""

    def __init__(
        self,
        store: DocumentStore,
        directory: ClubDirectory,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.store = store
        self.directory = directory
        self.clock = clock or datetime.now

    def _save(self, club_id: str, notification: PaymentNotification) -> PaymentNotification:
        saved = self.store.add(club_id, PAYMENT_NOTIFICATIONS, notification.to_document())
        return PaymentNotification(**saved)

    def create(self, club_id: str, data: NotificationCreate) -> PaymentNotification:
        """
        알림 생성 (선수/카테고리 이름은 현재 값으로 기록)

        Raises:
            NotFound: 선수 또는 카테고리 없음
        """
        player = self.directory.get_player(club_id, data.player_id)
        if player is None:
            raise NotFound(f"선수를 찾을 수 없습니다: {data.player_id}")
        category = self.directory.get_category(club_id, data.category_id)
        if category is None:
            raise NotFound(f"카테고리를 찾을 수 없습니다: {data.category_id}")

        notification = PaymentNotification(
            **data.model_dump(),
            player_name=player.full_name,
            category_name=category.name,
            created_at=self.clock(),
            read=False
        )
        return self._save(club_id, notification)

    def notify_payment(
        self,
        club_id: str,
        payment: Payment,
        notification_type: NotificationType,
        message: str
    ) -> PaymentNotification:
        """납부 기록 기준 알림 (납부 기록의 스냅샷 이름 사용)"""
        notification = PaymentNotification(
            player_id=payment.player_id,
            player_name=payment.player_name,
            category_id=payment.category_id,
            category_name=payment.category_name,
            type=notification_type,
            message=message,
            amount=payment.amount,
            due_date=payment.due_date,
            payment_id=payment.id,
            created_at=self.clock(),
            read=False
        )
        return self._save(club_id, notification)

    def list_for_player(
        self,
        club_id: str,
        player_id: str,
        category_id: Optional[str] = None
    ) -> List[PaymentNotification]:
        filters = {"player_id": player_id}
        if category_id:
            filters["category_id"] = category_id
        rows = self.store.query(club_id, PAYMENT_NOTIFICATIONS, **filters)
        notifications = [PaymentNotification(**row) for row in rows]
        notifications.sort(key=created_sort_key, reverse=True)
        return notifications

    def get(self, club_id: str, notification_id: str) -> PaymentNotification:
        data = self.store.get(club_id, PAYMENT_NOTIFICATIONS, notification_id)
        if data is None:
            raise NotFound(f"알림을 찾을 수 없습니다: {notification_id}")
        return PaymentNotification(**{**data, "id": notification_id})

    def mark_read(self, club_id: str, notification_id: str) -> PaymentNotification:
        updated = self.store.update(club_id, PAYMENT_NOTIFICATIONS, notification_id, {"read": True})
        if updated is None:
            raise NotFound(f"알림을 찾을 수 없습니다: {notification_id}")
        return PaymentNotification(**{**updated, "id": notification_id})

    def send_overdue_reminders(self, club_id: str, month: str) -> int:
        """
        해당 월 연체 기록마다 연체 알림 1건

        재생성 시 납부 기록 id가 바뀌므로 (선수, 납부기한) 기준으로 이미 보낸 알림은 제외.

        Returns:
            새로 생성한 알림 수
        """
        overdue = [
            Payment(**row)
            for row in self.store.query(club_id, PAYMENTS, month=month, status=PaymentStatus.OVERDUE.value)
        ]
        already_sent = {
            (n.player_id, n.due_date)
            for n in (
                PaymentNotification(**row)
                for row in self.store.query(
                    club_id, PAYMENT_NOTIFICATIONS, type=NotificationType.OVERDUE.value
                )
            )
        }

        created = 0
        for payment in overdue:
            if (payment.player_id, payment.due_date) in already_sent:
                continue
            self.notify_payment(
                club_id,
                payment,
                NotificationType.OVERDUE,
                f"{payment.month} 회비 {format_amount(payment.amount)} 연체 중입니다 "
                f"(납부기한 {payment.due_date.isoformat()})"
            )
            created += 1

        logger.info(f"연체 알림 발송: club={club_id} month={month} {created}건")
        return created
