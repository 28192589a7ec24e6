"""
Payment Generator

선수별 월 납부 기록 생성/재생성
- 납부완료(paid) 기록은 그대로 유지
- 미납/연체 기록은 삭제 후 현재 설정으로 다시 생성 (수동 수정 내용은 사라짐)
- 같은 설정, 같은 날짜로 다시 실행하면 같은 결과 (멱등)
"""
import asyncio
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Tuple

from loguru import logger

from app.config import billing_config
from database.store import PAYMENTS, DocumentStore
from .config_store import FeeConfigStore
from .directory import ClubDirectory
from .discounts import apply_discounts
from .errors import PersistenceError
from .models import (
    BulkRegenerationReport,
    CategoryFeeConfig,
    Payment,
    PaymentStatus,
    PlayerRecord,
    RegenerationResult,
)
from .periods import due_date_for, iter_months


class PaymentGenerator:
    """납부 기록 생성기"""

    def __init__(
        self,
        store: DocumentStore,
        configs: FeeConfigStore,
        directory: ClubDirectory,
        clock: Optional[Callable[[], datetime]] = None,
        concurrency: Optional[int] = None,
        atomic: Optional[bool] = None
    ):
        self.store = store
        self.configs = configs
        self.directory = directory
        self.clock = clock or datetime.now
        self.concurrency = concurrency or billing_config.regeneration_concurrency
        self.atomic = billing_config.atomic_regeneration if atomic is None else atomic

    # =============================================
    # 계산 (저장 없음)
    # =============================================

    def billable_months(
        self,
        player: PlayerRecord,
        config: CategoryFeeConfig,
        now: datetime
    ) -> List[Tuple[str, float, int]]:
        """
        청구 대상 월 목록: (월, 기본 금액, 납부일)

        - 변동 금액 모드: monthly_fees에 있는 월만
        - 고정 모드: 등록 월 ~ 이번 달
        """
        if config.is_variable_amount:
            return [
                (fee.month, fee.amount, fee.due_day or config.due_day)
                for fee in config.monthly_fees
            ]

        if player.created_at is None:
            logger.warning(f"등록일 없음, 고정 회비 생성 불가: player={player.id}")
            return []

        return [
            (month, config.base_amount, config.due_day)
            for month in iter_months(player.created_at.date(), now.date())
        ]

    def build_payments(
        self,
        player: PlayerRecord,
        config: CategoryFeeConfig,
        now: datetime
    ) -> List[Payment]:
        """설정 기준 납부 기록 계산"""
        today = now.date()
        payments = []
        for month, base_amount, due_day in self.billable_months(player, config, now):
            due_date = due_date_for(month, due_day)
            payments.append(Payment(
                player_id=player.id,
                player_name=player.full_name,
                category_id=config.category_id,
                category_name=config.name,
                amount=apply_discounts(base_amount, config.discounts, month),
                month=month,
                due_date=due_date,
                status=PaymentStatus.OVERDUE if due_date < today else PaymentStatus.PENDING,
                created_at=now,
                updated_at=now
            ))
        return payments

    # =============================================
    # 재생성
    # =============================================

    async def regenerate(self, club_id: str, player_id: str) -> RegenerationResult:
        """
        선수 납부 기록 재생성

        선수/설정이 없거나 비활성이면 아무것도 하지 않고 skipped 결과 반환.

        Raises:
            PersistenceError: 저장소 오류 (트랜잭션 모드에서는 아무것도 변경되지 않음)
        """
        return await asyncio.to_thread(self._regenerate, club_id, player_id)

    def _skip(self, club_id: str, player_id: str, reason: str) -> RegenerationResult:
        logger.debug(f"재생성 건너뜀: club={club_id} player={player_id} ({reason})")
        return RegenerationResult(player_id=player_id, skipped=True, reason=reason)

    def _regenerate(self, club_id: str, player_id: str) -> RegenerationResult:
        player = self.directory.get_player(club_id, player_id)
        if player is None:
            return self._skip(club_id, player_id, "player_not_found")
        if not player.active:
            return self._skip(club_id, player_id, "player_inactive")
        if not player.category_id:
            return self._skip(club_id, player_id, "no_category")

        config = self.configs.find_config(club_id, player.category_id)
        if config is None:
            return self._skip(club_id, player_id, "config_not_found")
        if not config.is_player_active(player_id):
            return self._skip(club_id, player_id, "not_active_in_config")

        existing = [
            Payment(**row)
            for row in self.store.query(club_id, PAYMENTS, player_id=player_id)
        ]
        settled = [p for p in existing if p.is_settled]
        stale = [p for p in existing if not p.is_settled]
        paid_months = {p.month for p in settled}

        now = self.clock()
        payments = [
            p for p in self.build_payments(player, config, now)
            if p.month not in paid_months
        ]

        result = RegenerationResult(
            player_id=player_id,
            deleted=len(stale),
            retained_paid=len(settled),
            attempted=len(payments),
            negative_amount_months=[p.month for p in payments if p.amount < 0]
        )
        if result.negative_amount_months:
            logger.warning(
                f"할인 후 금액이 음수: club={club_id} player={player_id} "
                f"months={result.negative_amount_months}"
            )

        if self.atomic:
            saved = self.store.replace_player_payments(
                club_id, player_id, [p.to_document() for p in payments]
            )
            result.saved = len(saved)
            # 조회 이후 납부 완료된 월은 저장소에서 제외됨
            saved_months = {row.get("month") for row in saved}
            paid_meanwhile = [p.month for p in payments if p.month not in saved_months]
            if paid_meanwhile:
                logger.info(f"재생성 중 납부 완료된 월 유지: club={club_id} player={player_id} months={paid_meanwhile}")
                result.attempted -= len(paid_meanwhile)
                result.retained_paid += len(paid_meanwhile)
        else:
            self._replace_sequential(club_id, stale, payments, result)

        logger.info(
            f"납부 기록 재생성: club={club_id} player={player_id} "
            f"삭제 {result.deleted} / 저장 {result.saved}/{result.attempted} / 유지 {result.retained_paid}"
        )
        return result

    def _replace_sequential(
        self,
        club_id: str,
        stale: List[Payment],
        payments: List[Payment],
        result: RegenerationResult
    ) -> None:
        """트랜잭션 없이 문서 단위 삭제/저장 (일부 실패 시 실패한 월 기록)"""
        for payment in stale:
            self.store.delete(club_id, PAYMENTS, payment.id)

        for payment in payments:
            try:
                self.store.add(club_id, PAYMENTS, payment.to_document())
                result.saved += 1
            except PersistenceError as e:
                result.failed_months.append(payment.month)
                logger.error(f"납부 기록 저장 실패: player={payment.player_id} month={payment.month}: {e}")

    # =============================================
    # 일괄 재생성
    # =============================================

    async def regenerate_players(
        self,
        club_id: str,
        player_ids: Iterable[str],
        category_id: Optional[str] = None
    ) -> BulkRegenerationReport:
        """
        여러 선수 재생성 (동시 실행 수 제한)

        한 선수의 실패가 나머지 선수 처리를 막지 않는다.
        """
        player_ids = list(player_ids)
        semaphore = asyncio.Semaphore(self.concurrency)

        async def _run(player_id: str) -> RegenerationResult:
            async with semaphore:
                return await self.regenerate(club_id, player_id)

        outcomes = await asyncio.gather(
            *[_run(player_id) for player_id in player_ids],
            return_exceptions=True
        )

        report = BulkRegenerationReport(category_id=category_id, total=len(player_ids))
        for player_id, outcome in zip(player_ids, outcomes):
            if isinstance(outcome, Exception):
                report.failed[player_id] = str(outcome)
                logger.error(f"재생성 실패: club={club_id} player={player_id}: {outcome}")
                continue
            if isinstance(outcome, BaseException):
                raise outcome

            report.results.append(outcome)
            if outcome.skipped:
                report.skipped.append(player_id)
            elif not outcome.complete:
                report.failed[player_id] = (
                    f"{outcome.saved}/{outcome.attempted}건 저장 "
                    f"(실패: {', '.join(outcome.failed_months)})"
                )
            else:
                report.succeeded.append(player_id)

        if report.has_failures:
            logger.warning(
                f"일괄 재생성 일부 실패: club={club_id} category={category_id} "
                f"성공 {len(report.succeeded)} / 실패 {len(report.failed)} / 전체 {report.total}"
            )
        else:
            logger.info(
                f"일괄 재생성 완료: club={club_id} category={category_id} "
                f"성공 {len(report.succeeded)} / 건너뜀 {len(report.skipped)}"
            )
        return report

    async def regenerate_category(
        self,
        club_id: str,
        config: CategoryFeeConfig
    ) -> BulkRegenerationReport:
        """카테고리 내 활성 선수 (선수 활성 + 설정 활성) 전체 재생성"""
        players = await asyncio.to_thread(
            self.directory.list_category_players, club_id, config.category_id
        )
        targets = [p.id for p in players if p.active and config.is_player_active(p.id)]
        return await self.regenerate_players(club_id, targets, category_id=config.category_id)
