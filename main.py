"""
클럽 회비 관리 메인
"""
import asyncio
import sys
from datetime import datetime
from typing import Optional

from loguru import logger

from app.billing.periods import is_month_key, month_key
from app.billing.service import PaymentService, get_payment_service
from app.config import server_config
from scheduler.scheduler import BillingScheduler


# 로깅 설정
logger.remove()
logger.add(
    sys.stderr,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    level="INFO"
)
logger.add(
    "logs/billing_{time:YYYY-MM-DD}.log",
    rotation="1 day",
    retention="30 days",
    level="DEBUG"
)


class BillingRunner:
    """회비 작업 실행기"""

    def __init__(self, service: Optional[PaymentService] = None):
        self.service = service
        self._initialized = service is not None

    async def initialize(self):
        """초기화"""
        try:
            self.service = get_payment_service()
            self._initialized = True
            logger.info("회비 서비스 초기화 완료")
        except Exception as e:
            logger.error(f"초기화 오류: {e}")
            raise

    async def regenerate(self, club_id: str, player_id: str) -> bool:
        """선수 1명 재생성"""
        if not self._initialized:
            await self.initialize()

        result = await self.service.regenerate(club_id, player_id)
        if result.skipped:
            logger.info(f"재생성 건너뜀: {result.reason}")
            return True

        logger.info(f"  삭제: {result.deleted}건")
        logger.info(f"  저장: {result.saved}/{result.attempted}건")
        logger.info(f"  납부완료 유지: {result.retained_paid}건")
        if result.negative_amount_months:
            logger.warning(f"  음수 금액: {', '.join(result.negative_amount_months)}")
        return result.complete

    async def sweep(self, club_id: Optional[str] = None) -> bool:
        """클럽 (지정 없으면 전체 클럽) 재생성"""
        if not self._initialized:
            await self.initialize()

        club_ids = [club_id] if club_id else await asyncio.to_thread(
            self.service.directory.list_club_ids
        )
        start_time = datetime.now()
        ok = True
        for cid in club_ids:
            report = await self.service.sweep_club(cid)
            logger.info(
                f"[{cid}] 성공 {len(report.succeeded)} / 건너뜀 {len(report.skipped)} / "
                f"실패 {len(report.failed)}"
            )
            for player_id, reason in report.failed.items():
                logger.error(f"  {player_id}: {reason}")
            ok = ok and not report.has_failures

        duration = (datetime.now() - start_time).total_seconds()
        logger.info(f"재생성 완료: 클럽 {len(club_ids)}개, {duration:.1f}초")
        return ok

    async def summary(self, club_id: str, month: str):
        """월간 요약 출력"""
        if not self._initialized:
            await self.initialize()

        summary = await self.service.get_monthly_summary(club_id, month)
        print(f"\n=== {month} 회비 현황 ({club_id}) ===")
        print(f"  수금액: {summary.total_collected:,.0f}")
        print(f"  납부완료: {summary.paid_count}건")
        print(f"  미납: {summary.pending_count}건 ({summary.pending_amount:,.0f})")
        print(f"  연체: {summary.overdue_count}건 ({summary.overdue_amount:,.0f})")
        print(f"  활성 회원: {summary.active_members}명")
        for category_id, amount in summary.collected_by_category.items():
            print(f"  [{category_id}] {amount:,.0f}")


async def main():
    """메인 함수"""
    import argparse

    parser = argparse.ArgumentParser(description="클럽 회비 관리")
    parser.add_argument(
        "--mode",
        choices=["regenerate", "sweep", "summary", "scheduler", "serve"],
        default="sweep",
        help="실행 모드"
    )
    parser.add_argument("--club", help="클럽 ID")
    parser.add_argument("--player", help="선수 ID (regenerate 모드)")
    parser.add_argument("--month", help="YYYY-MM (summary 모드, 기본: 이번 달)")

    args = parser.parse_args()

    runner = BillingRunner()

    if args.mode == "regenerate":
        if not args.club or not args.player:
            parser.error("--club 과 --player 가 필요합니다")
        if not await runner.regenerate(args.club, args.player):
            sys.exit(1)

    elif args.mode == "sweep":
        if not await runner.sweep(args.club):
            sys.exit(1)

    elif args.mode == "summary":
        if not args.club:
            parser.error("--club 이 필요합니다")
        month = args.month or month_key(datetime.now())
        if not is_month_key(month):
            parser.error("--month 형식은 YYYY-MM 입니다")
        await runner.summary(args.club, month)

    elif args.mode == "scheduler":
        # 스케줄러 모드
        await runner.initialize()

        scheduler = BillingScheduler(runner.service)
        scheduler.start()

        logger.info("스케줄러 모드로 실행 중... (Ctrl+C로 종료)")

        try:
            # 무한 대기
            while True:
                await asyncio.sleep(60)
                status = scheduler.get_status()
                logger.debug(f"스케줄러 상태: {status}")
        except (KeyboardInterrupt, asyncio.CancelledError):
            scheduler.stop()
            logger.info("스케줄러 종료됨")

    elif args.mode == "serve":
        import uvicorn

        config = uvicorn.Config("app.server:app", host=server_config.host, port=server_config.port)
        await uvicorn.Server(config).serve()


if __name__ == "__main__":
    asyncio.run(main())
