"""
회비 자동 작업 스케줄러
"""
import asyncio
from datetime import datetime
from typing import Callable, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger

from app.billing.errors import BillingError
from app.billing.models import BulkRegenerationReport
from app.billing.periods import month_key
from app.billing.service import PaymentService
from app.config import scheduler_config


class BillingScheduler:
    """클럽 회비 스케줄러"""

    def __init__(self, service: PaymentService, clock: Optional[Callable[[], datetime]] = None):
        """
        Args:
            service: 회비 서비스
            clock: 현재 시각 (테스트 주입용)
        """
        self.scheduler = AsyncIOScheduler()
        self.service = service
        self.clock = clock or datetime.now
        self._sweep_running = False
        self._reminder_running = False
        self._last_sweep: Optional[datetime] = None
        self._last_reminder: Optional[datetime] = None
        self._last_sweep_failures: Dict[str, int] = {}

    def setup(self):
        """스케줄러 설정"""
        # 매일 새벽 전체 재생성 (월이 바뀌면 새 달 기록 생성, 기한 지난 기록은 연체로)
        self.scheduler.add_job(
            self._run_sweep,
            CronTrigger(hour=scheduler_config.daily_sweep_hour, minute=0),
            id="daily_billing_sweep",
            name="Daily Billing Sweep",
            replace_existing=True
        )
        logger.info(f"매일 {scheduler_config.daily_sweep_hour}시 납부 기록 재생성 스케줄 등록")

        if scheduler_config.overdue_reminders_enabled:
            self.scheduler.add_job(
                self._run_overdue_reminders,
                CronTrigger(hour=scheduler_config.overdue_reminder_hour, minute=0),
                id="daily_overdue_reminders",
                name="Daily Overdue Reminders",
                replace_existing=True
            )
            logger.info(f"매일 {scheduler_config.overdue_reminder_hour}시 연체 알림 스케줄 등록")

    async def _run_sweep(self):
        """전체 클럽 재생성 실행"""
        if self._sweep_running:
            logger.warning("이미 재생성이 진행 중입니다")
            return

        self._sweep_running = True
        logger.info("=== 납부 기록 전체 재생성 시작 ===")

        try:
            club_ids = await asyncio.to_thread(self.service.directory.list_club_ids)
            failures: Dict[str, int] = {}
            total = BulkRegenerationReport()
            for club_id in club_ids:
                try:
                    report = await self.service.sweep_club(club_id)
                except BillingError as e:
                    logger.error(f"클럽 재생성 실패: club={club_id}: {e}")
                    failures[club_id] = -1
                    continue
                total = total.merge(report)
                if report.has_failures:
                    failures[club_id] = len(report.failed)

            self._last_sweep = self.clock()
            self._last_sweep_failures = failures
            logger.info(
                f"전체 재생성 완료: 클럽 {len(club_ids)}개, 선수 {total.total}명 "
                f"(성공 {len(total.succeeded)} / 건너뜀 {len(total.skipped)} / 실패 {len(total.failed)})"
            )
        except Exception as e:
            logger.error(f"전체 재생성 오류: {e}")
        finally:
            self._sweep_running = False

    async def _run_overdue_reminders(self):
        """이번 달 연체 알림 발송"""
        if self._reminder_running:
            logger.debug("연체 알림 발송 진행 중, 스킵")
            return
        if self._sweep_running:
            logger.debug("재생성 진행 중, 연체 알림 스킵")
            return

        self._reminder_running = True
        month = month_key(self.clock())
        logger.info(f"--- 연체 알림 발송 시작 ({month}) ---")

        try:
            club_ids = await asyncio.to_thread(self.service.directory.list_club_ids)
            created = 0
            for club_id in club_ids:
                try:
                    created += await self.service.send_overdue_reminders(club_id, month)
                except BillingError as e:
                    logger.error(f"연체 알림 실패: club={club_id}: {e}")
            self._last_reminder = self.clock()
            logger.info(f"연체 알림 발송 완료: {created}건")
        except Exception as e:
            logger.error(f"연체 알림 오류: {e}")
        finally:
            self._reminder_running = False

    def start(self):
        """스케줄러 시작"""
        self.setup()
        self.scheduler.start()
        logger.info("스케줄러 시작됨")

    def stop(self):
        """스케줄러 중지"""
        self.scheduler.shutdown()
        logger.info("스케줄러 중지됨")

    def get_status(self) -> dict:
        """스케줄러 상태 조회"""
        jobs = []
        for job in self.scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": next_run.isoformat() if next_run else None
            })

        return {
            "sweep_running": self._sweep_running,
            "reminder_running": self._reminder_running,
            "last_sweep": self._last_sweep.isoformat() if self._last_sweep else None,
            "last_reminder": self._last_reminder.isoformat() if self._last_reminder else None,
            "last_sweep_failures": dict(self._last_sweep_failures),
            "jobs": jobs
        }

    async def run_now(self, job_type: str = "sweep"):
        """즉시 실행"""
        if job_type == "sweep":
            await self._run_sweep()
        elif job_type == "reminders":
            await self._run_overdue_reminders()
        else:
            logger.warning(f"알 수 없는 작업 타입: {job_type}")
