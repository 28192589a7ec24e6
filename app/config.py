"""
회비 관리 설정
"""
from pydantic_settings import BaseSettings
from pydantic import Field
from dotenv import load_dotenv

load_dotenv()


class SupabaseConfig(BaseSettings):
    """Supabase 설정"""

    supabase_url: str = Field(default="", description="Supabase Project URL")
    supabase_key: str = Field(default="", description="Supabase service key")

    class Config:
        env_prefix = ""
        case_sensitive = False


class BillingConfig(BaseSettings):
    """회비 엔진 설정"""

    default_due_day: int = Field(default=10, ge=1, le=31, description="기본 납부일")
    regeneration_concurrency: int = Field(default=4, ge=1, description="선수별 재생성 동시 실행 수")
    atomic_regeneration: bool = Field(
        default=True,
        description="재생성 시 삭제+생성을 단일 트랜잭션(RPC)으로 실행"
    )
    currency_symbol: str = Field(default="$", description="알림 메시지 통화 기호")

    class Config:
        env_prefix = "BILLING_"
        case_sensitive = False


class SchedulerConfig(BaseSettings):
    """스케줄러 설정"""

    daily_sweep_hour: int = Field(default=5, description="매일 전체 재생성 시간")
    overdue_reminder_hour: int = Field(default=9, description="연체 알림 발송 시간")
    overdue_reminders_enabled: bool = Field(default=True, description="연체 알림 활성화")

    class Config:
        env_prefix = "BILLING_SCHEDULER_"
        case_sensitive = False


class ServerConfig(BaseSettings):
    """API 서버 설정"""

    club_test_mode: bool = Field(default=False, description="테스트 모드 (CLUB_TEST_MODE=1)")
    host: str = "0.0.0.0"
    port: int = 7171

    class Config:
        env_prefix = ""
        case_sensitive = False


# 전역 설정 인스턴스
supabase_config = SupabaseConfig()
billing_config = BillingConfig()
scheduler_config = SchedulerConfig()
server_config = ServerConfig()
