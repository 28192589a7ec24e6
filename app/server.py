"""
Club Billing - FastAPI 웹 서버
클럽 회비 설정, 납부 기록, 납부 알림 API

데이터 소스: Supabase (전용)
"""
from datetime import datetime

from fastapi import FastAPI
from loguru import logger

from app.billing import billing_router
from app.config import billing_config, server_config

# FastAPI 앱
app = FastAPI(
    title="Club Billing",
    description="클럽 회비 설정 및 납부 기록 관리",
    version="1.0.0"
)

# Billing 라우터 등록
app.include_router(billing_router, prefix="/api")


# ==================== API Endpoints ====================

@app.on_event("startup")
async def startup_event():
    """서버 시작"""
    mode = "테스트 모드" if server_config.club_test_mode else "Supabase 인증"
    logger.info(
        f"✅ 서버 시작 완료 - {mode}, "
        f"재생성 동시 실행 {billing_config.regeneration_concurrency}, "
        f"트랜잭션 재생성 {'사용' if billing_config.atomic_regeneration else '미사용'}"
    )


@app.on_event("shutdown")
async def shutdown_event():
    """서버 종료 시 정리"""
    logger.info("서버 종료됨")


@app.get("/api/status")
async def api_status():
    """서버 상태 API"""
    return {
        "status": "ok",
        "time": datetime.now().isoformat(),
        "test_mode": server_config.club_test_mode,
        "atomic_regeneration": billing_config.atomic_regeneration,
    }
