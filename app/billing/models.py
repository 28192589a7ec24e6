"""
Billing Models

Pydantic 모델 정의
- 저장소 문서는 이 모델로 한 번만 정규화된다 (숫자/불리언 강제 변환, 월별 회비 정렬/중복 제거)
"""

import math
import uuid
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from app.config import billing_config
from .periods import parse_month, parse_timestamp


# =============================================
# Enums
# =============================================

class PaymentStatus(str, Enum):
    """납부 상태"""
    PAID = "paid"           # 납부완료
    PENDING = "pending"     # 대기
    OVERDUE = "overdue"     # 연체


class PaymentMethod(str, Enum):
    """납부 방식"""
    CASH = "cash"           # 현금
    TRANSFER = "transfer"   # 계좌이체
    CARD = "card"           # 카드


class NotificationType(str, Enum):
    """납부 알림 유형"""
    REMINDER = "reminder"           # 납부 안내
    OVERDUE = "overdue"             # 연체 안내
    CONFIRMATION = "confirmation"   # 납부 확인


# =============================================
# 강제 변환 헬퍼
# =============================================

TRUE_STRINGS = {"true", "1", "yes", "on"}


def to_number(value: Any, default: float = 0.0) -> float:
    """숫자로 변환, 실패/NaN/0 이면 default"""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number or default


def to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    return bool(value)


def clamp_due_day(value: Any, default: int) -> int:
    """납부일 정규화 (없거나 0이면 default, 그 외 1~31)"""
    day = int(to_number(value, 0))
    if not day:
        return default
    return min(max(day, 1), 31)


# =============================================
# Fee Configuration Models
# =============================================

class MonthlyFee(BaseModel):
    """월별 회비 (변동 금액 모드 전용)"""
    month: str
    amount: float = 0.0
    due_day: Optional[int] = None  # None이면 카테고리 기본 납부일
    description: str = ""

    @field_validator("month", mode="before")
    @classmethod
    def validate_month(cls, v):
        key = str(v).strip()
        parse_month(key)
        return key

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, v):
        return to_number(v)

    @field_validator("due_day", mode="before")
    @classmethod
    def coerce_due_day(cls, v):
        day = int(to_number(v, 0))
        return min(max(day, 1), 31) if day else None

    @field_validator("description", mode="before")
    @classmethod
    def coerce_description(cls, v):
        return "" if v is None else str(v)


class SiblingDiscount(BaseModel):
    """형제 할인"""
    enabled: bool = False
    amount: float = 0.0
    is_percentage: bool = False

    @field_validator("enabled", "is_percentage", mode="before")
    @classmethod
    def coerce_bool(cls, v):
        return to_bool(v)

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, v):
        return to_number(v)


class CustomDiscount(BaseModel):
    """특정 월 할인"""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    name: str = ""
    amount: float = 0.0
    is_percentage: bool = False
    description: str = ""
    months: List[str] = Field(default_factory=list)

    @field_validator("id", "name", "description", mode="before")
    @classmethod
    def coerce_str(cls, v):
        return "" if v is None else str(v)

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, v):
        return to_number(v)

    @field_validator("is_percentage", mode="before")
    @classmethod
    def coerce_bool(cls, v):
        return to_bool(v)

    @field_validator("months", mode="before")
    @classmethod
    def coerce_months(cls, v):
        if not isinstance(v, (list, tuple)):
            return []
        return [str(m).strip() for m in v]

    def applies_to(self, month: str) -> bool:
        return month in self.months


class DiscountConfig(BaseModel):
    """할인 설정"""
    siblings: SiblingDiscount = Field(default_factory=SiblingDiscount)
    custom_discounts: List[CustomDiscount] = Field(default_factory=list)

    @field_validator("siblings", mode="before")
    @classmethod
    def coerce_siblings(cls, v):
        return v if isinstance(v, (dict, SiblingDiscount)) else {}

    @field_validator("custom_discounts", mode="before")
    @classmethod
    def coerce_custom(cls, v):
        return v if isinstance(v, (list, tuple)) else []


class PlayerFeeStatus(BaseModel):
    """선수별 회비 적용 여부"""
    active: bool = False
    custom_amount: Optional[float] = None

    @model_validator(mode="before")
    @classmethod
    def coerce_shape(cls, data):
        if isinstance(data, PlayerFeeStatus):
            return data
        if not isinstance(data, dict):
            return {}
        return data

    @field_validator("active", mode="before")
    @classmethod
    def coerce_active(cls, v):
        return to_bool(v)

    @field_validator("custom_amount", mode="before")
    @classmethod
    def coerce_custom_amount(cls, v):
        amount = to_number(v, 0.0)
        return amount or None


class CategoryFeeConfig(BaseModel):
    """카테고리 회비 설정 (카테고리당 1개)"""
    category_id: str = ""
    name: str = ""
    base_amount: float = 0.0
    due_day: int = Field(default_factory=lambda: billing_config.default_due_day)
    is_variable_amount: bool = False
    monthly_fees: List[MonthlyFee] = Field(default_factory=list)
    discounts: DiscountConfig = Field(default_factory=DiscountConfig)
    players: Dict[str, PlayerFeeStatus] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("category_id", "name", mode="before")
    @classmethod
    def coerce_str(cls, v):
        return "" if v is None else str(v).strip()

    @field_validator("base_amount", mode="before")
    @classmethod
    def coerce_amount(cls, v):
        return to_number(v)

    @field_validator("due_day", mode="before")
    @classmethod
    def coerce_due_day(cls, v):
        return clamp_due_day(v, billing_config.default_due_day)

    @field_validator("is_variable_amount", mode="before")
    @classmethod
    def coerce_bool(cls, v):
        return to_bool(v)

    @field_validator("monthly_fees", mode="before")
    @classmethod
    def coerce_monthly_fees(cls, v):
        return v if isinstance(v, (list, tuple)) else []

    @field_validator("discounts", mode="before")
    @classmethod
    def coerce_discounts(cls, v):
        return v if isinstance(v, (dict, DiscountConfig)) else {}

    @field_validator("players", mode="before")
    @classmethod
    def coerce_players(cls, v):
        if not isinstance(v, dict):
            return {}
        return {str(k): value for k, value in v.items()}

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def coerce_timestamp(cls, v):
        return parse_timestamp(v)

    @model_validator(mode="after")
    def normalize_monthly_fees(self):
        # 같은 월은 나중 항목 우선, 월 오름차순 정렬
        by_month: Dict[str, MonthlyFee] = {}
        for fee in self.monthly_fees:
            by_month[fee.month] = fee
        fees = []
        for month in sorted(by_month):
            fee = by_month[month]
            if fee.due_day is None:
                fee = fee.model_copy(update={"due_day": self.due_day})
            fees.append(fee)
        self.monthly_fees = fees
        return self

    def is_player_active(self, player_id: str) -> bool:
        status = self.players.get(player_id)
        return bool(status and status.active)

    def to_document(self) -> Dict[str, Any]:
        """저장소 문서 형태"""
        return self.model_dump(mode="json")


# =============================================
# Payment Models
# =============================================

class Payment(BaseModel):
    """월 납부 기록 (선수 1명, 1개월)"""
    id: Optional[str] = None
    player_id: str
    player_name: str = ""       # 생성 시점 스냅샷
    category_id: str = ""
    category_name: str = ""     # 생성 시점 스냅샷
    amount: float = 0.0
    month: str
    due_date: date
    payment_date: Optional[datetime] = None
    status: PaymentStatus = PaymentStatus.PENDING
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("due_date", mode="before")
    @classmethod
    def coerce_due_date(cls, v):
        if isinstance(v, str) and "T" in v:
            parsed = parse_timestamp(v)
            return parsed.date() if parsed else v
        if isinstance(v, datetime):
            return v.date()
        return v

    @field_validator("payment_date", "created_at", "updated_at", mode="before")
    @classmethod
    def coerce_timestamp(cls, v):
        return parse_timestamp(v)

    @field_validator("payment_method", mode="before")
    @classmethod
    def coerce_method(cls, v):
        return v or None

    @property
    def is_settled(self) -> bool:
        return self.status == PaymentStatus.PAID

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude={"id"})


class PaymentStatusUpdate(BaseModel):
    """납부 상태 변경"""
    status: PaymentStatus
    payment_date: Optional[datetime] = None
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = None


# =============================================
# Directory Models (외부 소유 데이터)
# =============================================

class PlayerRecord(BaseModel):
    """선수 (회비 계산에 필요한 필드만)"""
    id: str
    full_name: str = ""
    category_id: Optional[str] = None
    active: bool = False
    created_at: Optional[datetime] = None

    @field_validator("active", mode="before")
    @classmethod
    def coerce_active(cls, v):
        return to_bool(v)

    @field_validator("created_at", mode="before")
    @classmethod
    def coerce_created_at(cls, v):
        return parse_timestamp(v)


class CategoryRecord(BaseModel):
    """카테고리"""
    id: str
    name: str = ""
    active: bool = True


# =============================================
# Result Models
# =============================================

class RegenerationResult(BaseModel):
    """선수 1명 재생성 결과"""
    player_id: str
    skipped: bool = False
    reason: Optional[str] = None
    deleted: int = 0
    retained_paid: int = 0
    attempted: int = 0
    saved: int = 0
    failed_months: List[str] = Field(default_factory=list)
    negative_amount_months: List[str] = Field(default_factory=list)

    @property
    def complete(self) -> bool:
        return self.skipped or self.saved == self.attempted


class BulkRegenerationReport(BaseModel):
    """카테고리/클럽 단위 일괄 재생성 결과"""
    category_id: Optional[str] = None
    total: int = 0
    succeeded: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    failed: Dict[str, str] = Field(default_factory=dict)
    results: List[RegenerationResult] = Field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return bool(self.failed)

    def merge(self, other: "BulkRegenerationReport") -> "BulkRegenerationReport":
        return BulkRegenerationReport(
            category_id=None,
            total=self.total + other.total,
            succeeded=self.succeeded + other.succeeded,
            skipped=self.skipped + other.skipped,
            failed={**self.failed, **other.failed},
            results=self.results + other.results,
        )


class ConfigSaveResult(BaseModel):
    """회비 설정 저장 결과"""
    config: CategoryFeeConfig
    regeneration: BulkRegenerationReport


class PlayerAccount(BaseModel):
    """선수 계정 (납부 현황)"""
    player_id: str
    player_name: str = ""
    payments: List[Payment] = Field(default_factory=list)
    total_paid: float = 0.0
    total_pending: float = 0.0
    total_overdue: float = 0.0
    balance: float = 0.0  # 미납 + 연체


class MonthlySummary(BaseModel):
    """월간 회비 요약"""
    month: str
    total_collected: float = 0.0
    paid_count: int = 0
    pending_count: int = 0
    overdue_count: int = 0
    pending_amount: float = 0.0
    overdue_amount: float = 0.0
    active_members: int = 0
    collected_by_category: Dict[str, float] = Field(default_factory=dict)
    status_distribution: Dict[str, float] = Field(default_factory=dict)


# =============================================
# Notification Models
# =============================================

class NotificationCreate(BaseModel):
    """납부 알림 생성"""
    player_id: str
    category_id: str
    type: NotificationType
    message: str = Field(..., min_length=1, max_length=500)
    amount: Optional[float] = None
    due_date: Optional[date] = None
    payment_id: Optional[str] = None


class PaymentNotification(BaseModel):
    """납부 알림"""
    id: Optional[str] = None
    player_id: str
    player_name: str = ""
    category_id: str
    category_name: str = ""
    type: NotificationType
    message: str
    amount: Optional[float] = None
    due_date: Optional[date] = None
    payment_id: Optional[str] = None
    created_at: Optional[datetime] = None
    read: bool = False

    @field_validator("created_at", mode="before")
    @classmethod
    def coerce_created_at(cls, v):
        return parse_timestamp(v)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude={"id"})
