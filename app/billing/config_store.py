"""
카테고리 회비 설정 저장소

- 설정이 없으면 카테고리 이름으로 기본 설정을 만들어 저장
- 저장 전 정규화 + 필수 필드 검증
"""
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Union

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from database.store import CATEGORY_FEES, DocumentStore
from .directory import ClubDirectory
from .errors import InvalidConfig, NotFound
from .models import CategoryFeeConfig


class FeeConfigStore:
    """카테고리 회비 설정 읽기/쓰기"""

    def __init__(
        self,
        store: DocumentStore,
        directory: ClubDirectory,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.store = store
        self.directory = directory
        self.clock = clock or datetime.now

    @staticmethod
    def normalize(config: Union[CategoryFeeConfig, Dict[str, Any]]) -> CategoryFeeConfig:
        """
        설정 정규화

        Raises:
            InvalidConfig: 정규화할 수 없는 값 (예: 월 형식 오류)
        """
        data = config.model_dump() if isinstance(config, CategoryFeeConfig) else dict(config)
        try:
            return CategoryFeeConfig.model_validate(data)
        except PydanticValidationError as e:
            fields = ", ".join(".".join(str(loc) for loc in err["loc"]) for err in e.errors())
            raise InvalidConfig(f"회비 설정 값이 올바르지 않습니다: {fields}") from e

    def find_config(self, club_id: str, category_id: str) -> Optional[CategoryFeeConfig]:
        """설정 조회, 카테고리가 없으면 None"""
        try:
            return self.get_config(club_id, category_id)
        except NotFound:
            return None

    def get_config(self, club_id: str, category_id: str) -> CategoryFeeConfig:
        """
        설정 조회 (없으면 기본 설정 생성)

        Raises:
            NotFound: 카테고리가 존재하지 않음
        """
        data = self.store.get(club_id, CATEGORY_FEES, category_id)
        if data:
            return self.normalize({**data, "category_id": category_id})

        category = self.directory.get_category(club_id, category_id)
        if category is None:
            raise NotFound(f"카테고리를 찾을 수 없습니다: {category_id}")

        now = self.clock()
        config = CategoryFeeConfig(
            category_id=category_id,
            name=category.name,
            discounts={"siblings": {"is_percentage": True}},
            created_at=now,
            updated_at=now
        )
        self.store.set(club_id, CATEGORY_FEES, category_id, config.to_document())
        logger.info(f"기본 회비 설정 생성: club={club_id} category={category_id}")
        return config

    def save_config(
        self,
        club_id: str,
        config: Union[CategoryFeeConfig, Dict[str, Any]]
    ) -> CategoryFeeConfig:
        """
        설정 저장 (재생성은 PaymentService.save_config 에서 실행)

        Raises:
            InvalidConfig: category_id/name 누락 또는 값 오류 (저장 전 거부)
        """
        normalized = self.normalize(config)
        if not normalized.category_id or not normalized.name:
            raise InvalidConfig("카테고리 ID와 이름은 필수입니다")

        now = self.clock()
        normalized = normalized.model_copy(update={
            "created_at": normalized.created_at or now,
            "updated_at": now,
        })
        self.store.set(club_id, CATEGORY_FEES, normalized.category_id, normalized.to_document())
        logger.info(
            f"회비 설정 저장: club={club_id} category={normalized.category_id} "
            f"variable={normalized.is_variable_amount} months={len(normalized.monthly_fees)}"
        )
        return normalized
