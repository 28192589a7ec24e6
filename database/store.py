"""
문서 저장소 인터페이스

모든 컬렉션은 클럽 단위로 분리된다 (clubs/{club_id}/{collection}).
구현체: database.supabase_client.SupabaseDocumentStore
"""
from typing import Any, Dict, List, Optional, Protocol

# 컬렉션 이름
CLUBS = "clubs"
PLAYERS = "players"
CATEGORIES = "categories"
CATEGORY_FEES = "category_fees"
PAYMENTS = "payments"
PAYMENT_NOTIFICATIONS = "payment_notifications"
COLLABORATORS = "collaborators"

Document = Dict[str, Any]


class DocumentStore(Protocol):
    """클럽 단위 문서 저장소"""

    def get(self, club_id: str, collection: str, doc_id: str) -> Optional[Document]:
        """문서 1건 조회 (없으면 None)"""
        ...

    def set(self, club_id: str, collection: str, doc_id: str, data: Document) -> Document:
        """문서 저장 (있으면 덮어쓰기)"""
        ...

    def add(self, club_id: str, collection: str, data: Document) -> Document:
        """새 문서 추가 (id 자동 생성)"""
        ...

    def update(self, club_id: str, collection: str, doc_id: str, data: Document) -> Optional[Document]:
        """일부 필드 수정 (문서가 없으면 None)"""
        ...

    def delete(self, club_id: str, collection: str, doc_id: str) -> None:
        ...

    def query(self, club_id: str, collection: str, **equals: Any) -> List[Document]:
        """필드 일치 조건 조회"""
        ...

    def replace_player_payments(
        self,
        club_id: str,
        player_id: str,
        payments: List[Document]
    ) -> List[Document]:
        """
        선수의 미납/연체 기록 삭제 + 새 기록 저장을 단일 트랜잭션으로 실행

        납부완료(paid) 기록은 건드리지 않는다.
        """
        ...

    def list_club_ids(self) -> List[str]:
        ...
