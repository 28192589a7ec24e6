"""
Supabase 데이터베이스 클라이언트

컬렉션 → 테이블, 문서 → (club_id, id) 기본키 행
"""
import uuid
from typing import Any, Dict, List, Optional

from supabase import create_client, Client
from loguru import logger

from app.config import supabase_config
from app.billing.errors import PersistenceError
from .store import CLUBS, Document


# 싱글톤 클라이언트
_supabase_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """
    Supabase 클라이언트 인스턴스 반환 (싱글톤)
    """
    global _supabase_client
    if _supabase_client is None:
        if not supabase_config.supabase_url or not supabase_config.supabase_key:
            raise ValueError("SUPABASE_URL과 SUPABASE_KEY 환경변수를 설정해주세요")
        _supabase_client = create_client(
            supabase_config.supabase_url,
            supabase_config.supabase_key
        )
    return _supabase_client


class SupabaseDocumentStore:
    """Supabase 기반 문서 저장소"""

    def __init__(self, client: Optional[Client] = None):
        self.client: Client = client or get_supabase_client()

    # ==================== 내부 ====================

    def _execute(self, action: str, builder):
        try:
            return builder.execute()
        except Exception as e:
            logger.error(f"{action} 오류: {e}")
            raise PersistenceError(f"{action} 실패: {e}") from e

    @staticmethod
    def _to_document(row: Dict[str, Any]) -> Document:
        document = dict(row)
        document.pop("club_id", None)
        return document

    # ==================== 단건 ====================

    def get(self, club_id: str, collection: str, doc_id: str) -> Optional[Document]:
        result = self._execute(
            f"{collection} 조회",
            self.client.table(collection).select("*")
            .eq("club_id", club_id).eq("id", doc_id).limit(1)
        )
        rows = result.data or []
        return self._to_document(rows[0]) if rows else None

    def set(self, club_id: str, collection: str, doc_id: str, data: Document) -> Document:
        row = {**data, "id": doc_id, "club_id": club_id}
        result = self._execute(
            f"{collection} 저장",
            self.client.table(collection).upsert(row, on_conflict="club_id,id")
        )
        rows = result.data or [row]
        return self._to_document(rows[0])

    def add(self, club_id: str, collection: str, data: Document) -> Document:
        row = {**data, "id": data.get("id") or str(uuid.uuid4()), "club_id": club_id}
        result = self._execute(
            f"{collection} 추가",
            self.client.table(collection).insert(row)
        )
        rows = result.data or [row]
        return self._to_document(rows[0])

    def update(self, club_id: str, collection: str, doc_id: str, data: Document) -> Optional[Document]:
        result = self._execute(
            f"{collection} 수정",
            self.client.table(collection).update(data)
            .eq("club_id", club_id).eq("id", doc_id)
        )
        rows = result.data or []
        return self._to_document(rows[0]) if rows else None

    def delete(self, club_id: str, collection: str, doc_id: str) -> None:
        self._execute(
            f"{collection} 삭제",
            self.client.table(collection).delete()
            .eq("club_id", club_id).eq("id", doc_id)
        )

    # ==================== 조회 ====================

    def query(self, club_id: str, collection: str, **equals: Any) -> List[Document]:
        builder = self.client.table(collection).select("*").eq("club_id", club_id)
        for field, value in equals.items():
            builder = builder.eq(field, value)
        result = self._execute(f"{collection} 목록 조회", builder)
        return [self._to_document(row) for row in (result.data or [])]

    def list_club_ids(self) -> List[str]:
        result = self._execute("클럽 목록 조회", self.client.table(CLUBS).select("id"))
        return [str(row["id"]) for row in (result.data or [])]

    # ==================== 재생성 트랜잭션 ====================

    def replace_player_payments(
        self,
        club_id: str,
        player_id: str,
        payments: List[Document]
    ) -> List[Document]:
        """
        replace_player_payments RPC 호출 (database/migrations/001_billing.sql)

        미납/연체 삭제와 신규 저장이 한 트랜잭션으로 처리되어
        동시 재생성 시 중복/누락이 생기지 않는다.
        """
        rows = [{**p, "id": p.get("id") or str(uuid.uuid4())} for p in payments]
        result = self._execute(
            f"납부 기록 재생성 (선수 {player_id})",
            self.client.rpc("replace_player_payments", {
                "p_club_id": club_id,
                "p_player_id": player_id,
                "p_payments": rows,
            })
        )
        return [self._to_document(row) for row in (result.data or [])]
