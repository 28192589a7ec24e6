"""
클럽 디렉토리 (선수/카테고리)

선수/카테고리 데이터는 클럽 관리 화면이 소유하며 여기서는 읽기만 한다.
"""
from typing import List, Optional

from database.store import CATEGORIES, PLAYERS, DocumentStore
from .models import CategoryRecord, PlayerRecord


class ClubDirectory:
    """선수/카테고리 조회"""

    def __init__(self, store: DocumentStore):
        self.store = store

    def get_player(self, club_id: str, player_id: str) -> Optional[PlayerRecord]:
        data = self.store.get(club_id, PLAYERS, player_id)
        if not data:
            return None
        return PlayerRecord(**{**data, "id": player_id})

    def get_category(self, club_id: str, category_id: str) -> Optional[CategoryRecord]:
        data = self.store.get(club_id, CATEGORIES, category_id)
        if not data:
            return None
        return CategoryRecord(**{**data, "id": category_id})

    def list_category_players(self, club_id: str, category_id: str) -> List[PlayerRecord]:
        rows = self.store.query(club_id, PLAYERS, category_id=category_id)
        return [PlayerRecord(**row) for row in rows]

    def list_active_players(self, club_id: str) -> List[PlayerRecord]:
        rows = self.store.query(club_id, PLAYERS, active=True)
        return [PlayerRecord(**row) for row in rows]

    def list_categories(self, club_id: str) -> List[CategoryRecord]:
        return [CategoryRecord(**row) for row in self.store.query(club_id, CATEGORIES)]

    def list_club_ids(self) -> List[str]:
        return self.store.list_club_ids()
