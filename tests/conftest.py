"""
Pytest configuration and fixtures for Club Billing tests
"""

import copy
import sys
import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.billing.errors import PersistenceError  # noqa: E402
from app.billing.service import PaymentService  # noqa: E402
from database.store import (  # noqa: E402
    CATEGORIES,
    CATEGORY_FEES,
    CLUBS,
    PAYMENTS,
    PLAYERS,
    Document,
)

CLUB_ID = "club-1"
CATEGORY_ID = "cat-u12"


class InMemoryDocumentStore:
    """DocumentStore 테스트 구현 (스레드 안전)"""

    def __init__(self):
        self._lock = threading.Lock()
        self._data: Dict[tuple, Dict[str, Document]] = {}
        self.fail_add: Optional[Callable[[str, Document], bool]] = None
        self.fail_replace_for: set = set()
        self.calls: List[tuple] = []

    def _collection(self, club_id: str, collection: str) -> Dict[str, Document]:
        return self._data.setdefault((club_id, collection), {})

    def get(self, club_id: str, collection: str, doc_id: str) -> Optional[Document]:
        with self._lock:
            self.calls.append(("get", collection))
            doc = self._collection(club_id, collection).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def set(self, club_id: str, collection: str, doc_id: str, data: Document) -> Document:
        with self._lock:
            self.calls.append(("set", collection))
            doc = {**copy.deepcopy(data), "id": doc_id}
            self._collection(club_id, collection)[doc_id] = doc
            return copy.deepcopy(doc)

    def add(self, club_id: str, collection: str, data: Document) -> Document:
        if self.fail_add and self.fail_add(collection, data):
            raise PersistenceError(f"{collection} 추가 실패")
        with self._lock:
            self.calls.append(("add", collection))
            doc_id = data.get("id") or uuid.uuid4().hex
            doc = {**copy.deepcopy(data), "id": doc_id}
            self._collection(club_id, collection)[doc_id] = doc
            return copy.deepcopy(doc)

    def update(self, club_id: str, collection: str, doc_id: str, data: Document) -> Optional[Document]:
        with self._lock:
            self.calls.append(("update", collection))
            docs = self._collection(club_id, collection)
            if doc_id not in docs:
                return None
            docs[doc_id].update(copy.deepcopy(data))
            return copy.deepcopy(docs[doc_id])

    def delete(self, club_id: str, collection: str, doc_id: str) -> None:
        with self._lock:
            self.calls.append(("delete", collection))
            self._collection(club_id, collection).pop(doc_id, None)

    def query(self, club_id: str, collection: str, **equals: Any) -> List[Document]:
        with self._lock:
            self.calls.append(("query", collection))
            return [
                copy.deepcopy(doc)
                for doc in self._collection(club_id, collection).values()
                if all(doc.get(k) == v for k, v in equals.items())
            ]

    def replace_player_payments(
        self,
        club_id: str,
        player_id: str,
        payments: List[Document]
    ) -> List[Document]:
        if player_id in self.fail_replace_for:
            raise PersistenceError(f"납부 기록 재생성 실패: {player_id}")
        with self._lock:
            self.calls.append(("replace", PAYMENTS))
            docs = self._collection(club_id, PAYMENTS)
            for doc_id in [
                k for k, doc in docs.items()
                if doc.get("player_id") == player_id and doc.get("status") != "paid"
            ]:
                del docs[doc_id]
            paid_months = {
                doc.get("month") for doc in docs.values()
                if doc.get("player_id") == player_id and doc.get("status") == "paid"
            }
            saved = []
            for payment in payments:
                if payment.get("month") in paid_months:
                    continue
                doc = {**copy.deepcopy(payment), "id": payment.get("id") or uuid.uuid4().hex}
                docs[doc["id"]] = doc
                saved.append(copy.deepcopy(doc))
            return saved

    def list_club_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._collection_ids(CLUBS))

    def _collection_ids(self, collection: str) -> List[str]:
        return [
            doc_id
            for (club_id, name), docs in self._data.items() if name == collection
            for doc_id in docs
        ]

    # 테스트 헬퍼
    def payments_for(self, club_id: str, player_id: str) -> List[Document]:
        rows = self.query(club_id, PAYMENTS, player_id=player_id)
        return sorted(rows, key=lambda r: r["month"])


class FixedClock:
    """주입용 고정 시계"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def seed_player(
    store: InMemoryDocumentStore,
    player_id: str,
    full_name: str,
    created_at: str,
    category_id: str = CATEGORY_ID,
    active: bool = True,
    club_id: str = CLUB_ID
):
    store.set(club_id, PLAYERS, player_id, {
        "full_name": full_name,
        "category_id": category_id,
        "active": active,
        "created_at": created_at,
    })


def seed_config(store: InMemoryDocumentStore, club_id: str = CLUB_ID, **overrides) -> Document:
    config = {
        "category_id": CATEGORY_ID,
        "name": "U12",
        "base_amount": 50,
        "due_day": 10,
        "is_variable_amount": False,
        "monthly_fees": [],
        "discounts": {"siblings": {"enabled": False, "amount": 0, "is_percentage": True}, "custom_discounts": []},
        "players": {"p1": {"active": True}, "p2": {"active": True}},
    }
    config.update(overrides)
    return store.set(club_id, CATEGORY_FEES, config["category_id"], config)


@pytest.fixture
def store():
    """선수 4명 + 카테고리 1개가 있는 클럽"""
    store = InMemoryDocumentStore()
    store.set(CLUB_ID, CLUBS, CLUB_ID, {"name": "테스트 펜싱클럽"})
    store.set(CLUB_ID, CATEGORIES, CATEGORY_ID, {"name": "U12", "active": True})
    seed_player(store, "p1", "김민준", "2024-02-01T09:00:00")
    seed_player(store, "p2", "이서연", "2024-01-15T00:00:00")
    seed_player(store, "p3", "박지호", "2024-01-01T00:00:00", active=False)
    seed_player(store, "p4", "최유나", "2024-01-01T00:00:00")
    return store


@pytest.fixture
def clock():
    """2024-03-12 12:00 고정"""
    return FixedClock(datetime(2024, 3, 12, 12, 0, 0))


@pytest.fixture
def service(store, clock):
    return PaymentService(store, clock=clock, concurrency=2, atomic=True)
