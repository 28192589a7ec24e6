"""
API tests for billing router

Tests cover:
1. Endpoints with test-mode authentication
2. Error mapping (404 / 400 / 403 / 502)
3. Finance permissions per collaborator role
"""

import pytest
import sys
from pathlib import Path

from fastapi.testclient import TestClient

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.billing.dependencies import ClubMemberContext, CollaboratorRole, get_current_club_member
from app.billing.service import get_payment_service
from app.config import server_config
from app.server import app
from conftest import CATEGORY_ID, CLUB_ID, seed_config

BASE = f"/api/clubs/{CLUB_ID}/billing"


@pytest.fixture
def client(service, monkeypatch):
    monkeypatch.setattr(server_config, "club_test_mode", True)
    app.dependency_overrides[get_payment_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def login_as(role: CollaboratorRole, player_id=None):
    def _member():
        return ClubMemberContext(
            member_id="m-1",
            club_id=CLUB_ID,
            role=role,
            full_name="테스트",
            player_id=player_id
        )
    app.dependency_overrides[get_current_club_member] = _member


class TestFeeConfigEndpoints:
    """회비 설정 API"""

    def test_get_default_config(self, client):
        response = client.get(f"{BASE}/categories/{CATEGORY_ID}/fees?test=1")
        assert response.status_code == 200
        assert response.json()["name"] == "U12"
        assert response.json()["due_day"] == 10

    def test_get_unknown_category(self, client):
        response = client.get(f"{BASE}/categories/missing/fees?test=1")
        assert response.status_code == 404

    def test_save_config_regenerates(self, client, store):
        response = client.put(f"{BASE}/categories/{CATEGORY_ID}/fees?test=1", json={
            "name": "U12",
            "base_amount": 40,
            "players": {"p1": {"active": True}},
        })
        assert response.status_code == 200
        body = response.json()
        assert body["config"]["category_id"] == CATEGORY_ID
        assert body["regeneration"]["succeeded"] == ["p1"]
        assert len(store.payments_for(CLUB_ID, "p1")) == 2

    def test_save_invalid_config(self, client):
        response = client.put(f"{BASE}/categories/{CATEGORY_ID}/fees?test=1", json={
            "name": "U12",
            "monthly_fees": [{"month": "2024-13", "amount": 10}],
        })
        assert response.status_code == 400


class TestPaymentEndpoints:
    """납부 기록 API"""

    def test_player_payments(self, client, store):
        seed_config(store)
        response = client.get(f"{BASE}/players/p1/payments?test=1")
        assert response.status_code == 200
        assert [p["month"] for p in response.json()] == ["2024-02", "2024-03"]
        assert response.json()[0]["status"] == "overdue"

    def test_monthly_payments_and_summary(self, client, store):
        seed_config(store)
        assert client.post(f"{BASE}/sweep?test=1").status_code == 200

        payments = client.get(f"{BASE}/payments?month=2024-03&test=1")
        summary = client.get(f"{BASE}/summary?month=2024-03&test=1")

        assert payments.status_code == 200
        assert len(payments.json()) == 2
        assert summary.status_code == 200
        assert summary.json()["overdue_count"] == 2

    def test_invalid_month_parameter(self, client):
        response = client.get(f"{BASE}/payments?month=2024-3&test=1")
        assert response.status_code == 400

    def test_update_status(self, client, store):
        seed_config(store)
        payment_id = client.get(f"{BASE}/players/p1/payments?test=1").json()[0]["id"]

        response = client.patch(
            f"{BASE}/payments/{payment_id}/status?test=1",
            json={"status": "paid", "payment_method": "card"}
        )

        assert response.status_code == 200
        assert response.json()["status"] == "paid"
        assert response.json()["payment_method"] == "card"

    def test_update_unknown_payment(self, client):
        response = client.patch(f"{BASE}/payments/missing/status?test=1", json={"status": "paid"})
        assert response.status_code == 404

    def test_store_failure_maps_to_502(self, client, store):
        seed_config(store)
        store.fail_replace_for.add("p1")
        response = client.post(f"{BASE}/players/p1/regenerate?test=1")
        assert response.status_code == 502

    def test_account(self, client, store):
        seed_config(store)
        response = client.get(f"{BASE}/players/p2/account?test=1")
        assert response.status_code == 200
        assert response.json()["balance"] == 150


class TestNotificationEndpoints:
    """납부 알림 API"""

    def test_create_and_list(self, client):
        response = client.post(f"{BASE}/players/p1/notifications?test=1", json={
            "player_id": "p1",
            "category_id": CATEGORY_ID,
            "type": "reminder",
            "message": "납부 안내",
        })
        assert response.status_code == 201

        listed = client.get(f"{BASE}/players/p1/notifications?test=1")
        assert [n["message"] for n in listed.json()] == ["납부 안내"]

        read = client.patch(f"{BASE}/notifications/{response.json()['id']}/read?test=1")
        assert read.status_code == 200
        assert read.json()["read"] is True

    def test_player_mismatch(self, client):
        response = client.post(f"{BASE}/players/p1/notifications?test=1", json={
            "player_id": "p2",
            "category_id": CATEGORY_ID,
            "type": "reminder",
            "message": "납부 안내",
        })
        assert response.status_code == 400

    def test_overdue_reminders(self, client, store):
        seed_config(store)
        client.post(f"{BASE}/sweep?test=1")
        response = client.post(f"{BASE}/notifications/overdue?month=2024-03&test=1")
        assert response.status_code == 200
        assert response.json() == {"month": "2024-03", "created": 2}


class TestPermissions:
    """역할별 회비 권한"""

    def test_requires_authentication(self, client, monkeypatch):
        monkeypatch.setattr(server_config, "club_test_mode", False)
        response = client.get(f"{BASE}/payments?month=2024-03")
        assert response.status_code == 401

    def test_test_query_ignored_without_test_mode(self, client, monkeypatch):
        monkeypatch.setattr(server_config, "club_test_mode", False)
        response = client.put(f"{BASE}/categories/{CATEGORY_ID}/fees?test=1", json={"name": "U12"})
        assert response.status_code == 401

    def test_test_mode_opt_out(self, client):
        response = client.get(f"{BASE}/payments?month=2024-03&test=0")
        assert response.status_code == 401

    @pytest.mark.parametrize("role", [CollaboratorRole.delegate, CollaboratorRole.read_only])
    def test_view_only_roles(self, client, role):
        login_as(role)
        assert client.get(f"{BASE}/summary?month=2024-03").status_code == 200
        assert client.put(f"{BASE}/categories/{CATEGORY_ID}/fees", json={"name": "U12"}).status_code == 403
        assert client.post(f"{BASE}/sweep").status_code == 403

    def test_accountant_can_manage(self, client):
        login_as(CollaboratorRole.accountant)
        response = client.put(f"{BASE}/categories/{CATEGORY_ID}/fees", json={"name": "U12"})
        assert response.status_code == 200

    def test_player_sees_own_account_only(self, client, store):
        seed_config(store)
        login_as(CollaboratorRole.player, player_id="p1")

        assert client.get(f"{BASE}/players/p1/account").status_code == 200
        assert client.get(f"{BASE}/players/p2/account").status_code == 403
        assert client.get(f"{BASE}/payments?month=2024-03").status_code == 403

    def test_role_table(self):
        member = ClubMemberContext("m", CLUB_ID, CollaboratorRole.club_admin)
        assert member.can_view_finances() and member.can_manage_finances()
        member = ClubMemberContext("m", CLUB_ID, CollaboratorRole.delegate)
        assert member.can_view_finances() and not member.can_manage_finances()
        member = ClubMemberContext("m", CLUB_ID, CollaboratorRole.player, player_id="p1")
        assert not member.can_view_finances()
        assert member.can_view_player("p1") and not member.can_view_player("p2")


def test_status_endpoint():
    client = TestClient(app)
    response = client.get("/api/status")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
