"""
Integration tests for the Accounting Service API
Tests end-to-end workflows using FastAPI TestClient
"""

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from accounting.api import app
from accounting.api.system import AccountingSystem, get_accounting_system
from accounting.clock import MAX_EPOCH_MILLIS, to_epoch_millis
from accounting.config import AccountingConfig
from accounting.storage import InMemoryStorage


def _millis(delta: timedelta) -> int:
    return to_epoch_millis(datetime.now(timezone.utc) + delta)


@pytest.fixture
def system():
    """In-memory accounting system with a mocked security dispatcher"""
    dispatcher = Mock()
    dispatcher.callback_url = "http://localhost:8090/api/v1/accounts/create"
    return AccountingSystem(
        config=AccountingConfig(storage_backend="memory"),
        storage=InMemoryStorage(),
        security_dispatcher=dispatcher
    )


@pytest.fixture
def client(system):
    """Create a test client wired to the test accounting system"""
    app.dependency_overrides[get_accounting_system] = lambda: system
    yield TestClient(app)
    app.dependency_overrides.clear()


def create_active_account(client, name="John Doe") -> int:
    prepared = client.post("/api/v1/accounts/prepare", json={"accountHolderName": name})
    assert prepared.status_code == 202
    account_number = prepared.json()["accountNumber"]
    created = client.post(
        "/api/v1/accounts/create",
        json={"accountNumber": account_number, "isSecurityCheckSuccess": True}
    )
    assert created.status_code == 201
    return account_number


def create_transaction(client, account_number, type_="DEPOSIT", amount=100, delta=timedelta(days=-1)):
    return client.post("/api/v1/transactions", json={
        "accountNumber": account_number,
        "type": type_,
        "amount": amount,
        "timestamp": _millis(delta)
    })


class TestHealthEndpoints:
    """Test basic health and root endpoints"""

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "healthy"

    def test_root(self, client):
        r = client.get("/")
        assert r.status_code == 200
        assert r.json()["endpoints"]["accounts"] == "/api/v1/accounts"


class TestAccountFlow:
    """End-to-end account lifecycle tests"""

    def test_prepare_account(self, client, system):
        r = client.post("/api/v1/accounts/prepare", json={"accountHolderName": "John Doe"})
        assert r.status_code == 202
        data = r.json()
        assert data["accountHolderName"] == "John Doe"
        assert data["bankId"] == 1234567812345678
        assert data["created"] is False
        assert data["deleted"] is False
        assert len(str(data["accountNumber"])) == 16

        system.security_dispatcher.submit.assert_called_once_with(data["accountNumber"], "John Doe")

        # Not visible until the security check passes
        assert client.get(f"/api/v1/accounts/{data['accountNumber']}").status_code == 404

    @pytest.mark.parametrize("body", [{}, {"accountHolderName": ""}, {"accountHolderName": "   "}])
    def test_prepare_account_invalid_body(self, client, body):
        r = client.post("/api/v1/accounts/prepare", json=body)
        assert r.status_code == 400
        assert r.json()["code"] == 400
        assert r.json()["messages"]

    def test_create_account(self, client):
        prepared = client.post("/api/v1/accounts/prepare", json={"accountHolderName": "John Doe"}).json()
        r = client.post("/api/v1/accounts/create", json={
            "accountNumber": prepared["accountNumber"],
            "isSecurityCheckSuccess": True
        })

        assert r.status_code == 201
        assert r.content == b""
        assert r.headers["location"] == f"/api/v1/accounts/{prepared['accountNumber']}"

        account = client.get(r.headers["location"]).json()
        assert account["created"] is True
        assert account["accountHolderName"] == "John Doe"

    def test_create_account_failed_security_check(self, client):
        prepared = client.post("/api/v1/accounts/prepare", json={"accountHolderName": "Mallory"}).json()
        r = client.post("/api/v1/accounts/create", json={
            "accountNumber": prepared["accountNumber"],
            "isSecurityCheckSuccess": False
        })

        assert r.status_code == 403
        assert r.json() == {"code": 2, "messages": ["Mallory"]}
        assert client.get(f"/api/v1/accounts/{prepared['accountNumber']}").status_code == 404

    def test_create_unknown_account(self, client):
        r = client.post("/api/v1/accounts/create", json={
            "accountNumber": 9999888877776666,
            "isSecurityCheckSuccess": True
        })
        assert r.status_code == 404
        assert r.json()["code"] == 1

    def test_list_accounts(self, client):
        first = create_active_account(client, "First")
        client.post("/api/v1/accounts/prepare", json={"accountHolderName": "Pending"})
        second = create_active_account(client, "Second")

        r = client.get("/api/v1/accounts")
        assert r.status_code == 200
        assert [account["accountNumber"] for account in r.json()] == [first, second]

    def test_get_account_malformed_number(self, client):
        assert client.get("/api/v1/accounts/123").status_code == 400
        assert client.get("/api/v1/accounts/not-a-number").status_code == 400

    def test_deactivate_account(self, client):
        account_number = create_active_account(client)

        r = client.delete(f"/api/v1/accounts/{account_number}")
        assert r.status_code == 204

        assert client.get(f"/api/v1/accounts/{account_number}").status_code == 404
        assert client.delete(f"/api/v1/accounts/{account_number}").status_code == 404
        assert client.get("/api/v1/accounts").json() == []

    def test_balance(self, client):
        account_number = create_active_account(client)
        create_transaction(client, account_number, "DEPOSIT", 10, timedelta(days=-3))
        create_transaction(client, account_number, "DEPOSIT", 5, timedelta(days=-2))
        create_transaction(client, account_number, "WITHDRAWAL", 37, timedelta(days=-1))
        create_transaction(client, account_number, "DEPOSIT", 1000, timedelta(days=5))

        r = client.get(f"/api/v1/accounts/{account_number}/balance")
        assert r.status_code == 200
        assert r.json() == {"balance": -22}

    def test_balance_of_deleted_account(self, client):
        account_number = create_active_account(client)
        client.delete(f"/api/v1/accounts/{account_number}")

        r = client.get(f"/api/v1/accounts/{account_number}/balance")
        assert r.status_code == 404
        assert r.json()["code"] == 1

    def test_account_transactions_most_recent_first(self, client):
        account_number = create_active_account(client)
        old = create_transaction(client, account_number, delta=timedelta(days=-10)).json()
        future = create_transaction(client, account_number, delta=timedelta(days=10)).json()
        recent = create_transaction(client, account_number, delta=timedelta(hours=-1)).json()

        r = client.get(f"/api/v1/accounts/{account_number}/transactions")
        assert r.status_code == 200
        assert [transaction["id"] for transaction in r.json()] == [future["id"], recent["id"], old["id"]]


class TestTransactionFlow:
    """End-to-end transaction tests"""

    def test_create_transaction(self, client):
        account_number = create_active_account(client)
        timestamp = _millis(timedelta(days=-1))
        r = client.post("/api/v1/transactions", json={
            "accountNumber": account_number,
            "type": "DEPOSIT",
            "amount": 1234,
            "timestamp": timestamp
        })

        assert r.status_code == 201
        data = r.json()
        assert uuid.UUID(data["id"])
        assert data == {"id": data["id"], "type": "DEPOSIT", "amount": 1234, "timestamp": timestamp}
        assert r.headers["location"] == f"/api/v1/transactions/{data['id']}"

        assert client.get(r.headers["location"]).json() == data

    def test_create_transaction_inactive_account(self, client):
        prepared = client.post("/api/v1/accounts/prepare", json={"accountHolderName": "Pending"}).json()
        r = create_transaction(client, prepared["accountNumber"])

        assert r.status_code == 422
        assert r.json() == {"code": 3, "messages": ["Account is not active"]}

    @pytest.mark.parametrize("overrides", [
        {"type": "TRANSFER"},
        {"amount": 0},
        {"amount": -5},
        {"timestamp": 0},
        {"accountNumber": 42},
    ])
    def test_create_transaction_invalid_body(self, client, overrides):
        account_number = create_active_account(client)
        body = {"accountNumber": account_number, "type": "DEPOSIT", "amount": 10, "timestamp": _millis(timedelta())}
        body.update(overrides)

        r = client.post("/api/v1/transactions", json=body)
        assert r.status_code == 400
        assert r.json()["code"] == 400

    def test_timestamp_beyond_representable_range(self, client):
        """Timestamps past year 9999 are schema violations on create and update"""
        account_number = create_active_account(client)
        r = client.post("/api/v1/transactions", json={
            "accountNumber": account_number, "type": "DEPOSIT", "amount": 5, "timestamp": 10 ** 17
        })
        assert r.status_code == 400
        assert r.json()["code"] == 400

        created = create_transaction(client, account_number).json()
        r = client.patch(f"/api/v1/transactions/{created['id']}", json={
            "type": "DEPOSIT", "amount": 5, "timestamp": 10 ** 17
        })
        assert r.status_code == 400
        assert r.json()["code"] == 400

    def test_latest_representable_timestamp_accepted(self, client):
        account_number = create_active_account(client)
        r = client.post("/api/v1/transactions", json={
            "accountNumber": account_number, "type": "DEPOSIT", "amount": 5, "timestamp": MAX_EPOCH_MILLIS
        })
        assert r.status_code == 201
        assert r.json()["timestamp"] == MAX_EPOCH_MILLIS == 253402300799999

    def test_get_transaction_not_found(self, client):
        r = client.get(f"/api/v1/transactions/{uuid.uuid4()}")
        assert r.status_code == 404
        assert r.json()["code"] == 1

    def test_get_transaction_malformed_id(self, client):
        assert client.get("/api/v1/transactions/not-a-uuid").status_code == 400

    def test_update_transaction(self, client):
        account_number = create_active_account(client)
        created = create_transaction(client, account_number, "DEPOSIT", 100).json()
        timestamp = _millis(timedelta(days=-4))

        r = client.patch(f"/api/v1/transactions/{created['id']}", json={
            "type": "WITHDRAWAL",
            "amount": 30,
            "timestamp": timestamp
        })

        assert r.status_code == 200
        assert r.json() == {"id": created["id"], "type": "WITHDRAWAL", "amount": 30, "timestamp": timestamp}
        assert client.get(f"/api/v1/accounts/{account_number}/balance").json() == {"balance": -30}

    def test_update_transaction_not_found(self, client):
        r = client.patch(f"/api/v1/transactions/{uuid.uuid4()}", json={
            "type": "DEPOSIT", "amount": 1, "timestamp": _millis(timedelta())
        })
        assert r.status_code == 404

    def test_delete_future_transaction(self, client):
        account_number = create_active_account(client)
        created = create_transaction(client, account_number, delta=timedelta(days=1)).json()

        r = client.delete(f"/api/v1/transactions/{created['id']}")
        assert r.status_code == 204
        assert client.get(f"/api/v1/transactions/{created['id']}").status_code == 404

    def test_delete_completed_transaction(self, client):
        account_number = create_active_account(client)
        created = create_transaction(client, account_number, delta=timedelta(days=-1)).json()

        r = client.delete(f"/api/v1/transactions/{created['id']}")
        assert r.status_code == 422
        assert r.json() == {"code": 4, "messages": ["Completed transaction cannot be deleted"]}
        assert client.get(f"/api/v1/transactions/{created['id']}").status_code == 200


class TestAuditEndpoints:

    def test_audit_events_and_integrity(self, client):
        account_number = create_active_account(client)

        events = client.get(f"/api/v1/audit/events/account/{account_number}").json()["events"]
        assert [event["event_type"] for event in events] == [
            "account_prepared", "security_check_requested", "account_activated"
        ]

        assert len(client.get("/api/v1/audit/events", params={"limit": 2}).json()["events"]) == 2

        integrity = client.get("/api/v1/audit/integrity").json()
        assert integrity["valid"] is True
        assert integrity["total_events"] == 3
