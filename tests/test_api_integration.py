"""
Integration tests for the Bank Ledger API
Tests end-to-end workflows using FastAPI TestClient
"""

import pytest
from fastapi.testclient import TestClient

from bank_ledger.api import create_app
from bank_ledger.api.deps import BankingSystem
from bank_ledger.config import BankLedgerConfig
from bank_ledger.identity import Role
from bank_ledger.storage import InMemoryStorage


API = "/api/v1"


@pytest.fixture
def system():
    """Banking system on in-memory storage with one admin"""
    config = BankLedgerConfig(
        jwt_secret="integration-test-secret-key-0123456789abcdef",
        log_level="CRITICAL",
        seed_admin=False
    )
    banking_system = BankingSystem(InMemoryStorage(), config)
    banking_system.user_manager.register(
        "Admin", "admin@example.com", "adminpass123", role=Role.ADMIN
    )
    return banking_system


@pytest.fixture
def client(system):
    """Create a test client for the API"""
    return TestClient(create_app(system, system.config))


def login(client, email, password):
    r = client.post(f"{API}/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['data']['token']}"}


def register(client, name, email, password="password123"):
    r = client.post(f"{API}/auth/register", json={"name": name, "email": email, "password": password})
    assert r.status_code == 201, r.text
    return r.json()["user"]["id"]


@pytest.fixture
def admin(client):
    return login(client, "admin@example.com", "adminpass123")


@pytest.fixture
def ledger(client, admin):
    """User 1 owns account A (500), user 2 owns account B (100)"""
    user1 = register(client, "User One", "one@example.com")
    user2 = register(client, "User Two", "two@example.com")

    account_ids = []
    for user_id, number, balance in ((user1, "A-100", "500"), (user2, "B-200", "100")):
        r = client.post(f"{API}/accounts", headers=admin, json={
            "user_id": user_id,
            "bank_name": "Test Bank",
            "bank_account_number": number,
            "balance": balance
        })
        assert r.status_code == 201, r.text
        account_ids.append(r.json()["account"]["id"])

    return {
        "user1": login(client, "one@example.com", "password123"),
        "user2": login(client, "two@example.com", "password123"),
        "a": account_ids[0],
        "b": account_ids[1],
    }


def transfer(client, headers, source, destination, amount):
    return client.post(f"{API}/transactions", headers=headers, json={
        "source_account_id": source,
        "destination_account_id": destination,
        "amount": amount
    })


def balance(client, headers, account_id):
    r = client.get(f"{API}/accounts/{account_id}", headers=headers)
    assert r.status_code == 200, r.text
    return r.json()["account_data"]["balance"]


class TestHealthEndpoints:
    """Test basic health and root endpoints"""

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "healthy"

    def test_root(self, client):
        r = client.get("/")
        assert r.status_code == 200
        data = r.json()
        assert data["name"] == "Bank Ledger API"
        assert data["endpoints"]["transactions"] == f"{API}/transactions"

    def test_unknown_route(self, client):
        r = client.get("/no-such-route")
        assert r.status_code == 404
        assert r.json() == {"status": "failed", "message": "Not found"}


class TestAuthFlow:
    """Registration, login and token checks"""

    def test_register_and_login(self, client):
        r = client.post(f"{API}/auth/register", json={
            "name": "Jane",
            "email": "jane@example.com",
            "password": "password123",
            "identity_type": "Passport",
            "identity_number": "X123",
            "address": "1 Main St"
        })
        assert r.status_code == 201
        data = r.json()
        assert data["status"] == "success"
        assert data["message"] == "Successfully added Jane's data"
        assert data["user"]["profile"]["identity_number"] == "X123"
        assert "password_hash" not in data["user"]

        r = client.post(f"{API}/auth/login", json={"email": "jane@example.com", "password": "password123"})
        assert r.status_code == 200
        assert r.json()["message"] == "Logged in as Jane"
        assert r.json()["data"]["user"]["role"] == "customer"

    def test_users_endpoint_registers_too(self, client):
        r = client.post(f"{API}/users", json={"name": "Jim", "email": "jim@example.com", "password": "password123"})
        assert r.status_code == 201

    def test_duplicate_email(self, client):
        register(client, "Jane", "jane@example.com")
        r = client.post(f"{API}/auth/register", json={"name": "J", "email": "jane@example.com", "password": "password123"})
        assert r.status_code == 409
        assert r.json() == {"status": "failed", "message": "Email has already been taken"}

    def test_bad_login(self, client):
        register(client, "Jane", "jane@example.com")
        r = client.post(f"{API}/auth/login", json={"email": "jane@example.com", "password": "wrong-password"})
        assert r.status_code == 400
        assert r.json()["message"] == "Invalid email or password"

    def test_authenticate(self, client):
        register(client, "Jane", "jane@example.com")
        headers = login(client, "jane@example.com", "password123")

        assert client.get(f"{API}/auth/authenticate", headers=headers).status_code == 200
        assert client.get(f"{API}/auth/authenticate").status_code == 401

        r = client.get(f"{API}/auth/authenticate", headers={"Authorization": "Bearer nonsense"})
        assert r.status_code == 401
        assert r.json()["status"] == "failed"

    def test_own_user(self, client):
        register(client, "Jane", "jane@example.com")
        headers = login(client, "jane@example.com", "password123")

        r = client.get(f"{API}/users", headers=headers)
        assert r.status_code == 200
        assert r.json()["user_data"]["email"] == "jane@example.com"
        assert "profile" in r.json()["user_data"]

    def test_list_users_admin_only(self, client, admin):
        register(client, "Jane", "jane@example.com")
        customer = login(client, "jane@example.com", "password123")

        r = client.get(f"{API}/users/all", headers=admin)
        assert r.status_code == 200
        assert [u["email"] for u in r.json()["users_data"]] == ["admin@example.com", "jane@example.com"]

        assert client.get(f"{API}/users/all", headers=customer).status_code == 403


class TestValidation:
    """Malformed requests get 400 with field details"""

    def test_register_missing_fields(self, client):
        r = client.post(f"{API}/auth/register", json={"name": "Jane"})
        assert r.status_code == 400
        data = r.json()
        assert data["status"] == "failed"
        fields = {error["field"] for error in data["errors"]}
        assert {"email", "password"} <= fields

    def test_register_bad_email(self, client):
        r = client.post(f"{API}/auth/register", json={"name": "J", "email": "not-an-email", "password": "password123"})
        assert r.status_code == 400
        assert r.json()["errors"][0]["field"] == "email"

    @pytest.mark.parametrize("amount", [0, -10, "abc", "1.001"])
    def test_transfer_bad_amount(self, client, ledger, amount):
        r = transfer(client, ledger["user1"], ledger["a"], ledger["b"], amount)
        assert r.status_code == 400
        assert r.json()["errors"][0]["field"] == "amount"

    def test_non_integer_path(self, client, ledger):
        r = client.get(f"{API}/accounts/abc", headers=ledger["user1"])
        assert r.status_code == 400


class TestTransferScenarios:
    """End-to-end transfers between two customers"""

    def test_valid_transfer(self, client, ledger):
        r = transfer(client, ledger["user1"], ledger["a"], ledger["b"], 200)
        assert r.status_code == 201
        data = r.json()
        assert data["status"] == "success"
        assert data["transaction"]["amount"] == "200.00"
        assert data["source_account"]["balance"] == "300.00"
        assert data["destination_account"]["balance"] == "300.00"

        assert balance(client, ledger["user1"], ledger["a"]) == "300.00"
        assert balance(client, ledger["user2"], ledger["b"]) == "300.00"

    @pytest.mark.parametrize("amount,expected", [("1E+2", "100.00"), (100.0, "100.00"), ("0.5", "0.50")])
    def test_amount_returned_in_cents(self, client, ledger, amount, expected):
        r = transfer(client, ledger["user1"], ledger["a"], ledger["b"], amount)
        assert r.status_code == 201
        assert r.json()["transaction"]["amount"] == expected

        transaction_id = r.json()["transaction"]["id"]
        r = client.get(f"{API}/transactions/{transaction_id}", headers=ledger["user1"])
        assert r.json()["transaction"]["amount"] == expected

    def test_same_account(self, client, ledger):
        r = transfer(client, ledger["user1"], ledger["a"], ledger["a"], 10)
        assert r.status_code == 409
        assert r.json() == {"status": "failed", "message": "Cannot do transaction between same account"}
        assert balance(client, ledger["user1"], ledger["a"]) == "500.00"

    def test_not_owner(self, client, ledger):
        r = transfer(client, ledger["user2"], ledger["a"], ledger["b"], 10)
        assert r.status_code == 403
        assert r.json()["message"] == "The source account doesn't belong to this user"
        assert balance(client, ledger["user1"], ledger["a"]) == "500.00"

    def test_insufficient_balance(self, client, ledger):
        transfer(client, ledger["user1"], ledger["a"], ledger["b"], 200)
        r = transfer(client, ledger["user1"], ledger["a"], ledger["b"], 1000)
        assert r.status_code == 409
        assert r.json()["message"] == "Insufficient balance"
        assert balance(client, ledger["user1"], ledger["a"]) == "300.00"

    def test_unknown_account(self, client, ledger):
        r = transfer(client, ledger["user1"], ledger["a"], 999, 10)
        assert r.status_code == 409
        assert r.json()["message"] == "Invalid account id"

    def test_requires_token(self, client, ledger):
        assert transfer(client, {}, ledger["a"], ledger["b"], 10).status_code == 401

    def test_evaluate_endpoint(self, client, ledger):
        r = client.post(f"{API}/transactions/evaluate", headers=ledger["user1"], json={
            "source_account_id": ledger["a"], "destination_account_id": ledger["b"], "amount": "500"
        })
        assert r.status_code == 200
        assert r.json() == {"status": "success", "allowed": True, "check": None, "message": None}

        r = client.post(f"{API}/transactions/evaluate", headers=ledger["user1"], json={
            "source_account_id": ledger["a"], "destination_account_id": ledger["b"], "amount": "500.01"
        })
        assert r.json()["allowed"] is False
        assert r.json()["check"] == "sufficient_balance"
        assert r.json()["message"] == "Insufficient balance"

        assert balance(client, ledger["user1"], ledger["a"]) == "500.00"
        assert client.get(f"{API}/transactions", headers=ledger["user1"]).json()["transactions_data"] == []

    def test_transaction_lists(self, client, ledger, admin):
        # A third user with an account that user 1 never touches
        user3 = register(client, "User Three", "three@example.com")
        r = client.post(f"{API}/accounts", headers=admin, json={
            "user_id": user3, "bank_name": "Test Bank", "bank_account_number": "C-300", "balance": "50"
        })
        c = r.json()["account"]["id"]
        user3_headers = login(client, "three@example.com", "password123")

        transfer(client, ledger["user1"], ledger["a"], ledger["b"], 10)
        transfer(client, ledger["user2"], ledger["b"], c, 5)
        transfer(client, user3_headers, c, ledger["a"], 1)

        r = client.get(f"{API}/transactions/all", headers=admin)
        assert r.status_code == 200
        assert [t["id"] for t in r.json()["transactions_data"]] == [1, 2, 3]

        r = client.get(f"{API}/transactions", headers=ledger["user1"])
        assert [t["id"] for t in r.json()["transactions_data"]] == [1, 3]

        assert client.get(f"{API}/transactions/all", headers=ledger["user1"]).status_code == 403

    def test_transaction_detail_access(self, client, ledger):
        transfer(client, ledger["user1"], ledger["a"], ledger["b"], 10)
        register(client, "Outsider", "out@example.com")
        outsider_headers = login(client, "out@example.com", "password123")

        r = client.get(f"{API}/transactions/1", headers=ledger["user2"])
        assert r.status_code == 200
        details = r.json()["transaction"]
        assert details["source_account"]["user"]["name"] == "User One"
        assert details["destination_account"]["user"]["name"] == "User Two"

        assert client.get(f"{API}/transactions/1", headers=outsider_headers).status_code == 403
        assert client.get(f"{API}/transactions/99", headers=outsider_headers).status_code == 404


class TestAccountEndpoints:
    """Account administration and reads"""

    def test_create_requires_admin(self, client, ledger):
        r = client.post(f"{API}/accounts", headers=ledger["user1"], json={
            "user_id": 2, "bank_name": "Test Bank", "bank_account_number": "X-1", "balance": "10"
        })
        assert r.status_code == 403

    def test_create_for_unknown_user(self, client, admin):
        r = client.post(f"{API}/accounts", headers=admin, json={
            "user_id": 999, "bank_name": "Test Bank", "bank_account_number": "X-1", "balance": "10"
        })
        assert r.status_code == 409
        assert r.json()["message"] == "No user with user_id 999"

    def test_duplicate_number(self, client, ledger, admin):
        r = client.post(f"{API}/accounts", headers=admin, json={
            "user_id": 2, "bank_name": "Test Bank", "bank_account_number": "A-100", "balance": "10"
        })
        assert r.status_code == 409

    def test_account_reads(self, client, ledger, admin):
        r = client.get(f"{API}/accounts", headers=ledger["user1"])
        assert r.status_code == 200
        accounts = r.json()["account_data"]
        assert [a["id"] for a in accounts] == [ledger["a"]]
        assert accounts[0]["user"]["name"] == "User One"

        assert client.get(f"{API}/accounts/{ledger['a']}", headers=ledger["user2"]).status_code == 403
        assert client.get(f"{API}/accounts/999", headers=ledger["user2"]).status_code == 404
        assert client.get(f"{API}/accounts/{ledger['a']}", headers=admin).status_code == 200

        r = client.get(f"{API}/accounts/all", headers=admin)
        assert [a["id"] for a in r.json()["accounts_data"]] == [ledger["a"], ledger["b"]]
        assert client.get(f"{API}/accounts/all", headers=ledger["user1"]).status_code == 403

    def test_delete_account(self, client, ledger, admin):
        r = client.delete(f"{API}/accounts/{ledger['b']}", headers=admin)
        assert r.status_code == 200
        assert r.json()["deleted_account"]["id"] == ledger["b"]

        assert client.delete(f"{API}/accounts/{ledger['b']}", headers=admin).status_code == 404
        assert client.delete(f"{API}/accounts/{ledger['a']}", headers=ledger["user1"]).status_code == 403


class TestInternalErrors:

    def test_unexpected_error_is_generic_500(self, system, admin, monkeypatch):
        def broken():
            raise RuntimeError("database exploded")

        monkeypatch.setattr(system.user_manager, "list_users", broken)
        client = TestClient(create_app(system, system.config), raise_server_exceptions=False)

        r = client.get(f"{API}/users/all", headers=admin)
        assert r.status_code == 500
        assert r.json() == {"status": "failed", "message": "Internal server error"}
