"""Tests for the transaction endpoints."""
from decimal import Decimal

from fastapi.testclient import TestClient


def _create(client: TestClient, **fields):
    payload = {"amount": "10.00", "type": "expense", "txn_date": "2024-04-10"}
    payload.update(fields)
    response = client.post("/api/transactions", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_transaction_with_category_and_wallet(client: TestClient):
    category = client.post("/api/categories", json={"name": "Food", "color": "#f97316"}).json()
    wallet = client.post("/api/wallets", json={"name": "Main", "type": "bank"}).json()

    created = _create(
        client,
        amount="42.50",
        category_id=category["id"],
        wallet_id=wallet["id"],
        note="Lunch",
    )

    assert Decimal(created["amount"]) == Decimal("42.50")
    assert created["category_name"] == "Food"
    assert created["category_color"] == "#f97316"
    assert created["wallet_name"] == "Main"
    assert created["source"] == "manual"
    assert created["note"] == "Lunch"


def test_negative_amount_is_rejected(client: TestClient):
    response = client.post(
        "/api/transactions",
        json={"amount": "-1", "type": "expense", "txn_date": "2024-04-10"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Amount must be non-negative"}


def test_invalid_type_is_a_validation_error(client: TestClient):
    response = client.post(
        "/api/transactions",
        json={"amount": "1", "type": "transfer", "txn_date": "2024-04-10"},
    )

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid request"
    assert body["details"]


def test_foreign_category_is_rejected(client: TestClient, auth_state, other_user):
    category = client.post("/api/categories", json={"name": "Food"}).json()
    auth_state["user"] = other_user

    response = client.post(
        "/api/transactions",
        json={
            "amount": "1",
            "type": "expense",
            "txn_date": "2024-04-10",
            "category_id": category["id"],
        },
    )

    assert response.status_code == 404


def test_list_is_newest_first_and_filterable(client: TestClient):
    food = client.post("/api/categories", json={"name": "Food"}).json()
    _create(client, txn_date="2024-04-01", note="Groceries run", category_id=food["id"])
    _create(client, txn_date="2024-04-15", type="income", amount="900", note="Salary")
    _create(client, txn_date="2024-05-02", note="Cinema")

    all_rows = client.get("/api/transactions").json()
    assert [t["txn_date"] for t in all_rows] == ["2024-05-02", "2024-04-15", "2024-04-01"]

    april = client.get(
        "/api/transactions", params={"startDate": "2024-04-01", "endDate": "2024-04-30"}
    ).json()
    assert len(april) == 2

    income = client.get("/api/transactions", params={"type": "income"}).json()
    assert [t["note"] for t in income] == ["Salary"]

    by_category = client.get("/api/transactions", params={"categoryId": food["id"]}).json()
    assert [t["note"] for t in by_category] == ["Groceries run"]

    search = client.get("/api/transactions", params={"search": "cine"}).json()
    assert [t["note"] for t in search] == ["Cinema"]


def test_update_transaction(client: TestClient):
    created = _create(client, note="Coffee")

    response = client.put(
        f"/api/transactions/{created['id']}",
        json={"amount": "3.75", "note": ""},
    )

    assert response.status_code == 200
    updated = response.json()
    assert Decimal(updated["amount"]) == Decimal("3.75")
    assert updated["note"] is None
    assert updated["txn_date"] == "2024-04-10"


def test_update_missing_transaction(client: TestClient):
    response = client.put("/api/transactions/999", json={"amount": "1"})

    assert response.status_code == 404
    assert response.json() == {"error": "Transaction not found"}


def test_delete_transaction(client: TestClient):
    created = _create(client)

    assert client.delete(f"/api/transactions/{created['id']}").status_code == 204
    assert client.get("/api/transactions").json() == []


def test_transactions_are_scoped_to_user(client: TestClient, auth_state, other_user):
    owner = auth_state["user"]
    created = _create(client)
    auth_state["user"] = other_user

    assert client.get("/api/transactions").json() == []
    client.delete(f"/api/transactions/{created['id']}")

    auth_state["user"] = owner
    assert [t["id"] for t in client.get("/api/transactions").json()] == [created["id"]]
