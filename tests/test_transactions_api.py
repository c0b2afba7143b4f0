from datetime import datetime, timedelta

import pytest

from database import Transaction
from date_ranges import utcnow


def _create(client, headers, **overrides):
    body = {"title": "Lunch", "type": "EXPENSE", "amount": 12.5, "category": "Food"}
    body.update(overrides)
    response = client.post("/api/transactions/create", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["transaction"]


def test_requests_without_token_are_rejected(client):
    response = client.get("/api/transactions/all")

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized", "message": "Unauthorized"}


def test_requests_with_bad_token_are_rejected(client):
    response = client.get("/api/transactions/all", headers={"Authorization": "Bearer not.a.token"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired token"


def test_amount_round_trips_through_cents(client, auth_headers, db_session):
    created = _create(client, auth_headers, amount=19.99)

    fetched = client.get(f"/api/transactions/{created['id']}", headers=auth_headers)

    assert fetched.status_code == 200
    assert fetched.json()["transaction"]["amount"] == 19.99
    assert db_session.get(Transaction, created["id"]).amount == 1999


def test_created_transaction_uses_camel_case_and_defaults(client, auth_headers):
    created = _create(client, auth_headers)

    assert created["paymentMethod"] == "CASH"
    assert created["status"] == "COMPLETED"
    assert created["isRecurring"] is False
    assert created["recurringInterval"] is None
    assert created["nextRecurringDate"] is None


def test_non_recurring_transaction_never_gets_a_next_date(client, auth_headers):
    created = _create(client, auth_headers, isRecurring=False, recurringInterval="MONTHLY")

    assert created["recurringInterval"] is None
    assert created["nextRecurringDate"] is None


def test_recurring_transaction_next_date_is_never_in_the_past(client, auth_headers):
    before = utcnow()
    created = _create(
        client,
        auth_headers,
        isRecurring=True,
        recurringInterval="MONTHLY",
        date=(before - timedelta(days=400)).isoformat(),
    )

    next_date = datetime.fromisoformat(created["nextRecurringDate"])
    assert next_date >= before


def test_recurring_transaction_with_recent_date_advances_from_that_date(client, auth_headers):
    anchor = utcnow().replace(microsecond=0) - timedelta(days=2)
    created = _create(client, auth_headers, isRecurring=True, recurringInterval="WEEKLY", date=anchor.isoformat())

    assert datetime.fromisoformat(created["nextRecurringDate"]) == anchor + timedelta(days=7)


def test_validation_errors_report_fields(client, auth_headers):
    response = client.post(
        "/api/transactions/create",
        json={"title": "", "type": "GIFT", "amount": -3, "category": "Food"},
        headers=auth_headers,
    )

    assert response.status_code == 400
    payload = response.json()
    assert payload["error"] == "Validation failed"
    fields = {err["field"] for err in payload["errors"]}
    assert {"title", "type", "amount"} <= fields


def test_foreign_transactions_look_like_missing_ones(client, auth_headers, other_headers):
    created = _create(client, other_headers)

    foreign = client.get(f"/api/transactions/{created['id']}", headers=auth_headers)
    missing = client.get("/api/transactions/999999", headers=auth_headers)

    assert foreign.status_code == 404
    assert foreign.json() == missing.json()
    assert foreign.json()["error"] == "Transaction not found"


@pytest.mark.parametrize(
    "method, path",
    [
        ("put", "/api/transactions/update/{id}"),
        ("put", "/api/transactions/duplicate/{id}"),
        ("delete", "/api/transactions/delete/{id}"),
    ],
)
def test_foreign_transactions_cannot_be_modified(client, auth_headers, other_headers, method, path):
    created = _create(client, other_headers)
    url = path.format(id=created["id"])

    kwargs = {"json": {"title": "Hijacked"}} if method == "put" else {}
    response = getattr(client, method)(url, headers=auth_headers, **kwargs)

    assert response.status_code == 404
    still_there = client.get(f"/api/transactions/{created['id']}", headers=other_headers)
    assert still_there.json()["transaction"]["title"] == "Lunch"


def test_update_only_touches_supplied_fields(client, auth_headers):
    created = _create(client, auth_headers, description="Team lunch", paymentMethod="CARD")

    response = client.put(
        f"/api/transactions/update/{created['id']}", json={"title": "Team dinner"}, headers=auth_headers
    )

    updated = response.json()["transaction"]
    assert response.status_code == 200
    assert updated["title"] == "Team dinner"
    assert updated["amount"] == 12.5
    assert updated["description"] == "Team lunch"
    assert updated["paymentMethod"] == "CARD"
    assert updated["category"] == "Food"


def test_update_turning_off_recurrence_clears_schedule(client, auth_headers):
    created = _create(client, auth_headers, isRecurring=True, recurringInterval="DAILY")
    assert created["nextRecurringDate"] is not None

    response = client.put(
        f"/api/transactions/update/{created['id']}", json={"isRecurring": False}, headers=auth_headers
    )

    updated = response.json()["transaction"]
    assert updated["isRecurring"] is False
    assert updated["recurringInterval"] is None
    assert updated["nextRecurringDate"] is None


def test_update_amount_is_stored_in_cents(client, auth_headers, db_session):
    created = _create(client, auth_headers)

    client.put(f"/api/transactions/update/{created['id']}", json={"amount": 7.05}, headers=auth_headers)

    assert db_session.get(Transaction, created["id"]).amount == 705


def test_duplicate_creates_non_recurring_copy(client, auth_headers):
    created = _create(client, auth_headers, isRecurring=True, recurringInterval="MONTHLY", description="Gym")

    response = client.put(f"/api/transactions/duplicate/{created['id']}", headers=auth_headers)

    copy = response.json()["transaction"]
    assert response.status_code == 200
    assert copy["id"] != created["id"]
    assert copy["title"] == "Duplicate - Lunch"
    assert copy["description"] == "Gym (Duplicate)"
    assert copy["amount"] == created["amount"]
    assert copy["isRecurring"] is False
    assert copy["nextRecurringDate"] is None


def test_duplicate_without_description(client, auth_headers):
    created = _create(client, auth_headers)

    copy = client.put(f"/api/transactions/duplicate/{created['id']}", headers=auth_headers).json()["transaction"]

    assert copy["description"] == "Duplicated transaction"


def test_delete_transaction(client, auth_headers):
    created = _create(client, auth_headers)

    response = client.delete(f"/api/transactions/delete/{created['id']}", headers=auth_headers)

    assert response.status_code == 200
    assert client.get(f"/api/transactions/{created['id']}", headers=auth_headers).status_code == 404


def test_list_paginates_newest_first(client, auth_headers):
    ids = [_create(client, auth_headers, title=f"Item {n}")["id"] for n in range(5)]

    response = client.get("/api/transactions/all?pageSize=2&pageNumber=2", headers=auth_headers)

    payload = response.json()
    assert response.status_code == 200
    assert payload["pagination"] == {
        "pageSize": 2,
        "pageNumber": 2,
        "totalCount": 5,
        "totalPages": 3,
        "skip": 2,
    }
    assert [txn["id"] for txn in payload["transactions"]] == [ids[2], ids[1]]


def test_list_filters(client, auth_headers, other_headers):
    _create(client, auth_headers, title="Groceries", category="Food")
    _create(client, auth_headers, title="Paycheck", type="INCOME", category="Salary")
    _create(client, auth_headers, title="Netflix", category="Subscriptions", isRecurring=True, recurringInterval="MONTHLY")
    _create(client, other_headers, title="Groceries", category="Food")

    def titles(query):
        response = client.get(f"/api/transactions/all?{query}", headers=auth_headers)
        return sorted(txn["title"] for txn in response.json()["transactions"])

    assert titles("keyword=food") == ["Groceries"]
    assert titles("keyword=net") == ["Netflix"]
    assert titles("type=INCOME") == ["Paycheck"]
    assert titles("recurringStatus=RECURRING") == ["Netflix"]
    assert titles("recurringStatus=NON_RECURRING") == ["Groceries", "Paycheck"]
    assert titles("") == ["Groceries", "Netflix", "Paycheck"]


def test_bulk_delete_only_removes_own_rows(client, auth_headers, other_headers):
    mine = [_create(client, auth_headers)["id"] for _ in range(2)]
    theirs = _create(client, other_headers)["id"]

    response = client.post(
        "/api/transactions/delete/bulk", json={"transactionIds": mine + [theirs]}, headers=auth_headers
    )

    assert response.status_code == 200
    assert response.json()["deletedCount"] == 2
    assert client.get(f"/api/transactions/{theirs}", headers=other_headers).status_code == 200


def test_bulk_delete_with_no_matches(client, auth_headers, other_headers):
    theirs = _create(client, other_headers)["id"]

    response = client.post("/api/transactions/delete/bulk", json={"transactionIds": [theirs]}, headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["error"] == "No transactions found"


def test_bulk_delete_requires_ids(client, auth_headers):
    response = client.post("/api/transactions/delete/bulk", json={"transactionIds": []}, headers=auth_headers)
    assert response.status_code == 400


def test_bulk_insert(client, auth_headers):
    body = {
        "transactions": [
            {"title": "Coffee", "type": "EXPENSE", "amount": 3.75, "category": "Food", "date": "2026-03-01T09:00:00"},
            {"title": "Refund", "type": "INCOME", "amount": 20, "category": "Shopping", "paymentMethod": "CARD"},
        ]
    }

    response = client.post("/api/transactions/bulk-transaction", json=body, headers=auth_headers)

    payload = response.json()
    assert response.status_code == 201
    assert payload["insertedCount"] == 2
    assert [txn["amount"] for txn in payload["transactions"]] == [3.75, 20.0]
    assert all(txn["status"] == "COMPLETED" and not txn["isRecurring"] for txn in payload["transactions"])


@pytest.mark.parametrize("amount", [0.001, 0.004, 1e20])
def test_amounts_outside_storable_range_are_rejected(client, auth_headers, amount):
    body = {"title": "Lunch", "type": "EXPENSE", "amount": amount, "category": "Food"}

    response = client.post("/api/transactions/create", json=body, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "amount"


def test_infinite_amount_is_rejected(client, auth_headers):
    body = '{"title": "Lunch", "type": "EXPENSE", "amount": Infinity, "category": "Food"}'

    response = client.post(
        "/api/transactions/create",
        content=body,
        headers={**auth_headers, "Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"


def test_half_cent_rounds_up_to_one_cent(client, auth_headers, db_session):
    created = _create(client, auth_headers, amount=0.005)

    assert db_session.get(Transaction, created["id"]).amount == 1


def test_update_and_bulk_apply_the_same_amount_rules(client, auth_headers):
    created = _create(client, auth_headers)

    update = client.put(
        f"/api/transactions/update/{created['id']}", json={"amount": 0.001}, headers=auth_headers
    )
    bulk = client.post(
        "/api/transactions/bulk-transaction",
        json={"transactions": [{"title": "Huge", "type": "INCOME", "amount": 1e20, "category": "Misc"}]},
        headers=auth_headers,
    )

    assert update.status_code == 400
    assert bulk.status_code == 400
    fetched = client.get(f"/api/transactions/{created['id']}", headers=auth_headers)
    assert fetched.json()["transaction"]["amount"] == 12.5


def test_keyword_wildcards_match_literally(client, auth_headers):
    _create(client, auth_headers, title="Groceries")
    _create(client, auth_headers, title="50% off sale")
    _create(client, auth_headers, title="snake_case book")

    def titles(keyword):
        response = client.get("/api/transactions/all", params={"keyword": keyword}, headers=auth_headers)
        return [txn["title"] for txn in response.json()["transactions"]]

    assert titles("%") == ["50% off sale"]
    assert titles("_") == ["snake_case book"]
