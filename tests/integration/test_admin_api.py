from __future__ import annotations

from decimal import Decimal

from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from blogsub.models import SubscriptionStatus, Transaction, TransactionKind, User


def _submit(client: TestClient, headers: dict[str, str], trx_id: str, plan: str = "monthly", amount: str = "199"):
    response = client.post(
        "/api/transactions",
        json={"trx_id": trx_id, "plan_type": plan, "amount": amount},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response


def test_admin_routes_reject_readers(client: TestClient, member_headers: dict[str, str]) -> None:
    for path in ("/api/admin/dashboard/stats", "/api/admin/users", "/api/admin/analytics/revenue"):
        assert client.get(path, headers=member_headers).status_code == 403


def test_dashboard_stats(
    client: TestClient, member_headers: dict[str, str], admin_headers: dict[str, str]
) -> None:
    _submit(client, member_headers, "TRXDASH0001")
    _submit(client, member_headers, "TRXDASH0002", plan="yearly", amount="1599")
    client.post("/api/transactions/TRXDASH0002/approve", headers=admin_headers)

    response = client.get("/api/admin/dashboard/stats", headers=admin_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["users"]["total_users"] == 2
    assert body["users"]["active_subscribers"] == 1
    assert body["transactions"]["pending_transactions"] == 1
    assert body["transactions"]["approved_transactions"] == 1
    assert Decimal(body["transactions"]["total_revenue"]) == Decimal("1599.00")


def test_revenue_analytics_groups_approved_payments(
    client: TestClient, member_headers: dict[str, str], admin_headers: dict[str, str]
) -> None:
    _submit(client, member_headers, "TRXREV00001")
    _submit(client, member_headers, "TRXREV00002")
    client.post(
        "/api/admin/transactions/bulk-approve",
        json={"transaction_ids": ["TRXREV00001", "TRXREV00002"]},
        headers=admin_headers,
    )

    response = client.get("/api/admin/analytics/revenue", params={"period": "year"}, headers=admin_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["period"] == "year"
    assert len(body["revenue_data"]) == 1
    bucket = body["revenue_data"][0]
    assert bucket["plan_type"] == "monthly"
    assert bucket["transaction_count"] == 2
    assert Decimal(bucket["total_revenue"]) == Decimal("398.00")


def test_revenue_analytics_rejects_unknown_period(client: TestClient, admin_headers: dict[str, str]) -> None:
    response = client.get("/api/admin/analytics/revenue", params={"period": "week"}, headers=admin_headers)
    assert response.status_code == 422


def test_bulk_approve_reports_counts(
    client: TestClient, member_headers: dict[str, str], admin_headers: dict[str, str]
) -> None:
    _submit(client, member_headers, "TRXBULK0001")
    _submit(client, member_headers, "TRXBULK0002")
    client.post("/api/transactions/TRXBULK0002/reject", headers=admin_headers)

    response = client.post(
        "/api/admin/transactions/bulk-approve",
        json={"transaction_ids": ["TRXBULK0001", "TRXBULK0002", "TRXMISSING1"]},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["approved"] == 1
    assert response.json()["total"] == 3


def test_list_users_with_status_filter(
    client: TestClient, member: User, admin_headers: dict[str, str]
) -> None:
    response = client.get("/api/admin/users", params={"subscription_status": "free"}, headers=admin_headers)

    assert response.status_code == 200
    emails = {user["email"] for user in response.json()["users"]}
    assert emails == {"reader@example.com", "admin@example.com"}

    active = client.get("/api/admin/users", params={"subscription_status": "active"}, headers=admin_headers)
    assert active.json()["users"] == []


def test_subscription_override_writes_ledger_row(
    client: TestClient, member: User, admin: User, admin_headers: dict[str, str], db_session: Session
) -> None:
    response = client.put(
        f"/api/admin/users/{member.id}/subscription",
        json={"subscription_status": "active", "subscription_expiry": "2030-01-01T00:00:00Z"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["user"]["subscription_status"] == "active"
    assert body["ledger_trx_id"].startswith("OVERRIDE-")

    ledger = db_session.scalars(select(Transaction).where(Transaction.trx_id == body["ledger_trx_id"])).one()
    assert ledger.kind == TransactionKind.OVERRIDE
    assert ledger.user_id == member.id
    assert ledger.amount == Decimal("0.00")
    assert ledger.details["actor_id"] == admin.id


def test_subscription_override_validation(
    client: TestClient, member: User, admin_headers: dict[str, str], db_session: Session
) -> None:
    missing_expiry = client.put(
        f"/api/admin/users/{member.id}/subscription",
        json={"subscription_status": "active"},
        headers=admin_headers,
    )
    assert missing_expiry.status_code == 400

    unknown_user = client.put(
        "/api/admin/users/9999/subscription",
        json={"subscription_status": "expired"},
        headers=admin_headers,
    )
    assert unknown_user.status_code == 404

    db_session.expire_all()
    assert db_session.get(User, member.id).subscription_status == SubscriptionStatus.FREE


def test_recent_activity_joins_owner(
    client: TestClient, member: User, member_headers: dict[str, str], admin_headers: dict[str, str]
) -> None:
    for index in range(12):
        _submit(client, member_headers, f"TRXRECENT{index:02d}")

    response = client.get("/api/admin/activity/recent", headers=admin_headers)

    assert response.status_code == 200
    recent = response.json()["recent_transactions"]
    assert len(recent) == 10
    assert recent[0]["trx_id"] == "TRXRECENT11"
    assert recent[0]["user_name"] == "Reader"
    assert recent[0]["user_email"] == member.email


def test_recent_activity_requires_admin(client: TestClient, member_headers: dict[str, str]) -> None:
    assert client.get("/api/admin/activity/recent", headers=member_headers).status_code == 403


def test_export_users_as_attachment(client: TestClient, member: User, admin_headers: dict[str, str]) -> None:
    response = client.get("/api/admin/export", params={"type": "users"}, headers=admin_headers)

    assert response.status_code == 200
    assert response.headers["content-disposition"] == 'attachment; filename="users_export.json"'
    rows = {row["email"]: row for row in response.json()}
    assert set(rows) == {"reader@example.com", "admin@example.com"}
    assert rows["reader@example.com"]["subscription_status"] == "free"


def test_export_transactions_with_owner(
    client: TestClient, member: User, member_headers: dict[str, str], admin_headers: dict[str, str]
) -> None:
    _submit(client, member_headers, "TRXEXPORT01")

    response = client.get("/api/admin/export", params={"type": "transactions"}, headers=admin_headers)

    assert response.status_code == 200
    assert response.headers["content-disposition"] == 'attachment; filename="transactions_export.json"'
    [row] = response.json()
    assert row["trx_id"] == "TRXEXPORT01"
    assert row["user_email"] == member.email
    assert Decimal(row["amount"]) == Decimal("199.00")


def test_export_rejects_unknown_type(client: TestClient, admin_headers: dict[str, str]) -> None:
    assert client.get("/api/admin/export", params={"type": "blogs"}, headers=admin_headers).status_code == 400
    assert client.get("/api/admin/export", headers=admin_headers).status_code == 400
