import asyncio

from fastapi.testclient import TestClient

from conftest import application_data, auth_headers, seed_loan
from app.core.errors import StorageUnavailable
from app.main import app
from app.schemas.loan import LoanStatus
from app.services import loan_applications


def test_apply_is_public_and_returns_reference(client):
    response = client.post("/api/v1/loans/apply", json=application_data())

    assert response.status_code == 201
    body = response.json()
    assert body["code"] == "created"
    assert body["data"]["status"] == "pending"
    assert body["data"]["total_amount"] == 1100.0
    assert body["data"]["reference"]


def test_apply_validation_error_envelope(client):
    response = client.post("/api/v1/loans/apply", json=application_data(first_name="", loan_amount="abc"))

    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "validation_error"
    assert body["data"] is None
    assert "first_name" in body["details"]["missing_fields"]
    assert any(error["field"] == "loan_amount" for error in body["details"]["errors"])


def test_apply_rejects_values_longer_than_the_stored_columns(client, store):
    response = client.post("/api/v1/loans/apply", json=application_data(first_name="A" * 250))

    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "validation_error"
    assert body["message"].startswith("first_name")
    assert asyncio.run(store.scan_all("loans")) == []


def test_staff_routes_require_token(client):
    response = client.get("/api/v1/loans")

    assert response.status_code == 401
    assert response.json()["code"] == "unauthorized"
    assert response.headers.get("www-authenticate") == "Bearer"

    response = client.get("/api/v1/loans", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401


def test_list_and_filter_loans(client, store, maker):
    asyncio.run(seed_loan(store, status=LoanStatus.PENDING))
    approved = asyncio.run(seed_loan(store, status=LoanStatus.APPROVED))

    response = client.get("/api/v1/loans", params={"status": "approved"}, headers=auth_headers(maker))

    assert response.status_code == 200
    data = response.json()["data"]
    assert [loan["id"] for loan in data] == [approved["id"]]

    response = client.get("/api/v1/loans", params={"status": "archived"}, headers=auth_headers(maker))
    assert response.status_code == 422


def test_stats_summary_is_not_treated_as_loan_id(client, store, maker):
    asyncio.run(seed_loan(store, status=LoanStatus.PENDING, total_amount=1000.0))
    asyncio.run(seed_loan(store, status=LoanStatus.DISBURSED, total_amount=2000.0))

    response = client.get("/api/v1/loans/stats/summary", headers=auth_headers(maker))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total"] == 2
    assert data["total_amount"] == 3000.0


def test_get_unknown_loan_is_404(client, maker):
    response = client.get("/api/v1/loans/nope", headers=auth_headers(maker))

    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


def test_review_permissions_and_state(client, store, maker, checker):
    record = asyncio.run(seed_loan(store))
    url = f"/api/v1/loans/{record['id']}/review"

    response = client.post(url, json={"action": "approve"}, headers=auth_headers(maker))
    assert response.status_code == 403
    assert response.json()["code"] == "forbidden"

    response = client.post(url, json={"action": "approve", "comments": "ok"}, headers=auth_headers(checker))
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "approved"
    assert data["checked_by"] == checker.id
    assert data["checker_comments"] == "ok"

    response = client.post(url, json={"action": "reject"}, headers=auth_headers(checker))
    assert response.status_code == 409
    assert response.json()["code"] == "invalid_state"


def test_disburse_requires_approved_loan(client, store, accountant):
    record = asyncio.run(seed_loan(store, status=LoanStatus.PENDING))

    response = client.post(
        f"/api/v1/loans/{record['id']}/disburse",
        json={"reference_number": "REF1"},
        headers=auth_headers(accountant),
    )

    assert response.status_code == 412
    assert response.json()["code"] == "precondition_failed"


def test_full_workflow_over_http(client, checker, accountant):
    response = client.post("/api/v1/loans/apply", json=application_data())
    loan_id = response.json()["data"]["reference"]

    client.post(f"/api/v1/loans/{loan_id}/review", json={"action": "approve", "comments": "ok"}, headers=auth_headers(checker))
    response = client.post(
        f"/api/v1/loans/{loan_id}/disburse",
        json={"reference_number": "REF1"},
        headers=auth_headers(accountant),
    )
    assert response.status_code == 200
    assert response.json()["data"]["disbursement_reference"] == "REF1"

    response = client.post(
        "/api/v1/repayments",
        json={"loan_id": loan_id, "payment_date": "2025-03-01", "amount_paid": 500},
        headers=auth_headers(accountant),
    )
    assert response.status_code == 201
    assert response.json()["data"]["repayment_id"]

    response = client.get(f"/api/v1/repayments/loan/{loan_id}", headers=auth_headers(accountant))
    summary = response.json()["data"]["summary"]
    assert summary == {"loan_amount": 1100.0, "total_paid": 500.0, "balance": 600.0}

    response = client.get("/api/v1/loans/" + loan_id, headers=auth_headers(checker))
    assert response.json()["data"]["status"] == "disbursed"


def test_request_id_is_echoed(client):
    response = client.get("/api/v1/health/live", headers={"X-Request-ID": "req-123"})

    assert response.headers["x-request-id"] == "req-123"


def test_storage_outage_maps_to_503(client, store, maker, monkeypatch):
    async def _unavailable(table):
        raise StorageUnavailable("Storage timed out during scan_all", details={"operation": "scan_all"})

    monkeypatch.setattr(store, "scan_all", _unavailable)

    response = client.get("/api/v1/loans", headers=auth_headers(maker))

    assert response.status_code == 503
    assert response.json()["code"] == "storage_unavailable"


def test_unexpected_errors_are_generic_500(client, store, maker, monkeypatch):
    async def _boom(store):
        raise RuntimeError("secret internals")

    monkeypatch.setattr(loan_applications, "loan_stats", _boom)
    quiet_client = TestClient(app, raise_server_exceptions=False)

    response = quiet_client.get("/api/v1/loans/stats/summary", headers=auth_headers(maker))

    assert response.status_code == 500
    body = response.json()
    assert body["code"] == "internal_server_error"
    assert "secret" not in body["message"]
