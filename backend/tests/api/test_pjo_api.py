"""Integration tests for the PJO API and its approval gate.

Tests cover:
- Complex cargo opens engineering review on creation
- Approval blocked (422) while review is open, allowed once waived
- Rejection needs a reason
- Actual cost only on approved PJOs
- Error payload carries a debug_id
"""

import pytest
from fastapi.testclient import TestClient

pytestmark = pytest.mark.integration

SALES = {"X-User-Id": "sales-001", "X-User-Role": "sales"}
MANAGER = {"X-User-Id": "mgr-001", "X-User-Role": "manager"}


def create_priced_pjo(client: TestClient, cargo: dict | None = None) -> dict:
    response = client.post(
        "/api/pjos",
        json={"customer_name": "PT Sinar Logistik", "pol": "Tanjung Perak", "pod": "Sorong", "cargo": cargo or {}},
        headers=SALES,
    )
    assert response.status_code == 201, response.text
    pjo_id = response.json()["id"]

    client.post(
        f"/api/pjos/{pjo_id}/revenue-items",
        json={"description": "Door to door", "unit_price": 80_000_000},
        headers=SALES,
    )
    response = client.post(
        f"/api/pjos/{pjo_id}/cost-items",
        json={"category": "trucking", "description": "Lowbed", "estimated_amount": 50_000_000},
        headers=SALES,
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_create_requires_identity(api_client: TestClient):
    response = api_client.post("/api/pjos", json={"customer_name": "PT X", "pol": "A", "pod": "B"})

    assert response.status_code == 401
    assert "debug_id" in response.json()


def test_create_rejects_negative_cargo(api_client: TestClient):
    response = api_client.post(
        "/api/pjos",
        json={"customer_name": "PT X", "pol": "A", "pod": "B", "cargo": {"cargo_height_m": -0.5}},
        headers=SALES,
    )

    assert response.status_code == 422
    assert "cargo_height_m" in response.json()["detail"]


def test_complex_pjo_gate(api_client: TestClient, heavy_cargo):
    pjo = create_priced_pjo(api_client, heavy_cargo)
    assert pjo["requires_engineering"] is True
    assert pjo["engineering_status"] == "pending"
    assert pjo["market_type"] == "complex"

    assert api_client.post(f"/api/pjos/{pjo['id']}/submit", headers=SALES).status_code == 200

    status = api_client.get(f"/api/pjos/{pjo['id']}/approval-status", headers=MANAGER).json()
    assert status["can_approve"] is False
    assert "completed or waived" in status["reason"]

    blocked = api_client.post(f"/api/pjos/{pjo['id']}/approve", headers=MANAGER)
    assert blocked.status_code == 422
    assert blocked.json()["detail"] == status["reason"]

    waived = api_client.post(
        f"/api/engineering/pjos/{pjo['id']}/waive", json={"reason": "Repeat route"}, headers=MANAGER
    )
    assert waived.status_code == 200

    approved = api_client.post(f"/api/pjos/{pjo['id']}/approve", headers=MANAGER)
    assert approved.status_code == 200
    assert approved.json()["status"] == "approved"
    assert approved.json()["approved_by"] == "mgr-001"


def test_simple_pjo_approves_directly(api_client: TestClient, light_cargo):
    pjo = create_priced_pjo(api_client, light_cargo)
    assert pjo["engineering_status"] == "not_required"
    assert pjo["profit"] == 30_000_000
    assert pjo["profit_margin"] == 37.5

    api_client.post(f"/api/pjos/{pjo['id']}/submit", headers=SALES)
    response = api_client.post(f"/api/pjos/{pjo['id']}/approve", headers=MANAGER)

    assert response.status_code == 200
    assert response.json()["status"] == "approved"


def test_approve_draft_is_conflict(api_client: TestClient):
    pjo = create_priced_pjo(api_client)

    response = api_client.post(f"/api/pjos/{pjo['id']}/approve", headers=MANAGER)

    assert response.status_code == 409


def test_reject_requires_reason(api_client: TestClient):
    pjo = create_priced_pjo(api_client)
    api_client.post(f"/api/pjos/{pjo['id']}/submit", headers=SALES)

    assert api_client.post(f"/api/pjos/{pjo['id']}/reject", json={"reason": ""}, headers=MANAGER).status_code == 422

    response = api_client.post(f"/api/pjos/{pjo['id']}/reject", json={"reason": "Margin too thin"}, headers=MANAGER)
    assert response.status_code == 200
    assert response.json()["rejection_reason"] == "Margin too thin"


def test_actual_cost_flow(api_client: TestClient):
    pjo = create_priced_pjo(api_client)
    item_id = pjo["cost_items"][0]["id"]
    url = f"/api/pjos/{pjo['id']}/cost-items/{item_id}/actual"

    assert api_client.post(url, json={"actual_amount": 40_000_000}, headers=SALES).status_code == 409

    api_client.post(f"/api/pjos/{pjo['id']}/submit", headers=SALES)
    api_client.post(f"/api/pjos/{pjo['id']}/approve", headers=MANAGER)

    response = api_client.post(url, json={"actual_amount": 40_000_000}, headers=SALES)
    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"
    assert response.json()["budget_warning_level"] == "safe"


def test_unknown_pjo_is_404(api_client: TestClient):
    response = api_client.get("/api/pjos/not-a-uuid", headers=SALES)

    assert response.status_code == 404
    assert response.json()["detail"] == "PJO not found"


def test_edit_delete_and_list_drafts(api_client: TestClient):
    pjo = create_priced_pjo(api_client)
    pjo_id = pjo["id"]

    response = api_client.patch(f"/api/pjos/{pjo_id}", json={"pod": "Merauke"}, headers=SALES)
    assert response.status_code == 200
    assert response.json()["pod"] == "Merauke"

    cost_id = pjo["cost_items"][0]["id"]
    response = api_client.put(
        f"/api/pjos/{pjo_id}/cost-items/{cost_id}",
        json={"category": "trucking", "description": "Lowbed", "estimated_amount": 60_000_000},
        headers=SALES,
    )
    assert response.status_code == 200
    assert response.json()["profit"] == 20_000_000

    assert [p["id"] for p in api_client.get("/api/pjos", params={"status": "draft"}, headers=SALES).json()] == [pjo_id]

    response = api_client.delete(f"/api/pjos/{pjo_id}", headers=SALES)
    assert response.json() == {"status": "deleted"}
    assert api_client.get(f"/api/pjos/{pjo_id}", headers=SALES).status_code == 404


def test_submitted_pjo_cannot_be_edited_or_deleted(api_client: TestClient):
    pjo_id = create_priced_pjo(api_client)["id"]
    api_client.post(f"/api/pjos/{pjo_id}/submit", headers=SALES)

    assert api_client.patch(f"/api/pjos/{pjo_id}", json={"pod": "Merauke"}, headers=SALES).status_code == 409
    assert api_client.delete(f"/api/pjos/{pjo_id}", headers=SALES).status_code == 409
