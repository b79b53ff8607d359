import uuid
from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from splitbill.core.auth import create_access_token, decode_access_token, get_current_user
from splitbill.core.config import settings
from splitbill.core.database import get_db
from splitbill.main import app
from splitbill.models.bill import BillVisibility

USER = SimpleNamespace(
    id=uuid.uuid4(), email="dan@test.com", name="Dan", created_at=datetime(2026, 10, 16, tzinfo=timezone.utc),
)


def make_item(name="Pizza", amount="25.50", quantity=2, assignments=()):
    amount = Decimal(amount)
    return SimpleNamespace(
        id=uuid.uuid4(), bill_id=uuid.uuid4(), name=name, item_code=None,
        amount=amount, quantity=quantity, total=amount * quantity,
        assigned_to=", ".join(a.name for a in assignments) or None,
        paid=False, verified=False, created_at=None, assignments=list(assignments),
    )


def make_bill(visibility=BillVisibility.PRIVATE, items=()):
    return SimpleNamespace(
        id=uuid.uuid4(), name="Dinner", reference="DB1", visibility=visibility,
        share_token=None if visibility is BillVisibility.PRIVATE else "t" * 64,
        currency="RM", service_charge=Decimal("10"), tax_rate=Decimal("6"), discount=Decimal("5"),
        owner_name="Dan", created_at=datetime(2026, 10, 16, tzinfo=timezone.utc), items=list(items),
    )


async def fake_db():
    yield AsyncMock()


@pytest.fixture
def client():
    app.dependency_overrides[get_db] = fake_db
    app.dependency_overrides[get_current_user] = lambda: USER
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def anon_client():
    app.dependency_overrides[get_db] = fake_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(anon_client):
    resp = anon_client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_bills_require_session(anon_client):
    resp = anon_client.get("/api/bills")
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Not authenticated"


def test_bad_token_is_rejected(anon_client):
    anon_client.cookies.set(settings.auth_cookie_name, "not-a-jwt")
    assert anon_client.get("/api/auth/me").status_code == 401


def test_access_token_round_trip():
    assert decode_access_token(create_access_token(USER)) == USER.id


def test_list_bills_includes_summary(client):
    bill = make_bill(items=[make_item(amount="100.00", quantity=1)])
    with patch("splitbill.api.bills.list_user_bills", AsyncMock(return_value=[bill])):
        resp = client.get("/api/bills")

    assert resp.status_code == 200
    [body] = resp.json()
    assert body["reference"] == "DB1"
    assert Decimal(body["summary"]["total"]) == Decimal("111.60")


def test_create_bill_validation_error_is_400(client):
    with patch("splitbill.api.bills.create_bill", AsyncMock(side_effect=ValueError("Reference DB1 is already in use"))):
        resp = client.post("/api/bills", json={"name": "Dinner", "reference": "DB1"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Reference DB1 is already in use"


def test_create_bill_rejects_unknown_currency(client):
    resp = client.post("/api/bills", json={"name": "Dinner", "currency": "XYZ"})
    assert resp.status_code == 422


def test_missing_bill_is_404(client):
    with patch("splitbill.api.bills.get_user_bill", AsyncMock(return_value=None)):
        resp = client.get(f"/api/bills/{uuid.uuid4()}")
    assert resp.status_code == 404


def test_add_item_rejects_non_positive_quantity(client):
    resp = client.post(f"/api/bills/{uuid.uuid4()}/items", json={"name": "Soup", "amount": "5", "quantity": 0})
    assert resp.status_code == 422


def test_item_amount_limited_to_cents(client):
    resp = client.post(f"/api/bills/{uuid.uuid4()}/items", json={"name": "Soup", "amount": "0.001"})
    assert resp.status_code == 422


def test_rate_limited_to_column_size(client):
    resp = client.patch(f"/api/bills/{uuid.uuid4()}", json={"tax_rate": "10000"})
    assert resp.status_code == 422


def test_delete_item(client):
    bill = make_bill()
    with patch("splitbill.api.bills.get_user_bill", AsyncMock(return_value=bill)), \
         patch("splitbill.api.bills.delete_item", AsyncMock(return_value=True)):
        resp = client.delete(f"/api/bills/{bill.id}/items/{uuid.uuid4()}")
    assert resp.status_code == 200
    assert resp.json() == {"message": "Item deleted successfully"}


def test_shared_view_hides_token_and_lists_participants(anon_client):
    alice = SimpleNamespace(id=uuid.uuid4(), name="Alice", amount=Decimal("25.50"), paid=True)
    bill = make_bill(BillVisibility.READ_ONLY, items=[make_item(assignments=[alice])])
    with patch("splitbill.api.shared.get_shared_bill", AsyncMock(return_value=bill)):
        resp = anon_client.get(f"/api/shared/{bill.share_token}")

    assert resp.status_code == 200
    body = resp.json()
    assert "share_token" not in body
    assert body["editable"] is False
    assert [p["name"] for p in body["participants"]] == ["Alice", None]


def test_shared_edit_requires_public_bill(anon_client):
    with patch("splitbill.api.shared.get_shared_bill", AsyncMock(return_value=None)):
        resp = anon_client.patch("/api/shared/sometoken", json={"tax_rate": "6"})
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Bill not found or not publicly editable"


def test_terminal_endpoint_runs_commands(client):
    bill = {
        "id": str(uuid.uuid4()), "name": "Dinner", "reference": "DB1", "currency": "RM",
        "visibility": "PRIVATE", "items": [],
    }
    with patch("splitbill.api.terminal.ServiceBillApi") as api_cls:
        api_cls.return_value.list_bills = AsyncMock(return_value=[bill])
        resp = client.post("/api/terminal", json={"command": "list; clear"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["cleared"] is True
    assert [m["type"] for m in body["messages"]] == ["user", "system", "system"]
    assert body["messages"][1]["content"].startswith("Found 1 bills:")
