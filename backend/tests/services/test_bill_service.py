import uuid
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from splitbill.models.bill import BillVisibility
from splitbill.services.bill_service import (
    generate_bill_reference, generate_share_token, apply_bill_changes, create_bill, add_item,
    SHARED_BILL_UPDATE_FIELDS,
)

USER = SimpleNamespace(id=uuid.uuid4(), name="Dan")


def scalar_result(value):
    r = MagicMock()
    r.scalar_one_or_none.return_value = value
    return r


def make_db(*scalars):
    """Mock AsyncSession whose execute() results yield the given scalars in order."""
    db = AsyncMock()
    db.add = MagicMock()
    db.execute.side_effect = [scalar_result(v) for v in scalars]
    return db


def make_bill(visibility=BillVisibility.PRIVATE, share_token=None):
    return SimpleNamespace(
        visibility=visibility, share_token=share_token, currency="RM",
        service_charge=Decimal("0"), tax_rate=Decimal("0"), discount=Decimal("0"),
    )


# --- references and tokens --------------------------------------------------

def test_reference_uses_initials_and_timestamp_tail():
    assert generate_bill_reference("dan", "Birthday dinner", now_ms=1700000123456) == "DBD123456"


def test_reference_ignores_extra_whitespace():
    assert generate_bill_reference("Amy", "  Team   Lunch ", now_ms=42) == "ATL42"


def test_share_tokens_are_long_and_unique():
    tokens = {generate_share_token() for _ in range(20)}
    assert len(tokens) == 20
    assert all(len(t) == 64 for t in tokens)


# --- apply_bill_changes -----------------------------------------------------

def test_sharing_a_private_bill_issues_token():
    bill = make_bill()
    apply_bill_changes(bill, {"visibility": "PUBLIC"})
    assert bill.visibility is BillVisibility.PUBLIC
    assert bill.share_token and len(bill.share_token) == 64


def test_switching_between_shared_modes_keeps_token():
    bill = make_bill(BillVisibility.READ_ONLY, share_token="abc")
    apply_bill_changes(bill, {"visibility": BillVisibility.PUBLIC})
    assert bill.share_token == "abc"


def test_making_bill_private_revokes_token():
    bill = make_bill(BillVisibility.PUBLIC, share_token="abc")
    apply_bill_changes(bill, {"visibility": "PRIVATE"})
    assert bill.share_token is None


def test_numeric_and_currency_fields():
    bill = make_bill()
    applied = apply_bill_changes(bill, {"tax_rate": "6", "discount": 5, "currency": "usd", "service_charge": None})
    assert bill.tax_rate == Decimal("6")
    assert bill.discount == Decimal("5")
    assert bill.currency == "USD"
    assert set(applied) == {"tax_rate", "discount", "currency"}


def test_shared_updates_ignore_visibility_and_currency():
    bill = make_bill(BillVisibility.PUBLIC, share_token="abc")
    applied = apply_bill_changes(
        bill, {"visibility": "PRIVATE", "currency": "EUR", "tax_rate": "8"}, SHARED_BILL_UPDATE_FIELDS
    )
    assert applied == {"tax_rate": "8"}
    assert bill.visibility is BillVisibility.PUBLIC
    assert bill.share_token == "abc"
    assert bill.currency == "RM"


def test_negative_amount_is_rejected():
    with pytest.raises(ValueError):
        apply_bill_changes(make_bill(), {"discount": "-1"})


@pytest.mark.parametrize("changes", [
    {"tax_rate": "10000"},
    {"service_charge": "5.125"},
    {"discount": "12345678901"},
    {"discount": "NaN"},
])
def test_values_outside_columns_are_rejected(changes):
    bill = make_bill()
    with pytest.raises(ValueError):
        apply_bill_changes(bill, changes)
    assert bill.tax_rate == Decimal("0")


def test_unknown_currency_is_rejected():
    with pytest.raises(ValueError, match="Invalid currency: XYZ"):
        apply_bill_changes(make_bill(), {"currency": "xyz"})


# --- create_bill ------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_requires_name():
    db = make_db()
    with pytest.raises(ValueError, match="Bill name is required"):
        await create_bill(db, USER, "   ")
    db.add.assert_not_called()


@pytest.mark.asyncio
async def test_create_rejects_bad_currency():
    with pytest.raises(ValueError, match="Invalid currency"):
        await create_bill(make_db(), USER, "Dinner", currency="XYZ")


@pytest.mark.asyncio
@pytest.mark.parametrize("reference", ["ab", "has space", "x" * 33, "semi;colon"])
async def test_create_rejects_malformed_reference(reference):
    with pytest.raises(ValueError, match="Invalid reference"):
        await create_bill(make_db(), USER, "Dinner", reference=reference)


@pytest.mark.asyncio
async def test_create_rejects_taken_reference():
    db = make_db(uuid.uuid4())
    with pytest.raises(ValueError, match="already in use"):
        await create_bill(db, USER, "Dinner", reference="DINNER2024")
    db.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_create_public_bill_gets_share_token():
    created = object()
    db = make_db(None, created)

    result = await create_bill(db, USER, " Dinner ", currency="sgd", visibility="PUBLIC", reference="DINNER2024")

    assert result is created
    bill = db.add.call_args.args[0]
    assert bill.name == "Dinner"
    assert bill.reference == "DINNER2024"
    assert bill.currency == "SGD"
    assert bill.visibility is BillVisibility.PUBLIC
    assert len(bill.share_token) == 64
    assert bill.user_id == USER.id
    db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_create_private_bill_has_no_share_token():
    db = make_db(None, object())
    await create_bill(db, USER, "Dinner", reference="DINNER2024")
    assert db.add.call_args.args[0].share_token is None


@pytest.mark.asyncio
async def test_generated_reference_collision_appends_digits():
    db = make_db(uuid.uuid4(), None, object())
    with patch("splitbill.services.bill_service.generate_bill_reference", return_value="DD123456"):
        await create_bill(db, USER, "Dinner")

    reference = db.add.call_args.args[0].reference
    assert reference.startswith("DD123456")
    assert len(reference) == 10
    assert reference[-2:].isdigit()


# --- add_item ---------------------------------------------------------------

@pytest.mark.asyncio
@pytest.mark.parametrize("amount, quantity", [
    (Decimal("0"), 1),
    (Decimal("0.001"), 1),
    (Decimal("1e11"), 1),
    (Decimal("9999999999"), 2),
    (Decimal("5"), 0),
    (Decimal("5"), 3_000_000_000),
])
async def test_add_item_rejects_values_the_columns_cannot_hold(amount, quantity):
    db = make_db()
    with pytest.raises(ValueError):
        await add_item(db, SimpleNamespace(id=uuid.uuid4()), "Soup", amount, quantity)
    db.execute.assert_not_awaited()
