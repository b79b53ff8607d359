import uuid
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from splitbill.services.assignment_service import parse_assignees, replace_assignments


def make_db():
    db = AsyncMock()
    db.add_all = MagicMock()
    return db


def make_item(quantity=1, amount="12.00", assigned_to=None):
    return SimpleNamespace(id=uuid.uuid4(), quantity=quantity, amount=Decimal(amount), assigned_to=assigned_to)


def test_parse_assignees_trims_and_drops_empties():
    assert parse_assignees(" Alice , ,Bob,", 5) == ["Alice", "Bob"]


def test_parse_assignees_truncates_to_quantity():
    assert parse_assignees("Alice, Bob, Charlie", 2) == ["Alice", "Bob"]


@pytest.mark.parametrize("value", [None, "", " , "])
def test_parse_assignees_empty(value):
    assert parse_assignees(value, 3) == []


@pytest.mark.asyncio
async def test_replace_keeps_first_names_up_to_quantity():
    db = make_db()
    item = make_item(quantity=1)

    result = await replace_assignments(db, item, "Alice, Bob")

    db.execute.assert_awaited_once()
    assert [a.name for a in result] == ["Alice"]
    assert result[0].amount == Decimal("12.00")
    assert result[0].item_id == item.id
    assert item.assigned_to == "Alice"
    db.add_all.assert_called_once_with(result)


@pytest.mark.asyncio
async def test_replace_normalizes_summary_and_positions():
    db = make_db()
    item = make_item(quantity=3)

    result = await replace_assignments(db, item, "Alice,Bob ,  Charlie")

    assert [(a.name, a.position) for a in result] == [("Alice", 0), ("Bob", 1), ("Charlie", 2)]
    assert item.assigned_to == "Alice, Bob, Charlie"


@pytest.mark.asyncio
async def test_empty_string_clears_assignments():
    db = make_db()
    item = make_item(quantity=2, assigned_to="Alice")

    result = await replace_assignments(db, item, "")

    assert result == []
    db.execute.assert_awaited_once()
    db.add_all.assert_not_called()
    assert item.assigned_to is None
