import logging
import re
import secrets
import string
import time
import uuid
from decimal import Decimal

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from splitbill.models.bill import Bill, BillItem, ItemAssignment, BillVisibility
from splitbill.models.user import User
from splitbill.services.assignment_service import replace_assignments
from splitbill.utils.currency_utils import (
    is_valid_currency, fits_column, max_value, to_decimal,
    CURRENCY_CODES, DEFAULT_CURRENCY, MONEY_DIGITS, RATE_DIGITS, MAX_QUANTITY,
)

logger = logging.getLogger(__name__)

REFERENCE_PATTERN = re.compile(r"^[A-Za-z0-9_-]{3,32}$")
BILL_UPDATE_FIELDS = ("service_charge", "tax_rate", "discount", "currency", "visibility")
SHARED_BILL_UPDATE_FIELDS = ("service_charge", "tax_rate", "discount")
# numeric bill field -> column size
NUMERIC_BILL_FIELDS = {"service_charge": RATE_DIGITS, "tax_rate": RATE_DIGITS, "discount": MONEY_DIGITS}
ITEM_UPDATE_FIELDS = ("assigned_to", "paid", "verified")


def generate_bill_reference(user_name: str, bill_name: str, now_ms: int | None = None) -> str:
    """Owner initial + initials of each word of the bill name + last 6 digits of the epoch ms."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    timestamp = str(now_ms)[-6:]
    user_initial = user_name[:1].upper()
    bill_initials = "".join(word[0].upper() for word in bill_name.split() if word)
    return f"{user_initial}{bill_initials}{timestamp}"[-32:]


def generate_share_token() -> str:
    return secrets.token_hex(32)


def _require_fits(value: Decimal, label: str, max_digits: int) -> None:
    if not fits_column(value, max_digits):
        raise ValueError(f"{label} must be at most {max_value(max_digits)} with up to 2 decimal places")


def _bill_load_options():
    """Eager-load items -> assignments and the owner."""
    return [
        selectinload(Bill.items).selectinload(BillItem.assignments),
        selectinload(Bill.owner),
    ]


async def _reference_taken(db: AsyncSession, reference: str) -> bool:
    result = await db.execute(select(Bill.id).where(Bill.reference == reference))
    return result.scalar_one_or_none() is not None


async def _fetch_bill(db: AsyncSession, *criteria) -> Bill | None:
    result = await db.execute(
        select(Bill)
        .options(*_bill_load_options())
        .where(*criteria)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def create_bill(
    db: AsyncSession,
    user: User,
    name: str,
    currency: str = DEFAULT_CURRENCY,
    visibility: BillVisibility = BillVisibility.PRIVATE,
    reference: str | None = None,
) -> Bill:
    name = name.strip()
    if not name:
        raise ValueError("Bill name is required")
    currency = (currency or DEFAULT_CURRENCY).upper()
    if not is_valid_currency(currency):
        raise ValueError(f"Invalid currency: {currency}. Valid options: {', '.join(CURRENCY_CODES)}")
    visibility = BillVisibility(visibility)

    if reference:
        reference = reference.strip()
        if not REFERENCE_PATTERN.match(reference):
            raise ValueError(
                "Invalid reference: use 3-32 letters, digits, '-' or '_'"
            )
        if await _reference_taken(db, reference):
            raise ValueError(f"Reference {reference} is already in use")
    else:
        reference = generate_bill_reference(user.name, name)
        while await _reference_taken(db, reference):
            reference = (reference + "".join(secrets.choice(string.digits) for _ in range(2)))[-32:]

    bill = Bill(
        name=name,
        reference=reference,
        visibility=visibility,
        share_token=generate_share_token() if visibility.is_shared else None,
        currency=currency,
        user_id=user.id,
    )
    db.add(bill)
    await db.commit()
    logger.info(f"Created bill {bill.reference} for user {user.id}")
    return await _fetch_bill(db, Bill.id == bill.id)


async def list_user_bills(db: AsyncSession, user_id: uuid.UUID) -> list[Bill]:
    result = await db.execute(
        select(Bill)
        .options(*_bill_load_options())
        .where(Bill.user_id == user_id)
        .order_by(Bill.created_at.desc())
    )
    return list(result.scalars().all())


async def get_user_bill(db: AsyncSession, bill_id: uuid.UUID, user_id: uuid.UUID) -> Bill | None:
    return await _fetch_bill(db, Bill.id == bill_id, Bill.user_id == user_id)


async def get_shared_bill(db: AsyncSession, share_token: str, editable: bool = False) -> Bill | None:
    """Look up a bill by share token. editable=True restricts to PUBLIC bills."""
    allowed = [BillVisibility.PUBLIC] if editable else [BillVisibility.READ_ONLY, BillVisibility.PUBLIC]
    return await _fetch_bill(db, Bill.share_token == share_token, Bill.visibility.in_(allowed))


def apply_bill_changes(bill: Bill, data: dict, allowed_fields=BILL_UPDATE_FIELDS) -> dict:
    """
    Copy whitelisted fields onto the bill, keeping the share-token invariant:
    shared visibilities always carry a token (an existing one is kept), PRIVATE never does.
    Returns the fields actually applied.
    """
    applied = {k: v for k, v in data.items() if k in allowed_fields and v is not None}
    for field, value in applied.items():
        if field in NUMERIC_BILL_FIELDS:
            value = to_decimal(value)
            if value is None or value < 0:
                raise ValueError(f"{field} must be a non-negative number")
            _require_fits(value, field, NUMERIC_BILL_FIELDS[field])
        elif field == "currency":
            value = value.upper()
            if not is_valid_currency(value):
                raise ValueError(f"Invalid currency: {value}. Valid options: {', '.join(CURRENCY_CODES)}")
        elif field == "visibility":
            value = BillVisibility(value)
        setattr(bill, field, value)

    if "visibility" in applied:
        if bill.visibility.is_shared:
            if not bill.share_token:
                bill.share_token = generate_share_token()
        else:
            bill.share_token = None
    return applied


async def update_bill(
    db: AsyncSession, bill: Bill, data: dict, allowed_fields=BILL_UPDATE_FIELDS
) -> Bill:
    apply_bill_changes(bill, data, allowed_fields)
    await db.commit()
    return await _fetch_bill(db, Bill.id == bill.id)


async def delete_bill(db: AsyncSession, bill_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    bill = await get_user_bill(db, bill_id, user_id)
    if not bill:
        return False

    item_ids = [item.id for item in bill.items]
    if item_ids:
        await db.execute(delete(ItemAssignment).where(ItemAssignment.item_id.in_(item_ids)))
        await db.execute(delete(BillItem).where(BillItem.bill_id == bill_id))
    await db.execute(delete(Bill).where(Bill.id == bill_id))
    await db.commit()
    logger.info(f"Deleted bill {bill_id}")
    return True


async def add_item(
    db: AsyncSession,
    bill: Bill,
    name: str,
    amount: Decimal,
    quantity: int = 1,
    item_code: str | None = None,
) -> BillItem:
    amt = to_decimal(amount)
    if amt is None or amt <= 0:
        raise ValueError("Amount must be a positive number")
    _require_fits(amt, "amount", MONEY_DIGITS)
    if int(quantity) != quantity or not 0 < quantity <= MAX_QUANTITY:
        raise ValueError("Quantity must be a positive integer")
    _require_fits(amt * int(quantity), "item total", MONEY_DIGITS)

    result = await db.execute(
        select(func.max(BillItem.sort_order)).where(BillItem.bill_id == bill.id)
    )
    max_sort = result.scalar_one_or_none()
    sort_order = 0 if max_sort is None else max_sort + 1

    item = BillItem(
        bill_id=bill.id,
        name=name,
        item_code=item_code,
        amount=amt,
        quantity=int(quantity),
        total=amt * int(quantity),
        sort_order=sort_order,
    )
    db.add(item)
    await db.commit()
    await db.refresh(item)
    # new item has no assignments; avoid a lazy load on serialization
    item.assignments = []
    return item


async def get_bill_item(db: AsyncSession, bill_id: uuid.UUID, item_id: uuid.UUID) -> BillItem | None:
    result = await db.execute(
        select(BillItem)
        .options(selectinload(BillItem.assignments))
        .where(BillItem.id == item_id, BillItem.bill_id == bill_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def update_item(db: AsyncSession, item: BillItem, data: dict) -> BillItem:
    """Apply paid/verified flags; an assigned_to key (even empty) replaces all assignments."""
    for field in ("paid", "verified"):
        if data.get(field) is not None:
            setattr(item, field, bool(data[field]))

    if "assigned_to" in data:
        await replace_assignments(db, item, data["assigned_to"])

    await db.commit()
    return await get_bill_item(db, item.bill_id, item.id)


async def delete_item(db: AsyncSession, bill_id: uuid.UUID, item_id: uuid.UUID) -> bool:
    item = await get_bill_item(db, bill_id, item_id)
    if not item:
        return False

    await db.execute(delete(ItemAssignment).where(ItemAssignment.item_id == item_id))
    await db.execute(delete(BillItem).where(BillItem.id == item_id))
    await db.commit()
    return True
