import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from splitbill.core.database import get_db
from splitbill.schemas.bill import (
    SharedBillResponse, SharedBillUpdate, ItemCreate, ItemUpdate, ItemResponse,
)
from splitbill.services.bill_service import (
    get_shared_bill, update_bill, add_item, get_bill_item, update_item,
    SHARED_BILL_UPDATE_FIELDS,
)

# No session required: the share token in the path is the credential.
router = APIRouter(prefix="/api/shared", tags=["shared"])


async def _editable_bill(db: AsyncSession, token: str):
    bill = await get_shared_bill(db, token, editable=True)
    if not bill:
        raise HTTPException(status_code=404, detail="Bill not found or not publicly editable")
    return bill


@router.get("/{token}", response_model=SharedBillResponse)
async def view_shared_bill(
    token: str,
    db: AsyncSession = Depends(get_db),
):
    bill = await get_shared_bill(db, token)
    if not bill:
        raise HTTPException(status_code=404, detail="Bill not found")
    return bill


@router.patch("/{token}", response_model=SharedBillResponse)
async def update_shared_bill(
    token: str,
    body: SharedBillUpdate,
    db: AsyncSession = Depends(get_db),
):
    bill = await _editable_bill(db, token)
    return await update_bill(
        db, bill, body.model_dump(exclude_unset=True), allowed_fields=SHARED_BILL_UPDATE_FIELDS
    )


@router.post("/{token}/items", response_model=ItemResponse, status_code=201)
async def add_shared_item(
    token: str,
    body: ItemCreate,
    db: AsyncSession = Depends(get_db),
):
    bill = await _editable_bill(db, token)
    try:
        return await add_item(db, bill, body.name, body.amount, body.quantity, item_code=body.item_code)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch("/{token}/items/{item_id}", response_model=ItemResponse)
async def update_shared_item(
    token: str,
    item_id: uuid.UUID,
    body: ItemUpdate,
    db: AsyncSession = Depends(get_db),
):
    bill = await _editable_bill(db, token)
    item = await get_bill_item(db, bill.id, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Item not found")
    return await update_item(db, item, body.model_dump(exclude_unset=True))
