import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from splitbill.core.auth import get_current_user
from splitbill.core.database import get_db
from splitbill.models.user import User
from splitbill.schemas.bill import (
    BillCreate, BillUpdate, BillResponse,
    ItemCreate, ItemUpdate, ItemResponse,
)
from splitbill.services.bill_service import (
    create_bill, list_user_bills, get_user_bill, update_bill, delete_bill,
    add_item, get_bill_item, update_item, delete_item,
)

router = APIRouter(prefix="/api/bills", tags=["bills"])


async def _owned_bill(db: AsyncSession, bill_id: uuid.UUID, user: User):
    bill = await get_user_bill(db, bill_id, user.id)
    if not bill:
        raise HTTPException(status_code=404, detail="Bill not found")
    return bill


@router.get("", response_model=list[BillResponse])
async def list_bills(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await list_user_bills(db, user.id)


@router.post("", response_model=BillResponse, status_code=201)
async def create(
    body: BillCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await create_bill(
            db, user, body.name,
            currency=body.currency,
            visibility=body.visibility,
            reference=body.reference,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{bill_id}", response_model=BillResponse)
async def get(
    bill_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _owned_bill(db, bill_id, user)


@router.patch("/{bill_id}", response_model=BillResponse)
async def update(
    bill_id: uuid.UUID,
    body: BillUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    bill = await _owned_bill(db, bill_id, user)
    try:
        return await update_bill(db, bill, body.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{bill_id}", status_code=204)
async def delete(
    bill_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not await delete_bill(db, bill_id, user.id):
        raise HTTPException(status_code=404, detail="Bill not found")


@router.post("/{bill_id}/items", response_model=ItemResponse, status_code=201)
async def create_item(
    bill_id: uuid.UUID,
    body: ItemCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    bill = await _owned_bill(db, bill_id, user)
    try:
        return await add_item(db, bill, body.name, body.amount, body.quantity, item_code=body.item_code)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch("/{bill_id}/items/{item_id}", response_model=ItemResponse)
async def edit_item(
    bill_id: uuid.UUID,
    item_id: uuid.UUID,
    body: ItemUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await _owned_bill(db, bill_id, user)
    item = await get_bill_item(db, bill_id, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Item not found")
    return await update_item(db, item, body.model_dump(exclude_unset=True))


@router.delete("/{bill_id}/items/{item_id}")
async def remove_item(
    bill_id: uuid.UUID,
    item_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await _owned_bill(db, bill_id, user)
    if not await delete_item(db, bill_id, item_id):
        raise HTTPException(status_code=404, detail="Item not found")
    return {"message": "Item deleted successfully"}
