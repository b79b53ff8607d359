import logging
import uuid
from contextlib import asynccontextmanager
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from splitbill.models.user import User
from splitbill.schemas.bill import BillResponse, ItemResponse
from splitbill.services import bill_service
from splitbill.terminal.errors import BillApiError, NotFoundError, RequestRejectedError

logger = logging.getLogger(__name__)


def _bill_json(bill) -> dict:
    return BillResponse.model_validate(bill).model_dump(mode="json")


def _parse_id(value) -> uuid.UUID:
    try:
        return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
    except ValueError:
        raise NotFoundError("Bill not found")


class ServiceBillApi:
    """
    Terminal backend bound to one request's session and user; calls the service layer directly.

    Every call rolls the session back when it fails, so one bad command in a batch
    leaves the session usable for the commands after it.
    """

    def __init__(self, db: AsyncSession, user: User):
        self.db = db
        self.user = user

    @asynccontextmanager
    async def _call(self):
        try:
            yield
        except ValueError as e:
            await self.db.rollback()
            raise RequestRejectedError(str(e)) from e
        except BillApiError:
            await self.db.rollback()
            raise
        except Exception as e:
            logger.warning(f"Rolling back terminal call for user {self.user.id}: {e!r}")
            await self.db.rollback()
            raise

    async def _owned_bill(self, bill_id):
        bill = await bill_service.get_user_bill(self.db, _parse_id(bill_id), self.user.id)
        if not bill:
            raise NotFoundError("Bill not found")
        return bill

    async def list_bills(self) -> list[dict]:
        async with self._call():
            bills = await bill_service.list_user_bills(self.db, self.user.id)
        return [_bill_json(b) for b in bills]

    async def create_bill(self, name: str, reference: str | None, currency: str, visibility: str) -> dict:
        async with self._call():
            bill = await bill_service.create_bill(
                self.db, self.user, name, currency=currency, visibility=visibility, reference=reference,
            )
        return _bill_json(bill)

    async def create_item(self, bill_id, name: str, amount: Decimal, quantity: int) -> dict:
        async with self._call():
            bill = await self._owned_bill(bill_id)
            item = await bill_service.add_item(self.db, bill, name, amount, quantity)
        return ItemResponse.model_validate(item).model_dump(mode="json")

    async def delete_item(self, bill_id, item_id) -> None:
        async with self._call():
            bill = await self._owned_bill(bill_id)
            try:
                item_uuid = uuid.UUID(str(item_id))
            except ValueError:
                raise NotFoundError("Item not found")
            if not await bill_service.delete_item(self.db, bill.id, item_uuid):
                raise NotFoundError("Item not found")

    async def update_bill(self, bill_id, fields: dict) -> dict:
        async with self._call():
            bill = await self._owned_bill(bill_id)
            updated = await bill_service.update_bill(self.db, bill, fields)
        return _bill_json(updated)
