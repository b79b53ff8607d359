import uuid
from datetime import datetime
from decimal import Decimal
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, computed_field

from splitbill.models.bill import BillVisibility
from splitbill.services.calculation_service import summarize_bill, participant_breakdown
from splitbill.utils.currency_utils import (
    CURRENCY_CODES, DEFAULT_CURRENCY, MONEY_DIGITS, RATE_DIGITS, MAX_QUANTITY, quantize_money,
)


def _check_currency(value: str) -> str:
    code = value.upper()
    if code not in CURRENCY_CODES:
        raise ValueError(f"Invalid currency: {value}. Valid options: {', '.join(CURRENCY_CODES)}")
    return code


CurrencyCode = Annotated[str, AfterValidator(_check_currency)]


class BillCreate(BaseModel):
    name: str = Field(min_length=1)
    reference: str | None = None
    currency: CurrencyCode = DEFAULT_CURRENCY
    visibility: BillVisibility = BillVisibility.PRIVATE


class BillUpdate(BaseModel):
    service_charge: Decimal | None = Field(default=None, ge=0, max_digits=RATE_DIGITS, decimal_places=2)
    tax_rate: Decimal | None = Field(default=None, ge=0, max_digits=RATE_DIGITS, decimal_places=2)
    discount: Decimal | None = Field(default=None, ge=0, max_digits=MONEY_DIGITS, decimal_places=2)
    currency: CurrencyCode | None = None
    visibility: BillVisibility | None = None


class SharedBillUpdate(BaseModel):
    service_charge: Decimal | None = Field(default=None, ge=0, max_digits=RATE_DIGITS, decimal_places=2)
    tax_rate: Decimal | None = Field(default=None, ge=0, max_digits=RATE_DIGITS, decimal_places=2)
    discount: Decimal | None = Field(default=None, ge=0, max_digits=MONEY_DIGITS, decimal_places=2)


class ItemCreate(BaseModel):
    name: str = Field(min_length=1)
    item_code: str | None = None
    amount: Decimal = Field(gt=0, max_digits=MONEY_DIGITS, decimal_places=2)
    quantity: int = Field(default=1, gt=0, le=MAX_QUANTITY)


class ItemUpdate(BaseModel):
    assigned_to: str | None = None
    paid: bool | None = None
    verified: bool | None = None


class AssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
    name: str
    amount: Decimal
    paid: bool


class ItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
    bill_id: uuid.UUID
    name: str
    item_code: str | None = None
    amount: Decimal
    quantity: int
    total: Decimal
    assigned_to: str | None = None
    paid: bool
    verified: bool
    created_at: datetime | None = None
    assignments: list[AssignmentResponse] = []


class BillSummary(BaseModel):
    subtotal: Decimal
    service_charge: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal


def _summary(items, service_charge, tax_rate, discount) -> BillSummary:
    totals = summarize_bill(items, service_charge, tax_rate, discount)
    return BillSummary(**{k: quantize_money(v) for k, v in totals.items()})


class BillResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
    name: str
    reference: str
    visibility: BillVisibility
    share_token: str | None = None
    currency: str
    service_charge: Decimal
    tax_rate: Decimal
    discount: Decimal
    owner_name: str | None = None
    created_at: datetime
    items: list[ItemResponse] = []

    @computed_field
    @property
    def summary(self) -> BillSummary:
        return _summary(self.items, self.service_charge, self.tax_rate, self.discount)


class ParticipantShare(BaseModel):
    name: str | None
    amount: Decimal
    paid: Decimal


class SharedBillResponse(BaseModel):
    """Bill as seen through a share link: no owner ids, no token echo."""
    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
    name: str
    reference: str
    visibility: BillVisibility
    currency: str
    service_charge: Decimal
    tax_rate: Decimal
    discount: Decimal
    owner_name: str | None = None
    created_at: datetime
    items: list[ItemResponse] = []

    @computed_field
    @property
    def editable(self) -> bool:
        return self.visibility == BillVisibility.PUBLIC

    @computed_field
    @property
    def summary(self) -> BillSummary:
        return _summary(self.items, self.service_charge, self.tax_rate, self.discount)

    @computed_field
    @property
    def participants(self) -> list[ParticipantShare]:
        return [ParticipantShare(**p) for p in participant_breakdown(self.items)]
