import uuid
import enum
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    String, DateTime, Integer, Numeric, Boolean, ForeignKey, CheckConstraint,
    Enum as SAEnum,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from splitbill.core.database import Base


class BillVisibility(str, enum.Enum):
    PRIVATE = "PRIVATE"
    READ_ONLY = "READ_ONLY"
    PUBLIC = "PUBLIC"

    @property
    def is_shared(self) -> bool:
        return self is not BillVisibility.PRIVATE


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Bill(Base):
    __tablename__ = "bills"
    __table_args__ = (
        CheckConstraint(
            "(visibility = 'PRIVATE') = (share_token IS NULL)",
            name="ck_bills_share_token_matches_visibility",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    reference: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    visibility: Mapped[BillVisibility] = mapped_column(
        SAEnum(BillVisibility), nullable=False, default=BillVisibility.PRIVATE
    )
    # Non-null iff visibility is READ_ONLY or PUBLIC
    share_token: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="RM")
    service_charge: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("0"))
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("0"))
    discount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    items: Mapped[list["BillItem"]] = relationship(
        back_populates="bill", lazy="selectin", order_by="BillItem.sort_order", cascade="all, delete-orphan"
    )
    owner: Mapped["User"] = relationship(lazy="selectin")

    @property
    def owner_name(self) -> str | None:
        return self.owner.name if self.owner else None


class BillItem(Base):
    __tablename__ = "bill_items"
    __table_args__ = (CheckConstraint("quantity > 0", name="ck_bill_items_quantity_positive"),)

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    bill_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("bills.id"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    item_code: Mapped[str | None] = mapped_column(String, nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    assigned_to: Mapped[str | None] = mapped_column(String, nullable=True)
    paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    bill: Mapped["Bill"] = relationship(back_populates="items")
    assignments: Mapped[list["ItemAssignment"]] = relationship(
        back_populates="item", lazy="selectin", order_by="ItemAssignment.position", cascade="all, delete-orphan"
    )


class ItemAssignment(Base):
    __tablename__ = "item_assignments"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    item_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("bill_items.id"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    item: Mapped["BillItem"] = relationship(back_populates="assignments")
