"""
Module: ledger_kernel.models.change_order
Responsibility: ORM persistence for change orders that propose new pricing
    for an order.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - (order_id, change_order_number) is unique.
    - ``new_values`` holds subtotal_before_tax, extra_money_fluff and deposit
      as decimal strings.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import JSON, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from ledger_kernel.domain.change_orders import ChangeOrder


class ChangeOrderModel(Base):
    __tablename__ = "change_orders"

    __table_args__ = (
        UniqueConstraint("order_id", "change_order_number", name="uq_change_order_number"),
        Index("idx_change_order_order_status", "order_id", "status"),
    )

    order_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("orders.id"), nullable=False,
    )

    change_order_number: Mapped[int] = mapped_column(nullable=False)

    # draft | pending_signature | signed | cancelled | superseded
    status: Mapped[str] = mapped_column(String(30), nullable=False)

    new_values: Mapped[dict] = mapped_column(JSON, nullable=False)

    deposit_diff: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    reason: Mapped[str] = mapped_column(Text, nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<ChangeOrder CO-{self.change_order_number:05d} {self.status}>"

    def to_dto(self) -> ChangeOrder:
        """Convert ORM model to frozen domain DTO."""
        from ledger_kernel.domain.change_orders import (
            ChangeOrder,
            ChangeOrderStatus,
            ChangeOrderValues,
        )

        return ChangeOrder(
            id=self.id,
            order_id=self.order_id,
            change_order_number=self.change_order_number,
            status=ChangeOrderStatus(self.status),
            new_values=ChangeOrderValues.from_dict(self.new_values or {}),
            deposit_diff=self.deposit_diff,
            reason=self.reason,
            created_at=self.created_at,
        )
