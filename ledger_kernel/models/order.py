"""
Module: ledger_kernel.models.order
Responsibility: ORM persistence for sales orders as seen by the payment
    ledger: pricing, the cached ledger summary and the synced payment status.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - ``ledger_summary`` is written only by SummaryService and always
      replaced whole.  It is a cache of the derived balance, never an input.
    - ``order_number`` is unique.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base

if TYPE_CHECKING:
    from ledger_kernel.domain.change_orders import OrderPricing
    from ledger_kernel.domain.summary import OrderLedgerSummary


class OrderModel(Base):
    """A sales order with a deposit requirement."""

    __tablename__ = "orders"

    order_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    customer_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    subtotal_before_tax: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    extra_money_fluff: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    deposit: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    # Synced from the ledger summary ("pending" | "paid" | "manually_approved")
    payment_status: Mapped[str | None] = mapped_column(String(30), nullable=True)

    ledger_summary: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    summary_updated_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<Order {self.order_number}>"

    def to_pricing(self) -> OrderPricing:
        from ledger_kernel.domain.change_orders import OrderPricing

        return OrderPricing(
            order_id=self.id,
            order_number=self.order_number,
            subtotal_before_tax=self.subtotal_before_tax,
            extra_money_fluff=self.extra_money_fluff,
            deposit=self.deposit,
        )

    def stored_summary(self) -> OrderLedgerSummary | None:
        """The last persisted summary, if any."""
        from ledger_kernel.domain.summary import OrderLedgerSummary

        if not self.ledger_summary:
            return None
        return OrderLedgerSummary.from_dict(self.ledger_summary)
