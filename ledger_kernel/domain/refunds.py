"""
Refund read-outs for overpaid orders (``ledger_kernel.domain.refunds``).

Both are derived from the order summary and never move money.  The split
between processor and manual refunds only says how much of the overpayment
went through the processor and can go back the same way.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from ledger_kernel.domain.entries import LedgerEntry
from ledger_kernel.domain.money import total


@dataclass(frozen=True)
class RefundableAmount:
    """How much of an order's overpayment can be returned, and by which route.

    ``processor_refundable + manual_refund_required == refundable_amount``.
    Everything is zero when the order is not overpaid.
    """

    order_id: UUID
    balance: Decimal
    is_overpaid: bool
    refundable_amount: Decimal
    processor_refundable: Decimal
    manual_refund_required: Decimal
    processor_payments: tuple[LedgerEntry, ...] = ()


@dataclass(frozen=True)
class OverpaidOrder:
    order_id: UUID
    order_number: str
    customer_name: str | None
    balance: Decimal

    @property
    def overpaid_amount(self) -> Decimal:
        return -self.balance


@dataclass(frozen=True)
class OverpaidOrders:
    """Orders whose stored summary reads ``overpaid``."""

    orders: tuple[OverpaidOrder, ...]

    @property
    def count(self) -> int:
        return len(self.orders)

    @property
    def total_overpaid(self) -> Decimal:
        return total(o.overpaid_amount for o in self.orders)
