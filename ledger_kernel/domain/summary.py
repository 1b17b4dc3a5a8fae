"""
Order ledger summary (``ledger_kernel.domain.summary``).

The derived money position of one order.  Produced only by the balance
calculator, persisted whole on the order row as JSON, and replaced whole on
every recomputation.

Invariant: ``balance == deposit_required - net_received``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any


class BalanceStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    UNDERPAID = "underpaid"
    OVERPAID = "overpaid"


class PricingSource(str, Enum):
    """Where ``deposit_required`` came from."""

    ORDER = "order"
    CHANGE_ORDER = "change_order"


_DECIMAL_FIELDS = (
    "original_deposit",
    "deposit_required",
    "deposit_adjustments",
    "total_received",
    "total_refunded",
    "net_received",
    "balance",
    "pending_received",
    "pending_refunds",
)


@dataclass(frozen=True)
class OrderLedgerSummary:
    original_deposit: Decimal
    deposit_required: Decimal
    deposit_adjustments: Decimal
    deposit_adjustment_count: int
    total_received: Decimal
    total_refunded: Decimal
    net_received: Decimal
    balance: Decimal
    balance_status: BalanceStatus
    pending_received: Decimal
    pending_refunds: Decimal
    entry_count: int
    cleared_count: int
    calculated_at: datetime
    last_entry_at: datetime | None = None
    pricing_source: PricingSource = PricingSource.ORDER
    live_change_order_number: int | None = None

    @property
    def is_settled(self) -> bool:
        return self.balance_status in (BalanceStatus.PAID, BalanceStatus.OVERPAID)

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe form for the order's summary column."""
        data: dict[str, Any] = {name: str(getattr(self, name)) for name in _DECIMAL_FIELDS}
        data.update(
            deposit_adjustment_count=self.deposit_adjustment_count,
            balance_status=self.balance_status.value,
            entry_count=self.entry_count,
            cleared_count=self.cleared_count,
            calculated_at=self.calculated_at.isoformat(),
            last_entry_at=self.last_entry_at.isoformat() if self.last_entry_at else None,
            pricing_source=self.pricing_source.value,
            live_change_order_number=self.live_change_order_number,
        )
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OrderLedgerSummary:
        last_entry_at = data.get("last_entry_at")
        return cls(
            **{name: Decimal(data[name]) for name in _DECIMAL_FIELDS},
            deposit_adjustment_count=int(data["deposit_adjustment_count"]),
            balance_status=BalanceStatus(data["balance_status"]),
            entry_count=int(data["entry_count"]),
            cleared_count=int(data["cleared_count"]),
            calculated_at=datetime.fromisoformat(data["calculated_at"]),
            last_entry_at=datetime.fromisoformat(last_entry_at) if last_entry_at else None,
            pricing_source=PricingSource(data.get("pricing_source", "order")),
            live_change_order_number=data.get("live_change_order_number"),
        )


class OrderPaymentStatus(str, Enum):
    """Payment status shown on the order itself."""

    PENDING = "pending"
    PAID = "paid"
    MANUALLY_APPROVED = "manually_approved"


_SETTLED_PAYMENT_STATUSES = frozenset({
    OrderPaymentStatus.PAID,
    OrderPaymentStatus.MANUALLY_APPROVED,
})


def sync_payment_status(
    current: OrderPaymentStatus | None,
    summary: OrderLedgerSummary,
) -> OrderPaymentStatus | None:
    """Return the order payment status implied by ``summary``.

    Settled balances with cleared money mark the order paid; an order
    that drops back to underpaid loses its paid / manually approved mark.
    Any other combination keeps ``current``.
    """
    if summary.is_settled and summary.cleared_count > 0:
        if current in _SETTLED_PAYMENT_STATUSES:
            return current
        return OrderPaymentStatus.PAID
    if summary.balance_status == BalanceStatus.UNDERPAID and current in _SETTLED_PAYMENT_STATUSES:
        return OrderPaymentStatus.PENDING
    return current
