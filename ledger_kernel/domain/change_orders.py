"""
Change-order domain types (``ledger_kernel.domain.change_orders``).

Responsibility
--------------
Value objects for order pricing and the change orders that can supersede
it, plus the ``EffectiveValues`` tagged union produced by the change-order
resolver and consumed by the balance calculator.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* At most one change order is *live* per order: the ``pending_signature``
  change order with the greatest number.  Older ``pending_signature``
  rows are reported as superseded, never applied.
* ``draft``, ``signed``, ``cancelled`` and ``superseded`` change orders
  never affect the deposit requirement.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Union
from uuid import UUID

from ledger_kernel.domain.summary import PricingSource

CHANGE_ORDER_NUMBER_PREFIX = "CO"


class ChangeOrderStatus(str, Enum):
    DRAFT = "draft"
    PENDING_SIGNATURE = "pending_signature"
    SIGNED = "signed"
    CANCELLED = "cancelled"
    SUPERSEDED = "superseded"


def format_change_order_number(value: int) -> str:
    """Render a change order number as ``CO-00001``."""
    return f"{CHANGE_ORDER_NUMBER_PREFIX}-{value:05d}"


@dataclass(frozen=True)
class ChangeOrderValues:
    """Replacement pricing proposed by a change order."""

    subtotal_before_tax: Decimal
    extra_money_fluff: Decimal
    deposit: Decimal

    @property
    def order_total(self) -> Decimal:
        return self.subtotal_before_tax + self.extra_money_fluff

    def to_dict(self) -> dict[str, str]:
        return {
            "subtotal_before_tax": str(self.subtotal_before_tax),
            "extra_money_fluff": str(self.extra_money_fluff),
            "deposit": str(self.deposit),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChangeOrderValues:
        return cls(
            subtotal_before_tax=Decimal(str(data.get("subtotal_before_tax", "0"))),
            extra_money_fluff=Decimal(str(data.get("extra_money_fluff", "0"))),
            deposit=Decimal(str(data.get("deposit", "0"))),
        )


@dataclass(frozen=True)
class ChangeOrder:
    id: UUID
    order_id: UUID
    change_order_number: int
    status: ChangeOrderStatus
    new_values: ChangeOrderValues
    deposit_diff: Decimal
    reason: str
    created_at: datetime

    @property
    def display_number(self) -> str:
        return format_change_order_number(self.change_order_number)


@dataclass(frozen=True)
class OrderPricing:
    """The order's own pricing, before any change order."""

    order_id: UUID
    order_number: str
    subtotal_before_tax: Decimal
    extra_money_fluff: Decimal
    deposit: Decimal

    @property
    def order_total(self) -> Decimal:
        return self.subtotal_before_tax + self.extra_money_fluff


# =========================================================================
# Effective values (tagged union)
# =========================================================================


@dataclass(frozen=True)
class FromOrder:
    """No live change order; the order's own pricing applies."""

    order_id: UUID
    deposit: Decimal
    order_total: Decimal
    original_deposit: Decimal

    source = PricingSource.ORDER

    @property
    def live_change_order(self) -> ChangeOrder | None:
        return None

    @property
    def superseded(self) -> tuple[ChangeOrder, ...]:
        return ()


@dataclass(frozen=True)
class FromChangeOrder:
    """A live change order overrides the order's deposit and total."""

    order_id: UUID
    deposit: Decimal
    order_total: Decimal
    original_deposit: Decimal
    change_order: ChangeOrder
    superseded: tuple[ChangeOrder, ...] = ()

    source = PricingSource.CHANGE_ORDER

    @property
    def live_change_order(self) -> ChangeOrder | None:
        return self.change_order


EffectiveValues = Union[FromOrder, FromChangeOrder]
