"""
Change-order effective value resolver.

Responsibility:
    Decides, once per read, which pricing an order's balance is measured
    against: the order's own deposit, or the deposit of its live change
    order.  The result is an ``EffectiveValues`` tagged union threaded into
    the balance calculator.

Architecture position:
    Engines -- pure calculation, zero I/O.

Rule:
    live = the ``pending_signature`` change order with the greatest
    ``change_order_number`` (ties broken by id so the pick is stable).
    Every other ``pending_signature`` change order is reported as
    superseded.  Draft, signed, cancelled and superseded change orders
    never affect the result.
"""

from __future__ import annotations

from collections.abc import Iterable

from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.change_orders import (
    ChangeOrder,
    ChangeOrderStatus,
    EffectiveValues,
    FromChangeOrder,
    FromOrder,
    OrderPricing,
)


def _live_key(change_order: ChangeOrder) -> tuple[int, str]:
    return (change_order.change_order_number, str(change_order.id))


@traced_engine(
    "change_order_resolver",
    "1.0",
    describe=lambda values: {"resolved_from": type(values).__name__},
)
def resolve_effective_values(
    order: OrderPricing,
    change_orders: Iterable[ChangeOrder],
) -> EffectiveValues:
    """Resolve the deposit and order total the balance must use."""
    candidates = sorted(
        (
            co for co in change_orders
            if co.order_id == order.order_id
            and co.status == ChangeOrderStatus.PENDING_SIGNATURE
        ),
        key=_live_key,
        reverse=True,
    )

    if not candidates:
        return FromOrder(
            order_id=order.order_id,
            deposit=order.deposit,
            order_total=order.order_total,
            original_deposit=order.deposit,
        )

    live, superseded = candidates[0], tuple(candidates[1:])
    return FromChangeOrder(
        order_id=order.order_id,
        deposit=live.new_values.deposit,
        order_total=live.new_values.order_total,
        original_deposit=order.deposit,
        change_order=live,
        superseded=superseded,
    )


def display_status(
    change_order: ChangeOrder,
    effective: EffectiveValues,
) -> ChangeOrderStatus:
    """Status to show for ``change_order`` given the resolved values.

    A ``pending_signature`` change order that lost to a newer one is shown
    as superseded even though its stored status was never rewritten.
    """
    if any(co.id == change_order.id for co in effective.superseded):
        return ChangeOrderStatus.SUPERSEDED
    return change_order.status
