"""
Tests for change-order effective value resolution.
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from ledger_engines.change_orders import display_status, resolve_effective_values
from ledger_kernel.domain.change_orders import (
    ChangeOrder,
    ChangeOrderStatus,
    ChangeOrderValues,
    FromChangeOrder,
    FromOrder,
    OrderPricing,
)
from ledger_kernel.domain.summary import PricingSource

NOW = datetime(2024, 3, 1, tzinfo=timezone.utc)


def _pricing(deposit: str = "500.00") -> OrderPricing:
    return OrderPricing(
        order_id=uuid4(),
        order_number="ORD-0001",
        subtotal_before_tax=Decimal("5000.00"),
        extra_money_fluff=Decimal("100.00"),
        deposit=Decimal(deposit),
    )


def _change_order(
    order_id: UUID,
    number: int,
    deposit: str,
    status: ChangeOrderStatus = ChangeOrderStatus.PENDING_SIGNATURE,
) -> ChangeOrder:
    return ChangeOrder(
        id=uuid4(),
        order_id=order_id,
        change_order_number=number,
        status=status,
        new_values=ChangeOrderValues(Decimal("7000.00"), Decimal("250.00"), Decimal(deposit)),
        deposit_diff=Decimal("0"),
        reason="",
        created_at=NOW,
    )


class TestResolveEffectiveValues:
    def test_no_change_orders_uses_order_pricing(self):
        pricing = _pricing()

        result = resolve_effective_values(pricing, [])

        assert isinstance(result, FromOrder)
        assert result.deposit == Decimal("500.00")
        assert result.order_total == Decimal("5100.00")
        assert result.source == PricingSource.ORDER
        assert result.live_change_order is None
        assert result.superseded == ()

    def test_highest_pending_signature_wins(self):
        pricing = _pricing()
        older = _change_order(pricing.order_id, 1, "600.00")
        newer = _change_order(pricing.order_id, 2, "750.00")

        result = resolve_effective_values(pricing, [newer, older])

        assert isinstance(result, FromChangeOrder)
        assert result.deposit == Decimal("750.00")
        assert result.order_total == Decimal("7250.00")
        assert result.original_deposit == Decimal("500.00")
        assert result.live_change_order.change_order_number == 2
        assert [co.change_order_number for co in result.superseded] == [1]

    def test_other_statuses_never_apply(self):
        pricing = _pricing()
        change_orders = [
            _change_order(pricing.order_id, 3, "900.00", ChangeOrderStatus.SIGNED),
            _change_order(pricing.order_id, 4, "950.00", ChangeOrderStatus.DRAFT),
            _change_order(pricing.order_id, 5, "990.00", ChangeOrderStatus.CANCELLED),
        ]

        result = resolve_effective_values(pricing, change_orders)

        assert isinstance(result, FromOrder)
        assert result.deposit == Decimal("500.00")

    def test_change_orders_of_other_orders_are_ignored(self):
        pricing = _pricing()
        foreign = _change_order(uuid4(), 9, "10000.00")

        assert isinstance(resolve_effective_values(pricing, [foreign]), FromOrder)

    def test_display_status_marks_losers_superseded(self):
        pricing = _pricing()
        older = _change_order(pricing.order_id, 1, "600.00")
        newer = _change_order(pricing.order_id, 2, "750.00")
        effective = resolve_effective_values(pricing, [older, newer])

        assert display_status(older, effective) == ChangeOrderStatus.SUPERSEDED
        assert display_status(newer, effective) == ChangeOrderStatus.PENDING_SIGNATURE
