"""
Tests for the refund split engine.

Tests cover:
- Orders that are not overpaid report nothing refundable
- Processor share capped at the overpayment, remainder manual
- Which payments count as processor-refundable
- Processor-reported amount preferred over the ledger amount
"""

from dataclasses import replace
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_engines.refunds import compute_refundable
from ledger_kernel.domain.entries import EntryStatus, PaymentMethod, TransactionType


def _stripe(entry_factory, amount, status=EntryStatus.APPROVED, external_payment_id="pi_1"):
    return entry_factory(
        amount, status, method=PaymentMethod.STRIPE, external_payment_id=external_payment_id,
    )


class TestComputeRefundable:
    @pytest.mark.parametrize("balance", ["0.00", "250.00"])
    def test_nothing_refundable_unless_overpaid(self, entry_factory, balance):
        result = compute_refundable(
            order_id=uuid4(),
            balance=Decimal(balance),
            entries=[_stripe(entry_factory, "500.00")],
        )

        assert not result.is_overpaid
        assert result.refundable_amount == Decimal("0.00")
        assert result.processor_refundable == Decimal("0.00")
        assert result.manual_refund_required == Decimal("0.00")
        assert result.processor_payments == ()

    def test_processor_share_capped_at_overpayment(self, entry_factory):
        result = compute_refundable(
            order_id=uuid4(),
            balance=Decimal("-100.00"),
            entries=[_stripe(entry_factory, "500.00")],
        )

        assert result.is_overpaid
        assert result.refundable_amount == Decimal("100.00")
        assert result.processor_refundable == Decimal("100.00")
        assert result.manual_refund_required == Decimal("0.00")

    def test_remainder_needs_manual_refund(self, entry_factory):
        entries = [
            _stripe(entry_factory, "60.00"),
            entry_factory("400.00", method=PaymentMethod.CHECK),
        ]

        result = compute_refundable(order_id=uuid4(), balance=Decimal("-150.00"), entries=entries)

        assert result.processor_refundable == Decimal("60.00")
        assert result.manual_refund_required == Decimal("90.00")
        assert result.processor_refundable + result.manual_refund_required == result.refundable_amount

    def test_only_cleared_linked_processor_payments_count(self, entry_factory):
        counted = _stripe(entry_factory, "10.00", external_payment_id="pi_ok")
        entries = [
            counted,
            _stripe(entry_factory, "20.00", EntryStatus.PENDING, external_payment_id="pi_pending"),
            _stripe(entry_factory, "30.00", EntryStatus.VOIDED, external_payment_id="pi_void"),
            _stripe(entry_factory, "40.00", external_payment_id=None),
            entry_factory(
                "50.00",
                transaction_type=TransactionType.REFUND,
                method=PaymentMethod.STRIPE,
                external_payment_id="re_1",
            ),
        ]

        result = compute_refundable(order_id=uuid4(), balance=Decimal("-500.00"), entries=entries)

        assert result.processor_payments == (counted,)
        assert result.processor_refundable == Decimal("10.00")
        assert result.manual_refund_required == Decimal("490.00")

    def test_processor_reported_amount_wins(self, entry_factory):
        entry = replace(_stripe(entry_factory, "100.00"), external_amount=Decimal("80.00"))

        result = compute_refundable(order_id=uuid4(), balance=Decimal("-200.00"), entries=[entry])

        assert result.processor_refundable == Decimal("80.00")

    def test_processor_methods_are_configurable(self, entry_factory):
        wire = entry_factory("70.00", method=PaymentMethod.WIRE, external_payment_id="w_1")

        default = compute_refundable(order_id=uuid4(), balance=Decimal("-70.00"), entries=[wire])
        wide = compute_refundable(
            order_id=uuid4(),
            balance=Decimal("-70.00"),
            entries=[wire],
            processor_methods=(PaymentMethod.STRIPE, PaymentMethod.WIRE),
        )

        assert default.processor_refundable == Decimal("0.00")
        assert wide.processor_refundable == Decimal("70.00")
