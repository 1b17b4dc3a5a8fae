"""
Tests for the balance calculator.

Tests cover:
- Cleared vs pending vs voided entries
- Balance status classification
- Deposit adjustments kept out of deposit_required
- Change-order pricing flowing into the summary
- balance_after projection for new entries
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_engines.balance import (
    BalanceCalculator,
    apply_to_balance,
    classify_balance,
    compute_summary,
)
from ledger_kernel.domain.change_orders import (
    ChangeOrder,
    ChangeOrderStatus,
    ChangeOrderValues,
    FromChangeOrder,
    FromOrder,
)
from ledger_kernel.domain.entries import EntryStatus, TransactionType
from ledger_kernel.domain.summary import BalanceStatus, PricingSource

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestComputeSummary:
    def test_pending_payment_is_reported_but_not_counted(self, entry_factory):
        entries = [
            entry_factory("600.00", EntryStatus.APPROVED),
            entry_factory("200.00", EntryStatus.PENDING),
        ]

        summary = compute_summary(
            deposit_required=Decimal("1000.00"), entries=entries, calculated_at=NOW,
        )

        assert summary.net_received == Decimal("600.00")
        assert summary.balance == Decimal("400.00")
        assert summary.balance_status == BalanceStatus.UNDERPAID
        assert summary.pending_received == Decimal("200.00")
        assert summary.entry_count == 2
        assert summary.cleared_count == 1

    def test_refunds_reduce_net_received(self, entry_factory):
        entries = [
            entry_factory("1000.00", EntryStatus.VERIFIED, method=None),
            entry_factory("150.00", EntryStatus.APPROVED, TransactionType.REFUND),
            entry_factory("50.00", EntryStatus.PENDING, TransactionType.REFUND),
        ]

        summary = compute_summary(
            deposit_required=Decimal("1000.00"), entries=entries, calculated_at=NOW,
        )

        assert summary.total_received == Decimal("1000.00")
        assert summary.total_refunded == Decimal("150.00")
        assert summary.net_received == Decimal("850.00")
        assert summary.balance == Decimal("150.00")
        assert summary.pending_refunds == Decimal("50.00")

    def test_voided_entries_contribute_nothing(self, entry_factory):
        entries = [
            entry_factory("600.00", EntryStatus.VOIDED),
            entry_factory("100.00", EntryStatus.APPROVED),
        ]

        summary = compute_summary(
            deposit_required=Decimal("1000.00"), entries=entries, calculated_at=NOW,
        )

        assert summary.net_received == Decimal("100.00")
        assert summary.entry_count == 1

    def test_exact_payment_is_paid(self, entry_factory):
        summary = compute_summary(
            deposit_required=Decimal("500.00"),
            entries=[entry_factory("500.00")],
            calculated_at=NOW,
        )
        assert summary.balance == Decimal("0.00")
        assert summary.balance_status == BalanceStatus.PAID
        assert summary.is_settled

    def test_overpayment(self, entry_factory):
        summary = compute_summary(
            deposit_required=Decimal("500.00"),
            entries=[entry_factory("520.00")],
            calculated_at=NOW,
        )
        assert summary.balance == Decimal("-20.00")
        assert summary.balance_status == BalanceStatus.OVERPAID

    def test_no_deposit_and_nothing_cleared_is_pending(self, entry_factory):
        summary = compute_summary(
            deposit_required=Decimal("0"),
            entries=[entry_factory("10.00", EntryStatus.PENDING)],
            calculated_at=NOW,
        )
        assert summary.balance_status == BalanceStatus.PENDING

    def test_adjustments_never_change_deposit_required(self, entry_factory):
        entries = [
            entry_factory("200.00", EntryStatus.APPROVED, TransactionType.DEPOSIT_INCREASE, method=None),
            entry_factory("50.00", EntryStatus.PENDING, TransactionType.DEPOSIT_DECREASE, method=None),
            entry_factory("30.00", EntryStatus.VOIDED, TransactionType.DEPOSIT_INCREASE, method=None),
        ]

        summary = compute_summary(
            deposit_required=Decimal("1000.00"), entries=entries, calculated_at=NOW,
        )

        assert summary.deposit_required == Decimal("1000.00")
        assert summary.deposit_adjustments == Decimal("150.00")
        assert summary.deposit_adjustment_count == 2
        assert summary.net_received == Decimal("0.00")
        assert summary.balance == Decimal("1000.00")

    def test_order_of_entries_does_not_matter(self, entry_factory):
        entries = [
            entry_factory("100.00"),
            entry_factory("25.50", transaction_type=TransactionType.REFUND),
            entry_factory("300.00", EntryStatus.PENDING),
        ]
        forward = compute_summary(
            deposit_required=Decimal("700.00"), entries=entries, calculated_at=NOW,
        )
        backward = compute_summary(
            deposit_required=Decimal("700.00"), entries=list(reversed(entries)), calculated_at=NOW,
        )
        assert forward == backward

    def test_last_entry_at_ignores_voided(self, entry_factory):
        early = datetime(2024, 2, 1, tzinfo=timezone.utc)
        late = datetime(2024, 2, 20, tzinfo=timezone.utc)
        entries = [
            entry_factory("10.00", created_at=early),
            entry_factory("10.00", EntryStatus.VOIDED, created_at=late),
        ]
        summary = compute_summary(
            deposit_required=Decimal("100.00"), entries=entries, calculated_at=NOW,
        )
        assert summary.last_entry_at == early

    def test_summary_round_trips_through_json_form(self, entry_factory):
        summary = compute_summary(
            deposit_required=Decimal("100.00"),
            entries=[entry_factory("40.00")],
            calculated_at=NOW,
            pricing_source=PricingSource.CHANGE_ORDER,
            live_change_order_number=3,
        )
        assert type(summary).from_dict(summary.to_dict()) == summary


class TestClassifyBalance:
    @pytest.mark.parametrize(
        "balance,cleared,deposit,expected",
        [
            (Decimal("0"), 0, Decimal("0"), BalanceStatus.PENDING),
            (Decimal("100"), 0, Decimal("100"), BalanceStatus.UNDERPAID),
            (Decimal("0"), 1, Decimal("100"), BalanceStatus.PAID),
            (Decimal("-1"), 1, Decimal("100"), BalanceStatus.OVERPAID),
            (Decimal("-5"), 1, Decimal("0"), BalanceStatus.OVERPAID),
        ],
    )
    def test_classification(self, balance, cleared, deposit, expected):
        assert classify_balance(balance, cleared, deposit) == expected

    def test_apply_to_balance_ignores_adjustments(self):
        assert apply_to_balance(Decimal("10"), TransactionType.DEPOSIT_INCREASE, Decimal("5")) == Decimal("10")
        assert apply_to_balance(Decimal("10"), TransactionType.PAYMENT, Decimal("5")) == Decimal("5")
        assert apply_to_balance(Decimal("10"), TransactionType.REFUND, Decimal("5")) == Decimal("15")


class TestBalanceCalculator:
    def _from_change_order(self, deposit: str) -> FromChangeOrder:
        order_id = uuid4()
        change_order = ChangeOrder(
            id=uuid4(),
            order_id=order_id,
            change_order_number=2,
            status=ChangeOrderStatus.PENDING_SIGNATURE,
            new_values=ChangeOrderValues(Decimal("6000"), Decimal("0"), Decimal(deposit)),
            deposit_diff=Decimal("250"),
            reason="upgrade",
            created_at=NOW,
        )
        return FromChangeOrder(
            order_id=order_id,
            deposit=Decimal(deposit),
            order_total=Decimal("6000"),
            original_deposit=Decimal("500.00"),
            change_order=change_order,
        )

    def test_change_order_pricing_reaches_summary(self, entry_factory):
        effective = self._from_change_order("750.00")

        summary = BalanceCalculator().calculate(effective, [entry_factory("500.00")], NOW)

        assert summary.deposit_required == Decimal("750.00")
        assert summary.original_deposit == Decimal("500.00")
        assert summary.balance == Decimal("250.00")
        assert summary.pricing_source == PricingSource.CHANGE_ORDER
        assert summary.live_change_order_number == 2

    def test_order_pricing(self, entry_factory):
        effective = FromOrder(
            order_id=uuid4(),
            deposit=Decimal("300.00"),
            order_total=Decimal("3000.00"),
            original_deposit=Decimal("300.00"),
        )
        summary = BalanceCalculator().calculate(effective, [], NOW)
        assert summary.pricing_source == PricingSource.ORDER
        assert summary.live_change_order_number is None
        assert summary.balance == Decimal("300.00")

    def test_balance_after_projects_cleared_entry(self, entry_factory):
        effective = FromOrder(
            order_id=uuid4(),
            deposit=Decimal("1000.00"),
            order_total=Decimal("5000.00"),
            original_deposit=Decimal("1000.00"),
        )
        existing = [entry_factory("400.00"), entry_factory("100.00", EntryStatus.PENDING)]
        calc = BalanceCalculator()

        cleared = calc.balance_after(effective, existing, TransactionType.PAYMENT, Decimal("200.00"), True)
        pending = calc.balance_after(effective, existing, TransactionType.PAYMENT, Decimal("200.00"), False)

        assert cleared == Decimal("400.00")
        assert pending == Decimal("600.00")
