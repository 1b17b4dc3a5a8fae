"""
Balance calculator -- derives an order's money position from its ledger.

Responsibility:
    Turns (deposit requirement, ledger entries) into an OrderLedgerSummary.
    The summary is the only balance in the system; it is recomputed from
    scratch after every mutation and never patched.

Architecture position:
    Engines -- pure calculation, zero I/O.  The timestamp is an input.

Invariants enforced:
    - Only cleared entries (verified, approved) move ``net_received``.
    - Pending amounts are reported separately and never reach ``balance``.
    - Voided entries contribute to nothing, not even the entry count.
    - ``balance == deposit_required - net_received``.
    - ``deposit_required`` comes from the resolved pricing, never from
      adjustment entries; those are surfaced in ``deposit_adjustments``.
    - Order of ``entries`` does not matter.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal

from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.change_orders import EffectiveValues
from ledger_kernel.domain.entries import EntryStatus, LedgerEntry, TransactionType
from ledger_kernel.domain.money import total, to_amount
from ledger_kernel.domain.summary import BalanceStatus, OrderLedgerSummary, PricingSource


def classify_balance(balance: Decimal, cleared_count: int, deposit_required: Decimal) -> BalanceStatus:
    """Balance status from the sign of ``balance``.

    An order with nothing cleared and no deposit requirement has not been
    priced or paid yet and reads as ``pending``.
    """
    if cleared_count == 0 and deposit_required == 0:
        return BalanceStatus.PENDING
    if balance == 0:
        return BalanceStatus.PAID
    if balance > 0:
        return BalanceStatus.UNDERPAID
    return BalanceStatus.OVERPAID


def apply_to_balance(
    balance: Decimal,
    transaction_type: TransactionType,
    amount: Decimal,
) -> Decimal:
    """Balance after one more cleared entry of ``transaction_type``."""
    if transaction_type == TransactionType.PAYMENT:
        return balance - amount
    if transaction_type == TransactionType.REFUND:
        return balance + amount
    return balance


@traced_engine(
    "balance",
    "1.0",
    fingerprint_fields=("deposit_required", "original_deposit", "calculated_at"),
    describe=lambda summary: {
        "balance": summary.balance,
        "balance_status": summary.balance_status,
        "entry_count": summary.entry_count,
    },
)
def compute_summary(
    *,
    deposit_required: Decimal,
    entries: Iterable[LedgerEntry],
    calculated_at: datetime,
    original_deposit: Decimal | None = None,
    pricing_source: PricingSource = PricingSource.ORDER,
    live_change_order_number: int | None = None,
) -> OrderLedgerSummary:
    """Derive the summary for one order."""
    deposit_required = to_amount(deposit_required)
    live = [e for e in entries if e.status != EntryStatus.VOIDED]
    cleared = [e for e in live if e.is_cleared]
    pending = [e for e in live if e.is_pending]

    total_received = total(
        e.amount for e in cleared if e.transaction_type == TransactionType.PAYMENT
    )
    total_refunded = total(
        e.amount for e in cleared if e.transaction_type == TransactionType.REFUND
    )
    pending_received = total(
        e.amount for e in pending if e.transaction_type == TransactionType.PAYMENT
    )
    pending_refunds = total(
        e.amount for e in pending if e.transaction_type == TransactionType.REFUND
    )

    adjustments = [e for e in live if e.transaction_type.is_adjustment]
    deposit_adjustments = total(
        e.amount if e.transaction_type == TransactionType.DEPOSIT_INCREASE else -e.amount
        for e in adjustments
    )

    net_received = total_received - total_refunded
    balance = deposit_required - net_received

    return OrderLedgerSummary(
        original_deposit=to_amount(
            original_deposit if original_deposit is not None else deposit_required
        ),
        deposit_required=deposit_required,
        deposit_adjustments=deposit_adjustments,
        deposit_adjustment_count=len(adjustments),
        total_received=total_received,
        total_refunded=total_refunded,
        net_received=net_received,
        balance=balance,
        balance_status=classify_balance(balance, len(cleared), deposit_required),
        pending_received=pending_received,
        pending_refunds=pending_refunds,
        entry_count=len(live),
        cleared_count=len(cleared),
        calculated_at=calculated_at,
        last_entry_at=max((e.created_at for e in live), default=None),
        pricing_source=pricing_source,
        live_change_order_number=live_change_order_number,
    )


class BalanceCalculator:
    """Runs ``compute_summary`` against resolved effective values."""

    def calculate(
        self,
        effective: EffectiveValues,
        entries: Iterable[LedgerEntry],
        calculated_at: datetime,
    ) -> OrderLedgerSummary:
        live_co = effective.live_change_order
        return compute_summary(
            deposit_required=effective.deposit,
            entries=list(entries),
            calculated_at=calculated_at,
            original_deposit=effective.original_deposit,
            pricing_source=effective.source,
            live_change_order_number=live_co.change_order_number if live_co else None,
        )

    def balance_after(
        self,
        effective: EffectiveValues,
        entries: Iterable[LedgerEntry],
        transaction_type: TransactionType,
        amount: Decimal,
        cleared: bool,
    ) -> Decimal:
        """Projected balance once a new entry is recorded.

        Used for the informational ``balance_after`` snapshot on new entries.
        """
        balance = to_amount(effective.deposit)
        for entry in entries:
            if entry.is_cleared:
                balance = apply_to_balance(balance, entry.transaction_type, entry.amount)
        if cleared:
            balance = apply_to_balance(balance, transaction_type, amount)
        return balance
