"""
Refund split -- how an overpayment can be returned.

Pure engine.  Given an order's balance and its ledger entries, reports the
overpaid amount, the part that went through the processor (cleared processor
payments with an external id, capped at the overpayment) and the remainder
that has to be refunded by hand.  The processor amount of a payment is the
amount the processor reported when known, otherwise the ledger amount.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID

from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.entries import LedgerEntry, PaymentMethod, TransactionType
from ledger_kernel.domain.money import ZERO, to_amount, total
from ledger_kernel.domain.refunds import RefundableAmount


def refundable_via_processor(
    entry: LedgerEntry,
    processor_methods: frozenset[PaymentMethod],
) -> bool:
    return (
        entry.transaction_type == TransactionType.PAYMENT
        and entry.method in processor_methods
        and bool(entry.external_payment_id)
        and entry.is_cleared
    )


@traced_engine(
    "refund_split",
    "1.0",
    fingerprint_fields=("order_id", "balance"),
    describe=lambda r: {
        "refundable_amount": r.refundable_amount,
        "processor_refundable": r.processor_refundable,
    },
)
def compute_refundable(
    *,
    order_id: UUID,
    balance: Decimal,
    entries: Iterable[LedgerEntry],
    processor_methods: Iterable[PaymentMethod] = (PaymentMethod.STRIPE,),
) -> RefundableAmount:
    balance = to_amount(balance)
    if balance >= 0:
        return RefundableAmount(
            order_id=order_id,
            balance=balance,
            is_overpaid=False,
            refundable_amount=ZERO,
            processor_refundable=ZERO,
            manual_refund_required=ZERO,
        )

    methods = frozenset(processor_methods)
    payments = tuple(e for e in entries if refundable_via_processor(e, methods))
    through_processor = total(
        e.external_amount if e.external_amount is not None else e.amount
        for e in payments
    )

    overpaid = -balance
    processor_refundable = min(overpaid, through_processor)
    return RefundableAmount(
        order_id=order_id,
        balance=balance,
        is_overpaid=True,
        refundable_amount=overpaid,
        processor_refundable=processor_refundable,
        manual_refund_required=overpaid - processor_refundable,
        processor_payments=payments,
    )
