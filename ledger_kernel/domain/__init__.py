"""
Pure domain layer.

Value objects and rules with NO dependencies on the ORM, the database,
the wall clock or any I/O.  Everything here is immutable.
"""

from ledger_kernel.domain.approval import Actor, ApprovalPolicy
from ledger_kernel.domain.audit import AuditAction, AuditEntry
from ledger_kernel.domain.change_orders import (
    ChangeOrder,
    ChangeOrderStatus,
    ChangeOrderValues,
    EffectiveValues,
    FromChangeOrder,
    FromOrder,
    OrderPricing,
)
from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.entries import (
    CLEARED_STATUSES,
    ENTRY_TRANSITIONS,
    EntryFilters,
    EntryPage,
    EntryStatus,
    LedgerCategory,
    LedgerEntry,
    PageRequest,
    PaymentMethod,
    ProofFile,
    TransactionType,
)
from ledger_kernel.domain.refunds import OverpaidOrder, OverpaidOrders, RefundableAmount
from ledger_kernel.domain.summary import (
    BalanceStatus,
    OrderLedgerSummary,
    OrderPaymentStatus,
    PricingSource,
)

__all__ = [
    "Actor",
    "ApprovalPolicy",
    "AuditAction",
    "AuditEntry",
    "BalanceStatus",
    "CLEARED_STATUSES",
    "ChangeOrder",
    "ChangeOrderStatus",
    "ChangeOrderValues",
    "Clock",
    "DeterministicClock",
    "ENTRY_TRANSITIONS",
    "EffectiveValues",
    "EntryFilters",
    "EntryPage",
    "EntryStatus",
    "FromChangeOrder",
    "FromOrder",
    "LedgerCategory",
    "LedgerEntry",
    "OrderLedgerSummary",
    "OrderPaymentStatus",
    "OrderPricing",
    "OverpaidOrder",
    "OverpaidOrders",
    "PageRequest",
    "PaymentMethod",
    "PricingSource",
    "ProofFile",
    "RefundableAmount",
    "SystemClock",
    "TransactionType",
]
