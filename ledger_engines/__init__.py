"""
Module: ledger_engines
Responsibility:
    Pure calculation layer of the payment ledger: change-order resolution,
    balance derivation, refund split and processor reconciliation.

Architecture position:
    Engines -- zero I/O.  May import ledger_kernel.domain and
    ledger_kernel.logging_config only.  MUST NOT import ledger_services.

Invariants enforced:
    - Engines never read the clock; timestamps are parameters.
    - Decimal-only arithmetic.
    - Identical inputs always produce identical outputs.

Audit relevance:
    Engine entry points are wrapped in ``@traced_engine`` and emit
    LEDGER_ENGINE_TRACE records.
"""

from ledger_engines.balance import BalanceCalculator, classify_balance, compute_summary
from ledger_engines.change_orders import display_status, resolve_effective_values
from ledger_engines.refunds import compute_refundable
from ledger_engines.reconciliation import (
    ProcessorReconciliationEngine,
    ProcessorRecord,
    ReconciliationEntry,
    ReconciliationReport,
    ReconciliationStatus,
    ReconciliationWindow,
)

__all__ = [
    "BalanceCalculator",
    "ProcessorReconciliationEngine",
    "ProcessorRecord",
    "ReconciliationEntry",
    "ReconciliationReport",
    "ReconciliationStatus",
    "ReconciliationWindow",
    "classify_balance",
    "compute_refundable",
    "compute_summary",
    "display_status",
    "resolve_effective_values",
]
