"""
Reconciliation - pure comparison of the ledger against processor records.

The stateful ReconciliationService lives in
ledger_services.reconciliation_service.
"""

from ledger_engines.reconciliation.engine import ProcessorReconciliationEngine
from ledger_engines.reconciliation.types import (
    STATUS_ORDER,
    ProcessorRecord,
    ReconciliationEntry,
    ReconciliationReport,
    ReconciliationStatus,
    ReconciliationWindow,
)

__all__ = [
    "ProcessorReconciliationEngine",
    "ProcessorRecord",
    "ReconciliationEntry",
    "ReconciliationReport",
    "ReconciliationStatus",
    "ReconciliationWindow",
    "STATUS_ORDER",
]
