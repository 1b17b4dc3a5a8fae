"""
ledger_services -- orchestration over the ledger kernel and engines.

PaymentLedgerService is the entry point; the individual services are
exported for callers that need only one of them.
"""

from ledger_services.csv_export import export_csv
from ledger_services.entry_lifecycle_service import EntryLifecycleService
from ledger_services.ledger_service import PaymentLedgerService
from ledger_services.processor_sources import (
    ProcessorRecordSource,
    StaticRecordSource,
    StripeRecordSource,
)
from ledger_services.proof_storage import InMemoryProofStorage, ProofStorage, upload_proof
from ledger_services.reconciliation_service import ReconciliationService
from ledger_services.summary_service import SummaryService

__all__ = [
    "EntryLifecycleService",
    "InMemoryProofStorage",
    "PaymentLedgerService",
    "ProcessorRecordSource",
    "ProofStorage",
    "ReconciliationService",
    "StaticRecordSource",
    "StripeRecordSource",
    "SummaryService",
    "export_csv",
    "upload_proof",
]
