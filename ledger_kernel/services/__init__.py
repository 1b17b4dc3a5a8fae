"""
Kernel services -- the imperative shell around the ledger tables.

Services flush and never commit; the caller's session owns the
transaction.
"""

from ledger_kernel.services.auditor_service import AuditorService, AuditTrail
from ledger_kernel.services.ledger_writer import LedgerWriter
from ledger_kernel.services.sequence_service import SequenceService

__all__ = ["AuditTrail", "AuditorService", "LedgerWriter", "SequenceService"]
