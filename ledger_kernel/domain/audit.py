"""
Audit trail domain types (``ledger_kernel.domain.audit``).

One ``AuditEntry`` per lifecycle transition of a ledger entry, plus
order-level rows for explicit recalculations (``ledger_entry_id`` is None).
Rows are append-only; readers see them newest first.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

from ledger_kernel.domain.entries import EntryStatus


class AuditAction(str, Enum):
    """Auditable actions on the payment ledger."""

    CREATED = "created"
    APPROVED = "approved"
    VERIFIED = "verified"
    VOIDED = "voided"
    RECALCULATED = "recalculated"


@dataclass(frozen=True)
class AuditEntry:
    id: UUID
    seq: int
    action: AuditAction
    order_id: UUID
    order_number: str
    actor_id: str
    timestamp: datetime
    ledger_entry_id: UUID | None = None
    payment_number: str | None = None
    previous_status: EntryStatus | None = None
    new_status: EntryStatus | None = None
    actor_email: str | None = None
    details: str | None = None
    external_event_id: str | None = None
