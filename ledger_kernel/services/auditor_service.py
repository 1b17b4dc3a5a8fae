"""
AuditorService -- append-only payment audit trail.

Responsibility:
    Writes one audit row per ledger entry transition (created, approved,
    verified, voided) and one order-level row per explicit recalculation.
    Reads the trail back newest first, per entry or per order.

Architecture position:
    Kernel > Services -- imperative shell, called by EntryLifecycleService
    and SummaryService.

Invariants enforced:
    - Append-only: rows are never modified or deleted (ORM listeners on
      PaymentAuditModel).
    - ``seq`` comes from SequenceService, so rows written at the same clock
      instant still have a total order.
    - Flush only; the caller's transaction commits the audit row together
      with the entry change it describes.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.approval import Actor
from ledger_kernel.domain.audit import AuditAction, AuditEntry
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.entries import EntryStatus
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.audit_entry import PaymentAuditModel
from ledger_kernel.models.ledger_entry import LedgerEntryModel
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.auditor")


@dataclass(frozen=True)
class AuditTrail:
    """Audit rows for one subject, newest first."""

    subject_id: UUID
    entries: tuple[AuditEntry, ...]

    @property
    def is_empty(self) -> bool:
        return len(self.entries) == 0

    @property
    def latest_action(self) -> AuditAction | None:
        return self.entries[0].action if self.entries else None


class AuditorService:
    """Records and reads payment audit rows."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._sequence_service = SequenceService(session)

    def _append(
        self,
        *,
        action: AuditAction,
        order_id: UUID,
        order_number: str,
        actor: Actor,
        ledger_entry_id: UUID | None = None,
        payment_number: str | None = None,
        previous_status: EntryStatus | None = None,
        new_status: EntryStatus | None = None,
        details: str | None = None,
        external_event_id: str | None = None,
    ) -> PaymentAuditModel:
        seq = self._sequence_service.next_value(SequenceService.AUDIT_ENTRY)

        row = PaymentAuditModel(
            seq=seq,
            action=action.value,
            ledger_entry_id=ledger_entry_id,
            payment_number=payment_number,
            order_id=order_id,
            order_number=order_number,
            previous_status=previous_status.value if previous_status else None,
            new_status=new_status.value if new_status else None,
            actor_id=actor.id,
            actor_email=actor.email,
            details=details,
            external_event_id=external_event_id,
            timestamp=self._clock.now(),
        )
        self._session.add(row)
        self._session.flush()

        logger.info(
            "audit_entry_recorded",
            extra={
                "seq": seq,
                "action": action.value,
                "order_id": str(order_id),
                "ledger_entry_id": str(ledger_entry_id) if ledger_entry_id else None,
                "previous_status": row.previous_status,
                "new_status": row.new_status,
            },
        )
        return row

    def record_transition(
        self,
        entry: LedgerEntryModel,
        action: AuditAction,
        actor: Actor,
        previous_status: EntryStatus | None,
        new_status: EntryStatus,
        details: str | None = None,
        external_event_id: str | None = None,
    ) -> AuditEntry:
        """Record a status change (or creation) of a ledger entry."""
        row = self._append(
            action=action,
            order_id=entry.order_id,
            order_number=entry.order_number,
            actor=actor,
            ledger_entry_id=entry.id,
            payment_number=entry.payment_number,
            previous_status=previous_status,
            new_status=new_status,
            details=details,
            external_event_id=external_event_id,
        )
        return row.to_dto()

    def record_recalculation(
        self,
        order_id: UUID,
        order_number: str,
        actor: Actor,
        details: str | None = None,
    ) -> AuditEntry:
        """Record an explicit order-level summary recalculation."""
        row = self._append(
            action=AuditAction.RECALCULATED,
            order_id=order_id,
            order_number=order_number,
            actor=actor,
            details=details,
        )
        return row.to_dto()

    def entry_history(self, entry_id: UUID) -> AuditTrail:
        rows = self._session.execute(
            select(PaymentAuditModel)
            .where(PaymentAuditModel.ledger_entry_id == entry_id)
            .order_by(PaymentAuditModel.timestamp.desc(), PaymentAuditModel.seq.desc())
        ).scalars().all()
        return AuditTrail(subject_id=entry_id, entries=tuple(r.to_dto() for r in rows))

    def order_history(self, order_id: UUID) -> AuditTrail:
        """Every audit row of an order, entry-level and order-level."""
        rows = self._session.execute(
            select(PaymentAuditModel)
            .where(PaymentAuditModel.order_id == order_id)
            .order_by(PaymentAuditModel.timestamp.desc(), PaymentAuditModel.seq.desc())
        ).scalars().all()
        return AuditTrail(subject_id=order_id, entries=tuple(r.to_dto() for r in rows))
