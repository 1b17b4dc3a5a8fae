"""
Module: ledger_kernel.models.audit_entry
Responsibility: ORM persistence for the payment audit trail.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only: no UPDATE or DELETE (ORM listeners in db/immutability.py).
    - ``seq`` is unique and monotonic, allocated by SequenceService; it
      orders rows written within the same clock instant.

Audit relevance:
    This IS the audit trail.  Every ledger entry status change and every
    explicit order recalculation writes one row.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import BigInteger, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from ledger_kernel.domain.audit import AuditEntry


class PaymentAuditModel(Base):
    __tablename__ = "payment_audit_log"

    __table_args__ = (
        Index("idx_payment_audit_entry", "ledger_entry_id", "timestamp"),
        Index("idx_payment_audit_order", "order_id", "timestamp"),
    )

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)

    # created | approved | verified | voided | recalculated
    action: Mapped[str] = mapped_column(String(30), nullable=False)

    # None for order-level rows (recalculation)
    ledger_entry_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    payment_number: Mapped[str | None] = mapped_column(String(20), nullable=True)

    order_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    order_number: Mapped[str] = mapped_column(String(50), nullable=False)

    previous_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    new_status: Mapped[str | None] = mapped_column(String(20), nullable=True)

    actor_id: Mapped[str] = mapped_column(String(255), nullable=False)
    actor_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    external_event_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    timestamp: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<PaymentAudit #{self.seq} {self.action} {self.payment_number or self.order_number}>"

    def to_dto(self) -> AuditEntry:
        """Convert ORM model to frozen domain DTO."""
        from ledger_kernel.domain.audit import AuditAction, AuditEntry
        from ledger_kernel.domain.entries import EntryStatus

        return AuditEntry(
            id=self.id,
            seq=self.seq,
            action=AuditAction(self.action),
            order_id=self.order_id,
            order_number=self.order_number,
            actor_id=self.actor_id,
            timestamp=self.timestamp,
            ledger_entry_id=self.ledger_entry_id,
            payment_number=self.payment_number,
            previous_status=EntryStatus(self.previous_status) if self.previous_status else None,
            new_status=EntryStatus(self.new_status) if self.new_status else None,
            actor_email=self.actor_email,
            details=self.details,
            external_event_id=self.external_event_id,
        )
