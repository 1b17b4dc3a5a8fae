"""
Module: ledger_kernel.models.ledger_entry
Responsibility: ORM persistence for payment ledger entries.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - ``amount`` is strictly positive (check constraint); the transaction
      type carries the sign.
    - ``payment_number`` is unique, allocated from the PAYMENT_NUMBER
      sequence.
    - Entries are never deleted and only lifecycle fields change after
      creation (ORM listeners in db/immutability.py).

Failure modes:
    - IntegrityError on a non-positive amount or duplicate payment number.
    - ImmutabilityViolationError on DELETE or on changing a frozen field.

Audit relevance:
    Every row has at least one audit row (action ``created``); every later
    status change adds another.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import JSON, CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from ledger_kernel.domain.entries import LedgerEntry


class LedgerEntryModel(Base):
    __tablename__ = "ledger_entries"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_ledger_entry_amount_positive"),
        Index("idx_ledger_entry_order", "order_id", "status"),
        Index("idx_ledger_entry_created", "created_at"),
        Index("idx_ledger_entry_external", "external_payment_id"),
    )

    order_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("orders.id"), nullable=False,
    )
    order_number: Mapped[str] = mapped_column(String(50), nullable=False)

    payment_number: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)

    transaction_type: Mapped[str] = mapped_column(String(30), nullable=False)
    category: Mapped[str] = mapped_column(String(40), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)

    # Nullable until a method is confirmed at approval
    method: Mapped[str | None] = mapped_column(String(30), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False)

    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Processor linkage
    external_payment_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    external_verified: Mapped[bool] = mapped_column(nullable=False, default=False)
    external_amount: Mapped[Decimal | None] = mapped_column(nullable=True)

    proof_file: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    change_order_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("change_orders.id"), nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(nullable=False)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)

    approved_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)

    voided_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    voided_at: Mapped[datetime | None] = mapped_column(nullable=True)
    void_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Snapshots at creation, informational only
    deposit_at_time: Mapped[Decimal | None] = mapped_column(nullable=True)
    balance_after: Mapped[Decimal | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<LedgerEntry {self.payment_number} {self.transaction_type} {self.amount} {self.status}>"

    def to_dto(self) -> LedgerEntry:
        """Convert ORM model to frozen domain DTO."""
        from ledger_kernel.domain.entries import (
            EntryStatus,
            LedgerCategory,
            LedgerEntry,
            PaymentMethod,
            ProofFile,
            TransactionType,
        )
        from ledger_kernel.domain.money import to_amount

        return LedgerEntry(
            id=self.id,
            order_id=self.order_id,
            order_number=self.order_number,
            payment_number=self.payment_number,
            transaction_type=TransactionType(self.transaction_type),
            category=LedgerCategory(self.category),
            amount=to_amount(self.amount),
            method=PaymentMethod(self.method) if self.method else None,
            status=EntryStatus(self.status),
            created_at=self.created_at,
            created_by=self.created_by,
            description=self.description or "",
            notes=self.notes,
            external_payment_id=self.external_payment_id,
            external_verified=bool(self.external_verified),
            external_amount=(
                to_amount(self.external_amount) if self.external_amount is not None else None
            ),
            proof_file=ProofFile.from_dict(self.proof_file) if self.proof_file else None,
            change_order_id=self.change_order_id,
            approved_by=self.approved_by,
            approved_at=self.approved_at,
            voided_by=self.voided_by,
            voided_at=self.voided_at,
            void_reason=self.void_reason,
            deposit_at_time=(
                to_amount(self.deposit_at_time) if self.deposit_at_time is not None else None
            ),
            balance_after=(
                to_amount(self.balance_after) if self.balance_after is not None else None
            ),
        )
