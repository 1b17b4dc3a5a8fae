"""
LedgerWriter -- the only code path that inserts or updates ledger rows.

Responsibility:
    Inserts new ledger entries (allocating their payment number) and moves
    existing entries between lifecycle states with a compare-and-set guard.

Architecture position:
    Kernel > Services -- imperative shell.  Called by the lifecycle
    orchestration in ``ledger_services``; never decides *whether* a
    transition is allowed beyond the lifecycle graph itself.

Invariants enforced:
    - Single writer per entry: a status change is issued as
      ``UPDATE ... WHERE id = :id AND status = :expected``.  If another
      writer moved the entry first, zero rows match and
      InvalidStateTransitionError is raised.  No lock is held across the
      read-modify-write.
    - Lifecycle graph: ``expected -> new`` must be an edge of
      ENTRY_TRANSITIONS.
    - Flush only; the caller owns the transaction.

Failure modes:
    - InvalidStateTransitionError on an illegal edge or a lost race.
    - EntryNotFoundError if the row vanished between read and write.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from ledger_kernel.domain.entries import (
    EntryStatus,
    LedgerCategory,
    PaymentMethod,
    ProofFile,
    TransactionType,
    can_transition,
    format_payment_number,
)
from ledger_kernel.exceptions import EntryNotFoundError, InvalidStateTransitionError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.ledger_entry import LedgerEntryModel
from ledger_kernel.models.order import OrderModel
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.ledger_writer")


class LedgerWriter:
    def __init__(self, session: Session):
        self._session = session
        self._sequence_service = SequenceService(session)

    def insert(
        self,
        *,
        order: OrderModel,
        transaction_type: TransactionType,
        category: LedgerCategory,
        amount: Decimal,
        method: PaymentMethod | None,
        status: EntryStatus,
        created_at: datetime,
        created_by: str,
        description: str = "",
        notes: str | None = None,
        external_payment_id: str | None = None,
        external_verified: bool = False,
        external_amount: Decimal | None = None,
        proof_file: ProofFile | None = None,
        change_order_id: UUID | None = None,
        approved_by: str | None = None,
        approved_at: datetime | None = None,
        deposit_at_time: Decimal | None = None,
        balance_after: Decimal | None = None,
    ) -> LedgerEntryModel:
        """Insert a new entry and return the flushed model."""
        payment_number = format_payment_number(
            self._sequence_service.next_value(SequenceService.PAYMENT_NUMBER)
        )

        model = LedgerEntryModel(
            order_id=order.id,
            order_number=order.order_number,
            payment_number=payment_number,
            transaction_type=transaction_type.value,
            category=category.value,
            amount=amount,
            method=method.value if method else None,
            status=status.value,
            description=description,
            notes=notes,
            external_payment_id=external_payment_id,
            external_verified=external_verified,
            external_amount=external_amount,
            proof_file=proof_file.to_dict() if proof_file else None,
            change_order_id=change_order_id,
            created_at=created_at,
            created_by=created_by,
            approved_by=approved_by,
            approved_at=approved_at,
            deposit_at_time=deposit_at_time,
            balance_after=balance_after,
        )
        self._session.add(model)
        self._session.flush()

        logger.debug(
            "ledger_entry_inserted",
            extra={
                "entry_id": str(model.id),
                "payment_number": payment_number,
                "status": status.value,
            },
        )
        return model

    def compare_and_set_status(
        self,
        entry_id: UUID,
        expected: EntryStatus,
        new: EntryStatus,
        values: dict[str, Any] | None = None,
    ) -> LedgerEntryModel:
        """
        Move an entry from ``expected`` to ``new`` in one guarded UPDATE.

        ``values`` carries the other lifecycle columns written together with
        the status (approver, proof, void reason, ...).  Enum and ProofFile
        values are stored in their column form.

        Returns:
            The refreshed LedgerEntryModel.

        Raises:
            InvalidStateTransitionError: ``expected -> new`` is not an edge,
                or the stored status is no longer ``expected``.
        """
        if not can_transition(expected, new):
            raise InvalidStateTransitionError(entry_id, expected.value, new.value)

        columns = {"status": new.value}
        for key, value in (values or {}).items():
            if isinstance(value, ProofFile):
                value = value.to_dict()
            elif isinstance(value, (EntryStatus, PaymentMethod)):
                value = value.value
            columns[key] = value

        result = self._session.execute(
            update(LedgerEntryModel)
            .where(LedgerEntryModel.id == entry_id)
            .where(LedgerEntryModel.status == expected.value)
            .values(**columns)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount != 1:
            current = self._session.get(
                LedgerEntryModel, entry_id, populate_existing=True,
            )
            if current is None:
                raise EntryNotFoundError(entry_id)
            logger.warning(
                "ledger_entry_status_race_lost",
                extra={
                    "entry_id": str(entry_id),
                    "expected_status": expected.value,
                    "actual_status": current.status,
                    "target_status": new.value,
                },
            )
            raise InvalidStateTransitionError(
                entry_id,
                current.status,
                new.value,
                reason=f"status changed concurrently (expected {expected.value})",
            )

        model = self._session.get(LedgerEntryModel, entry_id, populate_existing=True)
        logger.debug(
            "ledger_entry_status_set",
            extra={
                "entry_id": str(entry_id),
                "from_status": expected.value,
                "to_status": new.value,
            },
        )
        return model
