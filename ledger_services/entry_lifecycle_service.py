"""
ledger_services.entry_lifecycle_service -- create, approve, verify and void ledger entries.

Responsibility:
    Owns every status change of a ledger entry.  Decides the initial status
    of new entries, checks approval preconditions (approver, method, proof,
    notes), writes the audit row for each transition and refreshes the
    order summary afterwards.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    Composes LedgerWriter (guarded writes), AuditorService (audit rows),
    SummaryService (derived balance) and the ApprovalPolicy value object.

Invariants enforced:
    - Lifecycle: pending -> {verified, approved} -> voided; voided is terminal.
    - Single writer: status changes go through
      LedgerWriter.compare_and_set_status, so of two concurrent approvals of
      the same pending entry exactly one succeeds.
    - Every transition appends exactly one audit row in the same
      transaction as the status change.
    - A failed precondition leaves the entry and the audit log untouched.
    - The order summary is recomputed from the full entry set after every
      successful mutation.

Failure modes:
    - EntryNotFoundError / OrderNotFoundError / ChangeOrderNotFoundError.
    - InvalidStateTransitionError: illegal edge or lost race.
    - ApprovalCodeInvalidError: actor has no elevated role and no valid code.
    - MethodRequiredError, ProofRequiredError, NotesRequiredError.
    - VoidReasonRequiredError: blank void reason.
    - InvalidEntryError: non-positive or unreadable amount, bad enum value.

Audit relevance:
    - Audit actions: created, approved, verified, voided (per entry) and
      recalculated (per order).
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_engines.balance import BalanceCalculator
from ledger_kernel.domain.approval import Actor, ApprovalPolicy
from ledger_kernel.domain.audit import AuditAction
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.entries import (
    DEFAULT_CATEGORY,
    NOTES_REQUIRED_METHODS,
    PROOF_REQUIRED_METHODS,
    EntryStatus,
    LedgerCategory,
    LedgerEntry,
    PaymentMethod,
    ProofFile,
    TransactionType,
)
from ledger_kernel.domain.money import to_amount
from ledger_kernel.domain.summary import OrderLedgerSummary
from ledger_kernel.exceptions import (
    ApprovalCodeInvalidError,
    InvalidEntryError,
    InvalidStateTransitionError,
    MethodRequiredError,
    NotesRequiredError,
    ProofRequiredError,
    VoidReasonRequiredError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.ledger_entry import LedgerEntryModel
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.selectors.order_selector import OrderSelector
from ledger_kernel.services.auditor_service import AuditorService
from ledger_kernel.services.ledger_writer import LedgerWriter
from ledger_services.summary_service import SummaryService

logger = get_logger("services.entry_lifecycle")

PROCESSOR_ACTOR = Actor(id="processor-webhook")


def _coerce_enum(enum_cls, value, field: str):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise InvalidEntryError(field, value, f"not a valid {enum_cls.__name__}") from exc


def _positive_amount(value, field: str) -> Decimal:
    try:
        amount = to_amount(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidEntryError(field, value, "not a decimal amount") from exc
    if amount <= 0:
        raise InvalidEntryError(field, value, "must be greater than zero")
    return amount


class EntryLifecycleService:
    """
    Drives ledger entries through their lifecycle.

    Contract:
        Each public method is one unit of work on one order.  It flushes and
        never commits; the caller's session owns the transaction.

    Non-goals:
        - Does NOT upload proof documents (see proof_storage.upload_proof).
        - Does NOT talk to the payment processor.
    """

    def __init__(
        self,
        session: Session,
        policy: ApprovalPolicy,
        clock: Clock | None = None,
    ):
        self._session = session
        self._policy = policy
        self._clock = clock or SystemClock()
        self._writer = LedgerWriter(session)
        self._auditor = AuditorService(session, self._clock)
        self._summaries = SummaryService(session, self._clock)
        self._entries = LedgerSelector(session)
        self._orders = OrderSelector(session)
        self._calculator = BalanceCalculator()

    # =========================================================================
    # Create
    # =========================================================================

    def create(
        self,
        order_id: UUID,
        transaction_type: TransactionType | str,
        amount: Decimal | str | int,
        method: PaymentMethod | str | None,
        actor: Actor,
        *,
        category: LedgerCategory | str | None = None,
        description: str = "",
        notes: str | None = None,
        external_payment_id: str | None = None,
        processor_confirmed: bool = False,
        external_amount: Decimal | str | int | None = None,
        proof_file: ProofFile | None = None,
        change_order_id: UUID | None = None,
    ) -> LedgerEntry:
        """
        Record a new ledger entry and refresh the order summary.

        Initial status:
            - ``verified`` for a processor payment confirmed by the processor.
            - ``approved`` when the actor may approve (elevated role or a
              valid approval code); the actor is recorded as approver.
            - ``pending`` otherwise.
        """
        transaction_type = _coerce_enum(TransactionType, transaction_type, "transaction_type")
        method = _coerce_enum(PaymentMethod, method, "method")
        category = _coerce_enum(LedgerCategory, category, "category")
        amount = _positive_amount(amount, "amount")
        if external_amount is not None:
            external_amount = _positive_amount(external_amount, "external_amount")

        with LogContext.bind(actor_id=actor.id, order_id=str(order_id)):
            order = self._orders.get_order_model(order_id)
            if change_order_id is not None:
                change_order = self._orders.get_change_order(change_order_id)
                if change_order.order_id != order.id:
                    raise InvalidEntryError(
                        "change_order_id", change_order_id,
                        f"belongs to a different order than {order.order_number}",
                    )

            now = self._clock.now()
            approved_by = None
            approved_at = None
            external_verified = False
            if method == PaymentMethod.STRIPE and processor_confirmed:
                status = EntryStatus.VERIFIED
                external_verified = True
            elif self._policy.can_approve(actor):
                status = EntryStatus.APPROVED
                approved_by = actor.id
                approved_at = now
            else:
                status = EntryStatus.PENDING
                if actor.approval_code:
                    logger.warning(
                        "approval_code_rejected",
                        extra={"actor_id": actor.id, "operation": "create"},
                    )

            effective = self._summaries.effective_values(order)
            existing = self._entries.entries_for_order(order.id)
            balance_after = self._calculator.balance_after(
                effective,
                existing,
                transaction_type,
                amount,
                cleared=status in (EntryStatus.VERIFIED, EntryStatus.APPROVED),
            )

            model = self._writer.insert(
                order=order,
                transaction_type=transaction_type,
                category=category or DEFAULT_CATEGORY[transaction_type],
                amount=amount,
                method=method,
                status=status,
                created_at=now,
                created_by=actor.id,
                description=description,
                notes=notes,
                external_payment_id=external_payment_id,
                external_verified=external_verified,
                external_amount=external_amount,
                proof_file=proof_file,
                change_order_id=change_order_id,
                approved_by=approved_by,
                approved_at=approved_at,
                deposit_at_time=effective.deposit,
                balance_after=balance_after,
            )
            self._auditor.record_transition(
                model, AuditAction.CREATED, actor,
                previous_status=None, new_status=status,
                details=description or None,
            )
            self._summaries.refresh(order)

            logger.info(
                "ledger_entry_created",
                extra={
                    "entry_id": str(model.id),
                    "payment_number": model.payment_number,
                    "transaction_type": transaction_type.value,
                    "amount": amount,
                    "status": status.value,
                },
            )
            return model.to_dto()

    # =========================================================================
    # Approve
    # =========================================================================

    def approve(
        self,
        entry_id: UUID,
        actor: Actor,
        approval_code: str | None = None,
        method: PaymentMethod | str | None = None,
        proof_file: ProofFile | None = None,
        notes: str | None = None,
    ) -> LedgerEntry:
        """
        Clear a pending entry manually.

        Checked in order: entry exists, entry is pending, actor may approve,
        a method is known, proof for check / wire, notes for ``other``.
        ``proof_file`` and ``notes`` given here replace the stored ones.
        """
        method = _coerce_enum(PaymentMethod, method, "method")
        actor = actor.with_code(approval_code)

        with LogContext.bind(actor_id=actor.id, entry_id=str(entry_id)):
            model = self._entries.get_model(entry_id)
            current = EntryStatus(model.status)
            if current != EntryStatus.PENDING:
                raise InvalidStateTransitionError(
                    entry_id, current.value, EntryStatus.APPROVED.value,
                )

            if not self._policy.can_approve(actor):
                logger.warning(
                    "approval_code_rejected",
                    extra={"actor_id": actor.id, "operation": "approve"},
                )
                raise ApprovalCodeInvalidError(actor.id, entry_id)

            chosen = method or (PaymentMethod(model.method) if model.method else None)
            if chosen is None:
                raise MethodRequiredError(entry_id)

            if chosen in PROOF_REQUIRED_METHODS:
                if proof_file is None and not model.proof_file:
                    raise ProofRequiredError(entry_id, chosen.value)

            if chosen in NOTES_REQUIRED_METHODS:
                final_notes = notes if notes is not None else model.notes
                if not (final_notes or "").strip():
                    raise NotesRequiredError(entry_id)

            values = {
                "method": chosen,
                "approved_by": actor.id,
                "approved_at": self._clock.now(),
            }
            if proof_file is not None:
                values["proof_file"] = proof_file
            if notes is not None:
                values["notes"] = notes

            model = self._writer.compare_and_set_status(
                entry_id, EntryStatus.PENDING, EntryStatus.APPROVED, values,
            )
            self._auditor.record_transition(
                model, AuditAction.APPROVED, actor,
                previous_status=EntryStatus.PENDING,
                new_status=EntryStatus.APPROVED,
                details=f"method={chosen.value}",
            )
            self._refresh_order_of(model)

            logger.info(
                "ledger_entry_approved",
                extra={
                    "entry_id": str(entry_id),
                    "payment_number": model.payment_number,
                    "method": chosen.value,
                },
            )
            return model.to_dto()

    # =========================================================================
    # Verify (processor confirmation)
    # =========================================================================

    def verify(
        self,
        entry_id: UUID,
        external_payment_id: str,
        external_amount: Decimal | str | int | None = None,
        external_event_id: str | None = None,
        actor: Actor = PROCESSOR_ACTOR,
    ) -> LedgerEntry:
        """Mark a pending entry as confirmed by the payment processor."""
        if not (external_payment_id or "").strip():
            raise InvalidEntryError(
                "external_payment_id", external_payment_id, "must not be blank",
            )
        if external_amount is not None:
            external_amount = _positive_amount(external_amount, "external_amount")

        with LogContext.bind(actor_id=actor.id, entry_id=str(entry_id)):
            model = self._entries.get_model(entry_id)
            current = EntryStatus(model.status)
            if current != EntryStatus.PENDING:
                raise InvalidStateTransitionError(
                    entry_id, current.value, EntryStatus.VERIFIED.value,
                )

            model = self._writer.compare_and_set_status(
                entry_id,
                EntryStatus.PENDING,
                EntryStatus.VERIFIED,
                {
                    "external_payment_id": external_payment_id.strip(),
                    "external_amount": external_amount,
                    "external_verified": True,
                },
            )
            self._auditor.record_transition(
                model, AuditAction.VERIFIED, actor,
                previous_status=EntryStatus.PENDING,
                new_status=EntryStatus.VERIFIED,
                external_event_id=external_event_id,
            )
            self._refresh_order_of(model)

            logger.info(
                "ledger_entry_verified",
                extra={
                    "entry_id": str(entry_id),
                    "external_payment_id": model.external_payment_id,
                    "external_event_id": external_event_id,
                },
            )
            return model.to_dto()

    # =========================================================================
    # Void
    # =========================================================================

    def void(self, entry_id: UUID, actor: Actor, reason: str) -> None:
        """Void an entry of any non-voided status.  The reason is required."""
        with LogContext.bind(actor_id=actor.id, entry_id=str(entry_id)):
            model = self._entries.get_model(entry_id)
            reason = (reason or "").strip()
            if not reason:
                raise VoidReasonRequiredError(entry_id)

            current = EntryStatus(model.status)
            if current == EntryStatus.VOIDED:
                raise InvalidStateTransitionError(
                    entry_id, current.value, EntryStatus.VOIDED.value,
                    reason="entry is already voided",
                )

            model = self._writer.compare_and_set_status(
                entry_id,
                current,
                EntryStatus.VOIDED,
                {
                    "voided_by": actor.id,
                    "voided_at": self._clock.now(),
                    "void_reason": reason,
                },
            )
            self._auditor.record_transition(
                model, AuditAction.VOIDED, actor,
                previous_status=current,
                new_status=EntryStatus.VOIDED,
                details=reason,
            )
            self._refresh_order_of(model)

            logger.info(
                "ledger_entry_voided",
                extra={
                    "entry_id": str(entry_id),
                    "payment_number": model.payment_number,
                    "previous_status": current.value,
                    "void_reason": reason,
                },
            )

    # =========================================================================
    # Recalculate
    # =========================================================================

    def recalculate(self, order_id: UUID, actor: Actor) -> OrderLedgerSummary:
        """Re-derive and store the order summary; entries are not touched."""
        with LogContext.bind(actor_id=actor.id, order_id=str(order_id)):
            order = self._orders.get_order_model(order_id)
            summary = self._summaries.refresh(order)
            self._auditor.record_recalculation(
                order.id,
                order.order_number,
                actor,
                details=f"balance={summary.balance} status={summary.balance_status.value}",
            )
            logger.info(
                "order_summary_recalculated",
                extra={"order_id": str(order.id), "balance": summary.balance},
            )
            return summary

    def _refresh_order_of(self, model: LedgerEntryModel) -> OrderLedgerSummary:
        return self._summaries.refresh(self._orders.get_order_model(model.order_id))
