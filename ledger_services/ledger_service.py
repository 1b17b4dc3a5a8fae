"""
ledger_services.ledger_service -- PaymentLedgerService, the public facade.

Responsibility:
    One object callers talk to: balance and refund reads, entry listing,
    the entry lifecycle, audit history, reconciliation and CSV export.  Wires the
    kernel services and engines from LedgerSettings.

Architecture position:
    Services -- the outermost layer.  Depends on ledger_config (settings
    and bridges), ledger_engines and ledger_kernel.

Usage:
    from ledger_kernel.db.engine import session_scope
    from ledger_services import PaymentLedgerService

    with session_scope() as session:
        ledger = PaymentLedgerService(session)
        entry = ledger.create_entry(order_id, "payment", "250.00", "check", actor)
        ledger.approve_entry(entry.id, manager, proof_file=proof)
        summary = ledger.compute_summary(order_id)
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_config import LedgerSettings, get_active_settings
from ledger_config.bridges import (
    approval_policy_from_settings,
    processor_methods_from_settings,
    reconciliation_epsilon_from_settings,
    stripe_api_key_from_settings,
)
from ledger_engines.reconciliation.types import ReconciliationReport, ReconciliationWindow
from ledger_kernel.domain.approval import Actor, ApprovalPolicy
from ledger_kernel.domain.change_orders import EffectiveValues
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.entries import (
    EntryFilters,
    EntryPage,
    LedgerEntry,
    PageRequest,
    PaymentMethod,
    ProofFile,
    TransactionType,
)
from ledger_kernel.domain.refunds import OverpaidOrders, RefundableAmount
from ledger_kernel.domain.summary import OrderLedgerSummary
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.selectors.order_selector import OrderSelector
from ledger_kernel.services.auditor_service import AuditorService, AuditTrail
from ledger_services import csv_export
from ledger_services.entry_lifecycle_service import PROCESSOR_ACTOR, EntryLifecycleService
from ledger_services.processor_sources import ProcessorRecordSource, StripeRecordSource
from ledger_services.proof_storage import ProofStorage, upload_proof
from ledger_services.reconciliation_service import ReconciliationService
from ledger_services.summary_service import SummaryService


class PaymentLedgerService:
    """
    Facade over the payment ledger.

    Contract:
        Every method works inside the caller's session and flushes; nothing
        here commits.  Typed LedgerKernelError subclasses propagate unchanged.
    """

    def __init__(
        self,
        session: Session,
        settings: LedgerSettings | None = None,
        *,
        clock: Clock | None = None,
        policy: ApprovalPolicy | None = None,
        record_source: ProcessorRecordSource | None = None,
        proof_storage: ProofStorage | None = None,
    ):
        self._session = session
        self._settings = settings or get_active_settings()
        self._clock = clock or SystemClock()
        self._policy = policy or approval_policy_from_settings(self._settings)
        self._record_source = record_source
        self._proof_storage = proof_storage

        self._summaries = SummaryService(session, self._clock)
        self._lifecycle = EntryLifecycleService(session, self._policy, self._clock)
        self._auditor = AuditorService(session, self._clock)
        self._entries = LedgerSelector(session)
        self._orders = OrderSelector(session)

    # =========================================================================
    # Reads
    # =========================================================================

    def compute_summary(self, order_id: UUID) -> OrderLedgerSummary:
        return self._summaries.compute(order_id)

    def resolve_effective_values(self, order_id: UUID) -> EffectiveValues:
        return self._summaries.effective_values(self._orders.get_order_model(order_id))

    def get_entry(self, entry_id: UUID) -> LedgerEntry:
        return self._entries.get(entry_id)

    def list_entries(
        self,
        filters: EntryFilters | None = None,
        page: PageRequest | None = None,
    ) -> EntryPage:
        listing = self._settings.listing
        return self._entries.list_entries(
            filters or EntryFilters(),
            page or PageRequest(),
            default_limit=listing.default_page_size,
            max_limit=listing.max_page_size,
        )

    def get_entry_history(self, entry_id: UUID) -> AuditTrail:
        self._entries.get_model(entry_id)
        return self._auditor.entry_history(entry_id)

    def get_order_history(self, order_id: UUID) -> AuditTrail:
        self._orders.get_order_model(order_id)
        return self._auditor.order_history(order_id)

    def refundable_amount(self, order_id: UUID) -> RefundableAmount:
        return self._summaries.refundable_amount(
            order_id, processor_methods_from_settings(self._settings),
        )

    def overpaid_orders(self) -> OverpaidOrders:
        return self._summaries.overpaid_orders()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def create_entry(
        self,
        order_id: UUID,
        transaction_type: TransactionType | str,
        amount: Decimal | str | int,
        method: PaymentMethod | str | None,
        actor: Actor,
        **options: Any,
    ) -> LedgerEntry:
        """Record a new entry.  ``options`` are EntryLifecycleService.create keywords."""
        return self._lifecycle.create(order_id, transaction_type, amount, method, actor, **options)

    def approve_entry(
        self,
        entry_id: UUID,
        actor: Actor,
        approval_code: str | None = None,
        method: PaymentMethod | str | None = None,
        proof_file: ProofFile | None = None,
        notes: str | None = None,
    ) -> LedgerEntry:
        return self._lifecycle.approve(
            entry_id, actor,
            approval_code=approval_code,
            method=method,
            proof_file=proof_file,
            notes=notes,
        )

    def verify_entry(
        self,
        entry_id: UUID,
        external_payment_id: str,
        external_amount: Decimal | str | int | None = None,
        external_event_id: str | None = None,
        actor: Actor = PROCESSOR_ACTOR,
    ) -> LedgerEntry:
        return self._lifecycle.verify(
            entry_id, external_payment_id, external_amount, external_event_id, actor,
        )

    def void_entry(self, entry_id: UUID, actor: Actor, reason: str) -> None:
        self._lifecycle.void(entry_id, actor, reason)

    def recalculate(self, order_id: UUID, actor: Actor) -> OrderLedgerSummary:
        return self._lifecycle.recalculate(order_id, actor)

    def upload_proof(
        self,
        data: bytes,
        name: str,
        content_type: str | None = None,
    ) -> ProofFile:
        if self._proof_storage is None:
            raise RuntimeError("No proof storage configured")
        return upload_proof(self._proof_storage, data, name, content_type, self._clock)

    # =========================================================================
    # Reconciliation and export
    # =========================================================================

    def _source(self) -> ProcessorRecordSource:
        if self._record_source is None:
            self._record_source = StripeRecordSource(
                stripe_api_key_from_settings(self._settings),
            )
        return self._record_source

    def reconcile(self, window: ReconciliationWindow | None = None) -> ReconciliationReport:
        recon = self._settings.reconciliation
        service = ReconciliationService(
            self._session,
            self._source(),
            epsilon=reconciliation_epsilon_from_settings(self._settings),
            processor_methods=processor_methods_from_settings(self._settings),
            default_window_days=recon.default_window_days,
            clock=self._clock,
        )
        return service.reconcile(window)

    def export_csv(self, entries: Iterable[LedgerEntry]) -> str:
        return csv_export.export_csv(entries)
