"""
ProcessorReconciliationEngine -- ledger vs. processor comparison.

Pure engine: receives ledger entries and processor records, returns a
ReconciliationReport.  No I/O, no clock, no mutation of either side.

Classification per considered ledger entry (cleared, so verified or
approved, and either paid through a processor method or carrying an
external id).  Pending entries wait for their processor confirmation and
are not compared:

    missing_stripe  no external id, the id is unknown to the processor,
                    or the processor record is malformed
    matched         abs(ledger - external) < epsilon
    mismatch        otherwise; discrepancy = ledger - external

Every processor record no ledger entry claimed becomes a missing_ledger
row.  Rows are ordered issues first: mismatch, missing_stripe,
missing_ledger, matched.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from decimal import Decimal

from ledger_engines.reconciliation.types import (
    STATUS_ORDER,
    ProcessorRecord,
    ReconciliationEntry,
    ReconciliationReport,
    ReconciliationStatus,
)
from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.entries import LedgerEntry, PaymentMethod, TransactionType
from ledger_kernel.domain.money import CENT, ZERO, total
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.reconciliation")


def _entry_type(entry: LedgerEntry) -> str:
    if entry.transaction_type == TransactionType.REFUND:
        return "refund"
    if entry.transaction_type == TransactionType.PAYMENT:
        return "payment"
    return entry.transaction_type.value


class ProcessorReconciliationEngine:
    """Matches ledger entries to processor records by external id."""

    def __init__(
        self,
        epsilon: Decimal = CENT,
        processor_methods: Iterable[PaymentMethod] = (PaymentMethod.STRIPE,),
    ):
        self._epsilon = epsilon
        self._processor_methods = frozenset(processor_methods)

    def is_candidate(self, entry: LedgerEntry) -> bool:
        if not entry.is_cleared:
            return False
        return entry.method in self._processor_methods or bool(entry.external_payment_id)

    @traced_engine(
        "processor_reconciliation",
        "1.0",
        describe=lambda report: {
            "total_entries": report.total_entries,
            "issues": report.mismatched + report.missing_stripe + report.missing_ledger,
        },
    )
    def reconcile(
        self,
        entries: Sequence[LedgerEntry],
        records: Sequence[ProcessorRecord],
        generated_at: datetime,
        window_start: datetime | None = None,
        window_end: datetime | None = None,
    ) -> ReconciliationReport:
        by_id: dict[str, ProcessorRecord] = {}
        unclaimed: list[ProcessorRecord] = []
        for record in records:
            if record.external_id and record.external_id not in by_id:
                by_id[record.external_id] = record
            else:
                unclaimed.append(record)

        claimed: set[str] = set()
        rows: list[ReconciliationEntry] = []
        order_ids = set()
        considered = [e for e in entries if self.is_candidate(e)]

        for entry in considered:
            order_ids.add(entry.order_id)
            rows.append(self._classify(entry, by_id, claimed))

        for external_id, record in by_id.items():
            if external_id not in claimed:
                unclaimed.append(record)

        for record in unclaimed:
            rows.append(
                ReconciliationEntry(
                    status=ReconciliationStatus.MISSING_LEDGER,
                    entry_type=record.kind,
                    order_id=None,
                    external_id=record.external_id,
                    external_amount=record.amount,
                    external_status=record.status,
                    details=record.problem or "No ledger entry for processor record",
                )
            )

        rows.sort(key=lambda r: STATUS_ORDER[r.status])

        counts = {status: 0 for status in ReconciliationStatus}
        for row in rows:
            counts[row.status] += 1

        total_discrepancy = total(
            abs(r.discrepancy_amount)
            for r in rows
            if r.status == ReconciliationStatus.MISMATCH and r.discrepancy_amount is not None
        )

        report = ReconciliationReport(
            entries=tuple(rows),
            total_entries=len(considered),
            total_orders=len(order_ids),
            matched=counts[ReconciliationStatus.MATCHED],
            mismatched=counts[ReconciliationStatus.MISMATCH],
            missing_stripe=counts[ReconciliationStatus.MISSING_STRIPE],
            missing_ledger=counts[ReconciliationStatus.MISSING_LEDGER],
            total_discrepancy=total_discrepancy,
            generated_at=generated_at,
            window_start=window_start,
            window_end=window_end,
        )
        return report

    def _classify(
        self,
        entry: LedgerEntry,
        by_id: dict[str, ProcessorRecord],
        claimed: set[str],
    ) -> ReconciliationEntry:
        base = dict(
            entry_type=_entry_type(entry),
            order_id=entry.order_id,
            order_number=entry.order_number,
            entry_id=entry.id,
            ledger_amount=entry.amount,
            external_id=entry.external_payment_id,
        )

        if not entry.external_payment_id:
            return ReconciliationEntry(
                status=ReconciliationStatus.MISSING_STRIPE,
                details="No processor payment ID recorded",
                **base,
            )

        record = by_id.get(entry.external_payment_id)
        if record is None:
            return ReconciliationEntry(
                status=ReconciliationStatus.MISSING_STRIPE,
                details="Processor record not found",
                **base,
            )

        claimed.add(entry.external_payment_id)

        if record.amount is None:
            logger.warning(
                "processor_record_malformed",
                extra={"external_id": record.external_id, "problem": record.problem},
            )
            return ReconciliationEntry(
                status=ReconciliationStatus.MISSING_STRIPE,
                external_status=record.status,
                details=f"Processor record unusable: {record.problem}",
                **base,
            )

        discrepancy = entry.amount - record.amount
        if abs(discrepancy) < self._epsilon:
            return ReconciliationEntry(
                status=ReconciliationStatus.MATCHED,
                external_amount=record.amount,
                external_status=record.status,
                discrepancy_amount=ZERO,
                **base,
            )
        return ReconciliationEntry(
            status=ReconciliationStatus.MISMATCH,
            external_amount=record.amount,
            external_status=record.status,
            discrepancy_amount=discrepancy,
            details=f"Ledger: {entry.amount:.2f}, processor: {record.amount:.2f}",
            **base,
        )
