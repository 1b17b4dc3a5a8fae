"""
ledger_services.reconciliation_service -- compare the ledger with the processor.

Responsibility:
    Gathers the candidate ledger entries and the processor records for a
    window and hands both to ProcessorReconciliationEngine.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    Composes ProcessorReconciliationEngine (pure) with LedgerSelector
    (kernel reads) and a ProcessorRecordSource (external I/O).

Invariants enforced:
    - Read-only: never writes to the ledger or to the processor.
    - A single bad processor record becomes a report row; only an
      unreachable source aborts the run.

Failure modes:
    - ReconciliationSourceUnavailableError: the processor cannot be read.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from datetime import timedelta
from decimal import Decimal

from sqlalchemy.orm import Session

from ledger_engines.reconciliation.engine import ProcessorReconciliationEngine
from ledger_engines.reconciliation.types import (
    ProcessorRecord,
    ReconciliationReport,
    ReconciliationWindow,
)
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.entries import PaymentMethod
from ledger_kernel.domain.money import CENT
from ledger_kernel.exceptions import ReconciliationSourceUnavailableError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_services.processor_sources import ProcessorRecordSource

logger = get_logger("services.reconciliation")


class ReconciliationService:
    """
    Runs a reconciliation over one window.

    Window handling:
        Ledger entries are bounded only by the bounds the caller gave.  The
        processor listing always needs bounds; missing ones default to the
        last ``default_window_days`` days.  Ledger entries referring to
        processor ids outside the listing are looked up one by one.
    """

    def __init__(
        self,
        session: Session,
        source: ProcessorRecordSource,
        *,
        epsilon: Decimal = CENT,
        processor_methods: Iterable[PaymentMethod] = (PaymentMethod.STRIPE,),
        default_window_days: int = 30,
        clock: Clock | None = None,
    ):
        self._source = source
        self._clock = clock or SystemClock()
        self._selector = LedgerSelector(session)
        self._processor_methods = frozenset(processor_methods)
        self._engine = ProcessorReconciliationEngine(epsilon, self._processor_methods)
        self._default_window = timedelta(days=default_window_days)

    def _read_source(self, operation: str, call, *args) -> list[ProcessorRecord]:
        try:
            return list(call(*args))
        except ReconciliationSourceUnavailableError:
            raise
        except (ConnectionError, TimeoutError, OSError) as exc:
            logger.error(
                "processor_source_unreachable",
                extra={"operation": operation, "error": str(exc)},
            )
            raise ReconciliationSourceUnavailableError(self._source.name, str(exc)) from exc

    def reconcile(self, window: ReconciliationWindow | None = None) -> ReconciliationReport:
        window = window or ReconciliationWindow()
        now = self._clock.now()
        list_end = window.end or now
        list_start = window.start or (list_end - self._default_window)

        with LogContext.bind(
            source=self._source.name,
            order_id=str(window.order_id) if window.order_id else None,
        ):
            entries = self._selector.reconciliation_candidates(
                [m.value for m in self._processor_methods], window.start, window.end,
            )
            if window.order_id is not None:
                entries = [e for e in entries if e.order_id == window.order_id]

            records = self._read_source("list_records", self._source.list_records, list_start, list_end)

            listed = {r.external_id for r in records if r.external_id}
            referenced = {e.external_payment_id for e in entries if e.external_payment_id}
            unlisted = sorted(referenced - listed)
            if unlisted:
                records += self._read_source("fetch_records", self._source.fetch_records, unlisted)

            if window.order_id is not None:
                order_key = str(window.order_id)
                records = [
                    r for r in records
                    if r.external_id in referenced or r.order_id == order_key
                ]

            report = self._engine.reconcile(
                entries, records, now, window_start=list_start, window_end=list_end,
            )
            if window.limit is not None:
                report = replace(report, entries=report.entries[: max(window.limit, 0)])

            logger.info(
                "reconciliation_completed",
                extra={
                    "total_entries": report.total_entries,
                    "matched": report.matched,
                    "mismatched": report.mismatched,
                    "missing_stripe": report.missing_stripe,
                    "missing_ledger": report.missing_ledger,
                    "total_discrepancy": report.total_discrepancy,
                    "record_count": len(records),
                },
            )
            return report
