"""
Processor reconciliation domain types.

Pure frozen dataclasses shared by ProcessorReconciliationEngine (pure
engine) and ReconciliationService (imperative shell).

Architecture: ledger_engines/reconciliation -- pure domain, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any
from uuid import UUID

from ledger_kernel.domain.money import from_minor_units, to_amount


class ReconciliationStatus(str, Enum):
    MATCHED = "matched"
    MISMATCH = "mismatch"
    MISSING_STRIPE = "missing_stripe"
    MISSING_LEDGER = "missing_ledger"


# Issues first, clean matches last
STATUS_ORDER: dict[ReconciliationStatus, int] = {
    ReconciliationStatus.MISMATCH: 0,
    ReconciliationStatus.MISSING_STRIPE: 1,
    ReconciliationStatus.MISSING_LEDGER: 2,
    ReconciliationStatus.MATCHED: 3,
}


# =============================================================================
# Input types (populated by service, consumed by engine)
# =============================================================================


@dataclass(frozen=True)
class ProcessorRecord:
    """One charge or refund as the processor reports it.

    ``amount`` is None for a malformed record (missing or unparseable
    amount); such a record can never match a ledger entry.
    """

    external_id: str | None
    amount: Decimal | None
    status: str
    kind: str = "payment"  # "payment" | "refund"
    created_at: datetime | None = None
    order_id: str | None = None
    problem: str | None = None

    @property
    def is_malformed(self) -> bool:
        return self.amount is None or not self.external_id

    @classmethod
    def from_raw(cls, raw: dict[str, Any], *, minor_units: bool = False) -> ProcessorRecord:
        """Build a record from a loosely-typed mapping without raising.

        Anything that cannot be read is kept and flagged in ``problem`` so
        it surfaces in the report rather than aborting the run.
        """
        external_id = raw.get("id") or None
        problem = None if external_id else "record has no id"
        amount: Decimal | None = None
        raw_amount = raw.get("amount")
        try:
            if raw_amount is None or isinstance(raw_amount, bool):
                raise ValueError(raw_amount)
            if isinstance(raw_amount, float):
                raw_amount = repr(raw_amount)
            amount = from_minor_units(int(raw_amount)) if minor_units else to_amount(raw_amount)
        except (InvalidOperation, TypeError, ValueError):
            problem = problem or f"unreadable amount {raw_amount!r}"
            amount = None
        created = raw.get("created_at")
        return cls(
            external_id=external_id,
            amount=amount,
            status=str(raw.get("status") or "unknown"),
            kind=str(raw.get("kind") or "payment"),
            created_at=created if isinstance(created, datetime) else None,
            order_id=raw.get("order_id"),
            problem=problem,
        )


@dataclass(frozen=True)
class ReconciliationWindow:
    """What to reconcile.

    ``start`` / ``end`` bound both the ledger entries (by ``created_at``)
    and the processor listing.  Unset bounds leave the ledger side open;
    the processor listing then falls back to the configured default window.
    ``limit`` truncates the returned rows, not the counts.
    """

    start: datetime | None = None
    end: datetime | None = None
    order_id: UUID | None = None
    limit: int | None = None


# =============================================================================
# Output types
# =============================================================================


@dataclass(frozen=True)
class ReconciliationEntry:
    status: ReconciliationStatus
    entry_type: str
    order_id: UUID | None = None
    order_number: str | None = None
    entry_id: UUID | None = None
    ledger_amount: Decimal | None = None
    external_id: str | None = None
    external_amount: Decimal | None = None
    external_status: str | None = None
    discrepancy_amount: Decimal | None = None
    details: str | None = None


@dataclass(frozen=True)
class ReconciliationReport:
    entries: tuple[ReconciliationEntry, ...]
    total_entries: int
    total_orders: int
    matched: int
    mismatched: int
    missing_stripe: int
    missing_ledger: int
    total_discrepancy: Decimal
    generated_at: datetime
    window_start: datetime | None = None
    window_end: datetime | None = None

    @property
    def is_clean(self) -> bool:
        return self.mismatched == 0 and self.missing_stripe == 0 and self.missing_ledger == 0

    def rows_with_status(self, status: ReconciliationStatus) -> tuple[ReconciliationEntry, ...]:
        return tuple(e for e in self.entries if e.status == status)
