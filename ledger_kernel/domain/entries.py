"""
Ledger entry domain types (``ledger_kernel.domain.entries``).

Responsibility
--------------
Pure value objects for payment ledger entries: the transaction type,
method and status vocabularies, the entry lifecycle state machine, the
immutable ``LedgerEntry`` DTO, and the request objects used to list
entries.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* Lifecycle -- ``ENTRY_TRANSITIONS`` lists the only valid status edges.
  ``voided`` is terminal and reachable from every other status.
* Cleared set -- only ``verified`` and ``approved`` entries count toward
  received / refunded totals (``CLEARED_STATUSES``).
* Sign by type -- ``amount`` is always positive; the transaction type
  decides whether it adds to or subtracts from what was received.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


# =========================================================================
# Vocabularies
# =========================================================================


class TransactionType(str, Enum):
    """What an entry does to the money position of its order."""

    PAYMENT = "payment"
    REFUND = "refund"
    DEPOSIT_INCREASE = "deposit_increase"
    DEPOSIT_DECREASE = "deposit_decrease"

    @property
    def is_adjustment(self) -> bool:
        return self in (TransactionType.DEPOSIT_INCREASE, TransactionType.DEPOSIT_DECREASE)


class LedgerCategory(str, Enum):
    """Reporting label.  Never used in balance arithmetic."""

    INITIAL_DEPOSIT = "initial_deposit"
    ADDITIONAL_DEPOSIT = "additional_deposit"
    BALANCE_PAYMENT = "balance_payment"
    CHANGE_ORDER_DEPOSIT = "change_order_deposit"
    CHANGE_ORDER_ADJUSTMENT = "change_order_adjustment"
    REFUND = "refund"
    ADJUSTMENT = "adjustment"


class PaymentMethod(str, Enum):
    """How the money moved."""

    STRIPE = "stripe"
    CHECK = "check"
    CASH = "cash"
    WIRE = "wire"
    CREDIT_ON_FILE = "credit_on_file"
    OTHER = "other"


class EntryStatus(str, Enum):
    """Ledger entry lifecycle states."""

    PENDING = "pending"
    VERIFIED = "verified"
    APPROVED = "approved"
    VOIDED = "voided"


ENTRY_TRANSITIONS: dict[EntryStatus, frozenset[EntryStatus]] = {
    EntryStatus.PENDING: frozenset({
        EntryStatus.VERIFIED,
        EntryStatus.APPROVED,
        EntryStatus.VOIDED,
    }),
    EntryStatus.VERIFIED: frozenset({EntryStatus.VOIDED}),
    EntryStatus.APPROVED: frozenset({EntryStatus.VOIDED}),
    EntryStatus.VOIDED: frozenset(),
}

CLEARED_STATUSES: frozenset[EntryStatus] = frozenset({
    EntryStatus.VERIFIED,
    EntryStatus.APPROVED,
})

PROOF_REQUIRED_METHODS: frozenset[PaymentMethod] = frozenset({
    PaymentMethod.CHECK,
    PaymentMethod.WIRE,
})

NOTES_REQUIRED_METHODS: frozenset[PaymentMethod] = frozenset({
    PaymentMethod.OTHER,
})

DEFAULT_CATEGORY: dict[TransactionType, LedgerCategory] = {
    TransactionType.PAYMENT: LedgerCategory.BALANCE_PAYMENT,
    TransactionType.REFUND: LedgerCategory.REFUND,
    TransactionType.DEPOSIT_INCREASE: LedgerCategory.ADJUSTMENT,
    TransactionType.DEPOSIT_DECREASE: LedgerCategory.ADJUSTMENT,
}

PAYMENT_NUMBER_PREFIX = "PAY"


def can_transition(current: EntryStatus, target: EntryStatus) -> bool:
    """Return True if ``current -> target`` is an edge of the lifecycle."""
    return target in ENTRY_TRANSITIONS.get(current, frozenset())


def format_payment_number(value: int) -> str:
    """Render a payment counter value as ``PAY-00001``."""
    return f"{PAYMENT_NUMBER_PREFIX}-{value:05d}"


# =========================================================================
# Value objects
# =========================================================================


@dataclass(frozen=True)
class ProofFile:
    """Reference to an uploaded proof document.  The bytes live elsewhere."""

    url: str
    name: str
    uploaded_at: datetime
    content_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "name": self.name,
            "uploaded_at": self.uploaded_at.isoformat(),
            "content_type": self.content_type,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProofFile:
        return cls(
            url=data["url"],
            name=data["name"],
            uploaded_at=datetime.fromisoformat(data["uploaded_at"]),
            content_type=data.get("content_type"),
        )


@dataclass(frozen=True)
class LedgerEntry:
    """Immutable snapshot of one ledger row.

    ``deposit_at_time`` and ``balance_after`` are informational snapshots
    taken at creation; balance math never reads them.
    """

    id: UUID
    order_id: UUID
    order_number: str
    payment_number: str
    transaction_type: TransactionType
    category: LedgerCategory
    amount: Decimal
    method: PaymentMethod | None
    status: EntryStatus
    created_at: datetime
    created_by: str
    description: str = ""
    notes: str | None = None
    external_payment_id: str | None = None
    external_verified: bool = False
    external_amount: Decimal | None = None
    proof_file: ProofFile | None = None
    change_order_id: UUID | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None
    voided_by: str | None = None
    voided_at: datetime | None = None
    void_reason: str | None = None
    deposit_at_time: Decimal | None = None
    balance_after: Decimal | None = None

    @property
    def is_cleared(self) -> bool:
        return self.status in CLEARED_STATUSES

    @property
    def is_pending(self) -> bool:
        return self.status == EntryStatus.PENDING

    @property
    def is_voided(self) -> bool:
        return self.status == EntryStatus.VOIDED


# =========================================================================
# Listing requests
# =========================================================================


@dataclass(frozen=True)
class EntryFilters:
    """Explicit filter parameters for listing entries.

    ``end`` given as a ``date`` is inclusive through the end of that day.
    Voided entries are hidden unless ``include_voided`` is set or
    ``status`` asks for them.
    """

    order_id: UUID | None = None
    status: EntryStatus | None = None
    transaction_type: TransactionType | None = None
    start: datetime | date | None = None
    end: datetime | date | None = None
    search: str | None = None
    include_voided: bool = False


@dataclass(frozen=True)
class PageRequest:
    limit: int | None = None
    offset: int = 0


@dataclass(frozen=True)
class EntryPage:
    """One page of entries, newest first."""

    entries: tuple[LedgerEntry, ...]
    total: int
    limit: int
    offset: int
    has_more: bool = field(default=False)
