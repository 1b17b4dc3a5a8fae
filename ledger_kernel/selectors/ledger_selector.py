"""
LedgerSelector -- read-only queries over ledger entries.

Responsibility:
    Loads entries for balance computation, pages through entries for the
    caller-facing listing, and picks the candidates reconciliation looks at.

Architecture position:
    Kernel > Selectors.  Never adds, flushes or commits.  Returns frozen
    LedgerEntry DTOs.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, time, timedelta, timezone
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from ledger_kernel.domain.entries import (
    CLEARED_STATUSES,
    EntryFilters,
    EntryPage,
    EntryStatus,
    LedgerEntry,
    PageRequest,
)
from ledger_kernel.exceptions import EntryNotFoundError
from ledger_kernel.models.ledger_entry import LedgerEntryModel


def _as_start(value: datetime | date) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _as_end_exclusive(value: datetime | date) -> datetime:
    """Upper bound; a bare date covers the whole of that day."""
    if isinstance(value, datetime):
        return value
    return datetime.combine(value + timedelta(days=1), time.min, tzinfo=timezone.utc)


class LedgerSelector:
    def __init__(self, session: Session):
        self.session = session

    def get_model(self, entry_id: UUID) -> LedgerEntryModel:
        model = self.session.get(LedgerEntryModel, entry_id)
        if model is None:
            raise EntryNotFoundError(entry_id)
        return model

    def get(self, entry_id: UUID) -> LedgerEntry:
        return self.get_model(entry_id).to_dto()

    def entries_for_order(self, order_id: UUID) -> list[LedgerEntry]:
        """Every entry of the order, voided included, oldest first."""
        rows = self.session.execute(
            select(LedgerEntryModel)
            .where(LedgerEntryModel.order_id == order_id)
            .order_by(LedgerEntryModel.created_at, LedgerEntryModel.payment_number)
        ).scalars().all()
        return [r.to_dto() for r in rows]

    def list_entries(
        self,
        filters: EntryFilters,
        page: PageRequest,
        default_limit: int,
        max_limit: int,
    ) -> EntryPage:
        """Filtered, newest-first page of entries plus the total match count."""
        limit = max(min(page.limit or default_limit, max_limit), 1)
        offset = max(page.offset, 0)

        conditions = []
        if filters.order_id is not None:
            conditions.append(LedgerEntryModel.order_id == filters.order_id)
        if filters.status is not None:
            conditions.append(LedgerEntryModel.status == filters.status.value)
        elif not filters.include_voided:
            conditions.append(LedgerEntryModel.status != EntryStatus.VOIDED.value)
        if filters.transaction_type is not None:
            conditions.append(
                LedgerEntryModel.transaction_type == filters.transaction_type.value
            )
        if filters.start is not None:
            conditions.append(LedgerEntryModel.created_at >= _as_start(filters.start))
        if filters.end is not None:
            conditions.append(LedgerEntryModel.created_at < _as_end_exclusive(filters.end))
        if filters.search:
            needle = f"%{_escape_like(filters.search.strip().lower())}%"
            conditions.append(
                or_(
                    func.lower(LedgerEntryModel.order_number).like(needle, escape="\\"),
                    func.lower(LedgerEntryModel.external_payment_id).like(needle, escape="\\"),
                    func.lower(LedgerEntryModel.payment_number).like(needle, escape="\\"),
                    func.lower(LedgerEntryModel.description).like(needle, escape="\\"),
                )
            )

        total = self.session.execute(
            select(func.count()).select_from(LedgerEntryModel).where(*conditions)
        ).scalar_one()

        rows = self.session.execute(
            select(LedgerEntryModel)
            .where(*conditions)
            .order_by(LedgerEntryModel.created_at.desc(), LedgerEntryModel.payment_number.desc())
            .limit(limit)
            .offset(offset)
        ).scalars().all()

        return EntryPage(
            entries=tuple(r.to_dto() for r in rows),
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + len(rows) < total,
        )

    def reconciliation_candidates(
        self,
        processor_methods: Iterable[str],
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[LedgerEntry]:
        """Cleared entries paid through a processor or carrying an external id."""
        methods = list(processor_methods)
        query = (
            select(LedgerEntryModel)
            .where(LedgerEntryModel.status.in_([s.value for s in CLEARED_STATUSES]))
            .where(
                or_(
                    LedgerEntryModel.method.in_(methods),
                    LedgerEntryModel.external_payment_id.is_not(None),
                )
            )
        )
        if start is not None:
            query = query.where(LedgerEntryModel.created_at >= start)
        if end is not None:
            query = query.where(LedgerEntryModel.created_at < end)
        rows = self.session.execute(
            query.order_by(LedgerEntryModel.created_at, LedgerEntryModel.payment_number)
        ).scalars().all()
        return [r.to_dto() for r in rows]
