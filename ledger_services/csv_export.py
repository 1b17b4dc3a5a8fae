"""
CSV export of ledger entries.

One row per non-voided entry in the order given, stable column order,
amounts as fixed two-decimal strings.  Uses the standard library ``csv``
writer so quoting follows RFC 4180.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from ledger_kernel.domain.entries import LedgerEntry
from ledger_kernel.domain.money import CENT

CSV_COLUMNS = (
    "payment_number",
    "created_at",
    "order_number",
    "transaction_type",
    "category",
    "method",
    "status",
    "amount",
    "external_payment_id",
    "description",
    "created_by",
    "approved_by",
)


def format_amount(value: Decimal) -> str:
    return f"{value.quantize(CENT, rounding=ROUND_HALF_UP):.2f}"


def _row(entry: LedgerEntry) -> list[str]:
    return [
        entry.payment_number,
        entry.created_at.isoformat(),
        entry.order_number,
        entry.transaction_type.value,
        entry.category.value,
        entry.method.value if entry.method else "",
        entry.status.value,
        format_amount(entry.amount),
        entry.external_payment_id or "",
        entry.description or "",
        entry.created_by,
        entry.approved_by or "",
    ]


def export_csv(entries: Iterable[LedgerEntry]) -> str:
    """Render entries as CSV text with a header row."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for entry in entries:
        if entry.is_voided:
            continue
        writer.writerow(_row(entry))
    return buffer.getvalue()
