"""
Processor record sources -- where reconciliation reads the processor's side.

Responsibility:
    Lists the charges and refunds the payment processor knows about for a
    time window, and looks up individual records by id.  Every raw record is
    turned into a ProcessorRecord; anything unreadable is kept as a
    malformed record instead of raising.

Architecture position:
    Services -- I/O adapters consumed by ReconciliationService.

Failure modes:
    - ReconciliationSourceUnavailableError when the processor cannot be
      reached or rejects the request.  A missing individual record is not
      an error.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any, Protocol

import stripe

from ledger_engines.reconciliation.types import ProcessorRecord
from ledger_kernel.exceptions import ReconciliationSourceUnavailableError
from ledger_kernel.logging_config import get_logger

logger = get_logger("services.processor_sources")


class ProcessorRecordSource(Protocol):
    """Read access to the processor's records."""

    name: str

    def list_records(self, start: datetime, end: datetime) -> list[ProcessorRecord]:
        ...

    def fetch_records(self, external_ids: Iterable[str]) -> list[ProcessorRecord]:
        """Records for the given ids; ids the processor does not know are skipped."""
        ...


class StaticRecordSource:
    """In-memory records, for replaying an export and for tests."""

    name = "static"

    def __init__(self, records: Iterable[ProcessorRecord | dict[str, Any]] = ()):
        self._records = [
            r if isinstance(r, ProcessorRecord) else ProcessorRecord.from_raw(r)
            for r in records
        ]

    def list_records(self, start: datetime, end: datetime) -> list[ProcessorRecord]:
        return [
            r for r in self._records
            if r.created_at is None or start <= r.created_at <= end
        ]

    def fetch_records(self, external_ids: Iterable[str]) -> list[ProcessorRecord]:
        wanted = set(external_ids)
        return [r for r in self._records if r.external_id in wanted]


# Stripe object id prefixes this source knows how to retrieve.
_RETRIEVERS = {
    "pi_": "PaymentIntent",
    "re_": "Refund",
    "ch_": "Charge",
}


class StripeRecordSource:
    """
    Reads succeeded PaymentIntents and Refunds from Stripe.

    Amounts arrive in cents and are converted to Decimal dollars.  The
    ``order_id`` metadata key, when present, links a record to an order.
    """

    name = "stripe"

    def __init__(self, api_key: str | None, page_size: int = 100):
        if not api_key:
            raise ReconciliationSourceUnavailableError(self.name, "no Stripe API key configured")
        self._api_key = api_key
        self._page_size = page_size

    @staticmethod
    def _timestamp(value: Any) -> datetime | None:
        if value is None:
            return None
        return datetime.fromtimestamp(int(value), tz=timezone.utc)

    def _to_record(self, obj: Any, kind: str) -> ProcessorRecord:
        metadata = obj.get("metadata") or {}
        if kind == "refund":
            amount = obj.get("amount")
        else:
            amount = obj.get("amount_received") or obj.get("amount")
        return ProcessorRecord.from_raw(
            {
                "id": obj.get("id"),
                "amount": amount,
                "status": obj.get("status"),
                "kind": kind,
                "created_at": self._timestamp(obj.get("created")),
                "order_id": metadata.get("orderId") or metadata.get("order_id"),
            },
            minor_units=True,
        )

    def list_records(self, start: datetime, end: datetime) -> list[ProcessorRecord]:
        created = {"gte": int(start.timestamp()), "lte": int(end.timestamp())}
        records: list[ProcessorRecord] = []
        try:
            intents = stripe.PaymentIntent.list(
                created=created, limit=self._page_size, api_key=self._api_key,
            )
            for intent in intents.auto_paging_iter():
                if intent.get("status") == "succeeded":
                    records.append(self._to_record(intent, "payment"))

            refunds = stripe.Refund.list(
                created=created, limit=self._page_size, api_key=self._api_key,
            )
            for refund in refunds.auto_paging_iter():
                records.append(self._to_record(refund, "refund"))
        except stripe.StripeError as exc:
            logger.error(
                "processor_listing_failed",
                extra={"source": self.name, "error": str(exc)},
            )
            raise ReconciliationSourceUnavailableError(self.name, str(exc)) from exc

        logger.info(
            "processor_records_listed",
            extra={"source": self.name, "record_count": len(records)},
        )
        return records

    def fetch_records(self, external_ids: Iterable[str]) -> list[ProcessorRecord]:
        records: list[ProcessorRecord] = []
        for external_id in external_ids:
            resource = next(
                (name for prefix, name in _RETRIEVERS.items() if external_id.startswith(prefix)),
                None,
            )
            if resource is None:
                logger.debug(
                    "processor_record_id_unrecognized",
                    extra={"source": self.name, "external_id": external_id},
                )
                continue
            try:
                obj = getattr(stripe, resource).retrieve(external_id, api_key=self._api_key)
            except stripe.InvalidRequestError as exc:
                if getattr(exc, "code", None) == "resource_missing":
                    continue
                raise ReconciliationSourceUnavailableError(self.name, str(exc)) from exc
            except stripe.StripeError as exc:
                raise ReconciliationSourceUnavailableError(self.name, str(exc)) from exc
            records.append(self._to_record(obj, "refund" if resource == "Refund" else "payment"))
        return records
