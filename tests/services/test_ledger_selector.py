"""
Tests for LedgerSelector listing and candidate queries.
"""

from datetime import date, datetime, timedelta, timezone
from uuid import uuid4

import pytest

from ledger_kernel.domain.entries import (
    EntryFilters,
    EntryStatus,
    PageRequest,
    PaymentMethod,
    TransactionType,
)
from ledger_kernel.exceptions import EntryNotFoundError
from ledger_kernel.selectors.ledger_selector import LedgerSelector


@pytest.fixture
def selector(session):
    return LedgerSelector(session)


def _list(selector, filters=EntryFilters(), page=PageRequest()):
    return selector.list_entries(filters, page, default_limit=50, max_limit=100)


class TestListEntries:
    def test_newest_first(self, selector, order, insert_entry):
        first = insert_entry(order, "10.00")
        second = insert_entry(order, "20.00")

        page = _list(selector)

        assert [e.id for e in page.entries] == [second.id, first.id]
        assert page.total == 2
        assert not page.has_more

    def test_voided_hidden_unless_asked(self, selector, order, insert_entry):
        insert_entry(order, "10.00")
        insert_entry(order, "20.00", EntryStatus.VOIDED)

        assert _list(selector).total == 1
        assert _list(selector, EntryFilters(include_voided=True)).total == 2
        assert _list(selector, EntryFilters(status=EntryStatus.VOIDED)).total == 1

    def test_filters_by_order_status_and_type(self, selector, create_order, insert_entry):
        a, b = create_order(), create_order()
        insert_entry(a, "10.00", EntryStatus.PENDING)
        insert_entry(a, "20.00", transaction_type=TransactionType.REFUND)
        insert_entry(b, "30.00")

        assert _list(selector, EntryFilters(order_id=a.id)).total == 2
        assert _list(selector, EntryFilters(status=EntryStatus.PENDING)).total == 1
        assert _list(selector, EntryFilters(transaction_type=TransactionType.REFUND)).total == 1

    def test_end_date_is_inclusive(self, selector, order, insert_entry, deterministic_clock):
        deterministic_clock.set_time(datetime(2024, 3, 5, 23, 30, tzinfo=timezone.utc))
        insert_entry(order, "10.00")
        deterministic_clock.set_time(datetime(2024, 3, 6, 0, 30, tzinfo=timezone.utc))
        insert_entry(order, "20.00")

        page = _list(selector, EntryFilters(start=date(2024, 3, 5), end=date(2024, 3, 5)))

        assert page.total == 1
        assert str(page.entries[0].amount) == "10.00"

    def test_search_is_case_insensitive(self, selector, create_order, insert_entry):
        order = create_order(order_number="ORD-ACME-7")
        insert_entry(order, "10.00", external_payment_id="pi_XyZ")
        insert_entry(create_order(), "20.00")

        assert _list(selector, EntryFilters(search="acme")).total == 1
        assert _list(selector, EntryFilters(search="PI_xyz")).total == 1

    def test_paging_and_limit_cap(self, selector, order, insert_entry):
        for _ in range(5):
            insert_entry(order, "1.00")

        first = _list(selector, page=PageRequest(limit=2))
        last = _list(selector, page=PageRequest(limit=2, offset=4))
        capped = selector.list_entries(EntryFilters(), PageRequest(limit=1000), 50, 3)

        assert len(first.entries) == 2 and first.has_more
        assert len(last.entries) == 1 and not last.has_more
        assert capped.limit == 3

    @pytest.mark.parametrize("limit", [-1, -50])
    def test_negative_limit_cannot_lift_the_cap(self, selector, order, insert_entry, limit):
        for _ in range(5):
            insert_entry(order, "1.00")

        page = selector.list_entries(EntryFilters(), PageRequest(limit=limit), 50, 3)

        assert page.limit == 1
        assert len(page.entries) == 1
        assert page.total == 5
        assert page.has_more

    @pytest.mark.parametrize("needle", ["_", "%"])
    def test_search_wildcards_match_literally(self, selector, create_order, insert_entry, needle):
        insert_entry(create_order(order_number="ORD-100"), "10.00")
        insert_entry(create_order(order_number="ORD-200"), "20.00", external_payment_id=f"pi{needle}9")

        page = _list(selector, EntryFilters(search=needle))

        assert page.total == 1
        assert page.entries[0].external_payment_id == f"pi{needle}9"

    def test_get_unknown_entry(self, selector):
        with pytest.raises(EntryNotFoundError):
            selector.get(uuid4())


class TestReconciliationCandidates:
    def test_cleared_processor_methods_or_external_id(self, selector, order, insert_entry):
        stripe_entry = insert_entry(order, "10.00", method=PaymentMethod.STRIPE)
        linked = insert_entry(order, "20.00", method=PaymentMethod.CHECK, external_payment_id="pi_9")
        insert_entry(order, "30.00", method=PaymentMethod.CASH)
        insert_entry(order, "40.00", EntryStatus.VOIDED, method=PaymentMethod.STRIPE)
        insert_entry(order, "50.00", EntryStatus.PENDING, method=PaymentMethod.STRIPE)

        found = selector.reconciliation_candidates(["stripe"])

        assert {e.id for e in found} == {stripe_entry.id, linked.id}

    def test_window_bounds(self, selector, order, insert_entry):
        early = insert_entry(order, "10.00", method=PaymentMethod.STRIPE)
        late = insert_entry(order, "20.00", method=PaymentMethod.STRIPE)

        found = selector.reconciliation_candidates(["stripe"], start=late.created_at)
        before = selector.reconciliation_candidates(
            ["stripe"], end=late.created_at,
        )

        assert [e.id for e in found] == [late.id]
        assert [e.id for e in before] == [early.id]
        assert late.created_at - early.created_at == timedelta(seconds=1)
