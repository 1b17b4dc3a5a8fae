"""
Pytest fixtures for the payment ledger test suite.

Provides:
- An in-memory SQLite engine with the ledger tables, created once per run
- A per-test session inside an outer transaction that is rolled back
- A deterministic clock, settings and wired services
- Factories for orders, change orders and ledger entries
- Captured structured logs

Environment Variables:
- DATABASE_URL: run the suite against another database (e.g. PostgreSQL).
  Defaults to in-memory SQLite.
"""

import json
import logging
import os
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from ledger_config import DEFAULT_SETTINGS_FILE, load_settings
from ledger_kernel.db.engine import drop_tables, init_ledger_database, reset_engine
from ledger_kernel.domain.approval import Actor, ApprovalPolicy
from ledger_kernel.domain.change_orders import ChangeOrderStatus, ChangeOrderValues
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.domain.entries import (
    EntryStatus,
    LedgerCategory,
    LedgerEntry,
    PaymentMethod,
    TransactionType,
)
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_kernel.models.change_order import ChangeOrderModel
from ledger_kernel.models.order import OrderModel
from ledger_kernel.services.ledger_writer import LedgerWriter
from ledger_services.entry_lifecycle_service import EntryLifecycleService
from ledger_services.ledger_service import PaymentLedgerService
from ledger_services.processor_sources import StaticRecordSource
from ledger_services.summary_service import SummaryService

TEST_APPROVAL_CODE = "4242-test"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ledger_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, lifecycle):
            lifecycle.create(...)
            logs = captured_logs()
            assert any(r["message"] == "ledger_entry_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ledger_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Session-scoped DB infrastructure
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    engine = init_ledger_database(os.environ.get("DATABASE_URL", "sqlite://"))
    yield engine
    drop_tables()
    reset_engine()


@pytest.fixture(scope="function")
def session(db_engine) -> Generator[Session, None, None]:
    """Session joined to an outer transaction that is rolled back at teardown.

    Services only flush, so nothing a test writes survives it.
    """
    conn = db_engine.connect()
    trans = conn.begin()
    sess = Session(bind=conn, expire_on_commit=False)
    yield sess
    try:
        sess.close()
    finally:
        try:
            trans.rollback()
        finally:
            conn.close()


# =============================================================================
# Clock, settings, actors
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 3, 1, 9, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings():
    return load_settings(DEFAULT_SETTINGS_FILE)


@pytest.fixture
def policy() -> ApprovalPolicy:
    return ApprovalPolicy(
        elevated_roles=frozenset({"manager", "admin"}),
        approval_code=TEST_APPROVAL_CODE,
    )


@pytest.fixture
def approval_code() -> str:
    return TEST_APPROVAL_CODE


@pytest.fixture
def clerk() -> Actor:
    return Actor(id="user-clerk", email="clerk@example.com", role="sales")


@pytest.fixture
def manager() -> Actor:
    return Actor(id="user-manager", email="manager@example.com", role="manager")


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def create_order(session, deterministic_clock):
    """Factory for orders; amounts accept strings."""
    counter = {"n": 0}

    def _create(
        deposit: str = "1000.00",
        subtotal: str = "5000.00",
        fluff: str = "0.00",
        order_number: str | None = None,
        payment_status: str | None = None,
    ) -> OrderModel:
        counter["n"] += 1
        order = OrderModel(
            order_number=order_number or f"ORD-{counter['n']:04d}",
            customer_name="Test Customer",
            subtotal_before_tax=Decimal(subtotal),
            extra_money_fluff=Decimal(fluff),
            deposit=Decimal(deposit),
            payment_status=payment_status,
            created_at=deterministic_clock.now(),
        )
        session.add(order)
        session.flush()
        return order

    return _create


@pytest.fixture
def order(create_order) -> OrderModel:
    return create_order()


@pytest.fixture
def create_change_order(session, deterministic_clock):
    def _create(
        order: OrderModel,
        number: int,
        deposit: str,
        status: ChangeOrderStatus = ChangeOrderStatus.PENDING_SIGNATURE,
        subtotal: str = "6000.00",
        fluff: str = "0.00",
    ) -> ChangeOrderModel:
        values = ChangeOrderValues(
            subtotal_before_tax=Decimal(subtotal),
            extra_money_fluff=Decimal(fluff),
            deposit=Decimal(deposit),
        )
        model = ChangeOrderModel(
            order_id=order.id,
            change_order_number=number,
            status=status.value,
            new_values=values.to_dict(),
            deposit_diff=Decimal(deposit) - order.deposit,
            reason=f"change order {number}",
            created_at=deterministic_clock.now(),
        )
        session.add(model)
        session.flush()
        return model

    return _create


@pytest.fixture
def insert_entry(session, deterministic_clock):
    """Write an entry row directly in any status, bypassing the lifecycle."""
    writer = LedgerWriter(session)

    def _insert(
        order: OrderModel,
        amount: str,
        status: EntryStatus = EntryStatus.APPROVED,
        transaction_type: TransactionType = TransactionType.PAYMENT,
        method: PaymentMethod | None = PaymentMethod.CHECK,
        external_payment_id: str | None = None,
    ) -> LedgerEntry:
        model = writer.insert(
            order=order,
            transaction_type=transaction_type,
            category=LedgerCategory.BALANCE_PAYMENT,
            amount=Decimal(amount),
            method=method,
            status=status,
            created_at=deterministic_clock.tick(),
            created_by="fixture",
            external_payment_id=external_payment_id,
        )
        return model.to_dto()

    return _insert


def make_entry(
    amount: str,
    status: EntryStatus = EntryStatus.APPROVED,
    transaction_type: TransactionType = TransactionType.PAYMENT,
    method: PaymentMethod | None = PaymentMethod.CHECK,
    external_payment_id: str | None = None,
    order_id=None,
    created_at: datetime | None = None,
) -> LedgerEntry:
    """Build a LedgerEntry DTO without touching the database."""
    return LedgerEntry(
        id=uuid4(),
        order_id=order_id or uuid4(),
        order_number="ORD-TEST",
        payment_number=f"PAY-{uuid4().int % 100000:05d}",
        transaction_type=transaction_type,
        category=LedgerCategory.BALANCE_PAYMENT,
        amount=Decimal(amount),
        method=method,
        status=status,
        created_at=created_at or datetime(2024, 3, 1, tzinfo=timezone.utc),
        created_by="tester",
        external_payment_id=external_payment_id,
    )


@pytest.fixture
def entry_factory():
    return make_entry


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def summary_service(session, deterministic_clock) -> SummaryService:
    return SummaryService(session, deterministic_clock)


@pytest.fixture
def lifecycle(session, policy, deterministic_clock) -> EntryLifecycleService:
    return EntryLifecycleService(session, policy, deterministic_clock)


@pytest.fixture
def record_source() -> StaticRecordSource:
    return StaticRecordSource()


@pytest.fixture
def ledger(session, settings, policy, deterministic_clock, record_source) -> PaymentLedgerService:
    return PaymentLedgerService(
        session,
        settings,
        clock=deterministic_clock,
        policy=policy,
        record_source=record_source,
    )
