"""
SequenceService -- counters behind payment numbers and audit ordering.

Two counters exist: ``payment_number`` (rendered as ``PAY-00001``) and
``payment_audit`` (the ``seq`` column that orders audit rows written at the
same instant).  Each is one row in ``ledger_counters``, locked with
``SELECT ... FOR UPDATE`` while it is bumped, so numbers are never derived
from MAX(column) + 1 and a rolled-back transaction hands its number back.

Kernel > Services.  Flushes, never commits.
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from ledger_kernel.db.base import Base
from ledger_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class LedgerCounter(Base):
    __tablename__ = "ledger_counters"

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    last_issued: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


class SequenceService:
    PAYMENT_NUMBER = "payment_number"
    AUDIT_ENTRY = "payment_audit"

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, name: str) -> LedgerCounter:
        stmt = (
            select(LedgerCounter)
            .where(LedgerCounter.name == name)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        counter = self._session.scalars(stmt).one_or_none()
        if counter is None:
            # First use; a concurrent creator loses on the unique name.
            counter = LedgerCounter(name=name, last_issued=0)
            self._session.add(counter)
        return counter

    def next_value(self, name: str) -> int:
        """Issue the next value of counter ``name`` (starting at 1)."""
        counter = self._locked_counter(name)
        counter.last_issued += 1
        self._session.flush()

        logger.debug("counter_issued", extra={"counter": name, "value": counter.last_issued})
        return counter.last_issued
