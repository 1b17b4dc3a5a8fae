"""
ledger_services.summary_service -- derive and persist order ledger summaries.

Responsibility:
    Resolves an order's effective pricing (order or live change order),
    runs the balance calculator over the order's full entry set, and
    writes the result to the order row together with the synced payment
    status.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    Composes resolve_effective_values and BalanceCalculator (pure engines)
    with OrderSelector / LedgerSelector (kernel reads).

Invariants enforced:
    - The stored summary is replaced whole on every refresh, never patched.
    - Every refresh reads the complete current entry set of the order.
    - ``compute``, ``refundable_amount`` and ``overpaid_orders`` never write.

Failure modes:
    - OrderNotFoundError if the order does not exist.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_engines.balance import BalanceCalculator
from ledger_engines.change_orders import resolve_effective_values
from ledger_engines.refunds import compute_refundable
from ledger_kernel.domain.change_orders import EffectiveValues
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.entries import LedgerEntry, PaymentMethod
from ledger_kernel.domain.refunds import OverpaidOrder, OverpaidOrders, RefundableAmount
from ledger_kernel.domain.summary import (
    BalanceStatus,
    OrderLedgerSummary,
    OrderPaymentStatus,
    sync_payment_status,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.order import OrderModel
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.selectors.order_selector import OrderSelector

logger = get_logger("services.summary")


class SummaryService:
    """
    Computes and persists the derived money position of one order.

    Contract:
        ``compute(order_id)`` is a pure read.  ``refresh(order)`` recomputes
        and stores.  Both produce the same summary for the same entries.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._orders = OrderSelector(session)
        self._entries = LedgerSelector(session)
        self._calculator = BalanceCalculator()

    def effective_values(self, order: OrderModel) -> EffectiveValues:
        return resolve_effective_values(
            order.to_pricing(),
            self._orders.change_orders_for_order(order.id),
        )

    def _summarize(
        self,
        order: OrderModel,
        entries: list[LedgerEntry] | None = None,
    ) -> OrderLedgerSummary:
        if entries is None:
            entries = self._entries.entries_for_order(order.id)
        return self._calculator.calculate(
            self.effective_values(order), entries, self._clock.now(),
        )

    def compute(self, order_id: UUID) -> OrderLedgerSummary:
        """Current summary of the order without persisting anything."""
        return self._summarize(self._orders.get_order_model(order_id))

    def refundable_amount(
        self,
        order_id: UUID,
        processor_methods: Iterable[PaymentMethod] = (PaymentMethod.STRIPE,),
    ) -> RefundableAmount:
        """Overpaid amount of the order, split into processor and manual refunds."""
        order = self._orders.get_order_model(order_id)
        entries = self._entries.entries_for_order(order.id)
        summary = self._summarize(order, entries)
        return compute_refundable(
            order_id=order.id,
            balance=summary.balance,
            entries=entries,
            processor_methods=processor_methods,
        )

    def overpaid_orders(self) -> OverpaidOrders:
        """Orders whose stored summary is overpaid, with the total overpayment."""
        found = []
        for order in self._orders.orders_with_stored_status(BalanceStatus.OVERPAID):
            summary = order.stored_summary()
            found.append(
                OverpaidOrder(
                    order_id=order.id,
                    order_number=order.order_number,
                    customer_name=order.customer_name,
                    balance=summary.balance,
                )
            )
        result = OverpaidOrders(orders=tuple(found))
        logger.info(
            "overpaid_orders_listed",
            extra={"count": result.count, "total_overpaid": result.total_overpaid},
        )
        return result

    def refresh(self, order: OrderModel) -> OrderLedgerSummary:
        """Recompute the order summary and store it on the order row."""
        summary = self._summarize(order)

        current = OrderPaymentStatus(order.payment_status) if order.payment_status else None
        synced = sync_payment_status(current, summary)

        order.ledger_summary = summary.to_dict()
        order.summary_updated_at = summary.calculated_at
        if synced != current:
            order.payment_status = synced.value if synced else None
            logger.info(
                "order_payment_status_synced",
                extra={
                    "order_id": str(order.id),
                    "previous_payment_status": current.value if current else None,
                    "payment_status": synced.value if synced else None,
                },
            )
        self._session.flush()

        logger.info(
            "order_summary_refreshed",
            extra={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "balance": summary.balance,
                "balance_status": summary.balance_status.value,
                "net_received": summary.net_received,
                "entry_count": summary.entry_count,
            },
        )
        return summary
