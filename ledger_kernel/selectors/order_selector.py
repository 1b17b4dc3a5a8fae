"""
OrderSelector -- read-only lookups of orders and their change orders.

Architecture position:
    Kernel > Selectors.  Never adds, flushes or commits.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.change_orders import ChangeOrder
from ledger_kernel.domain.summary import BalanceStatus
from ledger_kernel.exceptions import ChangeOrderNotFoundError, OrderNotFoundError
from ledger_kernel.models.change_order import ChangeOrderModel
from ledger_kernel.models.order import OrderModel


class OrderSelector:
    def __init__(self, session: Session):
        self.session = session

    def get_order_model(self, order_id: UUID) -> OrderModel:
        order = self.session.get(OrderModel, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def orders_with_stored_status(self, status: BalanceStatus) -> list[OrderModel]:
        """Orders whose persisted summary carries ``status``, by order number.

        The status lives inside the summary JSON and is matched in Python,
        so the query runs unchanged on every supported database.
        """
        rows = self.session.execute(
            select(OrderModel)
            .where(OrderModel.ledger_summary.is_not(None))
            .order_by(OrderModel.order_number)
        ).scalars().all()
        return [r for r in rows if (r.ledger_summary or {}).get("balance_status") == status.value]

    def change_orders_for_order(self, order_id: UUID) -> list[ChangeOrder]:
        """Every change order of the order, in any status, lowest number first."""
        rows = self.session.execute(
            select(ChangeOrderModel)
            .where(ChangeOrderModel.order_id == order_id)
            .order_by(ChangeOrderModel.change_order_number)
        ).scalars().all()
        return [r.to_dto() for r in rows]

    def get_change_order(self, change_order_id: UUID) -> ChangeOrder:
        model = self.session.get(ChangeOrderModel, change_order_id)
        if model is None:
            raise ChangeOrderNotFoundError(change_order_id)
        return model.to_dto()
