"""SQLAlchemy ORM models for the payment ledger."""

from ledger_kernel.models.audit_entry import PaymentAuditModel
from ledger_kernel.models.change_order import ChangeOrderModel
from ledger_kernel.models.ledger_entry import LedgerEntryModel
from ledger_kernel.models.order import OrderModel

__all__ = [
    "ChangeOrderModel",
    "LedgerEntryModel",
    "OrderModel",
    "PaymentAuditModel",
]
