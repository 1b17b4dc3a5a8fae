"""Read-only query helpers.  Selectors never write."""

from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.selectors.order_selector import OrderSelector

__all__ = ["LedgerSelector", "OrderSelector"]
