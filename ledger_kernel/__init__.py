"""
Ledger Kernel

An append-only payment ledger for sales orders with:
- Derived (never hand-edited) order balances
- Change-order aware deposit requirements
- Guarded entry lifecycle with an append-only audit trail
- Reconciliation against an external payment processor
"""

__version__ = "0.1.0"
