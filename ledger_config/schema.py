"""
Settings schema (``ledger_config.schema``).

Frozen dataclasses mirroring the YAML layout.  Every field has a default so
a partial YAML file only overrides what it names.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class ApprovalSettings:
    elevated_roles: tuple[str, ...] = ("manager", "admin")
    approval_code_env: str = "MANAGER_APPROVAL_CODE"


@dataclass(frozen=True)
class ReconciliationSettings:
    epsilon: Decimal = Decimal("0.01")
    default_window_days: int = 30
    processor_methods: tuple[str, ...] = ("stripe",)


@dataclass(frozen=True)
class ListingSettings:
    default_page_size: int = 50
    max_page_size: int = 500


@dataclass(frozen=True)
class DatabaseSettings:
    url_env: str = "DATABASE_URL"
    default_url: str = "sqlite:///payment_ledger.db"


@dataclass(frozen=True)
class ProcessorSettings:
    stripe_api_key_env: str = "STRIPE_SECRET_KEY"


@dataclass(frozen=True)
class LedgerSettings:
    approval: ApprovalSettings = field(default_factory=ApprovalSettings)
    reconciliation: ReconciliationSettings = field(default_factory=ReconciliationSettings)
    listing: ListingSettings = field(default_factory=ListingSettings)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    processor: ProcessorSettings = field(default_factory=ProcessorSettings)
