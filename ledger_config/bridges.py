"""
Config -> Kernel Bridges.

Turn LedgerSettings into kernel value objects.  These live in
ledger_config (the producer) because the kernel never imports
ledger_config.

Usage:
    from ledger_config import get_active_settings
    from ledger_config.bridges import approval_policy_from_settings

    policy = approval_policy_from_settings(get_active_settings())
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from decimal import Decimal

from ledger_config.schema import LedgerSettings
from ledger_kernel.domain.approval import ApprovalPolicy
from ledger_kernel.domain.entries import PaymentMethod


def approval_policy_from_settings(
    settings: LedgerSettings,
    environ: Mapping[str, str] | None = None,
) -> ApprovalPolicy:
    """Build the approval policy; the code is read from the environment only.

    An unset or blank variable yields a policy under which no code is valid.
    """
    env = os.environ if environ is None else environ
    code = (env.get(settings.approval.approval_code_env) or "").strip() or None
    return ApprovalPolicy(
        elevated_roles=frozenset(settings.approval.elevated_roles),
        approval_code=code,
    )


def processor_methods_from_settings(settings: LedgerSettings) -> frozenset[PaymentMethod]:
    return frozenset(PaymentMethod(m) for m in settings.reconciliation.processor_methods)


def database_url_from_settings(
    settings: LedgerSettings,
    environ: Mapping[str, str] | None = None,
) -> str:
    env = os.environ if environ is None else environ
    return env.get(settings.database.url_env) or settings.database.default_url


def stripe_api_key_from_settings(
    settings: LedgerSettings,
    environ: Mapping[str, str] | None = None,
) -> str | None:
    env = os.environ if environ is None else environ
    return env.get(settings.processor.stripe_api_key_env) or None


def reconciliation_epsilon_from_settings(settings: LedgerSettings) -> Decimal:
    return settings.reconciliation.epsilon
