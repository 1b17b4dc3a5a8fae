"""
Settings loader (``ledger_config.loader``).

Responsibility
--------------
Reads a YAML file with PyYAML and parses it into a frozen
``LedgerSettings``.  Unknown sections are ignored; malformed values raise.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values (negative page size, non-positive epsilon)  -> ``ValueError``.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import (
    ApprovalSettings,
    DatabaseSettings,
    LedgerSettings,
    ListingSettings,
    ProcessorSettings,
    ReconciliationSettings,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file; an empty file yields an empty dict."""
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"Section '{name}' must be a mapping")
    return value


def _positive_int(value: Any, name: str) -> int:
    result = int(value)
    if result <= 0:
        raise ValueError(f"{name} must be positive, got {value!r}")
    return result


def parse_approval(data: dict[str, Any]) -> ApprovalSettings:
    defaults = ApprovalSettings()
    roles = data.get("elevated_roles", defaults.elevated_roles)
    return ApprovalSettings(
        elevated_roles=tuple(str(r).lower() for r in roles),
        approval_code_env=str(data.get("approval_code_env", defaults.approval_code_env)),
    )


def parse_reconciliation(data: dict[str, Any]) -> ReconciliationSettings:
    defaults = ReconciliationSettings()
    try:
        epsilon = Decimal(str(data.get("epsilon", defaults.epsilon)))
    except InvalidOperation as exc:
        raise ValueError(f"reconciliation.epsilon is not a number: {data.get('epsilon')!r}") from exc
    if epsilon <= 0:
        raise ValueError(f"reconciliation.epsilon must be positive, got {epsilon}")
    return ReconciliationSettings(
        epsilon=epsilon,
        default_window_days=_positive_int(
            data.get("default_window_days", defaults.default_window_days),
            "reconciliation.default_window_days",
        ),
        processor_methods=tuple(
            str(m) for m in data.get("processor_methods", defaults.processor_methods)
        ),
    )


def parse_listing(data: dict[str, Any]) -> ListingSettings:
    defaults = ListingSettings()
    default_size = _positive_int(
        data.get("default_page_size", defaults.default_page_size),
        "listing.default_page_size",
    )
    max_size = _positive_int(
        data.get("max_page_size", defaults.max_page_size),
        "listing.max_page_size",
    )
    if default_size > max_size:
        raise ValueError(
            f"listing.default_page_size ({default_size}) exceeds max_page_size ({max_size})"
        )
    return ListingSettings(default_page_size=default_size, max_page_size=max_size)


def parse_settings(data: dict[str, Any]) -> LedgerSettings:
    database = _section(data, "database")
    processor = _section(data, "processor")
    db_defaults = DatabaseSettings()
    return LedgerSettings(
        approval=parse_approval(_section(data, "approval")),
        reconciliation=parse_reconciliation(_section(data, "reconciliation")),
        listing=parse_listing(_section(data, "listing")),
        database=DatabaseSettings(
            url_env=str(database.get("url_env", db_defaults.url_env)),
            default_url=str(database.get("default_url", db_defaults.default_url)),
        ),
        processor=ProcessorSettings(
            stripe_api_key_env=str(
                processor.get("stripe_api_key_env", ProcessorSettings().stripe_api_key_env)
            ),
        ),
    )


def load_settings(path: Path | str) -> LedgerSettings:
    """Load and parse a settings YAML file."""
    return parse_settings(load_yaml_file(Path(path)))
