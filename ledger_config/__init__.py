"""
ledger_config -- single public entrypoint for payment ledger settings.

Responsibility:
    ``get_active_settings()`` is the only way runtime code obtains
    settings.  It reads ``defaults.yaml`` (or the file named by
    ``LEDGER_SETTINGS_FILE``) once and caches the frozen result.

Architecture position:
    Configuration -- sits above ``ledger_kernel`` and below
    ``ledger_services``.  The kernel MUST NEVER import from
    ``ledger_config``; ``bridges`` translates settings into kernel values.

Failure modes:
    - ``FileNotFoundError`` -- the configured settings file is missing.
    - ``ValueError`` -- a value failed validation.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path

from ledger_config.loader import load_settings
from ledger_config.schema import LedgerSettings

_logger = logging.getLogger("ledger_kernel.config")

DEFAULT_SETTINGS_FILE = Path(__file__).parent / "defaults.yaml"
SETTINGS_FILE_ENV = "LEDGER_SETTINGS_FILE"

_active: LedgerSettings | None = None
_lock = threading.Lock()


def get_active_settings() -> LedgerSettings:
    """Return the process-wide settings, loading them on first use."""
    global _active
    with _lock:
        if _active is None:
            path = Path(os.environ.get(SETTINGS_FILE_ENV) or DEFAULT_SETTINGS_FILE)
            _active = load_settings(path)
            _logger.info(
                "LEDGER_CONFIG_LOADED",
                extra={
                    "settings_file": str(path),
                    "default_page_size": _active.listing.default_page_size,
                    "reconciliation_epsilon": str(_active.reconciliation.epsilon),
                },
            )
        return _active


def reset_active_settings() -> None:
    """Forget the cached settings. FOR TESTING ONLY."""
    global _active
    with _lock:
        _active = None


__all__ = [
    "DEFAULT_SETTINGS_FILE",
    "LedgerSettings",
    "get_active_settings",
    "load_settings",
    "reset_active_settings",
]
