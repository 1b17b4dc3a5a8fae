"""
ORM-Level Append-Only Enforcement for the payment ledger.

===============================================================================
HOW IT WORKS
===============================================================================

SQLAlchemy fires mapper events before UPDATE/DELETE operations reach the
database.  Listeners registered here inspect attribute history and raise
ImmutabilityViolationError before any SQL is sent:

    session.flush()
         |
         v
    [before_update] --> _check_*_immutability() --> ImmutabilityViolationError
         |
    [before_delete] --> _check_*_delete() --------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity             | Rule
-------------------|----------------------------------------------------------
PaymentAudit       | ALWAYS immutable, never deleted
LedgerEntry        | Never deleted.  Only LEDGER_ENTRY_MUTABLE_FIELDS may
                   | change, and ``status`` only along a lifecycle edge.

Lifecycle writes from EntryLifecycleService go through a guarded
``UPDATE ... WHERE status = :expected`` statement; these listeners catch
every other path that loads an entry and edits it in Python.

===============================================================================
USAGE
===============================================================================

    from ledger_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

    unregister_immutability_listeners()  # TESTS ONLY
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from ledger_kernel.exceptions import ImmutabilityViolationError
from ledger_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


# Fields that may change on a ledger entry after creation
LEDGER_ENTRY_MUTABLE_FIELDS = frozenset({
    "status",
    "method",
    "notes",
    "proof_file",
    "approved_by",
    "approved_at",
    "voided_by",
    "voided_at",
    "void_reason",
    "external_payment_id",
    "external_verified",
    "external_amount",
})


def _blocked(entity_type: str, entity_id, operation: str, reason: str, field: str | None = None):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
            "field": field,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _check_ledger_entry_immutability(mapper, connection, target):
    """
    Allow only lifecycle fields to change, and status only forward.
    """
    from ledger_kernel.domain.entries import EntryStatus, can_transition

    insp = inspect(target)
    for attr in insp.attrs:
        if attr.key in LEDGER_ENTRY_MUTABLE_FIELDS:
            continue
        if attr.history.has_changes():
            _blocked(
                "LedgerEntry",
                target.id,
                "UPDATE",
                f"Cannot modify field '{attr.key}' on a ledger entry",
                field=attr.key,
            )

    status_history = get_history(target, "status")
    if status_history.deleted and status_history.added:
        old_status = EntryStatus(status_history.deleted[0])
        new_status = EntryStatus(status_history.added[0])
        if old_status != new_status and not can_transition(old_status, new_status):
            _blocked(
                "LedgerEntry",
                target.id,
                "UPDATE",
                f"Status cannot move from {old_status.value} to {new_status.value}",
                field="status",
            )


def _check_ledger_entry_delete(mapper, connection, target):
    """Ledger entries are voided, never deleted."""
    _blocked(
        "LedgerEntry",
        target.id,
        "DELETE",
        "Ledger entries cannot be deleted; void them instead",
    )


def _check_audit_immutability(mapper, connection, target):
    """Audit rows are immutable from creation."""
    insp = inspect(target)
    for attr in insp.attrs:
        if attr.history.has_changes():
            _blocked(
                "PaymentAudit",
                target.id,
                "UPDATE",
                "Audit rows are append-only",
                field=attr.key,
            )


def _check_audit_delete(mapper, connection, target):
    _blocked(
        "PaymentAudit",
        target.id,
        "DELETE",
        "Audit rows cannot be deleted",
    )


def register_immutability_listeners():
    """
    Register all append-only enforcement listeners.

    Call once after the models are imported and before any writes.
    Registering twice is harmless.
    """
    from ledger_kernel.models.audit_entry import PaymentAuditModel
    from ledger_kernel.models.ledger_entry import LedgerEntryModel

    for target, event_name, listener_fn in _listeners(LedgerEntryModel, PaymentAuditModel):
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if it was never registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove the enforcement listeners.

    WARNING: Only use this in tests that deliberately break the rules.
    """
    from ledger_kernel.models.audit_entry import PaymentAuditModel
    from ledger_kernel.models.ledger_entry import LedgerEntryModel

    for target, event_name, listener_fn in _listeners(LedgerEntryModel, PaymentAuditModel):
        _safe_remove_listener(target, event_name, listener_fn)


def _listeners(ledger_entry_model, audit_model):
    return (
        (ledger_entry_model, "before_update", _check_ledger_entry_immutability),
        (ledger_entry_model, "before_delete", _check_ledger_entry_delete),
        (audit_model, "before_update", _check_audit_immutability),
        (audit_model, "before_delete", _check_audit_delete),
    )
