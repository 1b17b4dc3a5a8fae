"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
TYPED EXCEPTIONS
===============================================================================

Every failure the ledger can report has its own exception class with:
  1. A CODE class attribute (machine-readable, API-safe)
  2. Structured attributes carrying the context (entry id, status, ...)
  3. A human-readable message for logs

Callers catch by type and read attributes; they never parse messages:

    try:
        ledger.approve_entry(entry_id, actor)
    except ProofRequiredError as e:
        return {"error": e.code, "entry_id": str(e.entry_id), "method": e.method}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerKernelError (base)
    |
    +-- NotFoundError
    |   +-- EntryNotFoundError
    |   +-- OrderNotFoundError
    |   +-- ChangeOrderNotFoundError
    |
    +-- InvalidStateTransitionError
    |
    +-- PreconditionFailedError
    |   +-- ProofRequiredError
    |   +-- NotesRequiredError
    |   +-- ApprovalCodeInvalidError
    |   +-- MethodRequiredError
    |   +-- VoidReasonRequiredError
    |   +-- InvalidEntryError
    |
    +-- ReconciliationSourceUnavailableError
    |
    +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|-----------------------------------------
Lookup          | ENTRY_NOT_FOUND               | Ledger entry id does not exist
                | ORDER_NOT_FOUND               | Order id does not exist
                | CHANGE_ORDER_NOT_FOUND        | Change order id does not exist
----------------|-------------------------------|-----------------------------------------
Lifecycle       | INVALID_STATE_TRANSITION      | Edge not allowed, or lost a status race
----------------|-------------------------------|-----------------------------------------
Precondition    | PROOF_REQUIRED                | check / wire approved without proof
                | NOTES_REQUIRED                | method "other" approved without notes
                | APPROVAL_CODE_INVALID         | Actor lacks role and valid code
                | METHOD_REQUIRED               | Approval with no payment method
                | VOID_REASON_REQUIRED          | Void with a blank reason
                | INVALID_ENTRY                 | Non-positive amount, bad type
----------------|-------------------------------|-----------------------------------------
Reconciliation  | RECONCILIATION_SOURCE_UNAVAILABLE | Processor records cannot be read
----------------|-------------------------------|-----------------------------------------
Store           | IMMUTABILITY_VIOLATION        | Forbidden UPDATE/DELETE on ledger rows

===============================================================================
"""

from uuid import UUID


class LedgerKernelError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_KERNEL_ERROR"


# Lookup exceptions


class NotFoundError(LedgerKernelError):
    """Base exception for missing records."""

    code: str = "NOT_FOUND"


class EntryNotFoundError(NotFoundError):
    """Ledger entry with given ID was not found."""

    code: str = "ENTRY_NOT_FOUND"

    def __init__(self, entry_id: UUID | str):
        self.entry_id = entry_id
        super().__init__(f"Ledger entry not found: {entry_id}")


class OrderNotFoundError(NotFoundError):
    """Order with given ID was not found."""

    code: str = "ORDER_NOT_FOUND"

    def __init__(self, order_id: UUID | str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class ChangeOrderNotFoundError(NotFoundError):
    """Change order with given ID was not found."""

    code: str = "CHANGE_ORDER_NOT_FOUND"

    def __init__(self, change_order_id: UUID | str):
        self.change_order_id = change_order_id
        super().__init__(f"Change order not found: {change_order_id}")


# Lifecycle exceptions


class InvalidStateTransitionError(LedgerKernelError):
    """
    Requested status change is not an edge of the entry lifecycle.

    Also raised when a compare-and-set on the entry status loses to a
    concurrent writer: the stored status no longer equals the status the
    caller read.
    """

    code: str = "INVALID_STATE_TRANSITION"

    def __init__(
        self,
        entry_id: UUID | str,
        from_status: str,
        to_status: str,
        reason: str | None = None,
    ):
        self.entry_id = entry_id
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        message = f"Cannot move ledger entry {entry_id} from {from_status} to {to_status}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


# Precondition exceptions


class PreconditionFailedError(LedgerKernelError):
    """Base exception for lifecycle preconditions that were not met."""

    code: str = "PRECONDITION_FAILED"


class ProofRequiredError(PreconditionFailedError):
    """Check and wire payments need a proof file before approval."""

    code: str = "PROOF_REQUIRED"

    def __init__(self, entry_id: UUID | str, method: str):
        self.entry_id = entry_id
        self.method = method
        super().__init__(
            f"Proof file required to approve {method} payment {entry_id}"
        )


class NotesRequiredError(PreconditionFailedError):
    """Payments recorded with method 'other' need explanatory notes."""

    code: str = "NOTES_REQUIRED"

    def __init__(self, entry_id: UUID | str):
        self.entry_id = entry_id
        super().__init__(f"Notes required to approve payment {entry_id}")


class ApprovalCodeInvalidError(PreconditionFailedError):
    """Actor holds neither an elevated role nor a valid approval code."""

    code: str = "APPROVAL_CODE_INVALID"

    def __init__(self, actor_id: str, entry_id: UUID | str | None = None):
        self.actor_id = actor_id
        self.entry_id = entry_id
        super().__init__(
            f"Actor {actor_id} is not authorized to approve payment {entry_id}"
        )


class MethodRequiredError(PreconditionFailedError):
    """Approval needs a resolved payment method."""

    code: str = "METHOD_REQUIRED"

    def __init__(self, entry_id: UUID | str):
        self.entry_id = entry_id
        super().__init__(f"Payment method required to approve payment {entry_id}")


class VoidReasonRequiredError(PreconditionFailedError):
    """Voiding needs a non-empty reason."""

    code: str = "VOID_REASON_REQUIRED"

    def __init__(self, entry_id: UUID | str):
        self.entry_id = entry_id
        super().__init__(f"Void reason required for ledger entry {entry_id}")


class InvalidEntryError(PreconditionFailedError):
    """Entry input failed validation (non-positive amount, unknown type)."""

    code: str = "INVALID_ENTRY"

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid ledger entry {field}={value!r}: {reason}")


# Reconciliation exceptions


class ReconciliationSourceUnavailableError(LedgerKernelError):
    """The external processor record source could not be read."""

    code: str = "RECONCILIATION_SOURCE_UNAVAILABLE"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Processor records unavailable from {source}: {reason}")


# Store-level exceptions


class ImmutabilityViolationError(LedgerKernelError):
    """
    Attempted to modify or delete an append-only record.

    Audit rows are immutable from creation.  Ledger entries may only change
    their lifecycle fields, and never be deleted.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
