"""
Approval policy (``ledger_kernel.domain.approval``).

Responsibility
--------------
Decides whether an actor may clear a manually recorded payment.  Managers
(any role in ``elevated_roles``) always may; anyone else must present the
configured manager approval code.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  The approval
code itself is read from the environment by ``ledger_config`` and handed
in through ``ApprovalPolicy``.

Invariants enforced
-------------------
* No configured code means no code is valid.  There is no fallback code.
* Codes are compared in constant time.
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass


@dataclass(frozen=True)
class Actor:
    """The authenticated user performing a ledger operation."""

    id: str
    email: str | None = None
    role: str | None = None
    approval_code: str | None = None

    def with_code(self, approval_code: str | None) -> Actor:
        """Return a copy carrying ``approval_code`` (if one is given)."""
        if approval_code is None:
            return self
        return Actor(
            id=self.id,
            email=self.email,
            role=self.role,
            approval_code=approval_code,
        )


@dataclass(frozen=True)
class ApprovalPolicy:
    elevated_roles: frozenset[str] = frozenset({"manager", "admin"})
    approval_code: str | None = None

    def is_elevated(self, actor: Actor) -> bool:
        return actor.role is not None and actor.role.lower() in self.elevated_roles

    def code_is_valid(self, code: str | None) -> bool:
        if not self.approval_code or not code:
            return False
        return hmac.compare_digest(code.encode("utf-8"), self.approval_code.encode("utf-8"))

    def can_approve(self, actor: Actor) -> bool:
        """True if ``actor`` may approve a pending manual entry."""
        return self.is_elevated(actor) or self.code_is_valid(actor.approval_code)
