"""
Proof document upload boundary.

The ledger stores a ProofFile reference only; the bytes go to whatever
ProofStorage the caller wires in (object store, document service, ...).
"""

from __future__ import annotations

from typing import Protocol

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.entries import ProofFile
from ledger_kernel.exceptions import InvalidEntryError
from ledger_kernel.logging_config import get_logger

logger = get_logger("services.proof_storage")


class ProofStorage(Protocol):
    def upload(self, data: bytes, name: str, content_type: str | None = None) -> str:
        """Store ``data`` and return the URL it can be fetched from."""
        ...


class InMemoryProofStorage:
    """Keeps uploads in a dict keyed by a ``memory://`` URL."""

    def __init__(self):
        self.objects: dict[str, bytes] = {}

    def upload(self, data: bytes, name: str, content_type: str | None = None) -> str:
        url = f"memory://proofs/{len(self.objects) + 1}/{name}"
        self.objects[url] = data
        return url


def upload_proof(
    storage: ProofStorage,
    data: bytes,
    name: str,
    content_type: str | None = None,
    clock: Clock | None = None,
) -> ProofFile:
    """Upload a proof document and return the reference to attach to an entry."""
    if not data:
        raise InvalidEntryError("proof_file", name, "empty upload")
    if not (name or "").strip():
        raise InvalidEntryError("proof_file", name, "file name is required")
    url = storage.upload(data, name, content_type)
    proof = ProofFile(
        url=url,
        name=name,
        uploaded_at=(clock or SystemClock()).now(),
        content_type=content_type,
    )
    logger.info(
        "proof_uploaded",
        extra={"proof_name": name, "size_bytes": len(data), "url": url},
    )
    return proof
