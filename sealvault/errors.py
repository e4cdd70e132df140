"""
Exception hierarchy for sealvault.

Every error carries the ids involved in ``details`` so a caller can retry or
investigate. Nothing in this package retries automatically.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class SealVaultError(Exception):
    """Base class for all sealvault errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


# ============================================================================
# Ledger / policy errors
# ============================================================================

class TransactionFailure(SealVaultError):
    """The ledger rejected a transaction, or the ledger could not be reached."""

    def __init__(self, message: str, digest: Optional[str] = None, **details: Any):
        if digest:
            details["digest"] = digest
        super().__init__(message, details)
        self.digest = digest


class AuthorizationDenied(SealVaultError):
    """The supplied Cap does not control the target Whitelist."""

    def __init__(self, whitelist_id: str, cap_id: str, reason: str = ""):
        super().__init__(
            f"Cap {cap_id} does not control whitelist {whitelist_id}"
            + (f": {reason}" if reason else ""),
            {"whitelist_id": whitelist_id, "cap_id": cap_id},
        )
        self.whitelist_id = whitelist_id
        self.cap_id = cap_id


class LinkageNotFound(SealVaultError):
    """A successful policy transaction did not create the expected objects."""

    def __init__(self, object_type: str, digest: Optional[str] = None):
        super().__init__(
            f"No {object_type} object created in transaction",
            {"object_type": object_type, "digest": digest},
        )
        self.object_type = object_type


class NotFound(SealVaultError):
    """A content id, object id or whitelist id could not be resolved."""

    def __init__(self, kind: str, identifier: str):
        super().__init__(f"{kind} not found: {identifier}", {"kind": kind, "id": identifier})
        self.kind = kind
        self.identifier = identifier


# ============================================================================
# Encryption errors
# ============================================================================

class PolicyCreationFailed(SealVaultError):
    """The whitelist/cap pair for a new encryption could not be set up."""


class EncryptionFailed(SealVaultError):
    """The threshold encryption service could not encrypt the payload."""


class DecryptionFailed(SealVaultError):
    """Base class for the terminal failure states of a decrypt attempt."""


class AccessDenied(DecryptionFailed):
    """The requester is not a current member of the whitelist."""

    def __init__(self, whitelist_id: str, address: str, reason: str = ""):
        super().__init__(
            f"Address {address} is not allowed to decrypt data for whitelist {whitelist_id}"
            + (f": {reason}" if reason else ""),
            {"whitelist_id": whitelist_id, "address": address},
        )
        self.whitelist_id = whitelist_id
        self.address = address


class InsufficientShares(DecryptionFailed):
    """Fewer than ``threshold`` key servers returned a key share."""

    def __init__(self, identity: str, received: int, threshold: int, errors: Optional[List[str]] = None):
        super().__init__(
            f"Only {received} of {threshold} required key shares collected for {identity}",
            {"identity": identity, "received": received, "threshold": threshold, "errors": errors or []},
        )
        self.received = received
        self.threshold = threshold


class ExpiredSessionProof(DecryptionFailed):
    """The session proof's time-to-live elapsed before shares were collected."""

    def __init__(self, address: str, expired_at: str):
        super().__init__(
            f"Session proof for {address} expired at {expired_at}",
            {"address": address, "expired_at": expired_at},
        )
        self.address = address


# ============================================================================
# Storage errors
# ============================================================================

class BlobStoreError(SealVaultError):
    """The blob store failed an upload, download or attribute call."""


class LinkageFailed(SealVaultError):
    """Upload succeeded but the policy attributes could not be attached."""

    def __init__(self, object_id: str, content_id: str, reason: str = ""):
        super().__init__(
            f"Object {object_id} was stored but its access linkage could not be attached"
            + (f": {reason}" if reason else ""),
            {"object_id": object_id, "content_id": content_id},
        )
        self.object_id = object_id
        self.content_id = content_id


class LinkageMissing(SealVaultError):
    """A stored object has no recorded whitelist id (orphaned object)."""

    def __init__(self, object_id: str):
        super().__init__(
            f"Object {object_id} has no whitelistId/capId attributes",
            {"object_id": object_id},
        )
        self.object_id = object_id


class InsufficientFunds(SealVaultError):
    """Pre-flight balance check before ``store`` failed."""

    def __init__(self, shortfalls: Dict[str, str]):
        listed = ", ".join(f"{asset}: {text}" for asset, text in shortfalls.items())
        super().__init__(
            f"Insufficient balance to store file. Please top up your account. ({listed})",
            {"shortfalls": shortfalls},
        )
        self.shortfalls = shortfalls


class TransferFailed(SealVaultError):
    """The ownership transfer transaction did not succeed."""

    def __init__(self, object_id: str, destination: str, reason: str = ""):
        super().__init__(
            f"Failed to send {object_id} to {destination}" + (f": {reason}" if reason else ""),
            {"object_id": object_id, "destination": destination},
        )
        self.object_id = object_id
        self.destination = destination
