"""Encrypted blob storage with ledger-held, capability-gated access control."""

from .accounts import Signer, WalletBalance
from .config import Settings, clear_settings_cache, get_settings
from .errors import (
    AccessDenied,
    AuthorizationDenied,
    BlobStoreError,
    DecryptionFailed,
    EncryptionFailed,
    ExpiredSessionProof,
    InsufficientFunds,
    InsufficientShares,
    LinkageFailed,
    LinkageMissing,
    LinkageNotFound,
    NotFound,
    PolicyCreationFailed,
    SealVaultError,
    TransactionFailure,
    TransferFailed,
)
from .log import configure_logging
from .service import SealedStorage
from .storage import Stored, StoredOrphaned

__version__ = "0.1.0"

__all__ = [
    "SealedStorage",
    "Signer",
    "WalletBalance",
    "Settings",
    "get_settings",
    "clear_settings_cache",
    "configure_logging",
    "Stored",
    "StoredOrphaned",
    "SealVaultError",
    "TransactionFailure",
    "AuthorizationDenied",
    "LinkageNotFound",
    "NotFound",
    "PolicyCreationFailed",
    "EncryptionFailed",
    "DecryptionFailed",
    "AccessDenied",
    "InsufficientShares",
    "ExpiredSessionProof",
    "BlobStoreError",
    "LinkageFailed",
    "LinkageMissing",
    "InsufficientFunds",
    "TransferFailed",
]
