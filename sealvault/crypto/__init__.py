"""Cryptography utilities: signatures, session proofs and threshold encryption."""

from .signatures import (
    sign_data,
    sign_data_b64,
    verify_signature,
    verify_signature_b64,
    address_from_public_key,
    compute_content_hash,
    compute_content_id,
)
from .session import SessionProof
from .threshold import IKeyServer, ShareRequest, ThresholdEncryptionService
from .coordinator import DecryptState, EncodeResult, EncryptionCoordinator

__all__ = [
    # Signatures
    "sign_data",
    "sign_data_b64",
    "verify_signature",
    "verify_signature_b64",
    "address_from_public_key",
    "compute_content_hash",
    "compute_content_id",
    # Threshold encryption
    "SessionProof",
    "IKeyServer",
    "ShareRequest",
    "ThresholdEncryptionService",
    "DecryptState",
    "EncodeResult",
    "EncryptionCoordinator",
]
