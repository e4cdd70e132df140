"""
Digital Signature Module

Ed25519 signatures for transactions and decrypt session proofs, plus the
hashing helpers used for content ids and ledger addresses.
"""

import base64
import hashlib

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

# Signature scheme flag prepended to the public key before hashing it into an address.
ED25519_FLAG = 0x00


def sign_data(data: bytes, private_key: Ed25519PrivateKey) -> bytes:
    """
    Sign data with Ed25519.

    Args:
        data: The raw bytes to sign (transaction bytes or a session message)
        private_key: The signer's Ed25519 private key

    Returns:
        The 64-byte signature
    """
    return private_key.sign(data)


def verify_signature(data: bytes, signature: bytes, public_key_bytes: bytes) -> bool:
    """
    Verify an Ed25519 signature.

    Args:
        data: The original data that was signed
        signature: The signature to verify
        public_key_bytes: Raw 32-byte Ed25519 public key of the signer

    Returns:
        True if signature is valid, False otherwise
    """
    try:
        public_key = Ed25519PublicKey.from_public_bytes(public_key_bytes)
        public_key.verify(signature, data)
        return True
    except (InvalidSignature, ValueError):
        return False


def sign_data_b64(data: bytes, private_key: Ed25519PrivateKey) -> str:
    """Sign data and return base64-encoded signature."""
    return base64.b64encode(sign_data(data, private_key)).decode("ascii")


def verify_signature_b64(data: bytes, signature_b64: str, public_key_bytes: bytes) -> bool:
    """Verify a base64-encoded signature."""
    return verify_signature(data, base64.b64decode(signature_b64), public_key_bytes)


def public_key_raw(public_key: Ed25519PublicKey) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def address_from_public_key(public_key_bytes: bytes) -> str:
    """Derive the 0x-prefixed 32-byte ledger address of an Ed25519 public key."""
    digest = hashlib.blake2b(bytes([ED25519_FLAG]) + public_key_bytes, digest_size=32)
    return "0x" + digest.hexdigest()


def compute_content_hash(data: bytes) -> bytes:
    """Compute SHA-256 hash of blob data."""
    digest = hashes.Hash(hashes.SHA256())
    digest.update(data)
    return digest.finalize()


def compute_content_id(data: bytes) -> str:
    """Content id of a blob: unpadded URL-safe base64 of its SHA-256 hash."""
    return base64.urlsafe_b64encode(compute_content_hash(data)).decode("ascii").rstrip("=")
