"""
Ciphertext envelope for threshold-encrypted payloads.

The payload is sealed with a random AES-256-GCM data key bound to the
encryption identity. The data key is split with Shamir sharing and each share
is wrapped to one key server's X25519 public key (ephemeral ECDH + HKDF +
AES-GCM), so encrypting never needs to contact the key servers.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple
import base64
import json
import os

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey, X25519PublicKey
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

ENVELOPE_VERSION = 1
DATA_KEY_BYTES = 32
_SHARE_WRAP_INFO = b"sealvault/share-wrap/v1"


# ============================================================================
# Crypto helpers
# ============================================================================

def encrypt_bytes_aes_gcm(plaintext: bytes, key: bytes, aad: bytes = b"") -> Tuple[bytes, bytes]:
    """
    Encrypt plaintext with AES-GCM. Returns (ciphertext_with_tag, nonce).
    """
    if len(key) not in (16, 24, 32):
        raise ValueError("AES-GCM key must be 128/192/256 bits")
    nonce = os.urandom(12)
    return AESGCM(key).encrypt(nonce, plaintext, aad or None), nonce


def decrypt_bytes_aes_gcm(ciphertext: bytes, nonce: bytes, key: bytes, aad: bytes = b"") -> bytes:
    """
    Decrypt AES-GCM ciphertext (tag appended). Raises InvalidTag if authentication fails.
    """
    return AESGCM(key).decrypt(nonce, ciphertext, aad or None)


def _share_key(shared_secret: bytes, identity: str) -> bytes:
    return HKDF(
        algorithm=hashes.SHA256(),
        length=32,
        salt=None,
        info=_SHARE_WRAP_INFO + b"|" + identity.encode("utf-8"),
    ).derive(shared_secret)


def wrap_share_x25519(share: bytes, server_public_key: bytes, identity: str) -> Dict[str, str]:
    """
    Wrap a key share for one key server. Only the holder of the matching
    X25519 private key can unwrap it.
    """
    ephemeral = X25519PrivateKey.generate()
    shared = ephemeral.exchange(X25519PublicKey.from_public_bytes(server_public_key))
    ciphertext, nonce = encrypt_bytes_aes_gcm(share, _share_key(shared, identity), identity.encode("utf-8"))
    ephemeral_public = ephemeral.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return {
        "ephemeral": base64.b64encode(ephemeral_public).decode("ascii"),
        "nonce": base64.b64encode(nonce).decode("ascii"),
        "ciphertext": base64.b64encode(ciphertext).decode("ascii"),
    }


def unwrap_share_x25519(wrapped: Dict[str, str], server_private_key: X25519PrivateKey, identity: str) -> bytes:
    """Unwrap a key share with the key server's X25519 private key."""
    ephemeral = X25519PublicKey.from_public_bytes(base64.b64decode(wrapped["ephemeral"]))
    shared = server_private_key.exchange(ephemeral)
    return decrypt_bytes_aes_gcm(
        base64.b64decode(wrapped["ciphertext"]),
        base64.b64decode(wrapped["nonce"]),
        _share_key(shared, identity),
        identity.encode("utf-8"),
    )


# ============================================================================
# Envelope
# ============================================================================

@dataclass
class WrappedShare:
    """A key share wrapped for one key server."""

    server_id: str
    index: int
    wrapped: Dict[str, str]

    def to_dict(self) -> Dict[str, Any]:
        return {"server_id": self.server_id, "index": self.index, "wrapped": self.wrapped}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WrappedShare":
        return cls(server_id=data["server_id"], index=int(data["index"]), wrapped=dict(data["wrapped"]))


@dataclass
class EncryptedObject:
    """
    Serialized form of a threshold-encrypted payload.

    `identity` is the whitelist id the payload is bound to; `package_id` is
    the package whose approval entry point gates decryption.
    """

    identity: str
    package_id: str
    threshold: int
    nonce: str
    ciphertext: str
    shares: List[WrappedShare] = field(default_factory=list)
    version: int = ENVELOPE_VERSION

    def to_bytes(self) -> bytes:
        payload = {
            "version": self.version,
            "identity": self.identity,
            "package_id": self.package_id,
            "threshold": self.threshold,
            "nonce": self.nonce,
            "ciphertext": self.ciphertext,
            "shares": [share.to_dict() for share in self.shares],
        }
        return json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")

    @classmethod
    def from_bytes(cls, data: bytes) -> "EncryptedObject":
        try:
            payload = json.loads(data.decode("utf-8"))
            if payload.get("version") != ENVELOPE_VERSION:
                raise ValueError(f"unsupported envelope version {payload.get('version')!r}")
            return cls(
                identity=payload["identity"],
                package_id=payload["package_id"],
                threshold=int(payload["threshold"]),
                nonce=payload["nonce"],
                ciphertext=payload["ciphertext"],
                shares=[WrappedShare.from_dict(item) for item in payload["shares"]],
            )
        except (UnicodeDecodeError, json.JSONDecodeError, KeyError, TypeError, AttributeError) as exc:
            raise ValueError(f"not a sealed payload: {exc}") from exc
