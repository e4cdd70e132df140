from typing import Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from ..crypto.signatures import address_from_public_key, public_key_raw, sign_data, sign_data_b64


class Signer:
    """Holds one wallet key and produces signatures for transactions and session proofs."""

    def __init__(self, private_key: Ed25519PrivateKey):
        self._private_key = private_key
        self.public_key_bytes = public_key_raw(private_key.public_key())
        self.address = address_from_public_key(self.public_key_bytes)

    @classmethod
    def from_private_key_pem(cls, private_key_pem: bytes, password: Optional[bytes] = None) -> "Signer":
        private_key = serialization.load_pem_private_key(private_key_pem, password=password)
        if not isinstance(private_key, Ed25519PrivateKey):
            raise ValueError("wallet key must be an Ed25519 private key")
        return cls(private_key)

    @classmethod
    def from_seed(cls, seed: bytes) -> "Signer":
        """Load a key from its raw 32-byte private seed."""
        return cls(Ed25519PrivateKey.from_private_bytes(seed))

    def sign(self, data: bytes) -> bytes:
        return sign_data(data, self._private_key)

    def sign_b64(self, data: bytes) -> str:
        return sign_data_b64(data, self._private_key)

    def __repr__(self) -> str:
        return f"Signer(address={self.address!r})"
