"""Short-lived signed session proofs used to request decryption key shares."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional
import base64
import time

from .signatures import address_from_public_key, verify_signature_b64

Clock = Callable[[], float]


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class SessionProof:
    """
    Signed assertion that `address` asks for key shares under `package_id`
    until `created_at + ttl_minutes`. Used once per decrypt attempt.
    """

    address: str
    public_key: str  # base64 raw Ed25519 public key
    package_id: str
    created_at: float
    ttl_minutes: int
    signature: str = ""

    @staticmethod
    def build_message(address: str, package_id: str, created_at: float, ttl_minutes: int) -> bytes:
        return (
            f"Accessing keys of package {package_id} for {ttl_minutes} mins "
            f"from {_iso(created_at)}, requester {address}"
        ).encode("utf-8")

    @classmethod
    def create(cls, signer, package_id: str, ttl_minutes: int, clock: Clock = time.time) -> "SessionProof":
        """Create and sign a proof with `signer` (a :class:`sealvault.accounts.Signer`)."""
        created_at = clock()
        message = cls.build_message(signer.address, package_id, created_at, ttl_minutes)
        return cls(
            address=signer.address,
            public_key=base64.b64encode(signer.public_key_bytes).decode("ascii"),
            package_id=package_id,
            created_at=created_at,
            ttl_minutes=ttl_minutes,
            signature=signer.sign_b64(message),
        )

    @property
    def expires_at(self) -> float:
        return self.created_at + self.ttl_minutes * 60

    def expires_at_iso(self) -> str:
        return _iso(self.expires_at)

    def is_expired(self, now: Optional[float] = None) -> bool:
        return (time.time() if now is None else now) >= self.expires_at

    def verify(self) -> bool:
        """Signature is valid and the public key hashes to the claimed address."""
        public_key = base64.b64decode(self.public_key)
        if address_from_public_key(public_key) != self.address:
            return False
        message = self.build_message(self.address, self.package_id, self.created_at, self.ttl_minutes)
        return verify_signature_b64(message, self.signature, public_key)
