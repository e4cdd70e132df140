"""
Client side of the threshold encryption service.

Encryption is local: the data key is split across the configured key servers
and each share is wrapped to that server's public key. Decryption asks each
server for its share; a server releases it only after verifying the session
proof and simulating the approval preview against current ledger state.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, List, Sequence
import base64
import logging
import os
import time

from cryptography.exceptions import InvalidTag

from ..errors import AccessDenied, DecryptionFailed, EncryptionFailed, ExpiredSessionProof, InsufficientShares
from . import shamir
from .envelope import DATA_KEY_BYTES, EncryptedObject, WrappedShare, decrypt_bytes_aes_gcm, encrypt_bytes_aes_gcm, wrap_share_x25519
from .session import SessionProof

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShareRequest:
    """What a key server needs to decide whether to release one share."""

    identity: str
    index: int
    wrapped: Dict[str, str]
    session: SessionProof
    tx_bytes: bytes


class IKeyServer(ABC):
    server_id: str

    @abstractmethod
    def public_key(self) -> bytes:
        """Raw X25519 public key shares are wrapped to. May raise OSError when unreachable."""

    @abstractmethod
    def fetch_share(self, request: ShareRequest) -> bytes:
        """
        Return the unwrapped share, or raise AccessDenied / ExpiredSessionProof.
        Raises OSError when the server cannot be reached.
        """


class ThresholdEncryptionService:
    def __init__(self, key_servers: Sequence[IKeyServer], package_id: str, clock: Callable[[], float] = time.time):
        if not key_servers:
            raise ValueError("at least one key server is required")
        self.key_servers: Dict[str, IKeyServer] = {server.server_id: server for server in key_servers}
        self.package_id = package_id
        self.clock = clock

    def encrypt(self, identity: str, data: bytes, threshold: int) -> bytes:
        """Encrypt ``data`` so that ``threshold`` key servers must cooperate to decrypt it."""
        reachable = []
        for server in self.key_servers.values():
            try:
                reachable.append((server, server.public_key()))
            except OSError as exc:
                logger.warning("Key server %s unreachable during encryption: %s", server.server_id, exc)
        if len(reachable) < threshold:
            raise EncryptionFailed(
                f"Need {threshold} key servers for encryption, {len(reachable)} reachable",
                {"identity": identity, "reachable": len(reachable), "threshold": threshold},
            )

        data_key = os.urandom(DATA_KEY_BYTES)
        ciphertext, nonce = encrypt_bytes_aes_gcm(data, data_key, identity.encode("utf-8"))
        shares = shamir.split(data_key, threshold, len(reachable))
        wrapped = [
            WrappedShare(
                server_id=server.server_id,
                index=share.index,
                wrapped=wrap_share_x25519(share.to_bytes(), public_key, identity),
            )
            for (server, public_key), share in zip(reachable, shares)
        ]
        envelope = EncryptedObject(
            identity=identity,
            package_id=self.package_id,
            threshold=threshold,
            nonce=base64.b64encode(nonce).decode("ascii"),
            ciphertext=base64.b64encode(ciphertext).decode("ascii"),
            shares=wrapped,
        )
        return envelope.to_bytes()

    def decrypt(self, data: bytes, session: SessionProof, tx_bytes: bytes) -> bytes:
        if session.is_expired(self.clock()):
            raise ExpiredSessionProof(session.address, session.expires_at_iso())
        try:
            envelope = EncryptedObject.from_bytes(data)
        except ValueError as exc:
            raise DecryptionFailed(f"Cannot decrypt: {exc}") from exc
        if envelope.package_id != session.package_id:
            raise AccessDenied(envelope.identity, session.address, "session proof is for another package")

        collected: List[shamir.Share] = []
        denied: List[AccessDenied] = []
        expired: List[ExpiredSessionProof] = []
        errors: List[str] = []
        for wrapped in envelope.shares:
            if len(collected) >= envelope.threshold:
                break
            server = self.key_servers.get(wrapped.server_id)
            if server is None:
                errors.append(f"{wrapped.server_id}: not configured")
                continue
            request = ShareRequest(envelope.identity, wrapped.index, wrapped.wrapped, session, tx_bytes)
            try:
                collected.append(shamir.Share.from_bytes(server.fetch_share(request)))
            except AccessDenied as exc:
                denied.append(exc)
            except ExpiredSessionProof as exc:
                expired.append(exc)
            except (OSError, ValueError, InvalidTag) as exc:
                errors.append(f"{wrapped.server_id}: {exc}")
            else:
                logger.debug("Collected share %d for %s from %s", wrapped.index, envelope.identity, wrapped.server_id)

        if len(collected) < envelope.threshold:
            if denied:
                raise denied[0]
            if expired:
                raise expired[0]
            raise InsufficientShares(envelope.identity, len(collected), envelope.threshold, errors)

        data_key = shamir.combine(collected, DATA_KEY_BYTES)
        try:
            return decrypt_bytes_aes_gcm(
                base64.b64decode(envelope.ciphertext),
                base64.b64decode(envelope.nonce),
                data_key,
                envelope.identity.encode("utf-8"),
            )
        except InvalidTag as exc:
            raise DecryptionFailed(f"Ciphertext for {envelope.identity} failed authentication") from exc
