"""
Encryption coordinator: ties a payload's encryption identity to a freshly
created whitelist, and drives decryption through session proofs and an
approval preview that key servers simulate before releasing shares.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional
import logging
import time

from ..errors import AccessDenied, ExpiredSessionProof, InsufficientShares, PolicyCreationFailed, SealVaultError
from ..ledger.client import ILedgerClient
from ..ledger.transactions import TransactionBlock, obj, pure_bytes
from ..policy.manager import AccessPolicyManager
from ..policy.models import PolicyPair
from .session import SessionProof
from .threshold import ThresholdEncryptionService

logger = logging.getLogger(__name__)

APPROVE_FUNCTION = "seal_approve"


class DecryptState(str, Enum):
    REQUESTED = "requested"
    PROOF_BUILT = "proof_built"
    SHARES_COLLECTING = "shares_collecting"
    DECRYPTED = "decrypted"
    ACCESS_DENIED = "access_denied"
    INSUFFICIENT_SHARES = "insufficient_shares"
    EXPIRED_SESSION_PROOF = "expired_session_proof"


@dataclass(frozen=True)
class EncodeResult:
    ciphertext: bytes
    policy: PolicyPair


def identity_bytes(whitelist_id: str) -> bytes:
    return bytes.fromhex(whitelist_id[2:] if whitelist_id.startswith("0x") else whitelist_id)


class EncryptionCoordinator:
    def __init__(
        self,
        policies: AccessPolicyManager,
        threshold_service: ThresholdEncryptionService,
        ledger: ILedgerClient,
        threshold: int = 2,
        session_ttl_minutes: int = 10,
        clock: Callable[[], float] = time.time,
    ):
        self.policies = policies
        self.threshold_service = threshold_service
        self.ledger = ledger
        self.threshold = threshold
        self.session_ttl_minutes = session_ttl_minutes
        self.clock = clock

    def encode(self, plaintext: bytes, self_address: str) -> EncodeResult:
        """
        Create a whitelist/cap pair, add ``self_address`` so the creator can
        always decrypt, then encrypt under the whitelist id.

        Raises:
            PolicyCreationFailed: the policy could not be created or populated
            EncryptionFailed: not enough key servers were reachable
        """
        try:
            policy = self.policies.create_policy()
            self.policies.add_members(policy.whitelist_id, policy.cap_id, [self_address])
        except SealVaultError as exc:
            raise PolicyCreationFailed(
                f"Failed to set up access policy: {exc.message}",
                {"cause": exc.to_dict()},
            ) from exc

        ciphertext = self.threshold_service.encrypt(policy.whitelist_id, plaintext, self.threshold)
        logger.info(
            "Encrypted %d bytes under whitelist %s (%d-of-%d)",
            len(plaintext), policy.whitelist_id, self.threshold, len(self.threshold_service.key_servers),
        )
        return EncodeResult(ciphertext=ciphertext, policy=policy)

    def build_approval_preview(self, whitelist_ids: Iterable[str]) -> bytes:
        """Kind-only transaction bytes calling the approval entry point; never submitted."""
        tx = TransactionBlock()
        for whitelist_id in whitelist_ids:
            tx.move_call(
                self.policies.target(APPROVE_FUNCTION),
                [pure_bytes(identity_bytes(whitelist_id)), obj(whitelist_id)],
            )
        return tx.to_bytes(kind_only=True)

    def new_session_proof(self, requester) -> SessionProof:
        return SessionProof.create(requester, self.policies.package_id, self.session_ttl_minutes, self.clock)

    def decode(
        self,
        ciphertext: bytes,
        whitelist_id: str,
        requester,
        on_state: Optional[Callable[[DecryptState], None]] = None,
    ) -> bytes:
        """
        Decrypt ``ciphertext`` for ``requester`` (a Signer).

        Raises:
            AccessDenied: requester is not a current whitelist member
            InsufficientShares: fewer than ``threshold`` key servers answered
            ExpiredSessionProof: the session proof lapsed before shares were collected
        """
        def transition(state: DecryptState) -> None:
            logger.debug("Decrypt %s for %s: %s", whitelist_id, requester.address, state.value)
            if on_state is not None:
                on_state(state)

        transition(DecryptState.REQUESTED)
        preview = self.build_approval_preview([whitelist_id])
        session = self.new_session_proof(requester)
        transition(DecryptState.PROOF_BUILT)

        # Same check the key servers run; fails fast without touching the ciphertext.
        inspection = self.ledger.simulate(preview, requester.address)
        if not inspection.ok:
            transition(DecryptState.ACCESS_DENIED)
            raise AccessDenied(whitelist_id, requester.address, inspection.error or "")

        transition(DecryptState.SHARES_COLLECTING)
        try:
            plaintext = self.threshold_service.decrypt(ciphertext, session, preview)
        except AccessDenied:
            transition(DecryptState.ACCESS_DENIED)
            raise
        except InsufficientShares:
            transition(DecryptState.INSUFFICIENT_SHARES)
            raise
        except ExpiredSessionProof:
            transition(DecryptState.EXPIRED_SESSION_PROOF)
            raise
        transition(DecryptState.DECRYPTED)
        return plaintext
