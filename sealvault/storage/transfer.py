"""Hand a stored object and its Cap to a new owner who can still decrypt it."""

from __future__ import annotations

import logging

from ..errors import TransactionFailure, TransferFailed
from ..ledger.client import ILedgerClient, TransactionEffects
from ..ledger.transactions import TransactionBlock
from ..policy.manager import AccessPolicyManager
from .attributes import AttributeIndex

logger = logging.getLogger(__name__)


class TransferCoordinator:
    def __init__(
        self,
        ledger: ILedgerClient,
        policies: AccessPolicyManager,
        attributes: AttributeIndex,
        signer,
        confirmation_timeout: float = 30.0,
    ):
        self.ledger = ledger
        self.policies = policies
        self.attributes = attributes
        self.signer = signer
        self.confirmation_timeout = confirmation_timeout

    def send(self, object_id: str, destination: str) -> TransactionEffects:
        """
        Add ``destination`` to the object's whitelist, wait until that is
        final, then transfer the object and its Cap in one transaction. The
        sender keeps its own membership.

        Raises:
            LinkageMissing: the object has no policy linkage
            AuthorizationDenied / TransactionFailure: the membership update failed
            TransferFailed: the transfer transaction did not succeed
        """
        policy = self.attributes.linkage(object_id)

        added = self.policies.add_members(policy.whitelist_id, policy.cap_id, [destination])
        if added is not None:
            confirmed = self.ledger.wait_for_transaction(added.digest, self.confirmation_timeout)
            if not confirmed.ok:
                raise TransactionFailure(
                    f"Membership update for {destination} did not finalize: {confirmed.error}",
                    digest=added.digest,
                )

        tx = TransactionBlock().transfer_objects([object_id, policy.cap_id], destination)
        try:
            effects = self.ledger.sign_and_execute(tx, self.signer)
        except TransactionFailure as exc:
            raise TransferFailed(object_id, destination, exc.message) from exc
        if not effects.ok:
            raise TransferFailed(object_id, destination, effects.error or effects.status)

        logger.info("Transferred %s and cap %s to %s (tx %s)", object_id, policy.cap_id, destination, effects.digest)
        return effects
