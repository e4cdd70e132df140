"""
SealedStorage: the operation surface of the sealed storage layer.

One instance per wallet. Wires the policy manager, encryption coordinator,
blob store bridge and transfer coordinator against the given collaborators.
"""

from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence
import logging
import time

from .accounts.models import WalletBalance
from .accounts.signer import Signer
from .config import Settings, get_settings
from .crypto.coordinator import EncryptionCoordinator
from .crypto.threshold import IKeyServer, ThresholdEncryptionService
from .ledger.client import ILedgerClient, TransactionEffects
from .policy.manager import AccessPolicyManager, RetryPolicy
from .storage.attributes import AttributeIndex
from .storage.blobstore import IBlobStore
from .storage.bridge import BlobStoreBridge
from .storage.cost import CostEstimate, StorageCostEstimator
from .storage.models import BurnParams, EnrichedStoredObject, StoreOptions, StoreOutcome, Stored, StoredOrphaned
from .storage.transfer import TransferCoordinator

logger = logging.getLogger(__name__)


class SealedStorage:
    def __init__(
        self,
        signer: Signer,
        ledger: ILedgerClient,
        blob_store: IBlobStore,
        key_servers: Sequence[IKeyServer],
        settings: Optional[Settings] = None,
        retry: Optional[RetryPolicy] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings or get_settings()
        self.signer = signer
        self.ledger = ledger
        self.blob_store = blob_store

        self.policies = AccessPolicyManager(
            ledger, signer, self.settings.package_id, self.settings.whitelist_module, retry
        )
        self.threshold_service = ThresholdEncryptionService(key_servers, self.settings.package_id, clock)
        self.coordinator = EncryptionCoordinator(
            self.policies,
            self.threshold_service,
            ledger,
            threshold=self.settings.threshold,
            session_ttl_minutes=self.settings.session_ttl_minutes,
            clock=clock,
        )
        self.attributes = AttributeIndex(blob_store, signer)
        self.bridge = BlobStoreBridge(blob_store, ledger, self.coordinator, self.attributes, signer, self.settings)
        self.transfers = TransferCoordinator(
            ledger, self.policies, self.attributes, signer, self.settings.confirmation_timeout_seconds
        )
        self.cost_estimator = StorageCostEstimator(blob_store)

    @property
    def address(self) -> str:
        return self.signer.address

    # ============================================================================
    # Blob operations
    # ============================================================================

    def store(
        self,
        data: bytes,
        epochs: Optional[int] = None,
        deletable: bool = False,
        attributes: Optional[Mapping[str, str]] = None,
    ) -> StoreOutcome:
        """
        Encrypt and store ``data``.

        Args:
            data: Plaintext bytes
            epochs: Retention in blob store epochs (defaults to settings.default_epochs)
            deletable: Whether the blob may be deleted before it expires
            attributes: Extra user attributes to attach next to the policy linkage

        Returns:
            Stored, or StoredOrphaned when the linkage could not be attached
        """
        options = StoreOptions(epochs=epochs, deletable=deletable, attributes=dict(attributes or {}))
        return self.bridge.store(data, options)

    def relink(self, orphan: StoredOrphaned) -> Stored:
        return self.bridge.relink(orphan)

    def read(self, content_id: str) -> bytes:
        """Download and decrypt the blob with ``content_id``."""
        return self.bridge.read(content_id)

    def list_blobs(self, include_expired: bool = False) -> List[EnrichedStoredObject]:
        return self.bridge.list(include_expired)

    def get_attributes(self, object_id: str) -> Dict[str, str]:
        return self.bridge.get_attributes(object_id)

    def add_attributes(self, object_id: str, attributes: Mapping[str, str]) -> None:
        self.bridge.add_attributes(object_id, attributes)

    def burn(
        self,
        object_ids: Optional[Iterable[str]] = None,
        all_expired: bool = False,
        all: bool = False,
    ) -> List[str]:
        """
        Burn blob objects. ``object_ids`` wins over ``all_expired``, which wins
        over ``all``. Returns the burned object ids.
        """
        return self.bridge.burn(BurnParams(object_ids=list(object_ids or []), all_expired=all_expired, all=all))

    def send(self, object_id: str, destination: str) -> TransactionEffects:
        """Grant ``destination`` access, then transfer the object and its Cap to it."""
        return self.transfers.send(object_id, destination)

    # ============================================================================
    # Whitelist management
    # ============================================================================

    def members(self, object_id: str) -> List[str]:
        """Addresses that can currently decrypt ``object_id``."""
        policy = self.attributes.linkage(object_id)
        return self.policies.get_members(policy.whitelist_id)

    def share(self, object_id: str, addresses: Iterable[str]) -> Optional[TransactionEffects]:
        """Add ``addresses`` to the object's whitelist without transferring it."""
        policy = self.attributes.linkage(object_id)
        return self.policies.add_members(policy.whitelist_id, policy.cap_id, addresses)

    def revoke(self, object_id: str, addresses: Iterable[str]) -> Optional[TransactionEffects]:
        """Remove ``addresses`` from the object's whitelist."""
        policy = self.attributes.linkage(object_id)
        return self.policies.remove_members(policy.whitelist_id, policy.cap_id, addresses)

    # ============================================================================
    # Wallet
    # ============================================================================

    def get_wallet_balance(self) -> WalletBalance:
        return self.bridge.wallet_balance()

    def estimate_cost(
        self,
        size: int,
        storage_days: Optional[float] = None,
        epochs: Optional[int] = None,
    ) -> CostEstimate:
        return self.cost_estimator.estimate(size, storage_days=storage_days, epochs=epochs)
