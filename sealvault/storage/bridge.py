"""
Encrypted blob storage on top of the blob store and the access policy layer.

Write path: funds check -> encode (policy + encryption) -> upload -> link
policy attributes. Read path: resolve content id -> download -> fetch linkage
-> decode.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Mapping, Optional
import logging

from ..accounts.models import WalletBalance
from ..config import Settings
from ..crypto.coordinator import EncryptionCoordinator
from ..errors import InsufficientFunds, NotFound, SealVaultError
from ..ledger.client import ILedgerClient
from .attributes import WHITELIST_ID_KEY, AttributeIndex
from .blobstore import IBlobStore
from .models import (
    BurnParams,
    EnrichedStoredObject,
    StoreOptions,
    StoreOutcome,
    Stored,
    StoredObject,
    StoredOrphaned,
    format_bytes,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Helper methods
# ============================================================================

def _enrich(blob: StoredObject, epoch_duration_seconds: int, now: datetime) -> EnrichedStoredObject:
    epochs_left = blob.end_epoch - blob.registered_epoch
    is_expired = epochs_left <= 0
    if is_expired:
        end_date = "Expired"
    else:
        end_date = (now + timedelta(seconds=epochs_left * epoch_duration_seconds)).date().isoformat()
    return EnrichedStoredObject(
        object_id=blob.object_id,
        content_id=blob.content_id,
        size=blob.size,
        encoding_type=blob.encoding_type,
        registered_epoch=blob.registered_epoch,
        certified_epoch=blob.certified_epoch,
        storage=blob.storage,
        deletable=blob.deletable,
        formatted_size=format_bytes(blob.size),
        is_expired=is_expired,
        epochs_until_expiry=max(0, epochs_left),
        end_date=end_date,
    )


class BlobStoreBridge:
    def __init__(
        self,
        blob_store: IBlobStore,
        ledger: ILedgerClient,
        coordinator: EncryptionCoordinator,
        attributes: AttributeIndex,
        signer,
        settings: Settings,
    ):
        self.blob_store = blob_store
        self.ledger = ledger
        self.coordinator = coordinator
        self.attributes = attributes
        self.signer = signer
        self.settings = settings
        # content id -> object id; filled by store() and rebuilt from listings on a miss
        self._content_index: Dict[str, str] = {}

    # ------------------------------------------------------------------ funds

    def wallet_balance(self) -> WalletBalance:
        return WalletBalance(
            primary=self.ledger.get_balance(self.signer.address, self.settings.primary_coin_type),
            storage=self.ledger.get_balance(self.signer.address, self.settings.storage_coin_type),
        )

    def check_funds(self) -> WalletBalance:
        """Reject early, before any ledger or blob store costs are incurred."""
        balance = self.wallet_balance()
        shortfalls = {}
        if balance.primary < self.settings.min_primary_balance:
            shortfalls["primary"] = f"{balance.primary} (required: {self.settings.min_primary_balance})"
        if balance.storage < self.settings.min_storage_balance:
            shortfalls["storage"] = f"{balance.storage} (required: {self.settings.min_storage_balance})"
        if shortfalls:
            raise InsufficientFunds(shortfalls)
        return balance

    # ------------------------------------------------------------------ write

    def store(self, plaintext: bytes, options: Optional[StoreOptions] = None) -> StoreOutcome:
        """
        Encrypt and upload ``plaintext``, then link the policy ids to the new object.

        Returns:
            Stored on success, or StoredOrphaned when the upload succeeded but
            the linkage attributes could not be attached.

        Raises:
            ValueError, InsufficientFunds, PolicyCreationFailed, EncryptionFailed, BlobStoreError
        """
        options = options or StoreOptions()
        epochs = self.settings.default_epochs if options.epochs is None else options.epochs
        if epochs <= 0:
            raise ValueError(f"epochs must be greater than 0, got {epochs}")
        self.check_funds()

        encoded = self.coordinator.encode(plaintext, self.signer.address)
        upload = self.blob_store.store_blob(encoded.ciphertext, epochs, options.deletable, self.signer.address)
        self._content_index[upload.content_id] = upload.object_id

        try:
            self.attributes.link(upload.object_id, encoded.policy, options.attributes)
        except SealVaultError as exc:
            logger.warning(
                "Object %s stored but linkage to whitelist %s failed: %s",
                upload.object_id, encoded.policy.whitelist_id, exc,
            )
            return StoredOrphaned(
                content_id=upload.content_id,
                object_id=upload.object_id,
                policy=encoded.policy,
                upload=upload,
                plaintext_size=len(plaintext),
                ciphertext_size=len(encoded.ciphertext),
                error=exc.message,
            )

        return Stored(
            content_id=upload.content_id,
            object_id=upload.object_id,
            storage_cost=upload.storage_cost,
            plaintext_size=len(plaintext),
            ciphertext_size=len(encoded.ciphertext),
            encoded_size=upload.encoded_size,
            encoding_type=upload.encoding_type,
            policy=encoded.policy,
        )

    def relink(self, orphan: StoredOrphaned, extra: Optional[Mapping[str, str]] = None) -> Stored:
        """Retry attaching the linkage of an orphaned object."""
        self.attributes.link(orphan.object_id, orphan.policy, extra)
        logger.info("Relinked orphaned object %s", orphan.object_id)
        return Stored(
            content_id=orphan.content_id,
            object_id=orphan.object_id,
            storage_cost=orphan.upload.storage_cost,
            plaintext_size=orphan.plaintext_size,
            ciphertext_size=orphan.ciphertext_size,
            encoded_size=orphan.upload.encoded_size,
            encoding_type=orphan.upload.encoding_type,
            policy=orphan.policy,
        )

    # ------------------------------------------------------------------ read

    def _rebuild_index(self) -> None:
        for blob in self.blob_store.list_blobs(self.signer.address, include_expired=True):
            self._content_index[blob.content_id] = blob.object_id

    def resolve(self, content_id: str) -> str:
        """Object id for ``content_id``; rebuilds the index from owned blobs on a miss."""
        if content_id not in self._content_index:
            self._rebuild_index()
        try:
            return self._content_index[content_id]
        except KeyError:
            raise NotFound("content id", content_id) from None

    def read(self, content_id: str) -> bytes:
        """
        Download and decrypt the blob with ``content_id``.

        Raises:
            NotFound: no object for the content id
            LinkageMissing: the object has no whitelist linkage (orphaned)
            AccessDenied, InsufficientShares, ExpiredSessionProof: from decryption
        """
        object_id = self.resolve(content_id)
        try:
            ciphertext = self.blob_store.read_blob(content_id)
            policy = self.attributes.linkage(object_id)
        except NotFound:
            # the indexed object was burned; forget it
            self._content_index.pop(content_id, None)
            raise NotFound("content id", content_id) from None
        return self.coordinator.decode(ciphertext, policy.whitelist_id, self.signer)

    # ------------------------------------------------------------------ listing

    def list(self, include_expired: bool = False) -> List[EnrichedStoredObject]:
        """
        All owned blobs with expiry projection and attributes. A failed
        attribute fetch leaves that blob's attributes empty.
        """
        now = datetime.now(timezone.utc)
        enriched = []
        for blob in self.blob_store.list_blobs(self.signer.address, include_expired):
            self._content_index[blob.content_id] = blob.object_id
            item = _enrich(blob, self.settings.epoch_duration_seconds, now)
            try:
                item.attributes = self.attributes.get(blob.object_id)
            except SealVaultError as exc:
                logger.debug("Could not fetch attributes for blob %s: %s", blob.object_id, exc)
                item.attributes = {}
            item.name = item.attributes.get("name")
            item.whitelist_id = item.attributes.get(WHITELIST_ID_KEY)
            enriched.append(item)
        return enriched

    def get_attributes(self, object_id: str) -> Dict[str, str]:
        return self.attributes.get(object_id)

    def add_attributes(self, object_id: str, attributes: Mapping[str, str]) -> None:
        self.attributes.add(object_id, attributes)

    # ------------------------------------------------------------------ burn

    def burn(self, params: BurnParams) -> List[str]:
        """
        Delete blob objects. Whitelist and Cap objects are left in place.

        Returns the burned object ids.
        """
        if params.object_ids:
            targets = list(params.object_ids)
        elif params.all_expired:
            current = self.blob_store.info().current_epoch
            blobs = self.blob_store.list_blobs(self.signer.address, include_expired=True)
            targets = [blob.object_id for blob in blobs if blob.end_epoch <= current]
        elif params.all:
            blobs = self.blob_store.list_blobs(self.signer.address, include_expired=True)
            targets = [blob.object_id for blob in blobs]
        else:
            raise ValueError("Invalid burn parameters: must specify either object_ids, all_expired, or all")

        if targets:
            self.blob_store.burn_blobs(targets, self.signer.address)
            burned = set(targets)
            self._content_index = {c: o for c, o in self._content_index.items() if o not in burned}
            logger.info("Burned %d blob(s)", len(targets))
        return targets
