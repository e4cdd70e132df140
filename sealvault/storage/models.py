from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Union

from ..errors import LinkageFailed
from ..policy.models import PolicyPair


def format_bytes(size: int) -> str:
    """Human readable size, e.g. ``1.5 KB``."""
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB", "TB"]
    exponent = 0
    while size >= 1024 ** (exponent + 1) and exponent < len(units) - 1:
        exponent += 1
    value = round(size / 1024 ** exponent, 2)
    return f"{value:g} {units[exponent]}"


@dataclass
class StorageInfo:
    """Retention window of a stored blob, in blob-store epochs."""

    storage_id: str
    start_epoch: int
    end_epoch: int
    storage_size: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StorageInfo":
        return cls(
            storage_id=data["id"],
            start_epoch=int(data["startEpoch"]),
            end_epoch=int(data["endEpoch"]),
            storage_size=int(data["storageSize"]),
        )


@dataclass
class StoredObject:
    """
    A blob as the blob store reports it.

    `object_id` is the ledger ownership handle; `content_id` is derived from
    the stored bytes and is stable across re-uploads of identical content.
    """

    object_id: str
    content_id: str
    size: int
    encoding_type: str
    registered_epoch: int
    certified_epoch: Optional[int]
    storage: StorageInfo
    deletable: bool
    attributes: Dict[str, str] = field(default_factory=dict)

    @property
    def start_epoch(self) -> int:
        return self.storage.start_epoch

    @property
    def end_epoch(self) -> int:
        return self.storage.end_epoch

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoredObject":
        certified = data.get("certifiedEpoch")
        return cls(
            object_id=data["id"],
            content_id=data["blobId"],
            size=int(data["size"]),
            encoding_type=data.get("encodingType", "RS2"),
            registered_epoch=int(data["registeredEpoch"]),
            certified_epoch=None if certified is None else int(certified),
            storage=StorageInfo.from_dict(data["storage"]),
            deletable=bool(data.get("deletable", False)),
        )


@dataclass
class EnrichedStoredObject(StoredObject):
    """A StoredObject with expiry projection and attributes, as returned by listings."""

    formatted_size: str = ""
    is_expired: bool = False
    epochs_until_expiry: int = 0
    end_date: str = "Unknown"
    name: Optional[str] = None
    whitelist_id: Optional[str] = None


@dataclass
class StoreOptions:
    epochs: Optional[int] = None
    deletable: bool = False
    attributes: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class UploadResult:
    """Outcome of a blob upload. `newly_created` is False when identical bytes were already certified."""

    object_id: str
    content_id: str
    storage_cost: int
    unencoded_size: int
    encoded_size: int
    encoding_type: str
    newly_created: bool = True


@dataclass(frozen=True)
class Stored:
    """Successful store: uploaded and linked to its access policy."""

    content_id: str
    object_id: str
    storage_cost: int
    plaintext_size: int
    ciphertext_size: int
    encoded_size: int
    encoding_type: str
    policy: PolicyPair

    orphaned = False

    def raise_for_orphan(self) -> "Stored":
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contentId": self.content_id,
            "objectId": self.object_id,
            "storageCost": self.storage_cost,
            "plaintextSize": self.plaintext_size,
            "ciphertextSize": self.ciphertext_size,
            "encodedSize": self.encoded_size,
            "encoding": self.encoding_type,
        }


@dataclass(frozen=True)
class StoredOrphaned:
    """
    Upload succeeded but the policy linkage could not be attached. The object
    exists but cannot be found for decryption until it is relinked.
    """

    content_id: str
    object_id: str
    policy: PolicyPair
    upload: UploadResult
    plaintext_size: int
    ciphertext_size: int
    error: str

    orphaned = True

    def raise_for_orphan(self) -> "Stored":
        raise LinkageFailed(self.object_id, self.content_id, self.error)


StoreOutcome = Union[Stored, StoredOrphaned]


@dataclass
class BurnParams:
    """Which blobs to burn. Precedence: object_ids, then all_expired, then all."""

    object_ids: List[str] = field(default_factory=list)
    all_expired: bool = False
    all: bool = False


@dataclass(frozen=True)
class BlobStoreInfo:
    current_epoch: int
    epoch_duration_seconds: int
    max_epochs_ahead: int
    storage_unit_size: int
    storage_price_per_unit: int
    write_price_per_unit: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BlobStoreInfo":
        epoch = data["epochInfo"]
        price = data["priceInfo"]
        return cls(
            current_epoch=int(epoch["currentEpoch"]),
            epoch_duration_seconds=int(epoch["epochDuration"]["secs"]),
            max_epochs_ahead=int(epoch["maxEpochsAhead"]),
            storage_unit_size=int(data["sizeInfo"]["storageUnitSize"]),
            storage_price_per_unit=int(price["storagePricePerUnitSize"]),
            write_price_per_unit=int(price["writePricePerUnitSize"]),
        )
