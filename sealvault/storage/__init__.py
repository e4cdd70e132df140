"""Storage module for encrypted blob management."""

from .attributes import CAP_ID_KEY, WHITELIST_ID_KEY, AttributeIndex, linkage_from_attributes
from .blobstore import IBlobStore
from .bridge import BlobStoreBridge
from .cost import CostEstimate, StorageCostEstimator, estimate_storage_cost
from .models import (
    BlobStoreInfo,
    BurnParams,
    EnrichedStoredObject,
    StorageInfo,
    StoreOptions,
    StoreOutcome,
    Stored,
    StoredObject,
    StoredOrphaned,
    UploadResult,
)
from .transfer import TransferCoordinator

__all__ = [
    "CAP_ID_KEY",
    "WHITELIST_ID_KEY",
    "AttributeIndex",
    "linkage_from_attributes",
    "IBlobStore",
    "BlobStoreBridge",
    "CostEstimate",
    "StorageCostEstimator",
    "estimate_storage_cost",
    "BlobStoreInfo",
    "BurnParams",
    "EnrichedStoredObject",
    "StorageInfo",
    "StoreOptions",
    "StoreOutcome",
    "Stored",
    "StoredObject",
    "StoredOrphaned",
    "UploadResult",
    "TransferCoordinator",
]
