"""
Storage cost estimation for RS2-encoded blobs.

The inflation factor and minimum encoded size are observed values and may
drift; ask the blob store for a dry run when an exact figure matters.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import math

from .blobstore import IBlobStore
from .models import BlobStoreInfo

STORAGE_UNIT_SIZE_BYTES = 1_048_576
WRITE_PRICE_PER_UNIT = 25_000
STORAGE_PRICE_PER_UNIT_PER_EPOCH = 150_000
EPOCH_DURATION_SECONDS = 86_400
MIN_ENCODED_SIZE_BYTES_RS2 = 66_034_000
DEFAULT_RS2_INFLATION_FACTOR = 4.590100056
UNITS_PER_WAL = 1_000_000_000


@dataclass(frozen=True)
class CostEstimate:
    estimated_cost: int
    encoded_size: int
    storage_units: int
    epochs: int
    inflation_factor: Optional[float]

    @property
    def estimated_cost_wal(self) -> float:
        return self.estimated_cost / UNITS_PER_WAL


def estimate_storage_cost(
    unencoded_size: int,
    epochs: Optional[int] = None,
    storage_days: Optional[float] = None,
    known_encoded_size: Optional[int] = None,
    inflation_factor: float = DEFAULT_RS2_INFLATION_FACTOR,
    min_encoded_size: int = MIN_ENCODED_SIZE_BYTES_RS2,
    info: Optional[BlobStoreInfo] = None,
) -> CostEstimate:
    """
    Estimate the cost of storing ``unencoded_size`` bytes.

    ``storage_days`` wins over ``epochs`` when both are given. Prices and the
    epoch length come from ``info`` when provided, otherwise from the
    module defaults.
    """
    if storage_days is None and epochs is None:
        raise ValueError("Either storage_days or epochs must be provided.")
    if unencoded_size < 0:
        raise ValueError("unencoded_size cannot be negative.")
    if epochs is not None and epochs <= 0:
        raise ValueError("epochs, if provided, must be greater than 0.")
    if storage_days is not None and storage_days <= 0:
        raise ValueError("storage_days, if provided, must be greater than 0.")

    unit_size = info.storage_unit_size if info else STORAGE_UNIT_SIZE_BYTES
    write_price = info.write_price_per_unit if info else WRITE_PRICE_PER_UNIT
    storage_price = info.storage_price_per_unit if info else STORAGE_PRICE_PER_UNIT_PER_EPOCH
    epoch_seconds = info.epoch_duration_seconds if info else EPOCH_DURATION_SECONDS

    if storage_days is not None:
        num_epochs = math.ceil(storage_days * 86_400 / epoch_seconds)
    else:
        num_epochs = epochs

    if known_encoded_size is not None:
        if known_encoded_size < 0:
            raise ValueError("known_encoded_size cannot be negative.")
        encoded_size = known_encoded_size
        factor_used = None
    else:
        encoded_size = max(math.ceil(unencoded_size * inflation_factor), min_encoded_size)
        factor_used = inflation_factor

    units = math.ceil(encoded_size / unit_size)
    return CostEstimate(
        estimated_cost=units * (write_price + num_epochs * storage_price),
        encoded_size=encoded_size,
        storage_units=units,
        epochs=num_epochs,
        inflation_factor=factor_used,
    )


class StorageCostEstimator:
    """Estimates with prices fetched once from the blob store."""

    def __init__(self, blob_store: IBlobStore):
        self.blob_store = blob_store
        self._info: Optional[BlobStoreInfo] = None

    @property
    def info(self) -> BlobStoreInfo:
        if self._info is None:
            self._info = self.blob_store.info()
        return self._info

    def refresh(self) -> BlobStoreInfo:
        self._info = self.blob_store.info()
        return self._info

    def estimate(self, size: int, storage_days: Optional[float] = None, epochs: Optional[int] = None) -> CostEstimate:
        return estimate_storage_cost(size, epochs=epochs, storage_days=storage_days, info=self.info)
