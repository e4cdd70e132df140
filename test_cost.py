"""Storage cost estimation."""

import pytest

from sealvault.storage.cost import (
    MIN_ENCODED_SIZE_BYTES_RS2,
    STORAGE_UNIT_SIZE_BYTES,
    StorageCostEstimator,
    estimate_storage_cost,
)


def test_small_blobs_pay_for_the_minimum_encoded_size():
    estimate = estimate_storage_cost(1024, epochs=5)

    assert estimate.encoded_size == MIN_ENCODED_SIZE_BYTES_RS2
    assert estimate.storage_units == 63
    assert estimate.estimated_cost == 63 * (25_000 + 5 * 150_000)
    assert estimate.inflation_factor == pytest.approx(4.590100056)


def test_large_blobs_scale_with_inflation_factor():
    size = 100 * 1024 * 1024
    estimate = estimate_storage_cost(size, epochs=2, inflation_factor=5.0)

    assert estimate.encoded_size == 500 * 1024 * 1024
    assert estimate.storage_units == 500
    assert estimate.estimated_cost == 500 * (25_000 + 2 * 150_000)


def test_known_encoded_size_skips_inflation():
    estimate = estimate_storage_cost(10, epochs=1, known_encoded_size=STORAGE_UNIT_SIZE_BYTES + 1)

    assert estimate.storage_units == 2
    assert estimate.inflation_factor is None
    assert estimate.estimated_cost == 2 * (25_000 + 150_000)


def test_storage_days_round_up_to_whole_epochs():
    assert estimate_storage_cost(10, storage_days=1.5).epochs == 2
    assert estimate_storage_cost(10, storage_days=3, epochs=9).epochs == 3


@pytest.mark.parametrize("kwargs", [
    {},
    {"epochs": 0},
    {"storage_days": -1},
    {"epochs": 1, "known_encoded_size": -5},
])
def test_invalid_arguments(kwargs):
    with pytest.raises(ValueError):
        estimate_storage_cost(10, **kwargs)


def test_negative_size_is_rejected():
    with pytest.raises(ValueError):
        estimate_storage_cost(-1, epochs=1)


def test_estimator_uses_blob_store_prices(alice_storage, blob_store):
    blob_store.epoch_duration_seconds = 43_200
    estimate = alice_storage.estimate_cost(1024, storage_days=1)

    assert estimate.epochs == 2
    assert estimate.estimated_cost_wal == pytest.approx(63 * (25_000 + 2 * 150_000) / 1e9)


def test_estimator_caches_info_until_refreshed(blob_store):
    estimator = StorageCostEstimator(blob_store)
    assert estimator.info.current_epoch == 1

    blob_store.advance_epoch()
    assert estimator.info.current_epoch == 1
    assert estimator.refresh().current_epoch == 2
