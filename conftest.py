"""Shared fixtures: an in-process ledger, blob store and three key servers."""

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from sealvault.accounts import Signer
from sealvault.config import FROST_PER_WAL, MIST_PER_SUI, Settings, clear_settings_cache
from sealvault.service import SealedStorage
from sealvault.testing import InMemoryBlobStore, InMemoryLedger, LocalKeyServer


class FakeClock:
    """Manually advanced clock shared by the encryption layer and key servers."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    for name in ("SEALVAULT_PACKAGE_ID", "SEALVAULT_THRESHOLD", "SEALVAULT_SESSION_TTL_MINUTES", "SEALVAULT_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ledger(settings):
    return InMemoryLedger(settings.package_id, settings.whitelist_module)


@pytest.fixture
def blob_store(ledger, settings):
    return InMemoryBlobStore(ledger, settings.storage_coin_type, epoch_duration_seconds=settings.epoch_duration_seconds)


@pytest.fixture
def key_servers(ledger, settings, clock):
    return [
        LocalKeyServer(ledger, settings.package_id, f"ks-{n}", settings.whitelist_module, clock=clock)
        for n in range(1, 4)
    ]


def _funded_signer(ledger, settings):
    signer = Signer(Ed25519PrivateKey.generate())
    ledger.fund(signer.address, settings.primary_coin_type, 10 * MIST_PER_SUI)
    ledger.fund(signer.address, settings.storage_coin_type, 10 * FROST_PER_WAL)
    return signer


@pytest.fixture
def alice(ledger, settings):
    return _funded_signer(ledger, settings)


@pytest.fixture
def bob(ledger, settings):
    return _funded_signer(ledger, settings)


@pytest.fixture
def make_storage(ledger, blob_store, key_servers, settings, clock):
    def factory(signer):
        return SealedStorage(signer, ledger, blob_store, key_servers, settings=settings, clock=clock)
    return factory


@pytest.fixture
def alice_storage(make_storage, alice):
    return make_storage(alice)


@pytest.fixture
def bob_storage(make_storage, bob):
    return make_storage(bob)
