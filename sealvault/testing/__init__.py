"""In-process ledger, blob store and key servers for running sealvault without a network."""

from .blobstore import InMemoryBlobStore
from .keyserver import LocalKeyServer
from .ledger import InMemoryLedger

__all__ = ["InMemoryBlobStore", "InMemoryLedger", "LocalKeyServer"]
