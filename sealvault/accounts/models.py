from dataclasses import dataclass
from decimal import Decimal

from ..config import FROST_PER_WAL, MIST_PER_SUI


@dataclass(frozen=True)
class WalletBalance:
    # base units: MIST for the primary asset, FROST for the storage asset
    primary: int
    storage: int

    @property
    def primary_decimal(self) -> Decimal:
        return Decimal(self.primary) / MIST_PER_SUI

    @property
    def storage_decimal(self) -> Decimal:
        return Decimal(self.storage) / FROST_PER_WAL

    def to_dict(self):
        return {"sui": str(self.primary_decimal), "wal": str(self.storage_decimal)}
