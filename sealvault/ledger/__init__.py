"""Ledger client contract, transaction model and BCS helpers."""

from .client import ILedgerClient, InspectResult, LedgerObject, ObjectChange, TransactionEffects
from .transactions import MoveCall, TransactionBlock, TransferObjects, obj, pure_address, pure_bytes

__all__ = [
    "ILedgerClient",
    "InspectResult",
    "LedgerObject",
    "ObjectChange",
    "TransactionEffects",
    "MoveCall",
    "TransactionBlock",
    "TransferObjects",
    "obj",
    "pure_address",
    "pure_bytes",
]
