"""Wallet signer and balance types."""

from .models import WalletBalance
from .signer import Signer

__all__ = ["Signer", "WalletBalance"]
