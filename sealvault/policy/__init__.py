"""Access policy (whitelist / capability) management."""

from .manager import AccessPolicyManager, RetryPolicy
from .models import Cap, PolicyPair, Whitelist, WhitelistAbort

__all__ = [
    "AccessPolicyManager",
    "RetryPolicy",
    "Cap",
    "PolicyPair",
    "Whitelist",
    "WhitelistAbort",
]
