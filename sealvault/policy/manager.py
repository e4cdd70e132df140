"""
Whitelist / Cap lifecycle on the ledger.

The ledger is the system of record and serializes conflicting mutations;
nothing here locks. Callers that want optimistic retries pass a
:class:`RetryPolicy`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Tuple, Type, TypeVar
import logging
import time

from ..errors import AuthorizationDenied, LinkageNotFound, NotFound, TransactionFailure
from ..ledger.bcs import decode_address_vector, normalize_address
from ..ledger.client import ILedgerClient, TransactionEffects
from ..ledger.transactions import TransactionBlock, obj, pure_address
from .models import Cap, PolicyPair, WhitelistAbort

logger = logging.getLogger(__name__)

T = TypeVar("T")

CREATE_FUNCTION = "create_whitelist_entry"
ADD_FUNCTION = "add"
REMOVE_FUNCTION = "remove"
GET_ADDRESSES_FUNCTION = "get_addresses"


@dataclass(frozen=True)
class RetryPolicy:
    """Optimistic retry for ledger submissions. The default makes a single attempt."""

    attempts: int = 1
    delay_seconds: float = 0.0
    retry_on: Tuple[Type[BaseException], ...] = (TransactionFailure,)

    def run(self, operation: Callable[[], T], describe: str = "ledger call") -> T:
        if self.attempts < 1:
            raise ValueError("attempts must be at least 1")
        for attempt in range(1, self.attempts + 1):
            try:
                return operation()
            except self.retry_on as exc:
                if attempt == self.attempts:
                    raise
                logger.warning("%s failed (attempt %d/%d): %s", describe, attempt, self.attempts, exc)
                if self.delay_seconds:
                    time.sleep(self.delay_seconds)
        raise AssertionError("unreachable")


def _dedupe(addresses: Iterable[str]) -> List[str]:
    seen = set()
    unique = []
    for address in addresses:
        normalized = normalize_address(address)
        if normalized not in seen:
            seen.add(normalized)
            unique.append(normalized)
    return unique


class AccessPolicyManager:
    def __init__(self, ledger: ILedgerClient, signer, package_id: str, module: str = "whitelist",
                 retry: Optional[RetryPolicy] = None):
        self.ledger = ledger
        self.signer = signer
        self.package_id = package_id
        self.module = module
        self.retry = retry or RetryPolicy()

    def target(self, function: str) -> str:
        return f"{self.package_id}::{self.module}::{function}"

    def object_type(self, name: str) -> str:
        return f"{self.package_id}::{self.module}::{name}"

    def _submit(self, tx: TransactionBlock, describe: str) -> TransactionEffects:
        return self.retry.run(lambda: self.ledger.sign_and_execute(tx, self.signer), describe)

    def create_policy(self) -> PolicyPair:
        """Create a Whitelist and its Cap in one transaction."""
        tx = TransactionBlock().move_call(self.target(CREATE_FUNCTION))
        effects = self._submit(tx, "create policy")
        if not effects.ok:
            raise TransactionFailure(f"Transaction failed: {effects.error}", digest=effects.digest)

        ids = {}
        for name in ("Whitelist", "Cap"):
            created = effects.created_of_type(self.object_type(name))
            if not created:
                raise LinkageNotFound(self.object_type(name), effects.digest)
            ids[name] = created[0].object_id

        policy = PolicyPair(whitelist_id=ids["Whitelist"], cap_id=ids["Cap"])
        logger.info("Created whitelist %s with cap %s (tx %s)", policy.whitelist_id, policy.cap_id, effects.digest)
        return policy

    def get_policy(self, cap_id: str) -> PolicyPair:
        """Resolve the whitelist a Cap controls."""
        cap_obj = self.ledger.require_object(cap_id, "cap")
        if cap_obj.object_type != self.object_type("Cap"):
            raise NotFound("cap", cap_id)
        cap = Cap(id=cap_id, whitelist_id=cap_obj.fields["wl_id"])
        return PolicyPair(whitelist_id=cap.whitelist_id, cap_id=cap.id)

    def get_members(self, whitelist_id: str) -> List[str]:
        """Read the member list through a simulated getter call."""
        tx = TransactionBlock().move_call(self.target(GET_ADDRESSES_FUNCTION), [obj(whitelist_id)])
        result = self.ledger.simulate(tx.to_bytes(kind_only=True), self.signer.address)
        if not result.ok:
            if self.ledger.get_object(whitelist_id) is None:
                raise NotFound("whitelist", whitelist_id)
            raise TransactionFailure(f"Inspection failed: {result.error}")
        if not result.return_values:
            raise TransactionFailure(f"No entries returned for whitelist {whitelist_id}")
        payload, _ = result.return_values[0]
        try:
            return decode_address_vector(payload)
        except ValueError as exc:
            raise TransactionFailure(f"Malformed member list for whitelist {whitelist_id}: {exc}") from exc

    def add_members(self, whitelist_id: str, cap_id: str, addresses: Iterable[str]) -> Optional[TransactionEffects]:
        """
        Add ``addresses`` to the whitelist. Addresses already present (and
        repeats within the request) are skipped; returns None when nothing
        was left to submit.
        """
        existing = set(self.get_members(whitelist_id))
        pending = [a for a in _dedupe(addresses) if a not in existing]
        if not pending:
            logger.debug("All requested members already in whitelist %s", whitelist_id)
            return None
        return self._change_members(whitelist_id, cap_id, pending, ADD_FUNCTION)

    def remove_members(self, whitelist_id: str, cap_id: str, addresses: Iterable[str]) -> Optional[TransactionEffects]:
        """Remove ``addresses`` from the whitelist, skipping ones that are not members."""
        existing = set(self.get_members(whitelist_id))
        pending = [a for a in _dedupe(addresses) if a in existing]
        if not pending:
            logger.debug("None of the requested members are in whitelist %s", whitelist_id)
            return None
        return self._change_members(whitelist_id, cap_id, pending, REMOVE_FUNCTION)

    def _change_members(self, whitelist_id: str, cap_id: str, members: List[str], function: str) -> TransactionEffects:
        tx = TransactionBlock()
        for member in members:
            tx.move_call(self.target(function), [obj(whitelist_id), obj(cap_id), pure_address(member)])
        effects = self._submit(tx, f"{function} members")
        if not effects.ok:
            abort = effects.abort()
            if abort == (self.module, WhitelistAbort.INVALID_CAP) or effects.not_owned_object() == cap_id:
                raise AuthorizationDenied(whitelist_id, cap_id, effects.error or "")
            raise TransactionFailure(f"Transaction failed: {effects.error}", digest=effects.digest)
        logger.info("%s %d member(s) on whitelist %s (tx %s)", function, len(members), whitelist_id, effects.digest)
        return effects
