"""
Ledger client contract and the typed records its responses are parsed into.

Implementations provide the raw RPC-shaped calls (``_execute``,
``_dev_inspect``, ...). The public methods on :class:`ILedgerClient` parse
those responses at the boundary and reject anything unrecognized, so no
untyped response data travels further into the package.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import logging
import re

from ..errors import NotFound, TransactionFailure
from .transactions import TransactionBlock

logger = logging.getLogger(__name__)

_ABORT_RE = re.compile(r'MoveAbort\(.*?Identifier\("(?P<module>\w+)"\).*?\},\s*(?P<code>\d+)\)')
_NOT_OWNED_RE = re.compile(r"ObjectNotOwnedBySender \{ object_id: (?P<object_id>0x[0-9a-fA-F]+) \}")


# ============================================================================
# Typed responses
# ============================================================================

@dataclass(frozen=True)
class ObjectChange:
    change_type: str  # created | mutated | transferred | deleted
    object_id: str
    object_type: str = ""
    owner: Optional[str] = None


@dataclass(frozen=True)
class TransactionEffects:
    digest: str
    status: str
    error: Optional[str] = None
    object_changes: Tuple[ObjectChange, ...] = ()

    @property
    def ok(self) -> bool:
        return self.status == "success"

    def created_of_type(self, object_type: str) -> List[ObjectChange]:
        return [c for c in self.object_changes if c.change_type == "created" and c.object_type == object_type]

    def abort(self) -> Optional[Tuple[str, int]]:
        """(module, abort code) when the failure was a move abort."""
        if not self.error:
            return None
        match = _ABORT_RE.search(self.error)
        if not match:
            return None
        return match.group("module"), int(match.group("code"))

    def not_owned_object(self) -> Optional[str]:
        """Id of an input object the sender does not own, when that caused the failure."""
        match = _NOT_OWNED_RE.search(self.error or "")
        return match.group("object_id") if match else None


@dataclass(frozen=True)
class InspectResult:
    error: Optional[str] = None
    return_values: Tuple[Tuple[bytes, str], ...] = ()  # (bcs bytes, move type) of the first command

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class LedgerObject:
    object_id: str
    object_type: str
    owner: Optional[str]
    fields: Dict[str, Any] = field(default_factory=dict)


# ============================================================================
# Boundary parsers
# ============================================================================

def _owner_address(raw_owner: Any) -> Optional[str]:
    if isinstance(raw_owner, dict):
        return raw_owner.get("AddressOwner") or raw_owner.get("ObjectOwner")
    if isinstance(raw_owner, str):
        return raw_owner
    return None


def parse_effects(raw: Any) -> TransactionEffects:
    if not isinstance(raw, dict) or not isinstance(raw.get("digest"), str):
        raise TransactionFailure(f"Unrecognized transaction response: {raw!r}")
    effects = raw.get("effects")
    status = effects.get("status") if isinstance(effects, dict) else None
    if not isinstance(status, dict) or status.get("status") not in ("success", "failure"):
        raise TransactionFailure("Transaction response has no effect status", digest=raw["digest"])
    raw_changes = raw.get("objectChanges") or []
    if not isinstance(raw_changes, list):
        raise TransactionFailure(f"Malformed object changes {raw_changes!r}", digest=raw["digest"])
    changes = []
    for item in raw_changes:
        if not isinstance(item, dict):
            raise TransactionFailure(f"Malformed object change {item!r}", digest=raw["digest"])
        try:
            changes.append(ObjectChange(
                change_type=item["type"],
                object_id=item["objectId"],
                object_type=item.get("objectType", ""),
                owner=_owner_address(item.get("owner")),
            ))
        except KeyError as exc:
            raise TransactionFailure(f"Malformed object change {item!r}", digest=raw["digest"]) from exc
    return TransactionEffects(
        digest=raw["digest"],
        status=status["status"],
        error=status.get("error"),
        object_changes=tuple(changes),
    )


def parse_inspect(raw: Any) -> InspectResult:
    if not isinstance(raw, dict):
        raise TransactionFailure(f"Unrecognized inspection response: {raw!r}")
    if raw.get("error"):
        return InspectResult(error=str(raw["error"]))
    results = raw.get("results") or []
    if not isinstance(results, list):
        raise TransactionFailure(f"Malformed results in inspection response: {results!r}")
    if not results:
        return InspectResult()
    if not isinstance(results[0], dict):
        raise TransactionFailure(f"Malformed command result in inspection response: {results[0]!r}")
    values = []
    try:
        for value, move_type in results[0].get("returnValues") or []:
            values.append((bytes(value), str(move_type)))
    except (TypeError, ValueError) as exc:
        raise TransactionFailure(f"Malformed return values in inspection response: {exc}") from exc
    return InspectResult(return_values=tuple(values))


def parse_object(raw: Any, object_id: str) -> Optional[LedgerObject]:
    if not isinstance(raw, dict):
        raise TransactionFailure(f"Unrecognized object response for {object_id}: {raw!r}")
    error = raw.get("error")
    if error:
        if isinstance(error, dict) and error.get("code") in ("notExists", "deleted"):
            return None
        raise TransactionFailure(f"Object lookup failed for {object_id}: {error}")
    data = raw.get("data")
    if not isinstance(data, dict):
        raise TransactionFailure(f"Object response for {object_id} has no data")
    content = data.get("content") or {}
    fields = (content.get("fields") or {}) if isinstance(content, dict) else None
    if not isinstance(fields, dict):
        raise TransactionFailure(f"Object response for {object_id} has malformed content")
    return LedgerObject(
        object_id=data.get("objectId", object_id),
        object_type=data.get("type", ""),
        owner=_owner_address(data.get("owner")),
        fields=dict(fields),
    )


# ============================================================================
# Client contract
# ============================================================================

class ILedgerClient(ABC):
    """Signs and submits transactions, reads objects and simulates read-only calls."""

    @abstractmethod
    def _execute(self, tx_bytes: bytes, signature: bytes, public_key: bytes) -> Dict[str, Any]: ...

    @abstractmethod
    def _dev_inspect(self, tx_bytes: bytes, sender: str) -> Dict[str, Any]: ...

    @abstractmethod
    def _get_object(self, object_id: str) -> Dict[str, Any]: ...

    @abstractmethod
    def _get_owned_objects(self, owner: str, struct_type: Optional[str]) -> List[Dict[str, Any]]: ...

    @abstractmethod
    def _get_balance(self, owner: str, coin_type: str) -> Dict[str, Any]: ...

    @abstractmethod
    def _wait_for_transaction(self, digest: str, timeout: float) -> Dict[str, Any]: ...

    def sign_and_execute(self, tx: TransactionBlock, signer) -> TransactionEffects:
        """Sign ``tx`` with ``signer`` and submit it. Network errors become TransactionFailure."""
        tx_bytes = tx.to_bytes(sender=signer.address)
        try:
            raw = self._execute(tx_bytes, signer.sign(tx_bytes), signer.public_key_bytes)
        except OSError as exc:
            raise TransactionFailure(f"Ledger unreachable: {exc}") from exc
        effects = parse_effects(raw)
        logger.debug("Executed %s -> %s", effects.digest, effects.status)
        return effects

    def simulate(self, tx_bytes: bytes, sender: str) -> InspectResult:
        """Dry-run ``tx_bytes`` as ``sender``; no fee, no state change."""
        try:
            return parse_inspect(self._dev_inspect(tx_bytes, sender))
        except OSError as exc:
            raise TransactionFailure(f"Ledger unreachable: {exc}") from exc

    def get_object(self, object_id: str) -> Optional[LedgerObject]:
        try:
            return parse_object(self._get_object(object_id), object_id)
        except OSError as exc:
            raise TransactionFailure(f"Ledger unreachable: {exc}") from exc

    def require_object(self, object_id: str, kind: str = "object") -> LedgerObject:
        found = self.get_object(object_id)
        if found is None:
            raise NotFound(kind, object_id)
        return found

    def get_owned_objects(self, owner: str, struct_type: Optional[str] = None) -> List[LedgerObject]:
        try:
            raws = self._get_owned_objects(owner, struct_type)
        except OSError as exc:
            raise TransactionFailure(f"Ledger unreachable: {exc}") from exc
        if not isinstance(raws, list):
            raise TransactionFailure(f"Unrecognized owned objects response: {raws!r}")
        owned = []
        for raw in raws:
            parsed = parse_object(raw, "<owned>")
            if parsed is not None:
                owned.append(parsed)
        return owned

    def get_balance(self, owner: str, coin_type: str) -> int:
        try:
            raw = self._get_balance(owner, coin_type)
        except OSError as exc:
            raise TransactionFailure(f"Ledger unreachable: {exc}") from exc
        try:
            return int(raw["totalBalance"])
        except (KeyError, TypeError, ValueError) as exc:
            raise TransactionFailure(f"Unrecognized balance response: {raw!r}") from exc

    def wait_for_transaction(self, digest: str, timeout: float) -> TransactionEffects:
        """Block until ``digest`` is final on the ledger, or raise TransactionFailure."""
        try:
            raw = self._wait_for_transaction(digest, timeout)
        except OSError as exc:  # includes TimeoutError
            raise TransactionFailure(f"Transaction {digest} not confirmed: {exc}", digest=digest) from exc
        return parse_effects(raw)
