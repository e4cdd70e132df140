"""
In-process ledger with the whitelist contract's semantics.

Responses are shaped like the RPC node's JSON so that everything above goes
through the same boundary parsers as a networked client would.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple
import base64
import copy
import hashlib
import logging
import os

from ..config import get_settings
from ..crypto.signatures import address_from_public_key, verify_signature
from ..ledger.bcs import address_to_bytes, encode_address_vector, normalize_address
from ..ledger.client import ILedgerClient
from ..ledger.transactions import MoveCall, TransactionBlock, TransferObjects
from ..policy.models import WhitelistAbort

logger = logging.getLogger(__name__)


class _Abort(Exception):
    """Execution failure carrying the ledger's error text."""


def _new_object_id() -> str:
    return "0x" + os.urandom(32).hex()


def _owner_json(owner: Optional[str]) -> Dict[str, Any]:
    if owner is None:
        return {"Shared": {"initial_shared_version": 1}}
    return {"AddressOwner": owner}


class InMemoryLedger(ILedgerClient):
    def __init__(self, package_id: Optional[str] = None, module: Optional[str] = None):
        settings = get_settings()
        self.package_id = package_id or settings.package_id
        self.module = module or settings.whitelist_module
        self.offline = False
        # object id -> {"type", "owner", "fields"}; owner None means shared
        self._objects: Dict[str, Dict[str, Any]] = {}
        self._deleted: set = set()
        self._balances: Dict[Tuple[str, str], int] = {}
        self._transactions: Dict[str, Dict[str, Any]] = {}
        self.history: List[Tuple[str, TransactionBlock]] = []

    # ============================================================================
    # Helpers for collaborators and tests
    # ============================================================================

    def create_object(self, object_type: str, owner: Optional[str], fields: Dict[str, Any]) -> str:
        object_id = _new_object_id()
        self._objects[object_id] = {
            "type": object_type,
            "owner": owner,
            "fields": dict(fields, id=object_id),
        }
        return object_id

    def delete_object(self, object_id: str) -> None:
        del self._objects[object_id]
        self._deleted.add(object_id)

    def objects_of_type(self, object_type: str) -> List[Dict[str, Any]]:
        return [found["fields"] for found in self._objects.values() if found["type"] == object_type]

    def owner_of(self, object_id: str) -> Optional[str]:
        return self._objects[object_id]["owner"]

    def fund(self, owner: str, coin_type: str, amount: int) -> None:
        key = (normalize_address(owner), coin_type)
        self._balances[key] = self._balances.get(key, 0) + amount

    def balance(self, owner: str, coin_type: str) -> int:
        return self._balances.get((normalize_address(owner), coin_type), 0)

    def debit(self, owner: str, coin_type: str, amount: int) -> None:
        key = (normalize_address(owner), coin_type)
        available = self._balances.get(key, 0)
        if available < amount:
            raise ValueError(f"balance of {coin_type} is {available}, needs {amount}")
        self._balances[key] = available - amount

    def _check_online(self) -> None:
        if self.offline:
            raise ConnectionError("ledger node unreachable")

    # ============================================================================
    # Contract execution
    # ============================================================================

    def _abort(self, function: str, code: WhitelistAbort, index: int) -> _Abort:
        return _Abort(
            f"MoveAbort(MoveLocation {{ module: ModuleId {{ address: {self.package_id}, "
            f'name: Identifier("{self.module}") }}, function_name: Some("{function}") }}, '
            f"{int(code)}) in command {index}"
        )

    @staticmethod
    def _object_arg(objects: Dict[str, Dict[str, Any]], argument: Dict[str, str]) -> Tuple[str, Dict[str, Any]]:
        object_id = argument.get("object")
        if object_id is None:
            raise _Abort(f"Expected object argument, got {argument!r}")
        found = objects.get(object_id)
        if found is None:
            raise _Abort(f"ObjectNotFound {{ object_id: {object_id} }}")
        return object_id, found

    @staticmethod
    def _require_owned(found: Dict[str, Any], object_id: str, sender: str) -> None:
        if found["owner"] != sender:
            raise _Abort(f"ObjectNotOwnedBySender {{ object_id: {object_id} }}")

    def _run_move_call(
        self,
        objects: Dict[str, Dict[str, Any]],
        call: MoveCall,
        sender: str,
        index: int,
        changes: List[Dict[str, Any]],
    ) -> List[List[Any]]:
        if call.package != self.package_id or call.module != self.module:
            raise _Abort(f"FunctionNotFound: {call.target}")
        wl_type = f"{self.package_id}::{self.module}::Whitelist"
        cap_type = f"{self.package_id}::{self.module}::Cap"
        args = call.arguments

        if call.function == "create_whitelist_entry":
            wl_id, cap_id = _new_object_id(), _new_object_id()
            objects[wl_id] = {"type": wl_type, "owner": None, "fields": {"id": wl_id, "list": []}}
            objects[cap_id] = {"type": cap_type, "owner": sender, "fields": {"id": cap_id, "wl_id": wl_id}}
            changes.append({"type": "created", "objectId": wl_id, "objectType": wl_type, "owner": _owner_json(None)})
            changes.append({"type": "created", "objectId": cap_id, "objectType": cap_type, "owner": _owner_json(sender)})
            return []

        if call.function in ("add", "remove"):
            wl_id, whitelist = self._object_arg(objects, args[0])
            cap_id, cap = self._object_arg(objects, args[1])
            self._require_owned(cap, cap_id, sender)
            if cap["fields"]["wl_id"] != wl_id:
                raise self._abort(call.function, WhitelistAbort.INVALID_CAP, index)
            member = normalize_address(args[2]["address"])
            members = whitelist["fields"]["list"]
            if call.function == "add":
                if member in members:
                    raise self._abort(call.function, WhitelistAbort.DUPLICATE, index)
                members.append(member)
            else:
                if member not in members:
                    raise self._abort(call.function, WhitelistAbort.NOT_MEMBER, index)
                members.remove(member)
            changes.append({"type": "mutated", "objectId": wl_id, "objectType": wl_type, "owner": _owner_json(None)})
            return []

        if call.function == "get_addresses":
            _, whitelist = self._object_arg(objects, args[0])
            return [[list(encode_address_vector(whitelist["fields"]["list"])), "vector<address>"]]

        if call.function == "seal_approve":
            id_bytes = bytes.fromhex(args[0]["bytes"])
            wl_id, whitelist = self._object_arg(objects, args[1])
            if not id_bytes.startswith(address_to_bytes(wl_id)) or sender not in whitelist["fields"]["list"]:
                raise self._abort(call.function, WhitelistAbort.NO_ACCESS, index)
            return []

        raise _Abort(f"FunctionNotFound: {call.target}")

    def _run(self, block: TransactionBlock, sender: str) -> Tuple[Dict[str, Dict[str, Any]], List[Dict[str, Any]], List[List[List[Any]]]]:
        """Run ``block`` against a copy of the object table. Raises _Abort on failure."""
        objects = copy.deepcopy(self._objects)
        changes: List[Dict[str, Any]] = []
        results: List[List[List[Any]]] = []
        for index, command in enumerate(block.commands):
            if isinstance(command, MoveCall):
                results.append(self._run_move_call(objects, command, sender, index, changes))
            elif isinstance(command, TransferObjects):
                recipient = normalize_address(command.recipient)
                for object_id in command.object_ids:
                    _, found = self._object_arg(objects, {"object": object_id})
                    self._require_owned(found, object_id, sender)
                    found["owner"] = recipient
                    changes.append({
                        "type": "transferred",
                        "objectId": object_id,
                        "objectType": found["type"],
                        "owner": _owner_json(recipient),
                    })
                results.append([])
        return objects, changes, results

    # ============================================================================
    # ILedgerClient raw calls
    # ============================================================================

    def _execute(self, tx_bytes: bytes, signature: bytes, public_key: bytes) -> Dict[str, Any]:
        self._check_online()
        digest = base64.urlsafe_b64encode(hashlib.sha256(tx_bytes + os.urandom(8)).digest()).decode("ascii").rstrip("=")
        block, sender = TransactionBlock.from_bytes(tx_bytes)

        try:
            if sender is None or address_from_public_key(public_key) != sender:
                raise _Abort("Invalid user signature: signer does not match sender")
            if not verify_signature(tx_bytes, signature, public_key):
                raise _Abort("Invalid user signature")
            objects, changes, _ = self._run(block, sender)
        except _Abort as exc:
            logger.debug("Transaction %s aborted: %s", digest, exc)
            raw = {"digest": digest, "effects": {"status": {"status": "failure", "error": str(exc)}}, "objectChanges": []}
        else:
            self._objects = objects
            raw = {"digest": digest, "effects": {"status": {"status": "success"}}, "objectChanges": changes}
        self._transactions[digest] = raw
        self.history.append((digest, block))
        return raw

    def _dev_inspect(self, tx_bytes: bytes, sender: str) -> Dict[str, Any]:
        self._check_online()
        try:
            block, _ = TransactionBlock.from_bytes(tx_bytes)
        except ValueError as exc:
            return {"error": f"Invalid transaction bytes: {exc}"}
        try:
            _, _, results = self._run(block, normalize_address(sender))
        except _Abort as exc:
            return {"error": str(exc)}
        return {"results": [{"returnValues": values} for values in results]}

    def _object_json(self, object_id: str) -> Dict[str, Any]:
        found = self._objects[object_id]
        return {
            "data": {
                "objectId": object_id,
                "type": found["type"],
                "owner": _owner_json(found["owner"]),
                "content": {"dataType": "moveObject", "fields": copy.deepcopy(found["fields"])},
            }
        }

    def _get_object(self, object_id: str) -> Dict[str, Any]:
        self._check_online()
        if object_id in self._objects:
            return self._object_json(object_id)
        code = "deleted" if object_id in self._deleted else "notExists"
        return {"error": {"code": code, "object_id": object_id}}

    def _get_owned_objects(self, owner: str, struct_type: Optional[str]) -> List[Dict[str, Any]]:
        self._check_online()
        owner = normalize_address(owner)
        return [
            self._object_json(object_id)
            for object_id, found in self._objects.items()
            if found["owner"] == owner and (struct_type is None or found["type"] == struct_type)
        ]

    def _get_balance(self, owner: str, coin_type: str) -> Dict[str, Any]:
        self._check_online()
        return {"coinType": coin_type, "totalBalance": str(self.balance(owner, coin_type))}

    def _wait_for_transaction(self, digest: str, timeout: float) -> Dict[str, Any]:
        self._check_online()
        if digest not in self._transactions:
            raise TimeoutError(f"transaction {digest} not seen within {timeout}s")
        return self._transactions[digest]
