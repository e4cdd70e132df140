"""
Programmable transaction model.

A :class:`TransactionBlock` is an ordered list of move calls and object
transfers. It serializes to canonical JSON bytes, which are what the signer
signs and what the threshold service receives as an (unsubmitted) approval
preview.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
import json


def obj(object_id: str) -> Dict[str, str]:
    """An object argument."""
    return {"object": object_id}


def pure_address(address: str) -> Dict[str, str]:
    return {"address": address}


def pure_bytes(value: bytes) -> Dict[str, str]:
    """A ``vector<u8>`` argument."""
    return {"bytes": value.hex()}


@dataclass(frozen=True)
class MoveCall:
    target: str  # <package>::<module>::<function>
    arguments: Tuple[Dict[str, str], ...] = ()

    @property
    def package(self) -> str:
        return self.target.split("::")[0]

    @property
    def module(self) -> str:
        return self.target.split("::")[1]

    @property
    def function(self) -> str:
        return self.target.split("::")[2]

    def to_dict(self) -> Dict[str, Any]:
        return {"MoveCall": {"target": self.target, "arguments": list(self.arguments)}}


@dataclass(frozen=True)
class TransferObjects:
    object_ids: Tuple[str, ...]
    recipient: str

    def to_dict(self) -> Dict[str, Any]:
        return {"TransferObjects": {"objects": list(self.object_ids), "recipient": self.recipient}}


Command = Union[MoveCall, TransferObjects]


@dataclass
class TransactionBlock:
    commands: List[Command] = field(default_factory=list)

    def move_call(self, target: str, arguments: Sequence[Dict[str, str]] = ()) -> "TransactionBlock":
        if target.count("::") != 2:
            raise ValueError(f"move call target must be package::module::function, got {target!r}")
        self.commands.append(MoveCall(target=target, arguments=tuple(arguments)))
        return self

    def transfer_objects(self, object_ids: Sequence[str], recipient: str) -> "TransactionBlock":
        if not object_ids:
            raise ValueError("transfer_objects needs at least one object id")
        self.commands.append(TransferObjects(object_ids=tuple(object_ids), recipient=recipient))
        return self

    def to_bytes(self, sender: Optional[str] = None, kind_only: bool = False) -> bytes:
        """
        Serialize the block. ``kind_only`` drops the sender so the bytes can be
        handed to a third party for simulation without being executable.
        """
        payload: Dict[str, Any] = {"commands": [command.to_dict() for command in self.commands]}
        if not kind_only:
            if sender is None:
                raise ValueError("sender is required for an executable transaction")
            payload["sender"] = sender
        return json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")

    @classmethod
    def from_bytes(cls, data: bytes) -> Tuple["TransactionBlock", Optional[str]]:
        """Parse serialized bytes back into a block. Returns (block, sender)."""
        try:
            payload = json.loads(data.decode("utf-8"))
            block = cls()
            for raw in payload["commands"]:
                if "MoveCall" in raw:
                    call = raw["MoveCall"]
                    block.move_call(call["target"], [dict(arg) for arg in call["arguments"]])
                elif "TransferObjects" in raw:
                    transfer = raw["TransferObjects"]
                    block.transfer_objects(transfer["objects"], transfer["recipient"])
                else:
                    raise ValueError(f"unknown command {sorted(raw)}")
            return block, payload.get("sender")
        except (UnicodeDecodeError, json.JSONDecodeError, KeyError, TypeError, AttributeError) as exc:
            raise ValueError(f"malformed transaction bytes: {exc}") from exc
