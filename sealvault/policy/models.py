from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import List


class WhitelistAbort(IntEnum):
    """Abort codes raised by the whitelist contract."""

    INVALID_CAP = 0
    NO_ACCESS = 1
    DUPLICATE = 2
    NOT_MEMBER = 3


@dataclass(frozen=True)
class PolicyPair:
    """The (whitelist, cap) pair created for one encryption event."""

    whitelist_id: str
    cap_id: str

    def to_attributes(self):
        return {"capId": self.cap_id, "whitelistId": self.whitelist_id}


@dataclass
class Whitelist:
    id: str
    members: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Cap:
    """Possession of a Cap authorizes mutating the Whitelist it points to."""

    id: str
    whitelist_id: str
