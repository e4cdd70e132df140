"""Shamir secret sharing over GF(2^521 - 1), used to split data keys across key servers."""

from dataclasses import dataclass
from typing import List, Sequence
import secrets

PRIME = 2 ** 521 - 1
SHARE_VALUE_BYTES = 66


@dataclass(frozen=True)
class Share:
    """One point (index, value) of the sharing polynomial. Index 0 is never issued."""

    index: int
    value: int

    def to_bytes(self) -> bytes:
        return self.index.to_bytes(1, "big") + self.value.to_bytes(SHARE_VALUE_BYTES, "big")

    @classmethod
    def from_bytes(cls, data: bytes) -> "Share":
        if len(data) != 1 + SHARE_VALUE_BYTES:
            raise ValueError(f"share must be {1 + SHARE_VALUE_BYTES} bytes, got {len(data)}")
        return cls(index=data[0], value=int.from_bytes(data[1:], "big"))


def _eval_poly(coefficients: Sequence[int], x: int) -> int:
    result = 0
    for coefficient in reversed(coefficients):
        result = (result * x + coefficient) % PRIME
    return result


def split(secret: bytes, threshold: int, count: int) -> List[Share]:
    """Split ``secret`` into ``count`` shares, any ``threshold`` of which recover it."""
    if not 1 <= threshold <= count:
        raise ValueError(f"threshold must be between 1 and {count}, got {threshold}")
    if count > 255:
        raise ValueError("at most 255 shares are supported")
    value = int.from_bytes(secret, "big")
    if value >= PRIME:
        raise ValueError("secret too large for the field")
    coefficients = [value] + [secrets.randbelow(PRIME) for _ in range(threshold - 1)]
    return [Share(index=x, value=_eval_poly(coefficients, x)) for x in range(1, count + 1)]


def combine(shares: Sequence[Share], secret_length: int) -> bytes:
    """Recover the secret by Lagrange interpolation at x = 0."""
    if not shares:
        raise ValueError("no shares to combine")
    indices = [share.index for share in shares]
    if len(set(indices)) != len(indices):
        raise ValueError("duplicate share indices")

    secret = 0
    for share in shares:
        numerator, denominator = 1, 1
        for other in indices:
            if other == share.index:
                continue
            numerator = (numerator * -other) % PRIME
            denominator = (denominator * (share.index - other)) % PRIME
        lagrange = numerator * pow(denominator, -1, PRIME)
        secret = (secret + share.value * lagrange) % PRIME
    return secret.to_bytes(secret_length, "big")
