"""Minimal BCS codec for the values returned by whitelist getters."""

from typing import List, Sequence, Tuple

ADDRESS_LENGTH = 32


def encode_uleb128(value: int) -> bytes:
    if value < 0:
        raise ValueError("ULEB128 cannot encode negative numbers")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def decode_uleb128(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Decode a ULEB128 integer at ``offset``. Returns (value, next_offset)."""
    value, shift = 0, 0
    while True:
        if offset >= len(data):
            raise ValueError("truncated ULEB128 length prefix")
        byte = data[offset]
        offset += 1
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return value, offset
        shift += 7
        if shift > 63:
            raise ValueError("ULEB128 length prefix overflows u64")


def address_to_bytes(address: str) -> bytes:
    raw = bytes.fromhex(address[2:] if address.startswith("0x") else address)
    if len(raw) > ADDRESS_LENGTH:
        raise ValueError(f"address longer than {ADDRESS_LENGTH} bytes: {address}")
    return raw.rjust(ADDRESS_LENGTH, b"\x00")


def bytes_to_address(raw: bytes) -> str:
    return "0x" + raw.hex()


def encode_address_vector(addresses: Sequence[str]) -> bytes:
    return encode_uleb128(len(addresses)) + b"".join(address_to_bytes(a) for a in addresses)


def decode_address_vector(data: bytes) -> List[str]:
    """Decode ``vector<address>``: a length prefix followed by fixed-width addresses."""
    count, offset = decode_uleb128(data)
    expected = offset + count * ADDRESS_LENGTH
    if len(data) != expected:
        raise ValueError(f"vector<address> of {count} entries needs {expected} bytes, got {len(data)}")
    return [
        bytes_to_address(data[start:start + ADDRESS_LENGTH])
        for start in range(offset, expected, ADDRESS_LENGTH)
    ]


def normalize_address(address: str) -> str:
    """Lower-case, 0x-prefixed, zero-padded 32-byte form."""
    return bytes_to_address(address_to_bytes(address.lower()))
