"""
Ethereum-style address derivation.

    address = keccak256(x ‖ y)[12:]

where *x* and *y* are the 32-byte big-endian affine coordinates of the
public key (no ``0x04`` prefix).  Display uses the EIP-55 mixed-case
checksum.
"""

from __future__ import annotations

from typing import Union

from .constants import ADDRESS_BYTES
from .curve import Point
from .hash import keccak256


def to_address(pt: Point) -> bytes:
    """20-byte address of a public key point."""
    return keccak256(pt.to_bytes())[-ADDRESS_BYTES:]


def to_checksum_address(addr: Union[bytes, str]) -> str:
    """EIP-55 checksum encoding of a 20-byte address."""
    raw = address_bytes(addr)
    lower = raw.hex()
    digest = keccak256(lower.encode("ascii")).hex()
    out = []
    for ch, nib in zip(lower, digest):
        out.append(ch.upper() if ch.isalpha() and int(nib, 16) >= 8 else ch)
    return "0x" + "".join(out)


def address_bytes(addr: Union[bytes, str]) -> bytes:
    """
    Normalise an address to its 20 raw bytes.

    Hex strings may be all-lower or all-upper case; a mixed-case string
    must carry a valid EIP-55 checksum.
    """
    if isinstance(addr, (bytes, bytearray)):
        if len(addr) != ADDRESS_BYTES:
            raise ValueError(f"address must be {ADDRESS_BYTES} bytes, got {len(addr)}")
        return bytes(addr)
    if not isinstance(addr, str):
        raise TypeError(f"unsupported address type {type(addr).__name__}")
    h = addr[2:] if addr[:2] in ("0x", "0X") else addr
    if len(h) != 2 * ADDRESS_BYTES:
        raise ValueError(f"address must be 40 hex chars, got {len(h)}")
    try:
        raw = bytes.fromhex(h)
    except ValueError as e:
        raise ValueError(f"invalid address {addr!r}") from e
    if h != h.lower() and h != h.upper():
        if to_checksum_address(raw)[2:] != h:
            raise ValueError(f"bad EIP-55 checksum for {addr!r}")
    return raw
