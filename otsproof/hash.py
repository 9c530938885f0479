"""
Keccak-256 and the Solidity encodings hashed by the withdrawal contracts.

Ethereum's Keccak-256 is the *original* Keccak submission (pad 0x01),
not NIST SHA3-256 (pad 0x06); ``hashlib.sha3_256`` therefore gives
different digests.  We use pycryptodome's ``Crypto.Hash.keccak``.

Two encodings are needed and they are **not** interchangeable:

``encode_packed``   ``abi.encodePacked``: each value at its natural
                    width, concatenated with no padding (address = 20 B,
                    uint256 / bytes32 = 32 B).

``abi_encode``      ``abi.encode`` for static types: every value left-
                    padded to a 32-byte word.

Only the static types used on-chain here are supported: ``address``,
``uint256``, ``bytes32``.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, localcontext
from typing import Any, Sequence, Tuple, Union

from Crypto.Hash import keccak as _keccak

from .constants import HASH_BYTES, WEI_PER_ETHER

_UINT256_MAX = 2**256 - 1
_PERSONAL_PREFIX = b"\x19Ethereum Signed Message:\n32"

AbiType = str


# ── Keccak-256 ──────────────────────────────────────────────────────────
def keccak256(*parts: bytes) -> bytes:
    """Keccak-256 over the concatenation of *parts*."""
    h = _keccak.new(digest_bits=256)
    for p in parts:
        h.update(p)
    return h.digest()


def eth_signed_message_hash(digest: bytes) -> bytes:
    """
    EIP-191 personal-message hash of a 32-byte digest:

        keccak256("\\x19Ethereum Signed Message:\\n32" ‖ digest)

    This is what ``signMessage(arrayify(hash))`` in wallet libraries
    and ``ECDSA.toEthSignedMessageHash`` on-chain both produce.
    """
    if len(digest) != HASH_BYTES:
        raise ValueError(f"digest must be {HASH_BYTES} bytes, got {len(digest)}")
    return keccak256(_PERSONAL_PREFIX, digest)


# ── value coercion ──────────────────────────────────────────────────────
def to_bytes32(value: Union[bytes, str]) -> bytes:
    """Accept 32 raw bytes or a (``0x``-prefixed) 64-char hex string."""
    if isinstance(value, str):
        h = value[2:] if value[:2] in ("0x", "0X") else value
        if len(h) != 2 * HASH_BYTES:
            raise ValueError(f"expected 32-byte hex string, got {len(h)} chars")
        return bytes.fromhex(h)
    data = bytes(value)
    if len(data) != HASH_BYTES:
        raise ValueError(f"expected {HASH_BYTES} bytes, got {len(data)}")
    return data


def _uint256(value: Any) -> int:
    v = int(value)
    if not 0 <= v <= _UINT256_MAX:
        raise ValueError(f"uint256 out of range: {v}")
    return v


def _encode_item(abi_type: AbiType, value: Any, packed: bool) -> bytes:
    if abi_type == "address":
        from .address import address_bytes
        raw = address_bytes(value)
        return raw if packed else raw.rjust(32, b"\x00")
    if abi_type == "uint256":
        return _uint256(value).to_bytes(32, "big")
    if abi_type == "bytes32":
        return to_bytes32(value)
    raise ValueError(f"unsupported ABI type {abi_type!r}")


def _pairs(types: Sequence[AbiType], values: Sequence[Any]) -> Tuple:
    if len(types) != len(values):
        raise ValueError("types and values must have equal length")
    return tuple(zip(types, values))


def encode_packed(types: Sequence[AbiType], values: Sequence[Any]) -> bytes:
    """Solidity ``abi.encodePacked`` for address / uint256 / bytes32."""
    return b"".join(_encode_item(t, v, True) for t, v in _pairs(types, values))


def abi_encode(types: Sequence[AbiType], values: Sequence[Any]) -> bytes:
    """Solidity ``abi.encode`` for a tuple of static types."""
    return b"".join(_encode_item(t, v, False) for t, v in _pairs(types, values))


# ── units ───────────────────────────────────────────────────────────────
def to_wei(amount: Union[Decimal, str, int]) -> int:
    """
    Convert an ether amount to wei (×10^18), like ``parseEther``.

    ``float`` is refused: binary floating point cannot represent most
    decimal denominations exactly.  More than 18 fractional digits is an
    error rather than a silent truncation.
    """
    if isinstance(amount, bool) or isinstance(amount, float):
        raise TypeError("denomination must be Decimal, str or int")
    try:
        d = Decimal(amount)
    except InvalidOperation as e:
        raise ValueError(f"invalid denomination {amount!r}") from e
    if not d.is_finite() or d < 0:
        raise ValueError(f"invalid denomination {amount!r}")
    with localcontext() as ctx:
        ctx.prec = 100
        wei = d * WEI_PER_ETHER
    if wei != wei.to_integral_value():
        raise ValueError(f"denomination {amount!r} has more than 18 decimals")
    return _uint256(int(wei))

