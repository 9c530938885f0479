"""
Winternitz one-time signatures (w = 16) over Keccak-256 chains.

A key is 67 private 32-byte elements.  The public key is each element
hashed  w-1 = 15  times.  To sign a 32-byte digest it is split into 64
base-16 digits plus a 3-digit checksum; element *i* is hashed  d_i
times.  Verification finishes each chain with  15 - d_i  more hashes
and compares against the public key.

Digit layout (must match the on-chain verifier exactly)::

    digits[0..63]   nibbles of the digest, most-significant nibble of
                    each byte first
    digits[64..66]  C = Σ (15 - d_i)  masked to 12 bits, written
                    least-significant nibble first

The checksum makes it impossible to forge by only hashing forward: any
increase of a message digit decreases the checksum.

Each key signs exactly one message.  Reuse leaks enough chain
positions to forge.

References
----------
- Merkle (1989). "A Certified Digital Signature."  CRYPTO '89.
- Buchmann et al. (2011). "On the Security of the Winternitz One-Time
  Signature Scheme."  AFRICACRYPT 2011.
"""

from __future__ import annotations

import hmac
import secrets
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Union

from .constants import (
    HASH_BYTES,
    WOTS_CHECKSUM_DIGITS,
    WOTS_CHECKSUM_MASK,
    WOTS_LEN,
    WOTS_LOG_W,
    WOTS_MESSAGE_DIGITS,
    WOTS_W,
)
from .errors import IncompleteKeyError
from .hash import keccak256


# ── secret storage ──────────────────────────────────────────────────────

class PrivateElements:
    """
    The 67 private chain seeds, held in mutable buffers so they can be
    overwritten once the signature is made.

    Wiping is best-effort in Python: copies made by the interpreter
    (e.g. the ``bytes`` passed to the hash function) are not reachable
    from here.
    """

    __slots__ = ("_buf", "_wiped")

    def __init__(self, elements: Iterable[Union[bytes, bytearray]]) -> None:
        buf = [bytearray(e) for e in elements]
        missing = [i for i, e in enumerate(buf) if len(e) != HASH_BYTES]
        if missing:
            raise ValueError(
                f"private elements must be {HASH_BYTES} bytes "
                f"(bad indices: {missing[:8]})"
            )
        if len(buf) < WOTS_LEN:
            raise IncompleteKeyError(list(range(len(buf), WOTS_LEN)), WOTS_LEN)
        if len(buf) > WOTS_LEN:
            raise ValueError(f"expected {WOTS_LEN} private elements, got {len(buf)}")
        self._buf: List[bytearray] = buf
        self._wiped = False

    @classmethod
    def random(cls) -> PrivateElements:
        return cls(secrets.token_bytes(HASH_BYTES) for _ in range(WOTS_LEN))

    def __len__(self) -> int:
        return len(self._buf)

    def __getitem__(self, i: int) -> bytes:
        if self._wiped:
            raise RuntimeError("private elements have been wiped")
        return bytes(self._buf[i])

    def __iter__(self):
        for i in range(len(self._buf)):
            yield self[i]

    @property
    def wiped(self) -> bool:
        return self._wiped

    def wipe(self) -> None:
        """Overwrite every element with zeros and refuse further reads."""
        for b in self._buf:
            for j in range(len(b)):
                b[j] = 0
        self._wiped = True

    def __enter__(self) -> PrivateElements:
        return self

    def __exit__(self, *exc) -> None:
        self.wipe()

    def __repr__(self) -> str:
        state = "wiped" if self._wiped else f"{len(self._buf)} elements"
        return f"PrivateElements({state})"


PrivateKeyLike = Union[PrivateElements, Sequence[bytes]]


# ── encoding ────────────────────────────────────────────────────────────

def _checksum_digits(digits: Sequence[int]) -> List[int]:
    total = sum(WOTS_W - 1 - d for d in digits) & WOTS_CHECKSUM_MASK
    out = []
    for _ in range(WOTS_CHECKSUM_DIGITS):
        out.append(total & (WOTS_W - 1))
        total >>= WOTS_LOG_W
    return out


def message_to_base_w(msg_hash: bytes) -> List[int]:
    """64 message nibbles (high nibble first) followed by 3 checksum nibbles."""
    if len(msg_hash) != HASH_BYTES:
        raise ValueError(f"message hash must be {HASH_BYTES} bytes, got {len(msg_hash)}")
    digits: List[int] = []
    for byte in msg_hash:
        digits.append(byte >> 4)
        digits.append(byte & 0x0F)
    assert len(digits) == WOTS_MESSAGE_DIGITS
    return digits + _checksum_digits(digits)


def chain_hash(seed: bytes, count: int) -> bytes:
    """Apply Keccak-256 to *seed* *count* times."""
    if not 0 <= count <= 0xFF:
        raise ValueError(f"chain length must fit in a byte, got {count}")
    if len(seed) != HASH_BYTES:
        raise ValueError(f"chain seed must be {HASH_BYTES} bytes, got {len(seed)}")
    out = bytes(seed)
    for _ in range(count):
        out = keccak256(out)
    return out


# ── sign / verify ───────────────────────────────────────────────────────

def _elements(private: PrivateKeyLike) -> Sequence[bytes]:
    if isinstance(private, PrivateElements):
        return private
    return PrivateElements(private)


def sign(private: PrivateKeyLike, msg_hash: bytes) -> List[bytes]:
    """Signature element *i* is  Hash^{d_i}(private[i])."""
    elems = _elements(private)
    digits = message_to_base_w(msg_hash)
    return [chain_hash(elems[i], d) for i, d in enumerate(digits)]


def derive_public_key(private: PrivateKeyLike) -> List[bytes]:
    """Public element *i* is  Hash^{w-1}(private[i])."""
    elems = _elements(private)
    return [chain_hash(elems[i], WOTS_W - 1) for i in range(WOTS_LEN)]


def verify(
    msg_hash: bytes,
    signature: Sequence[bytes],
    public_key: Sequence[bytes],
) -> bool:
    """
    Check  Hash^{w-1-d_i}(signature[i]) == public_key[i]  for all *i*.

    Malformed input (wrong counts or element widths) verifies as False.
    """
    if len(signature) != WOTS_LEN or len(public_key) != WOTS_LEN:
        return False
    if any(len(e) != HASH_BYTES for e in signature):
        return False
    if any(len(e) != HASH_BYTES for e in public_key):
        return False
    digits = message_to_base_w(msg_hash)
    ok = True
    for i, d in enumerate(digits):
        end = chain_hash(signature[i], WOTS_W - 1 - d)
        ok &= hmac.compare_digest(end, bytes(public_key[i]))
    return ok


# ── key pair ────────────────────────────────────────────────────────────

@dataclass
class WOTSKeyPair:
    """Private chain seeds together with the derived public key."""

    private: PrivateElements
    public: List[bytes]

    @classmethod
    def generate(cls) -> WOTSKeyPair:
        private = PrivateElements.random()
        return cls(private=private, public=derive_public_key(private))

    @classmethod
    def from_private(cls, elements: Iterable[bytes]) -> WOTSKeyPair:
        private = PrivateElements(elements)
        return cls(private=private, public=derive_public_key(private))

    def sign(self, msg_hash: bytes) -> List[bytes]:
        return sign(self.private, msg_hash)

    def verify(self, msg_hash: bytes, signature: Sequence[bytes]) -> bool:
        return verify(msg_hash, signature, self.public)

    def packed_public_key(self) -> bytes:
        """``abi.encodePacked(bytes32[67])``, 2144 bytes."""
        return b"".join(self.public)
