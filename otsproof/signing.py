"""
ECDSA withdrawal signatures on secp256k1 via libsecp256k1.

Signing with a reconstructed private key is delegated to ``coincurve``
(Bitcoin Core's libsecp256k1): RFC 6979 deterministic nonces, low-*s*
normalisation and constant-time scalar multiplication, none of which
the pure-Python group law in :pymod:`curve` provides.

Signatures follow the Ethereum personal-message convention that the
withdrawal contract checks with ``ECDSA.recover(toEthSignedMessageHash
(digest), sig)``::

    h   = keccak256("\\x19Ethereum Signed Message:\\n32" ‖ digest)
    sig = r (32) ‖ s (32) ‖ v (1),   v ∈ {27, 28}

Install
-------
    pip install coincurve>=18.0.0
"""

from __future__ import annotations

from dataclasses import dataclass

from coincurve import PrivateKey as _SK, PublicKey as _PK

from .address import to_address
from .constants import ORDER, SCALAR_BYTES
from .curve import Point
from .errors import SigningError
from .field import FieldElement
from .hash import eth_signed_message_hash

_V_OFFSET = 27


# ── data structures ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class ECDSASignature:
    """Recoverable ECDSA signature  (r, s, v)."""

    r: int
    s: int
    v: int

    def __post_init__(self) -> None:
        if not (0 < self.r < ORDER and 0 < self.s < ORDER):
            raise ValueError("r and s must be in [1, n-1]")
        if self.v not in (27, 28):
            raise ValueError(f"v must be 27 or 28, got {self.v}")

    @property
    def recovery_id(self) -> int:
        return self.v - _V_OFFSET

    def to_bytes(self) -> bytes:
        """65 bytes  r ‖ s ‖ v  as passed to the contract."""
        return (self.r.to_bytes(SCALAR_BYTES, "big")
                + self.s.to_bytes(SCALAR_BYTES, "big")
                + bytes([self.v]))

    @classmethod
    def from_bytes(cls, data: bytes) -> ECDSASignature:
        if len(data) != 65:
            raise ValueError(f"expected 65 bytes, got {len(data)}")
        v = data[64]
        if v in (0, 1):
            v += _V_OFFSET
        return cls(
            r=int.from_bytes(data[:32], "big"),
            s=int.from_bytes(data[32:64], "big"),
            v=v,
        )

    def hex(self) -> str:
        return "0x" + self.to_bytes().hex()


# ── signing ─────────────────────────────────────────────────────────────

def _secret_key(private: FieldElement) -> _SK:
    if private.modulus != ORDER:
        raise SigningError("private key must be an element of Z_n")
    if private.is_zero():
        raise SigningError("private key is zero")
    return _SK(private.to_bytes())


def sign_digest(private: FieldElement, digest: bytes) -> ECDSASignature:
    """Sign a 32-byte digest as-is (no further hashing)."""
    if len(digest) != 32:
        raise SigningError(f"digest must be 32 bytes, got {len(digest)}")
    try:
        raw = _secret_key(private).sign_recoverable(digest, hasher=None)
    except (ValueError, TypeError) as e:
        raise SigningError(f"libsecp256k1 refused to sign: {e}") from e
    return ECDSASignature(
        r=int.from_bytes(raw[:32], "big"),
        s=int.from_bytes(raw[32:64], "big"),
        v=raw[64] + _V_OFFSET,
    )


def sign_personal(private: FieldElement, message_hash: bytes) -> ECDSASignature:
    """Sign the EIP-191 personal-message hash of *message_hash*."""
    return sign_digest(private, eth_signed_message_hash(message_hash))


def public_key_of(private: FieldElement) -> Point:
    """Public key  d · G  computed by libsecp256k1."""
    pub = _secret_key(private).public_key.format(compressed=False)
    return Point.from_bytes(pub)


# ── recovery / verification ─────────────────────────────────────────────

def recover_public_key(sig: ECDSASignature, digest: bytes) -> Point:
    raw = sig.r.to_bytes(32, "big") + sig.s.to_bytes(32, "big") + bytes([sig.recovery_id])
    try:
        pk = _PK.from_signature_and_message(raw, digest, hasher=None)
    except (ValueError, TypeError) as e:
        raise SigningError(f"public key recovery failed: {e}") from e
    return Point.from_bytes(pk.format(compressed=False))


def recover_address(sig: ECDSASignature, message_hash: bytes) -> bytes:
    """Address that produced a personal-message signature over *message_hash*."""
    return to_address(recover_public_key(sig, eth_signed_message_hash(message_hash)))


def verify_personal(sig: ECDSASignature, message_hash: bytes, address: bytes) -> bool:
    try:
        return recover_address(sig, message_hash) == bytes(address)
    except SigningError:
        return False
