"""
Error taxonomy for reconstruction, signing and proof checking.

Every failure is surfaced as a typed exception; nothing in this package
substitutes zero bytes or placeholder values for missing cryptographic
material.
"""

from __future__ import annotations

from typing import List, Optional


class OTSProofError(Exception):
    """Base class for all errors raised by :mod:`otsproof`."""


# ── reconstruction ──────────────────────────────────────────────────────

class ReconstructionError(OTSProofError):
    """Shares could not be turned into usable key material."""


class InsufficientSharesError(ReconstructionError):
    """Fewer shares than the threshold were supplied."""

    def __init__(self, have: int, need: int, element_index: Optional[int] = None):
        self.have = have
        self.need = need
        self.element_index = element_index
        where = "" if element_index is None else f" for element {element_index}"
        super().__init__(f"insufficient shares{where}: {have} < {need}")


class InconsistentMetadataError(ReconstructionError):
    """Contributing nodes disagree about a key's metadata or share values."""

    def __init__(self, message: str, *, node_id: object = None,
                 field: Optional[str] = None):
        self.node_id = node_id
        self.field = field
        super().__init__(message)


class IncompleteKeyError(ReconstructionError):
    """WOTS reconstruction produced fewer than the required elements."""

    def __init__(self, missing: List[int], expected: int):
        self.missing = list(missing)
        self.expected = expected
        preview = ", ".join(str(i) for i in self.missing[:8])
        if len(self.missing) > 8:
            preview += ", …"
        super().__init__(
            f"incomplete key: {len(self.missing)} of {expected} elements "
            f"unavailable ({preview})"
        )


# ── arithmetic ──────────────────────────────────────────────────────────

class NoInverseError(OTSProofError, ZeroDivisionError):
    """``gcd(a, m) != 1``; the value has no modular inverse."""


class InvalidPointError(OTSProofError, ValueError):
    """Coordinates do not satisfy the secp256k1 curve equation."""


# ── signing / proofs ────────────────────────────────────────────────────

class SigningError(OTSProofError):
    """A signature could not be produced or failed self-verification."""


class ProofInvalidError(OTSProofError):
    """Local Merkle inclusion check failed against the stated root."""
