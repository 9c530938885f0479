"""
Keccak-256 Merkle trees binding one-time keys to an on-chain root.

Leaves
------
WOTS key     ``keccak256(pk[0] ‖ pk[1] ‖ … ‖ pk[66])``, 2144 packed
             bytes, exactly ``abi.encodePacked(bytes32[67])``.
ECDSA key    ``keccak256(address)`` over the 20 raw address bytes.

Combination rule (mirrors the contract's verifier)
--------------------------------------------------
At each level the running index decides the side of the current node::

    index even  →  keccak256(current ‖ sibling)
    index odd   →  keccak256(sibling ‖ current)
    index >>= 1

A proof with no siblings is valid iff the leaf *is* the root (a
single-leaf tree).  A swapped convention produces plausible-looking
roots that simply never match on-chain, so tests pin it explicitly.
"""

from __future__ import annotations

import hmac
import logging
from typing import List, Sequence, Union

from .address import address_bytes
from .constants import WOTS_LEN
from .hash import keccak256, to_bytes32

logger = logging.getLogger("otsproof.merkle")

Bytes32Like = Union[bytes, str]


# ── leaves ──────────────────────────────────────────────────────────────

def leaf_hash_wots(public_key: Sequence[Bytes32Like]) -> bytes:
    """Leaf of a WOTS public key (67 × 32 bytes, tightly packed)."""
    if len(public_key) != WOTS_LEN:
        raise ValueError(f"WOTS public key must have {WOTS_LEN} elements, got {len(public_key)}")
    packed = b"".join(to_bytes32(e) for e in public_key)
    return keccak256(packed)


def leaf_hash_address(address: Union[bytes, str]) -> bytes:
    """Leaf of an ECDSA key: hash of its 20-byte address."""
    return keccak256(address_bytes(address))


def hash_pair(left: bytes, right: bytes) -> bytes:
    return keccak256(left, right)


# ── verification ────────────────────────────────────────────────────────

def compute_root(
    leaf: Bytes32Like,
    proof: Sequence[Bytes32Like],
    leaf_index: int,
) -> bytes:
    """Fold *proof* into *leaf* using the index-parity rule."""
    if leaf_index < 0:
        raise ValueError("leaf_index must be ≥ 0")
    current = to_bytes32(leaf)
    index = leaf_index
    for sibling in proof:
        sib = to_bytes32(sibling)
        if index % 2 == 0:
            current = hash_pair(current, sib)
        else:
            current = hash_pair(sib, current)
        index >>= 1
    return current


def verify(
    leaf: Bytes32Like,
    proof: Sequence[Bytes32Like],
    root: Bytes32Like,
    leaf_index: int,
) -> bool:
    """True iff *leaf* at *leaf_index* folds up to *root*."""
    computed = compute_root(leaf, proof, leaf_index)
    ok = hmac.compare_digest(computed, to_bytes32(root))
    if not ok:
        logger.debug(
            "merkle mismatch: index=%d depth=%d computed=%s expected=%s",
            leaf_index, len(proof), computed.hex(), to_bytes32(root).hex(),
        )
    return ok


# ── tree construction ───────────────────────────────────────────────────

class MerkleTree:
    """
    Full binary tree over 32-byte leaves, built bottom-up with
    :func:`hash_pair`.  An unpaired node at the end of a level is paired
    with itself.
    """

    def __init__(self, leaves: Sequence[Bytes32Like]) -> None:
        if not leaves:
            raise ValueError("a Merkle tree needs at least one leaf")
        level = [to_bytes32(l) for l in leaves]
        self._levels: List[List[bytes]] = [level]
        while len(level) > 1:
            nxt = []
            for i in range(0, len(level), 2):
                left = level[i]
                right = level[i + 1] if i + 1 < len(level) else left
                nxt.append(hash_pair(left, right))
            self._levels.append(nxt)
            level = nxt

    def __len__(self) -> int:
        return len(self._levels[0])

    @property
    def root(self) -> bytes:
        return self._levels[-1][0]

    @property
    def depth(self) -> int:
        return len(self._levels) - 1

    def leaf(self, index: int) -> bytes:
        return self._levels[0][index]

    def proof(self, index: int) -> List[bytes]:
        """Sibling hashes from the leaf level up to (excluding) the root."""
        if not 0 <= index < len(self):
            raise IndexError(f"leaf index {index} out of range")
        path: List[bytes] = []
        for level in self._levels[:-1]:
            sib = index ^ 1
            path.append(level[sib] if sib < len(level) else level[index])
            index >>= 1
        return path

    def __repr__(self) -> str:
        return f"MerkleTree(leaves={len(self)}, root=0x{self.root.hex()[:12]}…)"

