"""
Threshold reconstruction from DKG key-shares.

Two reconstruction conventions exist for the same share data and they
are **not** interchangeable:

``LAGRANGE_PRIVATE``
    Shamir reconstruction of the private scalar, ``f(0)`` by Lagrange
    interpolation over  Z_n.  Used on the signing path.

``PUBLIC_KEY_SUM``
    The flat sum  Σ y_i · G  of the public shares, which is how the
    DKG nodes publish the joint public key (each node's value is an
    additive contribution, not a point on a sharing polynomial).  Used
    on the address-verification path.

For shares produced by a single sharing polynomial the two results
differ; mixing them up yields a well-formed but wrong key.  Callers
therefore name the mode explicitly; :func:`reconstruct` has no default.

Both modes use the same deterministic subset: the *threshold* shares
with the lowest node indices.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Union

from .constants import ORDER, THRESHOLD
from .curve import Point, scalar_multiply, sum_points
from .errors import InconsistentMetadataError, InsufficientSharesError
from .field import FieldElement
from .polynomial import all_lagrange_coefficients

logger = logging.getLogger("otsproof.shamir")


# ── data structures ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class KeyShare:
    """One node's share of one secret (one WOTS element, or the ECDSA key)."""

    node_index: int
    value: FieldElement
    element_index: int = 0

    def __post_init__(self) -> None:
        if self.node_index < 1:
            raise ValueError("node_index must be ≥ 1 (x = 0 is the secret)")
        if self.element_index < 0:
            raise ValueError("element_index must be ≥ 0")

    def __repr__(self) -> str:
        # never print share values
        return (f"KeyShare(node_index={self.node_index}, "
                f"element_index={self.element_index})")


class ReconstructionMode(Enum):
    LAGRANGE_PRIVATE = "lagrange_private"
    PUBLIC_KEY_SUM = "public_key_sum"


# ── subset selection ────────────────────────────────────────────────────

def select_shares(
    shares: Iterable[KeyShare],
    threshold: int = THRESHOLD,
) -> List[KeyShare]:
    """
    Pick the *threshold* shares with the lowest node indices.

    Duplicate node indices with identical values collapse to one share;
    differing values for the same node are an
    :class:`InconsistentMetadataError`.
    """
    if threshold < 1:
        raise ValueError("threshold must be ≥ 1")
    by_node: Dict[int, KeyShare] = {}
    for s in shares:
        prev = by_node.get(s.node_index)
        if prev is not None and prev.value.value != s.value.value:
            raise InconsistentMetadataError(
                f"node {s.node_index} supplied conflicting shares for "
                f"element {s.element_index}",
                node_id=s.node_index,
                field="share_value",
            )
        by_node[s.node_index] = s
    element = next(iter(by_node.values())).element_index if by_node else None
    if len(by_node) < threshold:
        raise InsufficientSharesError(len(by_node), threshold, element)
    chosen = sorted(by_node)[:threshold]
    logger.debug("element %s: using shares from nodes %s", element, chosen)
    return [by_node[i] for i in chosen]


# ── reconstruction ──────────────────────────────────────────────────────

def lagrange_at_zero(
    shares: Iterable[KeyShare],
    prime: int = ORDER,
    threshold: int = THRESHOLD,
) -> FieldElement:
    r"""
    Recover the shared secret  f(0)  over  Z_prime:

    .. math::
        s = \sum_i y_i \prod_{j \ne i} \frac{0 - x_j}{x_i - x_j}

    Raises ``InsufficientSharesError`` below threshold and
    ``NoInverseError`` if two node indices coincide modulo *prime*.
    """
    subset = select_shares(shares, threshold)
    ids = [s.node_index for s in subset]
    coeffs = all_lagrange_coefficients(ids, prime)
    secret = FieldElement.zero(prime)
    for share, lam in zip(subset, coeffs):
        secret = secret + FieldElement(share.value.value, prime) * lam
    return secret


def sum_of_public_shares(
    shares: Iterable[KeyShare],
    threshold: int = THRESHOLD,
) -> Point:
    """
    Joint public key as published by the DKG nodes:  Σ (y_i · G).

    This is deliberately *not*  lagrange_at_zero(shares) · G.
    """
    subset = select_shares(shares, threshold)
    return sum_points(scalar_multiply(s.value.value) for s in subset)


def reconstruct(
    shares: Iterable[KeyShare],
    mode: ReconstructionMode,
    *,
    prime: int = ORDER,
    threshold: int = THRESHOLD,
) -> Union[FieldElement, Point]:
    """Dispatch on an explicit :class:`ReconstructionMode`."""
    if mode is ReconstructionMode.LAGRANGE_PRIVATE:
        return lagrange_at_zero(shares, prime, threshold)
    if mode is ReconstructionMode.PUBLIC_KEY_SUM:
        return sum_of_public_shares(shares, threshold)
    raise ValueError(f"unknown reconstruction mode {mode!r}")
