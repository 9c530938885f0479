"""
Polynomials over a prime field and Lagrange coefficients at zero.

Shamir sharing of a secret  s  with threshold  t  uses a random
polynomial of degree  t-1  with  f(0) = s;  node *i* receives  f(i).
Any  t  shares recover  f(0)  via

.. math::
    f(0) = \\sum_i y_i \\prod_{j \\ne i} \\frac{0 - x_j}{x_i - x_j}

The dealer half (``sample_polynomial`` / ``share_secret``) is what the
DKG nodes run; in this package it backs tests and fixtures.  The
coefficient half is used by :pymod:`shamir` for reconstruction.

References
----------
- Shamir (1979). "How to Share a Secret."  CACM 22(11).
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from .constants import ORDER
from .field import FieldElement, batch_inverse


# ── polynomial representation ───────────────────────────────────────────
#  coefficients[i] = a_i   so  f(x) = a_0 + a_1 x + a_2 x^2 + …


def sample_polynomial(
    degree: int,
    constant: Optional[FieldElement] = None,
    modulus: int = ORDER,
) -> List[FieldElement]:
    """
    Sample a uniformly random polynomial of the given degree.

    Parameters
    ----------
    degree : int  (≥ 0)
        Polynomial degree  d;  result has  d+1  coefficients.
    constant : FieldElement or None
        If given, force a_0 = constant (used to share a secret).
    modulus : int
        Field modulus; defaults to the secp256k1 group order.
    """
    if degree < 0:
        raise ValueError("degree must be ≥ 0")
    if constant is not None and constant.modulus != modulus:
        raise ValueError("constant belongs to a different field")
    a0 = constant if constant is not None else FieldElement.random(modulus)
    return [a0] + [FieldElement.random(modulus) for _ in range(degree)]


def evaluate(coeffs: List[FieldElement], x: FieldElement) -> FieldElement:
    """Evaluate f(x) via Horner's method, O(d) mults."""
    if not coeffs:
        return FieldElement.zero(x.modulus)
    result = coeffs[-1]
    for c in reversed(coeffs[:-1]):
        result = result * x + c
    return result


def share_secret(
    secret: FieldElement,
    threshold: int,
    node_indices: Sequence[int],
) -> List[Tuple[int, FieldElement]]:
    """
    Split *secret* into ``(node_index, f(node_index))`` pairs such that
    any *threshold* of them recover it.
    """
    if threshold < 1:
        raise ValueError("threshold must be ≥ 1")
    if len(node_indices) < threshold:
        raise ValueError(
            f"threshold {threshold} exceeds participants {len(node_indices)}"
        )
    if len(set(node_indices)) != len(node_indices):
        raise ValueError("node indices must be distinct")
    m = secret.modulus
    if any(i % m == 0 for i in node_indices):
        raise ValueError("node index 0 would reveal the secret")
    poly = sample_polynomial(threshold - 1, secret, m)
    return [(i, evaluate(poly, FieldElement(i, m))) for i in node_indices]


# ── Lagrange coefficients ───────────────────────────────────────────────

def lagrange_coefficient(
    target_id: int,
    signer_ids: Sequence[int],
    modulus: int = ORDER,
) -> FieldElement:
    r"""
    Lagrange basis polynomial of *target_id* evaluated at zero:

    .. math::
        \lambda_i = \prod_{j \in S,\; j \ne i} \frac{0 - x_j}{x_i - x_j}

    Raises ``NoInverseError`` if two ids coincide modulo *modulus*.
    """
    if target_id not in signer_ids:
        raise ValueError(f"target_id {target_id} not in signer_ids")
    xi = FieldElement(target_id, modulus)
    num = FieldElement.one(modulus)
    den = FieldElement.one(modulus)
    for sid in signer_ids:
        if sid == target_id:
            continue
        xj = FieldElement(sid, modulus)
        num = num * (-xj)
        den = den * (xi - xj)
    return num / den


def all_lagrange_coefficients(
    signer_ids: Sequence[int],
    modulus: int = ORDER,
) -> List[FieldElement]:
    """Coefficients for every id in *signer_ids* with one inversion."""
    nums: List[FieldElement] = []
    dens: List[FieldElement] = []
    for sid in signer_ids:
        xi = FieldElement(sid, modulus)
        num = FieldElement.one(modulus)
        den = FieldElement.one(modulus)
        for other in signer_ids:
            if other == sid:
                continue
            xj = FieldElement(other, modulus)
            num = num * (-xj)
            den = den * (xi - xj)
        nums.append(num)
        dens.append(den)
    return [n * d for n, d in zip(nums, batch_inverse(dens))]
