"""
Prime-field arithmetic for the secp256k1 base field and scalar field.

A :class:`FieldElement` carries its own modulus, so the same type serves
both  F_p  (curve coordinates,  p = ``FIELD_PRIME``) and  Z_n  (scalars
and key shares,  n = ``ORDER``).  Values are always reduced into
``[0, m)`` and never mutated; every operation returns a new element.

Inversion uses the extended Euclidean algorithm and fails with
:class:`~otsproof.errors.NoInverseError` when ``gcd(a, m) != 1``.  For
the prime moduli used throughout this package that only happens for
``a ≡ 0``, which in a reconstruction means duplicated node indices or a
zero share: callers treat it as fatal.
"""

from __future__ import annotations

import secrets
from typing import List

from .constants import FIELD_PRIME, ORDER, SCALAR_BYTES
from .errors import NoInverseError


# ── free functions on plain ints ────────────────────────────────────────

def add(a: int, b: int, m: int) -> int:
    return (a + b) % m


def sub(a: int, b: int, m: int) -> int:
    return (a - b) % m


def mul(a: int, b: int, m: int) -> int:
    return (a * b) % m


def mod_inverse(a: int, m: int) -> int:
    """
    Inverse of *a* modulo *m* via the extended Euclidean algorithm.

    Raises ``NoInverseError`` when *a* and *m* are not coprime.
    """
    if m <= 1:
        raise ValueError("modulus must be > 1")
    a %= m
    old_r, r = a, m
    old_s, s = 1, 0
    while r != 0:
        q = old_r // r
        old_r, r = r, old_r - q * r
        old_s, s = s, old_s - q * s
    if old_r != 1:
        raise NoInverseError(f"{a:#x} has no inverse modulo {m:#x}")
    return old_s % m


# ── FieldElement ────────────────────────────────────────────────────────

class FieldElement:
    """Element of  Z_m  for a fixed modulus *m* (immutable)."""

    __slots__ = ("_v", "_m")

    def __init__(self, value: int, modulus: int = ORDER) -> None:
        if modulus <= 1:
            raise ValueError("modulus must be > 1")
        object.__setattr__(self, "_m", modulus)
        object.__setattr__(self, "_v", value % modulus)

    def __setattr__(self, name, value):
        raise AttributeError("FieldElement is immutable")

    # constructors -----------------------------------------------------------
    @classmethod
    def zero(cls, modulus: int = ORDER) -> FieldElement:
        return cls(0, modulus)

    @classmethod
    def one(cls, modulus: int = ORDER) -> FieldElement:
        return cls(1, modulus)

    @classmethod
    def random(cls, modulus: int = ORDER) -> FieldElement:
        """Uniform in [1, m-1] via rejection sampling."""
        nbytes = (modulus.bit_length() + 7) // 8
        while True:
            c = int.from_bytes(secrets.token_bytes(nbytes), "big")
            if 0 < c < modulus:
                return cls(c, modulus)

    @classmethod
    def from_bytes(cls, data: bytes, modulus: int = ORDER) -> FieldElement:
        """Big-endian decode; rejects values outside ``[0, m)``."""
        v = int.from_bytes(data, "big")
        if v >= modulus:
            raise ValueError("value out of range for modulus")
        return cls(v, modulus)

    # serialisation ----------------------------------------------------------
    def to_bytes(self, length: int = SCALAR_BYTES) -> bytes:
        return self._v.to_bytes(length, "big")

    @property
    def value(self) -> int:
        return self._v

    @property
    def modulus(self) -> int:
        return self._m

    def is_zero(self) -> bool:
        return self._v == 0

    # arithmetic -------------------------------------------------------------
    def _coerce(self, o) -> FieldElement:
        if isinstance(o, FieldElement):
            if o._m != self._m:
                raise ValueError("operands belong to different fields")
            return o
        if isinstance(o, int):
            return FieldElement(o, self._m)
        return NotImplemented

    def __add__(self, o):
        o = self._coerce(o)
        if o is NotImplemented:
            return o
        return FieldElement(add(self._v, o._v, self._m), self._m)

    __radd__ = __add__

    def __sub__(self, o):
        o = self._coerce(o)
        if o is NotImplemented:
            return o
        return FieldElement(sub(self._v, o._v, self._m), self._m)

    def __rsub__(self, o):
        o = self._coerce(o)
        if o is NotImplemented:
            return o
        return FieldElement(sub(o._v, self._v, self._m), self._m)

    def __mul__(self, o):
        o = self._coerce(o)
        if o is NotImplemented:
            return o
        return FieldElement(mul(self._v, o._v, self._m), self._m)

    __rmul__ = __mul__

    def __neg__(self) -> FieldElement:
        return FieldElement(-self._v, self._m)

    def __truediv__(self, o):
        o = self._coerce(o)
        if o is NotImplemented:
            return o
        return self * o.inv()

    def __pow__(self, e: int) -> FieldElement:
        if e < 0:
            return self.inv() ** (-e)
        return FieldElement(pow(self._v, e, self._m), self._m)

    def inv(self) -> FieldElement:
        return FieldElement(mod_inverse(self._v, self._m), self._m)

    # comparison / hashing ---------------------------------------------------
    def __eq__(self, o: object) -> bool:
        if isinstance(o, FieldElement):
            return self._m == o._m and self._v == o._v
        if isinstance(o, int):
            return self._v == o
        return False

    def __hash__(self) -> int:
        # equal to hash(int) so mixed int/element keys agree with __eq__
        return hash(self._v)

    def __bool__(self) -> bool:
        return self._v != 0

    def __int__(self) -> int:
        return self._v

    def __repr__(self) -> str:
        field = {ORDER: "n", FIELD_PRIME: "p"}.get(self._m, hex(self._m))
        h = hex(self._v)
        body = f"0x{h[2:10]}…" if len(h) > 14 else h
        return f"FieldElement({body} mod {field})"


def Scalar(value: int) -> FieldElement:
    """Element of the secp256k1 scalar field  Z_n."""
    return FieldElement(value, ORDER)


def Coordinate(value: int) -> FieldElement:
    """Element of the secp256k1 base field  F_p."""
    return FieldElement(value, FIELD_PRIME)


# ── batch inverse (Montgomery's trick) ──────────────────────────────────
def batch_inverse(elements: List[FieldElement]) -> List[FieldElement]:
    """
    Invert a list of non-zero elements of one field using a single
    inversion (Montgomery's trick).

    Cost: 3(n-1) multiplications + 1 inversion  vs  n inversions naïvely.
    Used to compute all Lagrange denominators of a share set at once.

    Raises ``NoInverseError`` if any element is zero.
    """
    n = len(elements)
    if n == 0:
        return []
    if n == 1:
        return [elements[0].inv()]

    # prefix products  p[i] = e[0] * e[1] * … * e[i]
    prefix = [elements[0]] * n
    for i in range(1, n):
        prefix[i] = prefix[i - 1] * elements[i]

    inv_all = prefix[-1].inv()

    # back-substitution
    result = [elements[0]] * n
    for i in range(n - 1, 0, -1):
        result[i] = prefix[i - 1] * inv_all
        inv_all = inv_all * elements[i]
    result[0] = inv_all
    return result
