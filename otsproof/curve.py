"""
Affine group law on secp256k1.

Points are immutable affine pairs  (x, y)  over  F_p  with an explicit
flag for the point at infinity.  All arithmetic is plain Python integer
arithmetic; this is the reference implementation used to rebuild public
keys from public shares and to derive addresses, and its degenerate
cases are part of the contract:

- ``double(P)`` maps both the identity and any point with ``y = 0`` to
  the identity.  No such order-2 point exists on secp256k1, but the
  guard keeps the formula total.
- ``add(P, Q)`` short-circuits on the identity, falls back to
  ``double`` for  P == Q  and returns the identity for  P == -Q.
- ``scalar_multiply(k, P)`` reduces *k* modulo *n* first and runs a
  right-to-left (LSB-first) double-and-add.

Known limitation
----------------
The double-and-add loop branches on the bits of *k*, so its running
time depends on the secret scalar.  Signing with a reconstructed private
key is delegated to libsecp256k1 (see :pymod:`signing`); this module is
only used on secret scalars for public-key derivation.

References
----------
- SEC 1 v2 §2.2.1   elliptic curve group law over F_p
- SEC 2 v2 §2.4.1   secp256k1 domain parameters
"""

from __future__ import annotations

from typing import Iterable, Optional, Union

from .constants import CURVE_B, FIELD_PRIME, G_X, G_Y, ORDER, SCALAR_BYTES
from .errors import InvalidPointError
from .field import FieldElement, mod_inverse

P = FIELD_PRIME


def is_on_curve(x: int, y: int) -> bool:
    """``y^2 == x^3 + 7  (mod p)`` with both coordinates in range."""
    if not (0 <= x < P and 0 <= y < P):
        return False
    return (y * y - (x * x * x + CURVE_B)) % P == 0


# ── Point ───────────────────────────────────────────────────────────────
class Point:
    """
    Point on secp256k1, or the identity.

    Construct finite points with ``Point(x, y)``; the coordinates are
    checked against the curve equation and :class:`InvalidPointError`
    is raised if they do not satisfy it.  Use :meth:`identity` for the
    point at infinity.
    """

    __slots__ = ("_x", "_y", "_inf")

    def __init__(
        self,
        x: Union[int, FieldElement, None] = None,
        y: Union[int, FieldElement, None] = None,
        *,
        _checked: bool = True,
    ) -> None:
        if x is None or y is None:
            if x is not None or y is not None:
                raise InvalidPointError("both coordinates are required")
            object.__setattr__(self, "_x", 0)
            object.__setattr__(self, "_y", 0)
            object.__setattr__(self, "_inf", True)
            return
        xi, yi = int(x), int(y)
        if _checked and not is_on_curve(xi, yi):
            raise InvalidPointError(
                f"({xi:#x}, {yi:#x}) is not on secp256k1"
            )
        object.__setattr__(self, "_x", xi)
        object.__setattr__(self, "_y", yi)
        object.__setattr__(self, "_inf", False)

    def __setattr__(self, name, value):
        raise AttributeError("Point is immutable")

    # constructors -----------------------------------------------------------
    @classmethod
    def identity(cls) -> Point:
        """Point at infinity, the additive identity."""
        return cls()

    @classmethod
    def generator(cls) -> Point:
        return cls(G_X, G_Y)

    @classmethod
    def _raw(cls, x: int, y: int) -> Point:
        # results of the group law are on the curve by construction
        return cls(x, y, _checked=False)

    @classmethod
    def from_bytes(cls, data: bytes) -> Point:
        """
        Decode a public key.

        Accepts SEC 1 uncompressed (65 B, ``0x04`` prefix), raw ``x ‖ y``
        (64 B) or SEC 1 compressed (33 B).
        """
        if len(data) == 65:
            if data[0] != 0x04:
                raise InvalidPointError("bad uncompressed prefix")
            data = data[1:]
        if len(data) == 64:
            return cls(
                int.from_bytes(data[:32], "big"),
                int.from_bytes(data[32:], "big"),
            )
        if len(data) == 33:
            if data[0] not in (0x02, 0x03):
                raise InvalidPointError("bad compressed prefix")
            x = int.from_bytes(data[1:], "big")
            if x >= P:
                raise InvalidPointError("x coordinate out of range")
            y_sq = (pow(x, 3, P) + CURVE_B) % P
            # p ≡ 3 (mod 4)
            y = pow(y_sq, (P + 1) // 4, P)
            if (y * y) % P != y_sq:
                raise InvalidPointError("x is not on secp256k1")
            if (y & 1) != (data[0] & 1):
                y = P - y
            return cls(x, y)
        raise InvalidPointError(f"unsupported public key length {len(data)}")

    # accessors --------------------------------------------------------------
    @property
    def x(self) -> FieldElement:
        return FieldElement(self._x, P)

    @property
    def y(self) -> FieldElement:
        return FieldElement(self._y, P)

    @property
    def is_infinity(self) -> bool:
        return self._inf

    def is_inf(self) -> bool:
        return self._inf

    # serialisation ----------------------------------------------------------
    def to_bytes(self) -> bytes:
        """Raw 64-byte  x ‖ y  (big-endian), the form hashed into addresses."""
        if self._inf:
            raise InvalidPointError("cannot serialise the point at infinity")
        return (self._x.to_bytes(SCALAR_BYTES, "big")
                + self._y.to_bytes(SCALAR_BYTES, "big"))

    def to_bytes_uncompressed(self) -> bytes:
        return b"\x04" + self.to_bytes()

    def to_bytes_compressed(self) -> bytes:
        if self._inf:
            raise InvalidPointError("cannot serialise the point at infinity")
        prefix = b"\x03" if self._y & 1 else b"\x02"
        return prefix + self._x.to_bytes(SCALAR_BYTES, "big")

    # group operations -------------------------------------------------------
    def __neg__(self) -> Point:
        if self._inf:
            return self
        return Point._raw(self._x, (-self._y) % P)

    def __add__(self, o: Point) -> Point:
        if not isinstance(o, Point):
            return NotImplemented
        return add(self, o)

    def __sub__(self, o: Point) -> Point:
        return add(self, -o)

    def __rmul__(self, k) -> Point:
        if isinstance(k, FieldElement):
            return scalar_multiply(k.value, self)
        if isinstance(k, int):
            return scalar_multiply(k, self)
        return NotImplemented

    def __eq__(self, o: object) -> bool:
        if not isinstance(o, Point):
            return False
        if self._inf or o._inf:
            return self._inf and o._inf
        return self._x == o._x and self._y == o._y

    def __hash__(self) -> int:
        return hash((self._x, self._y, self._inf))

    def __repr__(self) -> str:
        if self._inf:
            return "Point(∞)"
        return f"Point(0x{self._x:064x})"[:24] + "…)"


# ── group law ───────────────────────────────────────────────────────────

def double(pt: Point) -> Point:
    """Tangent doubling  2·P."""
    if pt.is_infinity or pt._y == 0:
        return Point.identity()
    x, y = pt._x, pt._y
    s = (3 * x * x * mod_inverse(2 * y, P)) % P
    x3 = (s * s - 2 * x) % P
    y3 = (s * (x - x3) - y) % P
    return Point._raw(x3, y3)


def add(p1: Point, p2: Point) -> Point:
    """Chord addition  P + Q."""
    if p1.is_infinity:
        return p2
    if p2.is_infinity:
        return p1
    if p1._x == p2._x:
        if p1._y == p2._y:
            return double(p1)
        return Point.identity()
    s = ((p2._y - p1._y) * mod_inverse(p2._x - p1._x, P)) % P
    x3 = (s * s - p1._x - p2._x) % P
    y3 = (s * (p1._x - x3) - p1._y) % P
    return Point._raw(x3, y3)


def scalar_multiply(k: int, pt: Optional[Point] = None) -> Point:
    """
    Compute  k · P  (default  P = G).

    *k* is reduced modulo the group order first; ``k ≡ 0`` yields the
    identity.  Right-to-left binary method: not constant time.
    """
    if pt is None:
        pt = G
    if isinstance(k, FieldElement):
        k = k.value
    k %= ORDER
    result = Point.identity()
    if k == 0 or pt.is_infinity:
        return result
    addend = pt
    while k:
        if k & 1:
            result = add(result, addend)
        addend = double(addend)
        k >>= 1
    return result


def sum_points(points: Iterable[Point]) -> Point:
    """Left fold of :func:`add` starting at the identity."""
    acc = Point.identity()
    for pt in points:
        acc = add(acc, pt)
    return acc


# ── module-level generator ──────────────────────────────────────────────
G = Point.generator()
