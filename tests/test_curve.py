"""
Unit tests for otsproof.curve: secp256k1 affine group law.

Scalar multiplication is cross-checked against libsecp256k1 through
coincurve.
"""

import secrets

import coincurve
import pytest

from otsproof.constants import FIELD_PRIME, G_X, G_Y, ORDER
from otsproof.curve import (
    G,
    Point,
    add,
    double,
    is_on_curve,
    scalar_multiply,
    sum_points,
)
from otsproof.errors import InvalidPointError
from otsproof.field import Scalar

TWO_G_X = 0xC6047F9441ED7D6D3045406E95C07CD85C778E4B8CEF3CA7ABAC09B95C709EE5
TWO_G_Y = 0x1AE168FEA63DC339A3C58419466CEAEEF7F632653266D0E1236431A950CFE52A
THREE_G_X = 0xF9308A019258C31049344F85F89D5229B531C845836F99B08601F113BCE036F9


class TestPoint:
    def test_generator_on_curve(self):
        assert is_on_curve(G_X, G_Y)
        assert G == Point(G_X, G_Y)

    def test_off_curve_rejected(self):
        with pytest.raises(InvalidPointError):
            Point(G_X, G_Y + 1)

    def test_half_specified_rejected(self):
        with pytest.raises(InvalidPointError):
            Point(G_X, None)

    def test_identity(self):
        inf = Point.identity()
        assert inf.is_infinity
        assert inf.is_inf()
        assert inf == Point()
        assert inf != G

    def test_identity_not_serialisable(self):
        with pytest.raises(InvalidPointError):
            Point.identity().to_bytes()

    def test_immutable(self):
        with pytest.raises(AttributeError):
            G._x = 1

    def test_encodings_round_trip(self):
        p = scalar_multiply(0xC0FFEE)
        assert Point.from_bytes(p.to_bytes()) == p
        assert Point.from_bytes(p.to_bytes_uncompressed()) == p
        assert Point.from_bytes(p.to_bytes_compressed()) == p

    def test_from_bytes_bad_length(self):
        with pytest.raises(InvalidPointError):
            Point.from_bytes(b"\x04" + b"\x00" * 10)

    def test_from_bytes_bad_prefix(self):
        with pytest.raises(InvalidPointError):
            Point.from_bytes(b"\x05" + G.to_bytes())

    def test_coordinates_are_base_field(self):
        assert G.x.modulus == FIELD_PRIME
        assert G.y.value == G_Y


class TestGroupLaw:
    def test_double_generator(self):
        two_g = double(G)
        assert two_g.x.value == TWO_G_X
        assert two_g.y.value == TWO_G_Y

    def test_add_equal_points_doubles(self):
        assert add(G, G) == double(G)

    def test_three_g(self):
        assert add(double(G), G).x.value == THREE_G_X

    def test_inverse_gives_identity(self):
        assert add(G, -G).is_infinity
        assert (G - G).is_infinity

    def test_identity_is_neutral(self):
        inf = Point.identity()
        assert add(inf, G) == G
        assert add(G, inf) == G
        assert double(inf).is_infinity

    def test_commutative_and_associative(self):
        a, b, c = (scalar_multiply(k) for k in (3, 11, 97))
        assert a + b == b + a
        assert (a + b) + c == a + (b + c)

    def test_sum_points(self):
        assert sum_points([G, G, G]) == scalar_multiply(3)
        assert sum_points([]).is_infinity


class TestScalarMultiply:
    def test_small_multiples(self):
        assert scalar_multiply(1) == G
        assert scalar_multiply(2) == double(G)

    def test_zero_and_order(self):
        assert scalar_multiply(0).is_infinity
        assert scalar_multiply(ORDER).is_infinity

    def test_order_minus_one_is_negation(self):
        assert scalar_multiply(ORDER - 1) == -G

    def test_reduces_mod_order(self):
        assert scalar_multiply(ORDER + 5) == scalar_multiply(5)

    def test_accepts_field_element(self):
        assert scalar_multiply(Scalar(7)) == scalar_multiply(7)
        assert Scalar(7) * G == scalar_multiply(7)

    def test_distributive(self):
        a, b = 123456789, 987654321
        assert scalar_multiply(a + b) == scalar_multiply(a) + scalar_multiply(b)

    def test_identity_base(self):
        assert scalar_multiply(5, Point.identity()).is_infinity

    @pytest.mark.parametrize("_", range(5))
    def test_matches_libsecp256k1(self, _):
        k = secrets.randbelow(ORDER - 1) + 1
        ref = coincurve.PrivateKey(k.to_bytes(32, "big")).public_key
        assert scalar_multiply(k) == Point.from_bytes(ref.format(compressed=False))
