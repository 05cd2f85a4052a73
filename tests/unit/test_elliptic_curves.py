"""
Tests for secp256k1 point arithmetic

Checked invariants:
1. G*1 == G, G*2 matches the published point, k1*G + k2*G == (k1+k2)*G
2. Zero, n, n+1 and over-wide multipliers are rejected with None
3. Inverse points add to infinity; infinity is the identity
4. y recovery picks the requested parity and rejects x off the curve
5. Independent cross-check against the ecdsa package
6. Context scratch is zeroed after accepted and rejected multipliers

Scalar multiplication is slow in pure Python, so results are cached per module.
"""

import random

import pytest
from ecdsa import SECP256k1 as ECDSA_SECP256K1

from big_integers import BigSigned, BigUnsigned
from curve_parameters import SECP256K1, CurveParameters
from elliptic_curves import (
    EllipticCurvePointAdditionContext,
    EllipticCurvePointMultiplicationContext,
    Point,
)

P = SECP256K1.p.to_int()
N = SECP256K1.n.to_int()
GX = SECP256K1.gx.to_int()
GY = SECP256K1.gy.to_int()

TWO_G_X = 0xC6047F9441ED7D6D3045406E95C07CD85C778E4B8CEF3CA7ABAC09B95C709EE5
TWO_G_Y = 0x1AE168FEA63DC339A3C58419466CEAEEF7F632653266D0E1236431A950CFE52A
COMPRESSED_G = bytes.fromhex("0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798")


def _point(x: int, y: int) -> Point:
    return Point.from_affine(BigUnsigned.from_int(x), BigUnsigned.from_int(y))


def _coordinates(point: Point):
    return point.x.to_int(), point.y.to_int()


@pytest.fixture(scope="module")
def multiplication():
    return EllipticCurvePointMultiplicationContext(SECP256K1)


@pytest.fixture(scope="module")
def multiples(multiplication):
    """k -> k*G, computed on first use."""
    cache = {}

    def get(k: int) -> Point:
        if k not in cache:
            cache[k] = multiplication.multiply_point(SECP256K1.gx, SECP256K1.gy, BigUnsigned.from_int(k))
        return cache[k].copy()

    return get


@pytest.fixture
def addition():
    return EllipticCurvePointAdditionContext(SECP256K1)



def _assert_multiplication_scratch_cleared(context):
    assert context.buffer == [0] * SECP256K1.n.digit_count()
    for point in (context.working, context.throwaway, context.addition.stored):
        assert point.is_infinity
        assert point.x.is_zero() and point.y.is_zero()
    assert context.addition.slope.is_zero()
    assert context.addition.term.is_zero()
    for calculator in (context.calculator, context.addition.calculator):
        assert calculator.remainder.is_zero()
        assert calculator.previous_remainder.is_zero()
        assert calculator.quotient.is_zero()
        assert calculator.coefficient.is_zero()
        assert calculator.previous_coefficient.is_zero()
        assert calculator.product.is_zero()


class TestCurveParameters:
    def test_secp256k1_constants(self):
        assert P == 2**256 - 2**32 - 977
        assert SECP256K1.a.is_zero()
        assert SECP256K1.b.to_int() == 7
        assert SECP256K1.byte_width == 32
        assert (GY * GY - GX ** 3 - 7) % P == 0

    def test_sqrt_exponent_computed_once(self):
        assert SECP256K1.sqrt_exponent.to_int() == (P + 1) // 4

    def test_rejects_prime_without_shortcut(self):
        with pytest.raises(ValueError):
            CurveParameters.from_hex(p="0D", a="00", b="07", n="07", gx="01", gy="01")


class TestPoint:
    def test_infinity_equality(self):
        assert Point.infinity() == Point.infinity()
        assert Point.infinity() != _point(GX, GY)

    def test_compressed_serialization(self):
        assert _point(GX, GY).try_serialize_compressed() == COMPRESSED_G
        odd = _point(GX, P - GY).try_serialize_compressed()
        assert odd[0] == 0x03 and odd[1:] == COMPRESSED_G[1:]

    def test_infinity_does_not_serialize(self):
        assert Point.infinity().try_serialize_compressed() is None

    def test_too_short_buffer_does_not_serialize(self):
        assert _point(GX, GY).try_serialize_compressed(length=20) is None


class TestAddition:
    def test_double_generator(self, addition):
        point = _point(GX, GY)
        addition.double(point)
        assert _coordinates(point) == (TWO_G_X, TWO_G_Y)

    def test_add_equal_points_doubles(self, addition):
        point = _point(GX, GY)
        addition.add(point, _point(GX, GY))
        assert _coordinates(point) == (TWO_G_X, TWO_G_Y)

    def test_add_distinct_points(self, addition):
        point = _point(GX, GY)
        addition.add(point, _point(TWO_G_X, TWO_G_Y))
        three_g = ECDSA_SECP256K1.generator * 3
        assert _coordinates(point) == (three_g.x(), three_g.y())

    def test_inverse_points_give_infinity(self, addition):
        point = _point(GX, GY)
        addition.add(point, _point(GX, P - GY))
        assert point.is_infinity

    def test_infinity_is_identity(self, addition):
        point = Point.infinity()
        addition.add(point, _point(GX, GY))
        assert _coordinates(point) == (GX, GY)
        addition.add(point, Point.infinity())
        assert _coordinates(point) == (GX, GY)

    def test_double_infinity_and_vertical_tangent(self, addition):
        point = Point.infinity()
        addition.double(point)
        assert point.is_infinity
        flat = Point(BigSigned.from_int(5), BigSigned())
        addition.double(flat)
        assert flat.is_infinity

    def test_mod_inverse_of_negative_value(self, addition):
        value = BigSigned.from_int(-12345)
        assert addition.mod_inverse(value)
        assert not value.is_negative
        assert (value.to_int() * -12345) % P == 1

    def test_scratch_cleared(self, addition):
        point = _point(GX, GY)
        addition.add(point, _point(TWO_G_X, TWO_G_Y))
        assert addition.slope.is_zero()
        assert addition.term.is_zero()
        assert addition.stored.is_infinity


class TestScalarMultiplication:
    def test_multiply_by_one(self, multiples):
        assert _coordinates(multiples(1)) == (GX, GY)

    def test_multiply_by_two(self, multiples):
        assert _coordinates(multiples(2)) == (TWO_G_X, TWO_G_Y)

    def test_linearity(self, multiples, addition):
        total = multiples(1)
        addition.add(total, multiples(2))
        assert total == multiples(3)

    def test_linearity_wraps_modulo_order(self, multiples, addition):
        negated = multiples(N - 1)
        assert _coordinates(negated) == (GX, P - GY)
        addition.add(negated, multiples(2))
        assert negated == multiples(1)

    def test_matches_ecdsa(self, multiples):
        k = random.Random(2024).randrange(1, N)
        expected = ECDSA_SECP256K1.generator * k
        assert _coordinates(multiples(k)) == (expected.x(), expected.y())

    @pytest.mark.parametrize("multiplier", [0, N, N + 1, N * N, 2**288 + 1])
    def test_invalid_multipliers_rejected(self, multiplication, multiplier):
        assert multiplication.multiply_point(SECP256K1.gx, SECP256K1.gy, BigUnsigned.from_int(multiplier)) is None

    def test_multiplier_left_untouched(self, multiplication):
        multiplier = BigUnsigned.from_int(N)
        multiplication.multiply_point(SECP256K1.gx, SECP256K1.gy, multiplier)
        assert multiplier.to_int() == N

    def test_scratch_cleared_after_multiply(self):
        context = EllipticCurvePointMultiplicationContext(SECP256K1)
        product = context.multiply_point(SECP256K1.gx, SECP256K1.gy, BigUnsigned.from_int(N - 2))
        assert _coordinates(product) == (TWO_G_X, P - TWO_G_Y)
        _assert_multiplication_scratch_cleared(context)

    @pytest.mark.parametrize("multiplier", [0, N, 2**288 + 1])
    def test_scratch_cleared_after_rejection(self, multiplier):
        context = EllipticCurvePointMultiplicationContext(SECP256K1)
        assert context.multiply_point(SECP256K1.gx, SECP256K1.gy, BigUnsigned.from_int(multiplier)) is None
        _assert_multiplication_scratch_cleared(context)


class TestPointRecovery:
    def test_recovers_generator_y(self, multiplication):
        y = multiplication.calculate_y_from_x(GY % 2 == 0, SECP256K1.gx)
        assert y.to_int() == GY

    def test_flips_to_other_root(self, multiplication):
        y = multiplication.calculate_y_from_x(GY % 2 == 1, SECP256K1.gx)
        assert y.to_int() == P - GY

    def test_rejects_x_off_curve(self, multiplication):
        x = next(x for x in range(1, 100) if pow(x ** 3 + 7, (P - 1) // 2, P) == P - 1)
        assert multiplication.calculate_y_from_x(True, BigUnsigned.from_int(x)) is None

    def test_decompress_round_trip(self, multiplication):
        point = multiplication.decompress_point(COMPRESSED_G)
        assert _coordinates(point) == (GX, GY)
        two_g = _point(TWO_G_X, TWO_G_Y).try_serialize_compressed()
        assert _coordinates(multiplication.decompress_point(two_g)) == (TWO_G_X, TWO_G_Y)

    def test_decompress_rejects_malformed(self, multiplication):
        assert multiplication.decompress_point(COMPRESSED_G[:-1]) is None
        assert multiplication.decompress_point(b"\x04" + COMPRESSED_G[1:]) is None
        assert multiplication.decompress_point(b"\x02" + b"\xff" * 32) is None
