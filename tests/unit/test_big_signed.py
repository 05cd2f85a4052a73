"""
Tests for BigSigned and BigUnsignedCalculator

Checked invariants:
1. Signed add/subtract/multiply match native int
2. Zero is never negative
3. Truncated quotient with Euclidean modulus in [0, divisor)
4. Modular inverse and modular exponentiation match pow()
"""

import random

import pytest

from big_integers import BigSigned, BigUnsigned, BigUnsignedCalculator


def _signed_operands(count=200, max_bytes=16, seed=4321):
    rng = random.Random(seed)
    pairs = []
    for _ in range(count):
        values = []
        for _ in range(2):
            length = rng.randint(0, max_bytes)
            value = rng.getrandbits(8 * length) if length else 0
            values.append(-value if rng.random() < 0.5 else value)
        pairs.append(tuple(values))
    pairs += [(0, 0), (5, -5), (-5, 5), (-5, -5), (-1, 0), (0, -1), (2**64, -(2**64))]
    return pairs


SIGNED_OPERANDS = _signed_operands()


class TestBigSignedArithmetic:
    def test_add(self):
        for a, b in SIGNED_OPERANDS:
            result = BigSigned.from_int(a).add(BigSigned.from_int(b))
            assert result.to_int() == a + b
            assert not (result.is_zero() and result.is_negative)

    def test_subtract(self):
        for a, b in SIGNED_OPERANDS:
            result = BigSigned.from_int(a).subtract(BigSigned.from_int(b))
            assert result.to_int() == a - b
            assert not (result.is_zero() and result.is_negative)

    def test_multiply(self):
        for a, b in SIGNED_OPERANDS:
            result = BigSigned.from_int(a).multiply(BigSigned.from_int(b))
            assert result.to_int() == a * b
            assert not (result.is_zero() and result.is_negative)

    def test_add_signed_with_raw_magnitude(self):
        value = BigSigned.from_int(3)
        value.add_signed(BigUnsigned.from_int(10), True)
        assert value.to_int() == -7
        value.subtract_signed(BigUnsigned.from_int(7), True)
        assert value.to_int() == 0
        assert not value.is_negative

    def test_subtract_itself(self):
        value = BigSigned.from_int(-99)
        value.subtract(value)
        assert value.to_int() == 0
        assert not value.is_negative

    def test_negate(self):
        assert BigSigned.from_int(4).negate().to_int() == -4
        zero = BigSigned().negate()
        assert not zero.is_negative

    def test_negative_zero_normalized_on_construction(self):
        assert not BigSigned(BigUnsigned(), True).is_negative
        assert not BigSigned.from_be_bytes(b"\x00", is_negative=True).is_negative

    def test_ordering(self):
        values = sorted({a for a, _ in SIGNED_OPERANDS})
        converted = [BigSigned.from_int(v) for v in values]
        assert sorted(converted[::-1]) == converted
        assert BigSigned.from_int(-10) < BigSigned.from_int(-2) < BigSigned.from_int(0) < BigSigned.from_int(3)


class TestSignedModulus:
    """divide_big_unsigned_with_signed_modulus: quotient toward zero, modulus in [0, d)."""

    def test_matches_reference(self):
        for a, b in SIGNED_OPERANDS:
            divisor = abs(b)
            if divisor == 0:
                continue
            quotient = BigSigned.from_int(a)
            modulus = BigUnsigned()
            assert quotient.divide_big_unsigned_with_signed_modulus(BigUnsigned.from_int(divisor), modulus)
            truncated = abs(a) // divisor
            assert quotient.to_int() == (-truncated if a < 0 else truncated)
            assert modulus.to_int() == a % divisor
            assert 0 <= modulus.to_int() < divisor

    def test_negative_exact_multiple(self):
        quotient = BigSigned.from_int(-12)
        modulus = BigUnsigned.from_int(77)
        assert quotient.divide_big_unsigned_with_signed_modulus(BigUnsigned.from_int(4), modulus)
        assert quotient.to_int() == -3
        assert modulus.is_zero()

    def test_negative_dividend_wraps_up(self):
        quotient = BigSigned.from_int(-7)
        modulus = BigUnsigned()
        quotient.divide_big_unsigned_with_signed_modulus(BigUnsigned.from_int(5), modulus)
        assert quotient.to_int() == -1
        assert modulus.to_int() == 3

    def test_small_negative_quotient_is_zero(self):
        quotient = BigSigned.from_int(-3)
        modulus = BigUnsigned()
        quotient.divide_big_unsigned_with_signed_modulus(BigUnsigned.from_int(5), modulus)
        assert quotient.to_int() == 0
        assert not quotient.is_negative
        assert modulus.to_int() == 2

    def test_division_by_zero(self):
        quotient = BigSigned.from_int(-7)
        modulus = BigUnsigned.from_int(1)
        assert not quotient.divide_big_unsigned_with_signed_modulus(BigUnsigned(), modulus)
        assert quotient.to_int() == -7
        assert modulus.to_int() == 1

    def test_modulo_unsigned(self):
        value = BigSigned.from_int(-(2**70) - 5)
        assert value.modulo_unsigned(BigUnsigned.from_int(1009))
        assert value.to_int() == (-(2**70) - 5) % 1009


P = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F


class TestCalculator:
    @pytest.fixture
    def calculator(self):
        return BigUnsignedCalculator()

    def test_mod_inverse_positive(self, calculator):
        rng = random.Random(5)
        modulus = BigUnsigned.from_int(P)
        for _ in range(10):
            a = rng.randrange(1, P)
            value = BigUnsigned.from_int(a)
            assert calculator.calculate_mod_inverse(value, False, modulus)
            assert value.to_int() == pow(a, P - 2, P)
            assert (value.to_int() * a) % P == 1

    def test_mod_inverse_negative(self, calculator):
        rng = random.Random(6)
        modulus = BigUnsigned.from_int(P)
        for _ in range(10):
            a = rng.randrange(1, P)
            value = BigUnsigned.from_int(a)
            assert calculator.calculate_mod_inverse(value, True, modulus)
            assert (value.to_int() * -a) % P == 1
            assert 0 <= value.to_int() < P

    def test_mod_inverse_of_value_above_modulus(self, calculator):
        value = BigUnsigned.from_int(3 * 97 + 10)
        assert calculator.calculate_mod_inverse(value, False, BigUnsigned.from_int(97))
        assert (value.to_int() * 10) % 97 == 1

    def test_mod_inverse_small_cases(self, calculator):
        value = BigUnsigned.from_int(1)
        assert calculator.calculate_mod_inverse(value, False, BigUnsigned.from_int(13))
        assert value.to_int() == 1
        value = BigUnsigned.from_int(1)
        assert calculator.calculate_mod_inverse(value, True, BigUnsigned.from_int(13))
        assert value.to_int() == 12

    def test_mod_inverse_not_coprime(self, calculator):
        value = BigUnsigned.from_int(6)
        assert not calculator.calculate_mod_inverse(value, False, BigUnsigned.from_int(9))
        assert value.to_int() == 6
        zero = BigUnsigned()
        assert not calculator.calculate_mod_inverse(zero, False, BigUnsigned.from_int(7))

    def test_mod_inverse_zero_modulus(self, calculator):
        assert not calculator.calculate_mod_inverse(BigUnsigned.from_int(3), False, BigUnsigned())

    def test_modpow(self, calculator):
        rng = random.Random(8)
        for _ in range(5):
            base = rng.getrandbits(256)
            exponent = rng.getrandbits(256)
            value = BigUnsigned.from_int(base)
            assert calculator.modpow(value, BigUnsigned.from_int(exponent), BigUnsigned.from_int(P))
            assert value.to_int() == pow(base, exponent, P)

    def test_modpow_edge_cases(self, calculator):
        value = BigUnsigned.from_int(5)
        assert calculator.modpow(value, BigUnsigned(), BigUnsigned.from_int(7))
        assert value.to_int() == 1
        value = BigUnsigned.from_int(5)
        assert calculator.modpow(value, BigUnsigned.from_int(3), BigUnsigned.from_int(1))
        assert value.is_zero()
        assert not calculator.modpow(value, BigUnsigned.from_int(3), BigUnsigned())

    def test_scratch_cleared_after_use(self, calculator):
        value = BigUnsigned.from_int(12345)
        calculator.calculate_mod_inverse(value, False, BigUnsigned.from_int(P))
        assert calculator.quotient.is_zero()
        assert calculator.coefficient.is_zero()
        assert calculator.previous_coefficient.is_zero()
        assert calculator.remainder.is_zero()
