"""
Affine point arithmetic over a short-Weierstrass curve.

EllipticCurvePointAdditionContext adds and doubles points in place.
EllipticCurvePointMultiplicationContext builds a fixed-shape double-and-add
scalar multiplication on top of it and recovers y from a compressed x.
A context owns its scratch values; one caller uses it at a time.
"""

from typing import Optional, Union

from big_integers import DIGIT_BITS, BigSigned, BigUnsigned, BigUnsignedCalculator
from curve_parameters import CurveParameters

COMPRESSED_EVEN_PREFIX = 0x02
COMPRESSED_ODD_PREFIX = 0x03


def _signed(value: Union[BigSigned, BigUnsigned]) -> BigSigned:
    if isinstance(value, BigSigned):
        return value.copy()
    return BigSigned(value)


class Point:
    """Affine point, or the point at infinity when is_infinity is set."""

    __slots__ = ("x", "y", "is_infinity")

    def __init__(self, x: Optional[BigSigned] = None, y: Optional[BigSigned] = None, is_infinity: bool = False):
        self.x = x if x is not None else BigSigned()
        self.y = y if y is not None else BigSigned()
        self.is_infinity = is_infinity

    @classmethod
    def infinity(cls) -> "Point":
        return cls(is_infinity=True)

    @classmethod
    def from_affine(cls, x: Union[BigSigned, BigUnsigned], y: Union[BigSigned, BigUnsigned]) -> "Point":
        return cls(_signed(x), _signed(y))

    def copy(self) -> "Point":
        return Point(self.x.copy(), self.y.copy(), self.is_infinity)

    def set_equal_to(self, other: "Point") -> "Point":
        if other is not self:
            self.x.set_equal_to(other.x)
            self.y.set_equal_to(other.y)
            self.is_infinity = other.is_infinity
        return self

    def set_infinity(self) -> "Point":
        self.x.zero()
        self.y.zero()
        self.is_infinity = True
        return self

    def zero(self) -> None:
        self.set_infinity()

    def __eq__(self, other):
        if not isinstance(other, Point):
            return NotImplemented
        if self.is_infinity or other.is_infinity:
            return self.is_infinity == other.is_infinity
        return self.x == other.x and self.y == other.y

    __hash__ = None

    def __repr__(self):
        if self.is_infinity:
            return "Point(infinity)"
        return f"Point(x={self.x!r}, y={self.y!r})"

    def try_serialize_compressed(self, length: int = 33) -> Optional[bytes]:
        """SEC1 compressed form: parity prefix then x, big-endian."""
        if self.is_infinity:
            return None
        out = bytearray(length)
        out[0] = COMPRESSED_EVEN_PREFIX if self.y.is_even() else COMPRESSED_ODD_PREFIX
        if not self.x.magnitude.copy_be_bytes_to(memoryview(out)[1:]):
            return None
        return bytes(out)


# ============================================================
# Addition and doubling
# ============================================================
class EllipticCurvePointAdditionContext:
    def __init__(self, curve: CurveParameters):
        self.curve = curve
        self.calculator = BigUnsignedCalculator()
        self.slope = BigSigned()
        self.term = BigSigned()
        self.stored = Point.infinity()

    def zero(self) -> None:
        self.slope.zero()
        self.term.zero()
        self.stored.zero()
        self.calculator.zero()

    def mod_inverse(self, value: BigSigned) -> bool:
        """Replace value with its inverse mod p, normalized to [0, p)."""
        if not self.calculator.calculate_mod_inverse(value.magnitude, value.is_negative, self.curve.p):
            return False
        value.is_negative = False
        return True

    def add(self, augend: Point, addend: Point) -> None:
        """augend += addend."""
        if addend.is_infinity:
            return
        if augend.is_infinity:
            augend.set_equal_to(addend)
            return
        if augend.x == addend.x:
            if augend.y == addend.y:
                self.double(augend)
            else:
                augend.set_infinity()
            return

        try:
            self.stored.set_equal_to(augend)
            # slope = (y2 - y1) / (x2 - x1)
            self.slope.set_equal_to(addend.x)
            self.slope.subtract(self.stored.x)
            inverted = self.mod_inverse(self.slope)
            assert inverted, "x2 - x1 is invertible for distinct coordinates mod a prime"
            self.term.set_equal_to(addend.y)
            self.term.subtract(self.stored.y)
            self.slope.multiply(self.term)
            self.slope.modulo_unsigned(self.curve.p)
            self._apply_slope(augend, addend.x)
        finally:
            self.zero()

    def double(self, point: Point) -> None:
        """point += point."""
        if point.is_infinity:
            return
        if point.y.is_zero():
            # Vertical tangent.
            point.set_infinity()
            return

        try:
            self.stored.set_equal_to(point)
            # slope = (3x^2 + a) / 2y
            self.slope.set_equal_to(self.stored.y)
            self.slope.multiply_unsigned(2)
            inverted = self.mod_inverse(self.slope)
            assert inverted, "2y is invertible for y != 0 mod an odd prime"
            self.term.set_equal_to(self.stored.x)
            self.term.multiply(self.stored.x)
            self.term.multiply_unsigned(3)
            self.term.add_unsigned(self.curve.a)
            self.slope.multiply(self.term)
            self.slope.modulo_unsigned(self.curve.p)
            self._apply_slope(point, self.stored.x)
        finally:
            self.zero()

    def _apply_slope(self, result: Point, other_x: BigSigned) -> None:
        p = self.curve.p
        # x3 = slope^2 - x1 - x2
        self.term.set_equal_to(self.slope)
        self.term.multiply(self.slope)
        self.term.subtract(self.stored.x)
        self.term.subtract(other_x)
        self.term.modulo_unsigned(p)
        result.x.set_equal_to(self.term)
        # y3 = slope * (x1 - x3) - y1
        self.term.set_equal_to(self.stored.x)
        self.term.subtract(result.x)
        self.term.multiply(self.slope)
        self.term.subtract(self.stored.y)
        self.term.modulo_unsigned(p)
        result.y.set_equal_to(self.term)
        result.is_infinity = False


# ============================================================
# Scalar multiplication
# ============================================================
class EllipticCurvePointMultiplicationContext:
    def __init__(self, curve: CurveParameters):
        self.curve = curve
        self.addition = EllipticCurvePointAdditionContext(curve)
        self.calculator = BigUnsignedCalculator()
        # Multiplier bits, zero-padded to the width of n.
        self.buffer = [0] * curve.n.digit_count()
        self.working = Point.infinity()
        self.throwaway = Point.infinity()

    def zero(self) -> None:
        self.buffer[:] = [0] * len(self.buffer)
        self.working.zero()
        self.throwaway.zero()
        self.addition.zero()
        self.calculator.zero()

    def multiply_point(
        self,
        x: Union[BigSigned, BigUnsigned],
        y: Union[BigSigned, BigUnsigned],
        multiplier: BigUnsigned,
    ) -> Optional[Point]:
        """
        Return multiplier * (x, y), or None when the multiplier is zero, not
        below the curve order, or wider than it.

        Every bit of a buffer as wide as n costs one addition and one
        doubling, whatever its value: bits that are clear add into a
        throwaway point.
        """
        order = self.curve.n.digits
        width = len(order)
        digits = multiplier.digits
        fits = multiplier.digit_count() <= width

        buffer = self.buffer
        offset = width - len(digits)
        try:
            for i, digit in enumerate(digits):
                if i + offset >= 0:
                    buffer[i + offset] = digit

            accumulated = 0
            for digit in digits:
                accumulated |= digit

            # Full scan; only the first differing digit decides the ordering.
            ordering = 0
            for ours, theirs in zip(buffer, order):
                here = (ours > theirs) - (ours < theirs)
                ordering += here * (ordering == 0)

            valid = fits & (accumulated != 0) & (ordering < 0)
            if not valid:
                return None

            product = Point.infinity()
            working = self.working.set_equal_to(Point.from_affine(x, y))
            throwaway = self.throwaway
            targets = (throwaway, product)
            for index in range(width - 1, -1, -1):
                digit = buffer[index]
                for shift in range(DIGIT_BITS):
                    bit = (digit >> shift) & 1
                    throwaway.set_equal_to(product)
                    self.addition.add(targets[bit], working)
                    self.addition.double(working)
            return product
        finally:
            self.zero()

    def public_key_for(self, scalar: BigUnsigned) -> Optional[bytes]:
        """Compressed scalar * G, or None for an out-of-range scalar."""
        point = self.multiply_point(self.curve.gx, self.curve.gy, scalar)
        if point is None:
            return None
        try:
            return point.try_serialize_compressed(self.curve.byte_width + 1)
        finally:
            point.zero()

    def calculate_y_from_x(self, y_is_even: bool, x: BigUnsigned) -> Optional[BigUnsigned]:
        """
        Solve y^2 = x^3 + ax + b for the root with the requested parity.
        Returns None when x is not the coordinate of a curve point.
        """
        p = self.curve.p
        reduced = x.copy()
        reduced.modulo(p)
        right_side = reduced.copy()
        right_side.multiply(reduced)
        right_side.modulo(p)
        right_side.multiply(reduced)
        linear = self.curve.a.copy()
        linear.multiply(reduced)
        right_side.add(linear)
        right_side.add(self.curve.b)
        right_side.modulo(p)

        y = right_side.copy()
        self.calculator.modpow(y, self.curve.sqrt_exponent, p)
        check = y.copy()
        check.multiply(y)
        check.modulo(p)
        if check != right_side:
            return None
        if y.is_even() != y_is_even and not y.is_zero():
            y.difference(p)
        return y

    def decompress_point(self, data: bytes) -> Optional[Point]:
        """Parse a SEC1 compressed point; None when it is malformed or off the curve."""
        if len(data) != self.curve.byte_width + 1:
            return None
        if data[0] not in (COMPRESSED_EVEN_PREFIX, COMPRESSED_ODD_PREFIX):
            return None
        x = BigUnsigned.from_be_bytes(data[1:])
        if x >= self.curve.p:
            return None
        y = self.calculate_y_from_x(data[0] == COMPRESSED_EVEN_PREFIX, x)
        if y is None:
            return None
        return Point.from_affine(x, y)
