"""
Arbitrary-precision integers for curve arithmetic.

BigUnsigned keeps its value as a list of 32-bit digits, most significant
first, and every arithmetic method mutates the receiver in place. BigSigned
pairs a magnitude with a sign flag. BigUnsignedCalculator holds the scratch
values for modular inverse and modular exponentiation.

Secret values are cleared with zero() once they are no longer needed.
"""

from functools import total_ordering
from typing import List, Optional, Union

DIGIT_BITS = 32
DIGIT_BYTES = DIGIT_BITS // 8
DIGIT_BASE = 1 << DIGIT_BITS
DIGIT_MASK = DIGIT_BASE - 1


# ============================================================
# Digit helpers
# ============================================================
def _digits_from_int(value: int) -> List[int]:
    if value < 0:
        raise ValueError(f"BigUnsigned cannot hold a negative value ({value})")
    digits = []
    while True:
        digits.append(value & DIGIT_MASK)
        value >>= DIGIT_BITS
        if not value:
            break
    digits.reverse()
    return digits


def _as_digits(value) -> List[int]:
    if isinstance(value, BigUnsigned):
        return value.digits
    if isinstance(value, int):
        return _digits_from_int(value)
    raise TypeError(f"expected BigUnsigned or int, got {type(value).__name__}")


def _strip(digits: List[int]) -> None:
    """Remove every leading zero digit (an empty list means zero)."""
    count = 0
    while count < len(digits) and digits[count] == 0:
        count += 1
    if count:
        del digits[:count]


def _compare_digits(left: List[int], right: List[int]) -> int:
    if len(left) != len(right):
        return -1 if len(left) < len(right) else 1
    for ours, theirs in zip(left, right):
        if ours != theirs:
            return -1 if ours < theirs else 1
    return 0


def _subtract_in_place(digits: List[int], subtrahend: List[int]) -> None:
    """digits -= subtrahend, where digits >= subtrahend."""
    borrow = 0
    j = len(subtrahend) - 1
    for i in range(len(digits) - 1, -1, -1):
        value = digits[i] - borrow
        if j >= 0:
            value -= subtrahend[j]
            j -= 1
        elif not borrow:
            break
        if value < 0:
            value += DIGIT_BASE
            borrow = 1
        else:
            borrow = 0
        digits[i] = value


def _multiply_subtract(window: List[int], divisor: List[int], multiple: int) -> None:
    """window -= multiple * divisor, where the result is known to be >= 0."""
    borrow = 0
    i = len(window) - 1
    for j in range(len(divisor) - 1, -1, -1):
        product = multiple * divisor[j] + borrow
        value = window[i] - (product & DIGIT_MASK)
        borrow = product >> DIGIT_BITS
        if value < 0:
            value += DIGIT_BASE
            borrow += 1
        window[i] = value
        i -= 1
    while borrow:
        value = window[i] - borrow
        if value < 0:
            value += DIGIT_BASE
            borrow = 1
        else:
            borrow = 0
        window[i] = value
        i -= 1


def _divide_digits(dividend: List[int], divisor: List[int]):
    """
    Long division on digit lists. Returns (quotient, remainder), both trimmed
    to at least one digit. The divisor must be non-zero and trimmed.
    """
    if _compare_digits(dividend, divisor) < 0:
        return [0], list(dividend)

    quotient = []
    if len(divisor) == 1:
        # Single digit: carry the remainder down digit by digit.
        single = divisor[0]
        remainder = 0
        for digit in dividend:
            current = (remainder << DIGIT_BITS) | digit
            quotient.append(current // single)
            remainder = current % single
        _strip(quotient)
        return quotient or [0], [remainder]

    # Leading two digits of the divisor, rounded up when more digits follow,
    # so that every trial multiple underestimates the true quotient digit.
    top_divisor = divisor[0] * DIGIT_BASE + divisor[1]
    if len(divisor) > 2:
        top_divisor += 1
    width = len(divisor)

    window: List[int] = []
    for digit in dividend:
        if window or digit:
            window.append(digit)
        count = 0
        while _compare_digits(window, divisor) >= 0:
            if len(window) > width:
                top_window = (window[0] * DIGIT_BASE + window[1]) * DIGIT_BASE + window[2]
            else:
                top_window = window[0] * DIGIT_BASE + window[1]
            multiple = max(1, top_window // top_divisor)
            _multiply_subtract(window, divisor, multiple)
            _strip(window)
            count += multiple
        quotient.append(count)

    _strip(quotient)
    return quotient or [0], window or [0]


# ============================================================
# BigUnsigned
# ============================================================
@total_ordering
class BigUnsigned:
    """Non-negative integer of arbitrary size, stored as big-endian 32-bit digits."""

    __slots__ = ("digits",)

    def __init__(self, digits: Optional[List[int]] = None):
        self.digits = list(digits) if digits else [0]
        self._trim()

    @classmethod
    def from_be_bytes(cls, data: bytes) -> "BigUnsigned":
        value = cls()
        value.copy_be_bytes_from(data)
        return value

    @classmethod
    def from_digits(cls, digits: List[int]) -> "BigUnsigned":
        for digit in digits:
            if not 0 <= digit <= DIGIT_MASK:
                raise ValueError(f"digit out of range: {digit}")
        return cls(digits)

    @classmethod
    def from_int(cls, value: int) -> "BigUnsigned":
        return cls(_digits_from_int(value))

    def copy(self) -> "BigUnsigned":
        return BigUnsigned(self.digits)

    def to_int(self) -> int:
        value = 0
        for digit in self.digits:
            value = (value << DIGIT_BITS) | digit
        return value

    def _trim(self) -> None:
        digits = self.digits
        count = 0
        while count < len(digits) - 1 and digits[count] == 0:
            count += 1
        if count:
            del digits[:count]

    # --- Introspection ---
    def digit_count(self) -> int:
        return len(self.digits)

    def bit_length(self) -> int:
        return (len(self.digits) - 1) * DIGIT_BITS + self.digits[0].bit_length()

    def byte_count(self) -> int:
        """Bytes needed for the big-endian encoding (0 for zero)."""
        return (self.bit_length() + 7) // 8

    def bit_at(self, position: int) -> int:
        index = len(self.digits) - 1 - position // DIGIT_BITS
        if index < 0:
            return 0
        return (self.digits[index] >> (position % DIGIT_BITS)) & 1

    def is_zero(self) -> bool:
        return len(self.digits) == 1 and self.digits[0] == 0

    def is_one(self) -> bool:
        return len(self.digits) == 1 and self.digits[0] == 1

    def is_even(self) -> bool:
        return not self.digits[-1] & 1

    # --- Byte I/O ---
    def copy_be_bytes_to(self, buffer) -> bool:
        """
        Write the value right-aligned into a writable buffer (bytearray or
        memoryview), zero-padding on the left. Returns False, leaving the
        buffer untouched, when the value does not fit.
        """
        size = len(buffer)
        if self.byte_count() > size:
            return False
        position = size
        for digit in reversed(self.digits):
            for _ in range(DIGIT_BYTES):
                if not position:
                    break
                position -= 1
                buffer[position] = digit & 0xFF
                digit >>= 8
        for i in range(position):
            buffer[i] = 0
        return True

    def copy_be_bytes_from(self, data: bytes) -> None:
        data = bytes(data)
        head = len(data) % DIGIT_BYTES
        digits = []
        if head:
            digits.append(int.from_bytes(data[:head], "big"))
        for start in range(head, len(data), DIGIT_BYTES):
            digits.append(int.from_bytes(data[start:start + DIGIT_BYTES], "big"))
        self.digits[:] = digits or [0]
        self._trim()

    def to_be_bytes(self, length: Optional[int] = None) -> bytes:
        if length is None:
            length = self.byte_count()
        buffer = bytearray(length)
        if not self.copy_be_bytes_to(buffer):
            raise OverflowError(f"value needs {self.byte_count()} bytes, buffer has {length}")
        return bytes(buffer)

    # --- Assignment ---
    def set_equal_to(self, other: Union["BigUnsigned", int]) -> "BigUnsigned":
        if other is not self:
            self.digits[:] = _as_digits(other)
        return self

    def zero(self) -> "BigUnsigned":
        digits = self.digits
        for i in range(len(digits)):
            digits[i] = 0
        del digits[1:]
        return self

    def one(self) -> "BigUnsigned":
        self.zero()
        self.digits[0] = 1
        return self

    # --- Comparison ---
    def cmp(self, other: Union["BigUnsigned", int]) -> int:
        return _compare_digits(self.digits, _as_digits(other))

    def __eq__(self, other):
        if not isinstance(other, (BigUnsigned, int)):
            return NotImplemented
        if isinstance(other, int) and other < 0:
            return False
        return self.cmp(other) == 0

    def __lt__(self, other):
        if not isinstance(other, (BigUnsigned, int)):
            return NotImplemented
        if isinstance(other, int) and other < 0:
            return False
        return self.cmp(other) < 0

    __hash__ = None

    def __repr__(self):
        return f"BigUnsigned(0x{self.to_be_bytes(max(1, self.byte_count())).hex()})"

    # --- Arithmetic ---
    def add(self, addend: Union["BigUnsigned", int]) -> "BigUnsigned":
        other = _as_digits(addend)
        digits = self.digits
        if len(other) > len(digits):
            digits[:0] = [0] * (len(other) - len(digits))
        carry = 0
        j = len(other) - 1
        for i in range(len(digits) - 1, -1, -1):
            total = digits[i] + carry
            if j >= 0:
                total += other[j]
                j -= 1
            elif not carry:
                break
            digits[i] = total & DIGIT_MASK
            carry = total >> DIGIT_BITS
        if carry:
            digits.insert(0, carry)
        return self

    def subtract(self, subtrahend: Union["BigUnsigned", int]) -> "BigUnsigned":
        """Saturating subtraction: a subtrahend >= self leaves zero."""
        other = _as_digits(subtrahend)
        if _compare_digits(self.digits, other) <= 0:
            return self.zero()
        _subtract_in_place(self.digits, other)
        self._trim()
        return self

    def difference(self, other: Union["BigUnsigned", int]) -> "BigUnsigned":
        """Replace self with |self - other|."""
        other = _as_digits(other)
        order = _compare_digits(self.digits, other)
        if order == 0:
            return self.zero()
        if order > 0:
            _subtract_in_place(self.digits, other)
        else:
            larger = list(other)
            _subtract_in_place(larger, self.digits)
            self.digits[:] = larger
        self._trim()
        return self

    def multiply(self, multiplier: Union["BigUnsigned", int]) -> "BigUnsigned":
        other = _as_digits(multiplier)
        if other is self.digits:
            other = list(other)
        width = len(other)
        result = [0] * width + self.digits
        # Multiplicand digits high to low; each partial product only reaches
        # positions that are already final or still zero.
        for position in range(width, len(result)):
            digit = result[position]
            result[position] = 0
            if not digit:
                continue
            carry = 0
            k = position
            for j in range(width - 1, -1, -1):
                total = result[k] + digit * other[j] + carry
                result[k] = total & DIGIT_MASK
                carry = total >> DIGIT_BITS
                k -= 1
            while carry:
                total = result[k] + carry
                result[k] = total & DIGIT_MASK
                carry = total >> DIGIT_BITS
                k -= 1
        self.digits[:] = result
        self._trim()
        return self

    def divide_with_remainder(self, divisor: Union["BigUnsigned", int], remainder: "BigUnsigned") -> bool:
        """self //= divisor, remainder = self % divisor. False on division by zero."""
        other = _as_digits(divisor)
        if len(other) == 1 and other[0] == 0:
            return False
        quotient, rest = _divide_digits(self.digits, other)
        self.digits[:] = quotient
        remainder.digits[:] = rest
        return True

    def divide(self, divisor: Union["BigUnsigned", int]) -> Optional["BigUnsigned"]:
        """self //= divisor and return the remainder, or None on division by zero."""
        remainder = BigUnsigned()
        if not self.divide_with_remainder(divisor, remainder):
            return None
        return remainder

    def modulo(self, divisor: Union["BigUnsigned", int]) -> bool:
        other = _as_digits(divisor)
        if len(other) == 1 and other[0] == 0:
            return False
        _, rest = _divide_digits(self.digits, other)
        self.digits[:] = rest
        return True


# ============================================================
# BigSigned
# ============================================================
@total_ordering
class BigSigned:
    """BigUnsigned magnitude plus sign. Zero is never negative."""

    __slots__ = ("magnitude", "is_negative")

    def __init__(self, magnitude: Optional[BigUnsigned] = None, is_negative: bool = False):
        self.magnitude = magnitude.copy() if magnitude is not None else BigUnsigned()
        self.is_negative = bool(is_negative)
        self._normalize()

    @classmethod
    def from_be_bytes(cls, data: bytes, is_negative: bool = False) -> "BigSigned":
        return cls(BigUnsigned.from_be_bytes(data), is_negative)

    @classmethod
    def from_int(cls, value: int) -> "BigSigned":
        return cls(BigUnsigned.from_int(abs(value)), value < 0)

    def to_int(self) -> int:
        value = self.magnitude.to_int()
        return -value if self.is_negative else value

    def copy(self) -> "BigSigned":
        return BigSigned(self.magnitude, self.is_negative)

    def _normalize(self) -> None:
        if self.magnitude.is_zero():
            self.is_negative = False

    def is_zero(self) -> bool:
        return self.magnitude.is_zero()

    def is_even(self) -> bool:
        return self.magnitude.is_even()

    # --- Assignment ---
    def set_equal_to(self, other: "BigSigned") -> "BigSigned":
        if other is not self:
            self.magnitude.set_equal_to(other.magnitude)
            self.is_negative = other.is_negative
        return self

    def set_equal_to_unsigned(self, value: Union[BigUnsigned, int], is_negative: bool = False) -> "BigSigned":
        self.magnitude.set_equal_to(value)
        self.is_negative = is_negative
        self._normalize()
        return self

    def zero(self) -> "BigSigned":
        self.magnitude.zero()
        self.is_negative = False
        return self

    def one(self) -> "BigSigned":
        self.magnitude.one()
        self.is_negative = False
        return self

    def negate(self) -> "BigSigned":
        self.is_negative = not self.is_negative
        self._normalize()
        return self

    # --- Comparison ---
    def cmp(self, other: "BigSigned") -> int:
        if self.is_negative != other.is_negative:
            return -1 if self.is_negative else 1
        order = self.magnitude.cmp(other.magnitude)
        return -order if self.is_negative else order

    def __eq__(self, other):
        if not isinstance(other, BigSigned):
            return NotImplemented
        return self.cmp(other) == 0

    def __lt__(self, other):
        if not isinstance(other, BigSigned):
            return NotImplemented
        return self.cmp(other) < 0

    __hash__ = None

    def __repr__(self):
        return f"BigSigned({'-' if self.is_negative else ''}0x{self.magnitude.to_be_bytes(max(1, self.magnitude.byte_count())).hex()})"

    # --- Arithmetic ---
    def add_signed(self, magnitude: Union[BigUnsigned, int], is_negative: bool) -> "BigSigned":
        if self.is_negative == is_negative:
            self.magnitude.add(magnitude)
        else:
            order = self.magnitude.cmp(magnitude)
            self.magnitude.difference(magnitude)
            if order < 0:
                self.is_negative = is_negative
        self._normalize()
        return self

    def subtract_signed(self, magnitude: Union[BigUnsigned, int], is_negative: bool) -> "BigSigned":
        return self.add_signed(magnitude, not is_negative)

    def add(self, other: "BigSigned") -> "BigSigned":
        return self.add_signed(other.magnitude, other.is_negative)

    def subtract(self, other: "BigSigned") -> "BigSigned":
        return self.subtract_signed(other.magnitude, other.is_negative)

    def add_unsigned(self, value: Union[BigUnsigned, int]) -> "BigSigned":
        return self.add_signed(value, False)

    def multiply_signed(self, magnitude: Union[BigUnsigned, int], is_negative: bool) -> "BigSigned":
        self.magnitude.multiply(magnitude)
        self.is_negative = self.is_negative != is_negative
        self._normalize()
        return self

    def multiply(self, other: "BigSigned") -> "BigSigned":
        return self.multiply_signed(other.magnitude, other.is_negative)

    def multiply_unsigned(self, value: Union[BigUnsigned, int]) -> "BigSigned":
        return self.multiply_signed(value, False)

    def divide_big_unsigned_with_signed_modulus(self, divisor: BigUnsigned, modulus_out: BigUnsigned) -> bool:
        """
        Divide by a positive divisor. The quotient (left in self) truncates
        toward zero; modulus_out receives the Euclidean modulus in
        [0, divisor). Returns False on division by zero.
        """
        if divisor.is_zero():
            return False
        remainder = BigUnsigned()
        try:
            self.magnitude.divide_with_remainder(divisor, remainder)
            if self.is_negative and not remainder.is_zero():
                remainder.difference(divisor)
            modulus_out.set_equal_to(remainder)
        finally:
            remainder.zero()
        self._normalize()
        return True

    def modulo_unsigned(self, divisor: BigUnsigned) -> bool:
        """Reduce self into [0, divisor)."""
        modulus = BigUnsigned()
        try:
            if not self.divide_big_unsigned_with_signed_modulus(divisor, modulus):
                return False
            self.set_equal_to_unsigned(modulus)
        finally:
            modulus.zero()
        return True


# ============================================================
# Modular arithmetic
# ============================================================
class BigUnsignedCalculator:
    """Modular inverse and exponentiation over reusable scratch values."""

    def __init__(self):
        self.remainder = BigUnsigned()
        self.previous_remainder = BigUnsigned()
        self.quotient = BigUnsigned()
        self.coefficient = BigSigned()
        self.previous_coefficient = BigSigned()
        self.product = BigSigned()

    def zero(self) -> None:
        self.remainder.zero()
        self.previous_remainder.zero()
        self.quotient.zero()
        self.coefficient.zero()
        self.previous_coefficient.zero()
        self.product.zero()

    def calculate_mod_inverse(self, value: BigUnsigned, value_is_negative: bool, modulus: BigUnsigned) -> bool:
        """
        Replace value with the inverse of (+/-)value modulo modulus, in
        [0, modulus). Returns False, leaving value unchanged, when no
        inverse exists.
        """
        if modulus.is_zero():
            return False
        try:
            old_r, r = self.previous_remainder, self.remainder
            old_s, s = self.previous_coefficient, self.coefficient
            old_r.set_equal_to(value)
            old_r.modulo(modulus)
            r.set_equal_to(modulus)
            old_s.one()
            s.zero()
            while not r.is_zero():
                self.quotient.set_equal_to(old_r)
                self.quotient.divide_with_remainder(r, old_r)
                old_r, r = r, old_r
                self.product.set_equal_to(s)
                self.product.multiply_unsigned(self.quotient)
                old_s.subtract(self.product)
                old_s, s = s, old_s
            if not old_r.is_one():
                return False
            # old_s is the Bezout coefficient of |value|; flip it for a negative value.
            old_s.magnitude.modulo(modulus)
            if old_s.is_negative != value_is_negative and not old_s.magnitude.is_zero():
                value.set_equal_to(modulus)
                value.subtract(old_s.magnitude)
            else:
                value.set_equal_to(old_s.magnitude)
            return True
        finally:
            self.zero()

    def modpow(self, value: BigUnsigned, exponent: BigUnsigned, modulus: BigUnsigned) -> bool:
        """value = value ** exponent mod modulus (square-and-multiply)."""
        if modulus.is_zero():
            return False
        result = self.quotient
        base = self.remainder
        try:
            result.one()
            result.modulo(modulus)
            base.set_equal_to(value)
            base.modulo(modulus)
            for position in range(exponent.bit_length()):
                if exponent.bit_at(position):
                    result.multiply(base)
                    result.modulo(modulus)
                base.multiply(base)
                base.modulo(modulus)
            value.set_equal_to(result)
            return True
        finally:
            self.zero()
