"""
Short-Weierstrass curve constants (y^2 = x^3 + ax + b mod p).
"""

from dataclasses import dataclass

from big_integers import BigUnsigned


def _from_hex(text: str) -> BigUnsigned:
    return BigUnsigned.from_be_bytes(bytes.fromhex(text))


@dataclass(frozen=True)
class CurveParameters:
    """
    Constants for one curve. The values are shared by every context built
    from this object and must never be mutated.
    """

    p: BigUnsigned
    a: BigUnsigned
    b: BigUnsigned
    n: BigUnsigned
    gx: BigUnsigned
    gy: BigUnsigned
    sqrt_exponent: BigUnsigned
    byte_width: int

    @classmethod
    def from_hex(cls, p: str, a: str, b: str, n: str, gx: str, gy: str) -> "CurveParameters":
        """
        Build parameters from hex strings. The square-root exponent
        (p + 1) / 4 is computed here once; it is only a square root for
        primes with p mod 4 == 3.
        """
        prime = _from_hex(p)
        if prime.digits[-1] & 3 != 3:
            raise ValueError("square-root shortcut requires p mod 4 == 3")
        sqrt_exponent = prime.copy().add(1)
        sqrt_exponent.divide(4)
        return cls(
            p=prime,
            a=_from_hex(a),
            b=_from_hex(b),
            n=_from_hex(n),
            gx=_from_hex(gx),
            gy=_from_hex(gy),
            sqrt_exponent=sqrt_exponent,
            byte_width=prime.byte_count(),
        )


SECP256K1 = CurveParameters.from_hex(
    p="FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F",
    a="00",
    b="07",
    n="FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141",
    gx="79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798",
    gy="483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8",
)
