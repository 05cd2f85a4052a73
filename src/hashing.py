"""
Hash, HMAC and PBKDF2 primitives used by key derivation.

Thin wrappers over hashlib/hmac with a uniform feed/reset/digest interface.
RIPEMD-160 is not available in every OpenSSL build, so it falls back to
pycryptodome.
"""

import hashlib
import hmac


def _new_ripemd160(data: bytes = b""):
    """RIPEMD160 with multiple fallbacks for different environments."""
    try:
        return hashlib.new("ripemd160", data)
    except (ValueError, TypeError):
        pass
    try:
        return hashlib.new("ripemd160", data, usedforsecurity=False)
    except (ValueError, TypeError):
        pass
    from Crypto.Hash import RIPEMD160
    return RIPEMD160.new(data)


class _HashFunction:
    NAME = ""
    DIGEST_SIZE = 0

    def __init__(self):
        self._state = self._new_state()

    @classmethod
    def new(cls):
        return cls()

    @classmethod
    def _new_state(cls, data: bytes = b""):
        return hashlib.new(cls.NAME, data)

    def feed(self, data: bytes):
        self._state.update(bytes(data))
        return self

    def reset(self):
        self._state = self._new_state()
        return self

    def digest(self) -> bytes:
        return self._state.digest()

    def build_hmac(self, key: bytes) -> "Hmac":
        return Hmac(type(self), key)


class Sha256(_HashFunction):
    NAME = "sha256"
    DIGEST_SIZE = 32


class Sha512(_HashFunction):
    NAME = "sha512"
    DIGEST_SIZE = 64


class Ripemd160(_HashFunction):
    NAME = "ripemd160"
    DIGEST_SIZE = 20

    @classmethod
    def _new_state(cls, data: bytes = b""):
        return _new_ripemd160(data)


class Hmac:
    """HMAC keyed once, computed any number of times."""

    def __init__(self, hash_class, key: bytes):
        self.hash_class = hash_class
        self._key = bytes(key)

    def compute(self, data: bytes) -> bytes:
        return hmac.new(self._key, bytes(data), self.hash_class._new_state).digest()


def pbkdf2_derive(password: bytes, salt: bytes, iterations: int, out: bytearray) -> None:
    """PBKDF2-HMAC-SHA512 filling the caller's buffer."""
    out[:] = hashlib.pbkdf2_hmac("sha512", bytes(password), bytes(salt), iterations, len(out))


def hash160(data: bytes) -> bytes:
    return Ripemd160().feed(Sha256().feed(data).digest()).digest()


def fingerprint(public_key: bytes) -> bytes:
    """First four bytes of HASH160 of a compressed public key."""
    return hash160(public_key)[:4]


def double_sha256(data: bytes) -> bytes:
    return Sha256().feed(Sha256().feed(data).digest()).digest()
