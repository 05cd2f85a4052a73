"""
Base58 and Base58Check encoding for serialized extended keys.
Reference alphabet and checksum from the Bitcoin address format.
"""

from typing import Optional

from big_integers import BigUnsigned
from hashing import double_sha256

ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
CHECKSUM_SIZE = 4
_BASE = len(ALPHABET)


def encode(data: bytes) -> str:
    value = BigUnsigned.from_be_bytes(data)
    chars = []
    while not value.is_zero():
        remainder = value.divide(_BASE)
        chars.append(ALPHABET[remainder.digits[-1]])
    leading_zeros = len(data) - len(bytes(data).lstrip(b"\x00"))
    return ALPHABET[0] * leading_zeros + "".join(reversed(chars))


def decode(text: str) -> Optional[bytes]:
    """Decode Base58 text; returns None on characters outside the alphabet."""
    value = BigUnsigned()
    for char in text:
        index = ALPHABET.find(char)
        if index < 0:
            return None
        value.multiply(_BASE)
        value.add(index)
    leading_ones = len(text) - len(text.lstrip(ALPHABET[0]))
    return b"\x00" * leading_ones + value.to_be_bytes()


def encode_check(payload: bytes) -> str:
    return encode(bytes(payload) + double_sha256(payload)[:CHECKSUM_SIZE])


def decode_check(text: str) -> Optional[bytes]:
    """Decode Base58Check text; returns None on bad characters or checksum."""
    raw = decode(text)
    if raw is None or len(raw) < CHECKSUM_SIZE:
        return None
    payload, checksum = raw[:-CHECKSUM_SIZE], raw[-CHECKSUM_SIZE:]
    if double_sha256(payload)[:CHECKSUM_SIZE] != checksum:
        return None
    return payload
