"""
BIP32 HD Key Derivation on the pure-Python secp256k1 arithmetic.

Extended keys use the 78-byte serialization:
    version(4) | depth(1) | parent fingerprint(4) | child number(4) |
    chain code(32) | key material(33)
Private key material is 0x00 followed by the 32-byte scalar; public key
material is a compressed point.
"""

import struct
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

import base58_checksum
from big_integers import BigUnsigned
from curve_parameters import SECP256K1, CurveParameters
from elliptic_curves import EllipticCurvePointMultiplicationContext, Point
from hashing import Sha512, fingerprint

HARDENED_THRESHOLD = 0x80000000
MAX_INDEX = 0xFFFFFFFF
MAX_DEPTH = 255
MASTER_HMAC_KEY = b"Bitcoin seed"
MIN_SEED_BYTES = 16
MAX_SEED_BYTES = 64

EXTENDED_KEY_SIZE = 78
KEY_MATERIAL_SIZE = 33
PRIVATE_KEY_PREFIX = 0x00


# ============================================================
# Errors
# ============================================================
class DerivationError(Exception):
    """Base class for errors that abort a derivation step."""


class MaxDepthError(DerivationError):
    pass


class HardenedDerivationFromPublicKeyError(DerivationError):
    pass


class PublicKeyDerivationError(DerivationError):
    pass


class DerivationIndexExhaustedError(DerivationError):
    pass


class InvalidExtendedKeyError(DerivationError):
    pass


def _scrub(*buffers) -> None:
    for buffer in buffers:
        if buffer is None:
            continue
        if hasattr(buffer, "zero"):
            buffer.zero()
        else:
            buffer[:] = bytes(len(buffer))


# ============================================================
# Key versions
# ============================================================
class KeyNetwork(Enum):
    MAIN = "main"
    TEST = "test"


class KeyType(Enum):
    PRIVATE = "private"
    PUBLIC = "public"


class KeyVersion(Enum):
    MAIN_PRIVATE = 0x0488ADE4  # xprv
    MAIN_PUBLIC = 0x0488B21E  # xpub
    TEST_PRIVATE = 0x04358394  # tprv
    TEST_PUBLIC = 0x043587CF  # tpub

    @property
    def network(self) -> KeyNetwork:
        return KeyNetwork.MAIN if self.name.startswith("MAIN") else KeyNetwork.TEST

    @property
    def key_type(self) -> KeyType:
        return KeyType.PRIVATE if self.name.endswith("PRIVATE") else KeyType.PUBLIC

    @classmethod
    def for_network(cls, network: KeyNetwork, key_type: KeyType) -> "KeyVersion":
        for version in cls:
            if version.network is network and version.key_type is key_type:
                return version
        raise ValueError(f"no key version for {network} {key_type}")

    @classmethod
    def from_bytes(cls, data: bytes) -> Optional["KeyVersion"]:
        if len(data) != 4:
            return None
        try:
            return cls(struct.unpack(">I", bytes(data))[0])
        except ValueError:
            return None

    def to_bytes(self) -> bytes:
        return struct.pack(">I", self.value)

    def to_public(self) -> "KeyVersion":
        return KeyVersion.for_network(self.network, KeyType.PUBLIC)


# ============================================================
# Derivation paths
# ============================================================
@dataclass(frozen=True, order=True)
class DerivationPathPoint:
    """One BIP32 child index; indexes >= 2^31 are hardened."""

    index: int

    def __post_init__(self):
        if not 0 <= self.index <= MAX_INDEX:
            raise ValueError(f"derivation index out of range: {self.index}")

    @classmethod
    def hardened(cls, index: int) -> "DerivationPathPoint":
        if not 0 <= index < HARDENED_THRESHOLD:
            raise ValueError(f"hardened index out of range: {index}")
        return cls(index + HARDENED_THRESHOLD)

    @classmethod
    def normal(cls, index: int) -> "DerivationPathPoint":
        if not 0 <= index < HARDENED_THRESHOLD:
            raise ValueError(f"normal index out of range: {index}")
        return cls(index)

    @property
    def is_hardened(self) -> bool:
        return self.index >= HARDENED_THRESHOLD

    def to_bytes(self) -> bytes:
        return struct.pack(">I", self.index)

    def __str__(self):
        if self.is_hardened:
            return f"{self.index - HARDENED_THRESHOLD}'"
        return str(self.index)


def parse_derivation_path(path: str) -> Tuple[str, List[DerivationPathPoint]]:
    """Parse a path like m/84'/1776'/0'/0 into its root and child points."""
    parts = path.strip().split("/")
    root = parts[0]
    if root not in ("m", "M"):
        raise ValueError(f"derivation path must start with 'm' or 'M': {path!r}")
    points = []
    for part in parts[1:]:
        hardened = part.endswith(("'", "h", "H"))
        number = part[:-1] if hardened else part
        if not number.isdigit():
            raise ValueError(f"invalid path component {part!r} in {path!r}")
        index = int(number)
        if index >= HARDENED_THRESHOLD:
            raise ValueError(f"path component {part!r} is out of range")
        points.append(DerivationPathPoint.hardened(index) if hardened else DerivationPathPoint.normal(index))
    return root, points


def format_derivation_path(points: List[DerivationPathPoint], root: str = "m") -> str:
    return "/".join([root] + [str(point) for point in points])


# ============================================================
# Serialized extended keys
# ============================================================
class SerializedExtendedKey:
    __slots__ = ("version", "depth", "parent_fingerprint", "child_number", "chain_code", "key_material")

    def __init__(
        self,
        version: bytes,
        depth: int,
        parent_fingerprint: bytes,
        child_number: int,
        chain_code: bytes,
        key_material: bytes,
    ):
        self.version = bytes(version)
        self.depth = depth
        self.parent_fingerprint = bytes(parent_fingerprint)
        self.child_number = child_number
        self.chain_code = bytearray(chain_code)
        self.key_material = bytearray(key_material)

    @classmethod
    def from_bytes(cls, data: bytes) -> "SerializedExtendedKey":
        if len(data) != EXTENDED_KEY_SIZE:
            raise InvalidExtendedKeyError(f"extended key must be {EXTENDED_KEY_SIZE} bytes, got {len(data)}")
        version = KeyVersion.from_bytes(data[0:4])
        if version is None:
            raise InvalidExtendedKeyError(f"unknown extended key version {bytes(data[0:4]).hex()}")
        key = cls(
            version=data[0:4],
            depth=data[4],
            parent_fingerprint=data[5:9],
            child_number=struct.unpack(">I", bytes(data[9:13]))[0],
            chain_code=data[13:45],
            key_material=data[45:78],
        )
        prefix = key.key_material[0]
        try:
            if version.key_type is KeyType.PRIVATE and prefix != PRIVATE_KEY_PREFIX:
                raise InvalidExtendedKeyError("private key material must start with 0x00")
            if version.key_type is KeyType.PUBLIC and prefix not in (0x02, 0x03):
                raise InvalidExtendedKeyError("public key material must be a compressed point")
            if key.depth == 0 and (key.parent_fingerprint != b"\x00" * 4 or key.child_number):
                raise InvalidExtendedKeyError("master key with non-zero parent fingerprint or child number")
            key._check_key_material(version.key_type)
        except InvalidExtendedKeyError:
            key.zero()
            raise
        return key

    def _check_key_material(self, key_type: KeyType) -> None:
        """Private keys must be in [1, n); public keys must be points on the curve."""
        if key_type is KeyType.PRIVATE:
            scalar = BigUnsigned.from_be_bytes(memoryview(self.key_material)[1:])
            try:
                if scalar.is_zero() or scalar >= SECP256K1.n:
                    raise InvalidExtendedKeyError("private key is zero or not below the curve order")
            finally:
                scalar.zero()
        else:
            context = EllipticCurvePointMultiplicationContext(SECP256K1)
            if context.decompress_point(bytes(self.key_material)) is None:
                raise InvalidExtendedKeyError("public key is not a point on the curve")

    @classmethod
    def from_base58(cls, text: str) -> "SerializedExtendedKey":
        data = base58_checksum.decode_check(text.strip())
        if data is None:
            raise InvalidExtendedKeyError("invalid Base58Check encoding")
        return cls.from_bytes(data)

    def as_bytes(self) -> bytes:
        return (
            self.version
            + bytes([self.depth])
            + self.parent_fingerprint
            + struct.pack(">I", self.child_number)
            + bytes(self.chain_code)
            + bytes(self.key_material)
        )

    def to_base58(self) -> str:
        return base58_checksum.encode_check(self.as_bytes())

    def key_version(self) -> KeyVersion:
        version = KeyVersion.from_bytes(self.version)
        if version is None:
            raise InvalidExtendedKeyError(f"unknown extended key version {self.version.hex()}")
        return version

    @property
    def is_private(self) -> bool:
        return self.key_version().key_type is KeyType.PRIVATE

    def to_public_key(self, public_key_material: bytes) -> "SerializedExtendedKey":
        """Same position in the tree, with a public version and the given point."""
        return SerializedExtendedKey(
            version=self.key_version().to_public().to_bytes(),
            depth=self.depth,
            parent_fingerprint=self.parent_fingerprint,
            child_number=self.child_number,
            chain_code=self.chain_code,
            key_material=public_key_material,
        )

    def zero(self) -> None:
        _scrub(self.chain_code, self.key_material)


def derive_master_key(seed: bytes, network: KeyNetwork = KeyNetwork.MAIN) -> Optional[SerializedExtendedKey]:
    """Master private key from a 16-64 byte seed; None if the seed is unusable."""
    if not MIN_SEED_BYTES <= len(seed) <= MAX_SEED_BYTES:
        return None
    digest = bytearray(Sha512().build_hmac(MASTER_HMAC_KEY).compute(seed))
    scalar = BigUnsigned.from_be_bytes(memoryview(digest)[:32])
    try:
        if scalar.is_zero() or scalar >= SECP256K1.n:
            return None
        key = SerializedExtendedKey(
            version=KeyVersion.for_network(network, KeyType.PRIVATE).to_bytes(),
            depth=0,
            parent_fingerprint=b"\x00" * 4,
            child_number=0,
            chain_code=memoryview(digest)[32:],
            key_material=bytes(KEY_MATERIAL_SIZE),
        )
        key.key_material[1:] = memoryview(digest)[:32]
        return key
    finally:
        _scrub(digest, scalar)


# ============================================================
# Child key derivation
# ============================================================
class ChildKeyDeriver:
    """
    Derives child extended keys. Holds one curve multiplication context
    and reuses it for every step, so an instance must not be shared
    between threads.
    """

    def __init__(self, curve: CurveParameters = SECP256K1):
        self.curve = curve
        self.multiplication = EllipticCurvePointMultiplicationContext(curve)
        self._hmac_hash = Sha512()

    def _hmac(self, chain_code: bytes, data: bytes) -> bytes:
        return self._hmac_hash.build_hmac(chain_code).compute(data)

    def public_key_for(self, private_key_material: bytes) -> bytes:
        """Compressed public key for a 32-byte scalar or 33-byte private key material."""
        if len(private_key_material) == KEY_MATERIAL_SIZE:
            private_key_material = memoryview(private_key_material)[1:]
        scalar = BigUnsigned.from_be_bytes(private_key_material)
        try:
            public_key = self.multiplication.public_key_for(scalar)
        finally:
            scalar.zero()
        if public_key is None:
            raise PublicKeyDerivationError("private key is zero or not below the curve order")
        return public_key

    def derive_extended_public_key(self, key: SerializedExtendedKey) -> SerializedExtendedKey:
        if not key.is_private:
            return SerializedExtendedKey.from_bytes(key.as_bytes())
        return key.to_public_key(self.public_key_for(key.key_material))

    def derive_child(self, parent: SerializedExtendedKey, point: DerivationPathPoint) -> SerializedExtendedKey:
        if parent.depth >= MAX_DEPTH:
            raise MaxDepthError(f"parent is already at the maximum depth of {MAX_DEPTH}")
        is_private = parent.is_private
        if point.is_hardened and not is_private:
            raise HardenedDerivationFromPublicKeyError(
                f"hardened child {point} cannot be derived from a public key"
            )

        parent_scalar = None
        parent_point = None
        parent_public = None
        data = bytearray(KEY_MATERIAL_SIZE + 4)
        key_material = bytearray(KEY_MATERIAL_SIZE)
        digest = None
        candidate = None
        try:
            if is_private:
                parent_scalar = BigUnsigned.from_be_bytes(memoryview(parent.key_material)[1:])
            else:
                parent_public = bytes(parent.key_material)
                parent_point = self.multiplication.decompress_point(parent_public)
                if parent_point is None:
                    raise InvalidExtendedKeyError("parent public key is not a point on the curve")
            if not point.is_hardened and parent_public is None:
                parent_public = self.public_key_for(parent.key_material)

            index = point.index
            while True:
                if point.is_hardened:
                    data[:KEY_MATERIAL_SIZE] = parent.key_material
                else:
                    data[:KEY_MATERIAL_SIZE] = parent_public
                data[KEY_MATERIAL_SIZE:] = struct.pack(">I", index)
                digest = bytearray(self._hmac(bytes(parent.chain_code), bytes(data)))
                candidate = BigUnsigned.from_be_bytes(memoryview(digest)[:32])
                if self._child_key_material(candidate, parent_scalar, parent_point, key_material):
                    break
                _scrub(digest, candidate)
                index = self._next_index(index, point.is_hardened)

            if parent_public is None:
                parent_public = self.public_key_for(parent.key_material)
            return SerializedExtendedKey(
                version=parent.version,
                depth=parent.depth + 1,
                parent_fingerprint=fingerprint(parent_public),
                child_number=index,
                chain_code=memoryview(digest)[32:],
                key_material=key_material,
            )
        finally:
            _scrub(data, key_material, digest, candidate, parent_scalar)

    def _child_key_material(
        self,
        candidate: BigUnsigned,
        parent_scalar: Optional[BigUnsigned],
        parent_point: Optional[Point],
        out: bytearray,
    ) -> bool:
        """
        Write the child key material for I_L into out. Returns False, leaving
        out untouched, when I_L yields no valid key.
        """
        if candidate.is_zero() or candidate >= self.curve.n:
            return False
        if parent_scalar is not None:
            child = candidate.copy()
            try:
                child.add(parent_scalar)
                child.modulo(self.curve.n)
                if child.is_zero():
                    return False
                out[0] = PRIVATE_KEY_PREFIX
                return child.copy_be_bytes_to(memoryview(out)[1:])
            finally:
                child.zero()

        child_point = self.multiplication.multiply_point(self.curve.gx, self.curve.gy, candidate)
        if child_point is None:
            return False
        try:
            self.multiplication.addition.add(child_point, parent_point)
            serialized = child_point.try_serialize_compressed(KEY_MATERIAL_SIZE)
            if serialized is None:
                return False
            out[:] = serialized
            return True
        finally:
            child_point.zero()

    @staticmethod
    def _next_index(index: int, hardened: bool) -> int:
        following = index + 1
        if following > MAX_INDEX or (not hardened and following >= HARDENED_THRESHOLD):
            raise DerivationIndexExhaustedError(
                f"no valid child key at or after index {index}; please report this seed"
            )
        return following

    def derive_path(self, parent: SerializedExtendedKey, points: List[DerivationPathPoint]) -> SerializedExtendedKey:
        """Derive along a path. Intermediate keys are zeroed once used."""
        key = parent
        for point in points:
            child = self.derive_child(key, point)
            if key is not parent:
                key.zero()
            key = child
        if key is parent:
            return SerializedExtendedKey.from_bytes(parent.as_bytes())
        return key
