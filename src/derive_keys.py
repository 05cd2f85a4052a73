#!/usr/bin/env python3
"""
BIP32 Key Derivation Tool
=========================
Derives extended keys along a BIP32 path, starting from a BIP39 mnemonic,
a raw seed, or an existing extended key. All curve arithmetic runs on the
pure-Python big integers in this repository, so each public key takes a
few seconds.

Usage:
    Set environment variables and run, e.g.
        MNEMONIC="abandon ... about" DERIVATION_PATH="m/44'/0'/0'" python src/derive_keys.py
"""

import os
import sys
import time
from difflib import get_close_matches
from typing import Dict, List, Optional, Tuple

from mnemonic import Mnemonic

from hashing import pbkdf2_derive
from hd_key import (
    ChildKeyDeriver,
    DerivationError,
    DerivationPathPoint,
    KeyNetwork,
    SerializedExtendedKey,
    derive_master_key,
    format_derivation_path,
    parse_derivation_path,
)

# ============================================================
# Configuration (all overridable via environment variables)
# ============================================================
MNEMONIC = os.getenv("MNEMONIC", "")
SEED_HEX = os.getenv("SEED_HEX", "")  # hex seed, used instead of a mnemonic
EXTENDED_KEY = os.getenv("EXTENDED_KEY", "")  # xprv/xpub/tprv/tpub to derive from
PASSPHRASE = os.getenv("BIP39_PASSPHRASE", "")  # optional BIP39 passphrase
DERIVATION_PATH = os.getenv("DERIVATION_PATH", "m/0'")
KEY_NETWORK = os.getenv("KEY_NETWORK", "main")  # "main" or "test"
SHOW_PUBLIC = os.getenv("SHOW_PUBLIC", "true").lower() == "true"
SHOW_PATH_STEPS = os.getenv("SHOW_PATH_STEPS", "false").lower() == "true"

BIP39_ITERATIONS = 2048
BIP39_SEED_BYTES = 64

# ============================================================
# BIP39 utilities
# ============================================================
_WORDLIST: Optional[List[str]] = None


def get_wordlist() -> List[str]:
    global _WORDLIST
    if _WORDLIST is None:
        _WORDLIST = Mnemonic("english").wordlist
    return _WORDLIST


def find_unknown_words(words: List[str]) -> List[Tuple[str, List[str]]]:
    """Words missing from the BIP39 list, each with up to 5 close matches."""
    wl = get_wordlist()
    unknown = []
    for w in words:
        if w not in wl:
            unknown.append((w, get_close_matches(w, wl, n=5, cutoff=0.6)))
    return unknown


def mnemonic_to_seed(mnemonic_str: str, passphrase: str = "") -> bytes:
    """BIP39 seed: PBKDF2-HMAC-SHA512 over the NFKD-normalized sentence."""
    seed = bytearray(BIP39_SEED_BYTES)
    try:
        pbkdf2_derive(
            Mnemonic.normalize_string(mnemonic_str).encode("utf-8"),
            ("mnemonic" + Mnemonic.normalize_string(passphrase)).encode("utf-8"),
            BIP39_ITERATIONS,
            seed,
        )
        return bytes(seed)
    finally:
        seed[:] = bytes(len(seed))


def parse_network(name: str) -> KeyNetwork:
    try:
        return KeyNetwork(name.strip().lower())
    except ValueError:
        raise ValueError(f"unknown key network {name!r} (expected 'main' or 'test')") from None


# ============================================================
# Derivation
# ============================================================
def derive_keys(
    root_key: SerializedExtendedKey,
    points: List[DerivationPathPoint],
    root: str = "m",
    show_public: bool = True,
    show_steps: bool = False,
    deriver: Optional[ChildKeyDeriver] = None,
) -> List[Dict]:
    """
    Walk the path from root_key. Returns one entry per reported key with
    the path and its private and/or public Base58 serialization.
    """
    deriver = deriver or ChildKeyDeriver()
    if root == "M" and root_key.is_private:
        root_key = deriver.derive_extended_public_key(root_key)

    def describe(key: SerializedExtendedKey, walked: List[DerivationPathPoint]) -> Dict:
        entry = {"path": format_derivation_path(walked, root), "private": None, "public": None}
        if key.is_private:
            entry["private"] = key.to_base58()
        if show_public or not key.is_private:
            entry["public"] = deriver.derive_extended_public_key(key).to_base58()
        return entry

    results = []
    key = root_key
    walked: List[DerivationPathPoint] = []
    if show_steps or not points:
        results.append(describe(key, walked))
    for i, point in enumerate(points):
        child = deriver.derive_child(key, point)
        if key is not root_key:
            key.zero()
        key = child
        walked.append(point)
        if show_steps or i == len(points) - 1:
            results.append(describe(key, walked))
            print(f"  ✓ Derived {results[-1]['path']}", flush=True)
    return results


def print_banner(source: str, network: KeyNetwork, path: str):
    print("=" * 65)
    print("  BIP32 KEY DERIVATION TOOL")
    print("  Pure-Python secp256k1")
    print("=" * 65)
    print(f"  Key source:         {source}")
    print(f"  Network:            {network.value}")
    print(f"  Derivation path:    {path}")
    print(f"  Public keys:        {'shown' if SHOW_PUBLIC else 'hidden'}")
    print(f"  Intermediate steps: {'shown' if SHOW_PATH_STEPS else 'hidden'}")
    if PASSPHRASE:
        print(f"  BIP39 passphrase:   (set)")
    print("=" * 65)


def _fail(*lines: str):
    print(f"\nERROR: {lines[0]}")
    for line in lines[1:]:
        print(f"  {line}")
    sys.exit(1)


def load_root_key(network: KeyNetwork) -> Tuple[str, SerializedExtendedKey]:
    """Build the starting key from MNEMONIC, SEED_HEX or EXTENDED_KEY."""
    sources = [name for name, value in (
        ("MNEMONIC", MNEMONIC), ("SEED_HEX", SEED_HEX), ("EXTENDED_KEY", EXTENDED_KEY),
    ) if value.strip()]
    if len(sources) != 1:
        _fail(
            "Set exactly one of MNEMONIC, SEED_HEX or EXTENDED_KEY.",
            'Example: MNEMONIC="abandon abandon ... about"',
        )

    if EXTENDED_KEY.strip():
        try:
            return "extended key", SerializedExtendedKey.from_base58(EXTENDED_KEY)
        except DerivationError as e:
            _fail(f"EXTENDED_KEY is not a valid extended key ({e}).")

    if SEED_HEX.strip():
        try:
            seed = bytes.fromhex(SEED_HEX.strip())
        except ValueError:
            _fail("SEED_HEX is not valid hex.")
        source = f"seed ({len(seed)} bytes)"
    else:
        words = MNEMONIC.lower().split()
        for w, matches in find_unknown_words(words):
            if matches:
                _fail(f"'{w}' is not a valid BIP39 word.", f"Did you mean: {', '.join(matches)}?")
            _fail(f"'{w}' is not a valid BIP39 word.")
        sentence = " ".join(words)
        if not Mnemonic("english").check(sentence):
            print(f"  ⚠ Mnemonic checksum does not verify; deriving anyway", flush=True)
        seed = mnemonic_to_seed(sentence, PASSPHRASE)
        source = f"mnemonic ({len(words)} words)"

    master = derive_master_key(seed, network)
    if master is None:
        _fail("Seed cannot produce a master key.", "Seeds must be 16-64 bytes.")
    return source, master


# ============================================================
# Main
# ============================================================
def main():
    try:
        network = parse_network(KEY_NETWORK)
        root, points = parse_derivation_path(DERIVATION_PATH)
    except ValueError as e:
        _fail(str(e))

    source, root_key = load_root_key(network)
    print_banner(source, network, DERIVATION_PATH)

    print(f"\n{'─' * 65}")
    print(f"Deriving {len(points)} level(s)...")
    print(f"{'─' * 65}")
    t0 = time.time()
    try:
        results = derive_keys(root_key, points, root, SHOW_PUBLIC, SHOW_PATH_STEPS)
    except DerivationError as e:
        _fail(f"{type(e).__name__}: {e}")
    finally:
        root_key.zero()
    print(f"  ✓ Done in {time.time() - t0:.1f}s")

    print(f"\n{'=' * 65}")
    for entry in results:
        print(f"  {entry['path']}")
        if entry["private"]:
            print(f"    private: {entry['private']}")
        if entry["public"]:
            print(f"    public:  {entry['public']}")
    print(f"{'=' * 65}")


if __name__ == "__main__":
    main()
