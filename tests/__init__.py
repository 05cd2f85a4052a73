"""
Test suite for the BIP32 derivation library

Contains:
- tests/unit/          : Unit tests for the big integers, curve arithmetic,
                         hashing, Base58Check, BIP32 and the CLI
"""
