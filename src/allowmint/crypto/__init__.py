"""Cryptographic primitives — allow-list proof verification and root anchoring."""

from allowmint.crypto.merkle import (
    HASH_FUNCTION,
    PAIR_ORDERING,
    hash_pair,
    leaf_hash,
    verify_proof,
)

__all__ = ["HASH_FUNCTION", "PAIR_ORDERING", "hash_pair", "leaf_hash", "verify_proof"]
