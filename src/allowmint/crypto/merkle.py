"""Merkle proof verification for the allow-list commitment.

The hash function and the pair ordering are a fixed contract with the
off-system tool that builds the tree and hands out proofs:

    leaf   = keccak256(identity)              (raw 20 address bytes)
    parent = keccak256(min(a, b) || max(a, b)) (unsigned byte comparison)

Changing either silently invalidates every proof already issued, so both
are pinned as module constants and verified by tests.

Verification is pure and total: malformed input yields False, never an
exception.
"""

from __future__ import annotations

from typing import Sequence, Union

from eth_utils import decode_hex, keccak, to_canonical_address

HASH_FUNCTION = "keccak256"
PAIR_ORDERING = "sorted-pair"
DIGEST_SIZE = 32
IDENTITY_SIZE = 20

BytesLike = Union[bytes, bytearray, str]


def normalize_identity(identity: BytesLike) -> bytes:
    """Return the canonical 20-byte form of an account address.

    Raises ValueError if the value is not a valid address.
    """
    if isinstance(identity, bytearray):
        identity = bytes(identity)
    if isinstance(identity, bytes) and len(identity) != IDENTITY_SIZE:
        raise ValueError(
            f"Identity must be {IDENTITY_SIZE} bytes, got {len(identity)}"
        )
    try:
        return bytes(to_canonical_address(identity))
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid identity: {identity!r}") from e


def to_digest(value: BytesLike) -> bytes:
    """Decode a 32-byte digest from bytes or 0x-hex.

    Raises ValueError on wrong length or undecodable hex.
    """
    if isinstance(value, str):
        try:
            raw = decode_hex(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid digest hex: {value!r}") from e
    elif isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    else:
        raise ValueError(f"Unsupported digest type: {type(value).__name__}")
    if len(raw) != DIGEST_SIZE:
        raise ValueError(f"Digest must be {DIGEST_SIZE} bytes, got {len(raw)}")
    return raw


def leaf_hash(identity: BytesLike) -> bytes:
    """Keccak-256 of the raw identity bytes."""
    return keccak(normalize_identity(identity))


def hash_pair(a: bytes, b: bytes) -> bytes:
    """Hash two nodes in canonical (sorted) order."""
    if a <= b:
        return keccak(a + b)
    return keccak(b + a)


def process_proof(leaf: bytes, proof: Sequence[BytesLike]) -> bytes:
    """Fold a proof into the root it implies for ``leaf``.

    Raises ValueError if any sibling is malformed.
    """
    computed = leaf
    for sibling in proof:
        computed = hash_pair(computed, to_digest(sibling))
    return computed


def verify_proof(
    identity: BytesLike,
    proof: Sequence[BytesLike],
    root: BytesLike,
) -> bool:
    """Decide whether ``identity`` is a leaf of the tree committed by ``root``.

    An empty proof is valid only for a single-leaf tree, where the
    identity's own leaf is the root.
    """
    try:
        expected = to_digest(root)
        computed = process_proof(leaf_hash(identity), list(proof))
    except (TypeError, ValueError):
        return False
    return computed == expected
