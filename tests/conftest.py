"""Shared fixtures: addresses and a test-only allow-list tree builder.

The builder mirrors the off-system tool: sorted leaves, sorted-pair
Keccak hashing, odd nodes promoted unchanged to the next level.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import pytest

from allowmint.crypto.merkle import hash_pair, leaf_hash, normalize_identity


ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
CAROL = "0x" + "c3" * 20
DAVE = "0x" + "d4" * 20
OWNER = "0x" + "0e" * 20
STRANGER = "0x" + "5f" * 20


@dataclass(frozen=True)
class Allowlist:
    root: bytes
    proofs: dict[bytes, list[bytes]]

    @property
    def root_hex(self) -> str:
        return "0x" + self.root.hex()

    def proof(self, identity: str) -> list[bytes]:
        return list(self.proofs[normalize_identity(identity)])

    def proof_hex(self, identity: str) -> list[str]:
        return ["0x" + p.hex() for p in self.proof(identity)]


def build_allowlist(identities: list[str]) -> Allowlist:
    by_leaf = {leaf_hash(i): normalize_identity(i) for i in identities}
    leaves = sorted(by_leaf)
    levels = [leaves]
    while len(levels[-1]) > 1:
        level = levels[-1]
        nxt = []
        for i in range(0, len(level), 2):
            if i + 1 < len(level):
                nxt.append(hash_pair(level[i], level[i + 1]))
            else:
                nxt.append(level[i])
        levels.append(nxt)

    proofs: dict[bytes, list[bytes]] = {}
    for idx, leaf in enumerate(leaves):
        path = []
        pos = idx
        for level in levels[:-1]:
            sibling = pos ^ 1
            if sibling < len(level):
                path.append(level[sibling])
            pos //= 2
        proofs[by_leaf[leaf]] = path
    return Allowlist(root=levels[-1][0], proofs=proofs)


@pytest.fixture
def allowlist() -> Allowlist:
    """Allow-list {ALICE, BOB, CAROL}."""
    return build_allowlist([ALICE, BOB, CAROL])


@pytest.fixture
def make_allowlist() -> Callable[[list[str]], Allowlist]:
    return build_allowlist
