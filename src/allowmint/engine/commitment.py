"""Allow-list commitment — the single active Merkle root.

Replacement is a full swap, never incremental. Each swap bumps the
version so readers and audit records can tell which root a verdict was
taken against. Claim records are not affected by a swap.
"""

from __future__ import annotations

from dataclasses import dataclass

from allowmint.crypto.merkle import BytesLike, to_digest


@dataclass(frozen=True)
class CommittedRoot:
    """A versioned 32-byte root."""
    digest: bytes
    version: int

    @property
    def hex(self) -> str:
        return "0x" + self.digest.hex()


class AllowlistCommitment:
    """Holds the active root. Mutation is serialised by the admission engine."""

    def __init__(self, root: BytesLike, version: int = 0) -> None:
        if version < 0:
            raise ValueError("Root version must be non-negative")
        self._current = CommittedRoot(digest=to_digest(root), version=version)

    @property
    def current(self) -> CommittedRoot:
        return self._current

    def replace(self, root: BytesLike) -> CommittedRoot:
        """Swap in a new root and return it."""
        self._current = CommittedRoot(
            digest=to_digest(root),
            version=self._current.version + 1,
        )
        return self._current
