"""Claim ledger — one-shot allow-list discount tracking per identity.

A claim is created lazily on the first successful privileged admission
and is never reset, including across root replacements.
"""

from __future__ import annotations

from typing import Iterable, Optional

from allowmint.crypto.merkle import BytesLike, normalize_identity


class ClaimLedger:
    """Sparse identity → claimed set.

    Usage:
        ledger = ClaimLedger()
        ledger.has_claimed(addr)   # False
        ledger.mark_claimed(addr)
        ledger.has_claimed(addr)   # True
    """

    def __init__(self, claimed: Optional[Iterable[BytesLike]] = None) -> None:
        self._claimed: set[bytes] = set()
        for identity in claimed or ():
            self._claimed.add(normalize_identity(identity))

    def has_claimed(self, identity: BytesLike) -> bool:
        return normalize_identity(identity) in self._claimed

    def mark_claimed(self, identity: BytesLike) -> None:
        """Record a claim. Marking twice is a no-op."""
        self._claimed.add(normalize_identity(identity))

    def claimed(self) -> list[bytes]:
        """Return claimed identities in a stable order (for persistence)."""
        return sorted(self._claimed)

    @property
    def count(self) -> int:
        return len(self._claimed)
