"""Token ledger — ownership bookkeeping behind a narrow contract.

The admission engine never tracks ownership itself. It instructs a
ledger through this Protocol, so a chain-backed or database-backed
ledger can replace the in-memory one without touching admission logic.

``revoke`` is the compensating half of ``mint_to``: it undoes an
assignment that the caller has not yet committed. It is not a burn
and must never be exposed to token holders.
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional, Protocol, Tuple, runtime_checkable

from eth_utils import to_checksum_address

from allowmint.crypto.merkle import BytesLike, normalize_identity
from allowmint.errors import TokenNotFound


@runtime_checkable
class TokenLedger(Protocol):
    """Contract every ownership ledger must satisfy."""

    def mint_to(self, identity: bytes, token_id: int) -> None:
        """Assign ``token_id`` to ``identity``. Raises ValueError if taken."""
        ...

    def revoke(self, token_id: int) -> None:
        """Undo an uncommitted assignment."""
        ...

    def total_supply(self) -> int:
        ...

    def owner_of(self, token_id: int) -> bytes:
        """Return the owner. Raises TokenNotFound if unassigned."""
        ...


class InMemoryTokenLedger:
    """Dictionary-backed TokenLedger.

    Usage:
        ledger = InMemoryTokenLedger()
        ledger.mint_to(addr, 1)
        ledger.owner_of(1)   # addr
    """

    def __init__(self, owners: Optional[Iterable[Tuple[int, BytesLike]]] = None) -> None:
        self._owners: Dict[int, bytes] = {}
        for token_id, identity in owners or ():
            self.mint_to(identity, token_id)

    def mint_to(self, identity: BytesLike, token_id: int) -> None:
        if token_id <= 0:
            raise ValueError(f"Token IDs start at 1, got {token_id}")
        if token_id in self._owners:
            raise ValueError(f"Token already assigned: {token_id}")
        self._owners[token_id] = normalize_identity(identity)

    def revoke(self, token_id: int) -> None:
        if self._owners.pop(token_id, None) is None:
            raise TokenNotFound(token_id)

    def total_supply(self) -> int:
        return len(self._owners)

    def owner_of(self, token_id: int) -> bytes:
        owner = self._owners.get(token_id)
        if owner is None:
            raise TokenNotFound(token_id)
        return owner

    def exists(self, token_id: int) -> bool:
        return token_id in self._owners

    def balance_of(self, identity: BytesLike) -> int:
        target = normalize_identity(identity)
        return sum(1 for owner in self._owners.values() if owner == target)

    def tokens_of(self, identity: BytesLike) -> list[int]:
        target = normalize_identity(identity)
        return sorted(t for t, owner in self._owners.items() if owner == target)

    def snapshot(self) -> dict[str, str]:
        """Token ID → checksum owner, for persistence."""
        return {
            str(token_id): to_checksum_address(owner)
            for token_id, owner in sorted(self._owners.items())
        }
