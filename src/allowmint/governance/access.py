"""Single-owner access control for administrative operations.

Root replacement, base URI and royalty changes, withdrawals and
ownership transfer are gated on the caller being the designated owner.
A rejected call raises Unauthorized before any state is touched.
"""

from __future__ import annotations

from eth_utils import to_checksum_address

from allowmint.crypto.merkle import BytesLike, normalize_identity
from allowmint.errors import Unauthorized


class AccessControl:

    def __init__(self, owner: BytesLike) -> None:
        self._owner = normalize_identity(owner)

    @property
    def owner(self) -> str:
        return to_checksum_address(self._owner)

    def is_owner(self, caller: BytesLike) -> bool:
        try:
            return normalize_identity(caller) == self._owner
        except ValueError:
            return False

    def require_owner(self, caller: BytesLike) -> None:
        if not self.is_owner(caller):
            raise Unauthorized(f"Caller is not the owner: {caller!r}")

    def transfer_ownership(self, caller: BytesLike, new_owner: BytesLike) -> None:
        self.require_owner(caller)
        self._owner = normalize_identity(new_owner)
