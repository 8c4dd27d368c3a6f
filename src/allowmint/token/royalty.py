"""Royalty registry — default royalty quote for secondary sales.

Amounts use integer arithmetic only: ``sale_price * bps // 10000``,
truncated toward zero. Setting the royalty is owner-gated by the service.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from eth_utils import to_checksum_address

from allowmint.crypto.merkle import BytesLike, normalize_identity

FEE_DENOMINATOR = 10_000
ZERO_ADDRESS = b"\x00" * 20


@dataclass(frozen=True)
class RoyaltyQuote:
    """Who receives a royalty and how much."""
    receiver: str
    amount: int


class RoyaltyRegistry:

    def __init__(
        self,
        receiver: Optional[BytesLike] = None,
        fee_basis_points: int = 0,
    ) -> None:
        self._receiver = ZERO_ADDRESS
        self._fee_basis_points = 0
        if receiver is not None:
            self.set_default_royalty(receiver, fee_basis_points)

    @property
    def receiver(self) -> str:
        return to_checksum_address(self._receiver)

    @property
    def fee_basis_points(self) -> int:
        return self._fee_basis_points

    @property
    def configured(self) -> bool:
        return self._receiver != ZERO_ADDRESS

    def set_default_royalty(self, receiver: BytesLike, fee_basis_points: int) -> None:
        """Replace the default royalty.

        Raises ValueError for a fee outside [0, 10000] or a zero receiver.
        """
        if not 0 <= fee_basis_points <= FEE_DENOMINATOR:
            raise ValueError(
                f"Royalty fee must be within [0, {FEE_DENOMINATOR}] basis points, "
                f"got {fee_basis_points}"
            )
        target = normalize_identity(receiver)
        if target == ZERO_ADDRESS:
            raise ValueError("Royalty receiver cannot be the zero address")
        self._receiver = target
        self._fee_basis_points = fee_basis_points

    def royalty_for(self, sale_price: int) -> RoyaltyQuote:
        if sale_price < 0:
            raise ValueError(f"Sale price must be non-negative, got {sale_price}")
        amount = sale_price * self._fee_basis_points // FEE_DENOMINATOR
        return RoyaltyQuote(receiver=self.receiver, amount=amount)
