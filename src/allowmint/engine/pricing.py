"""Pricing policy — two fixed prices selected by the membership verdict."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PricingPolicy:
    """Immutable price schedule in the smallest currency unit (wei)."""
    privileged_price: int
    standard_price: int

    def __post_init__(self) -> None:
        for name in ("privileged_price", "standard_price"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
            if value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")

    def price_for(self, is_member: bool) -> int:
        return self.privileged_price if is_member else self.standard_price
