"""Identifier sequencer — monotonic, gap-free, 1-indexed token IDs.

The counter only moves forward, by exactly one per committed admission.
``peek`` lets the engine name the next ID before the issuance commits;
``advance`` is called once it has.
"""

from __future__ import annotations


class IdentifierSequencer:

    def __init__(self, supply: int = 0) -> None:
        if supply < 0:
            raise ValueError("Supply counter must be non-negative")
        self._supply = supply

    @property
    def supply(self) -> int:
        return self._supply

    def peek(self) -> int:
        """The identifier the next admission will receive."""
        return self._supply + 1

    def advance(self) -> int:
        """Commit the next identifier and return it."""
        self._supply += 1
        return self._supply
