"""Error taxonomy for admission and collaborator failures.

All errors are local and synchronous. None is retried automatically:
the caller corrects the input and resubmits. A raised error means no
state was changed.
"""

from __future__ import annotations


class MintError(Exception):
    """Base class for all allowmint failures."""

    code = "mint_error"


class AlreadyClaimed(MintError):
    """Raised when an allow-listed identity tries a second privileged mint."""

    code = "already_claimed"

    def __init__(self, identity: str) -> None:
        super().__init__(f"Allow-list discount already claimed by {identity}")
        self.identity = identity


class IncorrectPayment(MintError):
    """Raised when the offered payment differs from the required price."""

    code = "incorrect_payment"

    def __init__(self, expected: int, offered: int) -> None:
        super().__init__(f"Incorrect payment: expected {expected}, got {offered}")
        self.expected = expected
        self.offered = offered


class SupplyExhausted(MintError):
    """Raised when a configured supply cap has been reached."""

    code = "supply_exhausted"

    def __init__(self, max_supply: int) -> None:
        super().__init__(f"Maximum supply reached: {max_supply}")
        self.max_supply = max_supply


class TokenNotFound(MintError):
    """Raised when querying a token ID that was never assigned."""

    code = "not_found"

    def __init__(self, token_id: int) -> None:
        super().__init__(f"Token not found: {token_id}")
        self.token_id = token_id


class Unauthorized(MintError):
    """Raised when a non-owner calls an owner-gated operation."""

    code = "unauthorized"


class AuditTrailError(MintError):
    """Raised when an audit record cannot be written; the change is undone."""

    code = "audit_failure"
