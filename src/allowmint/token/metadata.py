"""Metadata resolver — token URI = base URI + decimal token ID + extension."""

from __future__ import annotations

from allowmint.errors import TokenNotFound
from allowmint.token.ledger import TokenLedger

DEFAULT_EXTENSION = ".json"


class MetadataResolver:
    """Builds token URIs for assigned tokens only."""

    def __init__(
        self,
        ledger: TokenLedger,
        base_uri: str = "",
        extension: str = DEFAULT_EXTENSION,
    ) -> None:
        self._ledger = ledger
        self._base_uri = base_uri
        self._extension = extension

    @property
    def base_uri(self) -> str:
        return self._base_uri

    @property
    def extension(self) -> str:
        return self._extension

    def set_base_uri(self, base_uri: str) -> None:
        self._base_uri = base_uri

    def token_uri(self, token_id: int) -> str:
        """Return the URI, or "" when no base URI is configured.

        Raises TokenNotFound for an unassigned token.
        """
        # owner_of raises TokenNotFound
        self._ledger.owner_of(token_id)
        if not self._base_uri:
            return ""
        return f"{self._base_uri}{token_id}{self._extension}"
