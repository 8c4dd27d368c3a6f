"""Token collaborators — ownership ledger, royalty registry, metadata."""

from allowmint.token.ledger import InMemoryTokenLedger, TokenLedger
from allowmint.token.metadata import MetadataResolver
from allowmint.token.royalty import RoyaltyQuote, RoyaltyRegistry

__all__ = [
    "InMemoryTokenLedger",
    "MetadataResolver",
    "RoyaltyQuote",
    "RoyaltyRegistry",
    "TokenLedger",
]
