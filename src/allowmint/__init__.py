"""allowmint — allow-list gated, fixed-price token issuance.

Addresses proven to belong to a committed Merkle allow-list mint once at
a discounted price; everyone else mints at the standard price.
"""

from allowmint.engine.admission import Admission, AdmissionEngine
from allowmint.errors import (
    AlreadyClaimed,
    IncorrectPayment,
    MintError,
    SupplyExhausted,
    TokenNotFound,
    Unauthorized,
)
from allowmint.service import MintService, ServiceResult

__all__ = [
    "Admission",
    "AdmissionEngine",
    "AlreadyClaimed",
    "IncorrectPayment",
    "MintError",
    "MintService",
    "ServiceResult",
    "SupplyExhausted",
    "TokenNotFound",
    "Unauthorized",
]
