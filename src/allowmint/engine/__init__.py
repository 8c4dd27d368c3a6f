"""Admission core — commitment, claims, pricing, sequencing and the engine."""

from allowmint.engine.admission import Admission, AdmissionEngine
from allowmint.engine.claims import ClaimLedger
from allowmint.engine.commitment import AllowlistCommitment, CommittedRoot
from allowmint.engine.pricing import PricingPolicy
from allowmint.engine.sequencer import IdentifierSequencer

__all__ = [
    "Admission",
    "AdmissionEngine",
    "AllowlistCommitment",
    "ClaimLedger",
    "CommittedRoot",
    "IdentifierSequencer",
    "PricingPolicy",
]
