"""Admission engine — the single entry point for minting.

One admission is one atomic unit. The steps run in a fixed order and
the order decides which error a caller sees:

    1. membership   verify_proof(identity, proof, root)
    2. claim        member and already claimed → AlreadyClaimed
    3. payment      payment != selected price  → IncorrectPayment
    4. supply       configured cap reached     → SupplyExhausted
    5. issuance     ledger.mint_to, on_commit hook, then claim + counter

A non-member never touches the claim ledger and may mint at the standard
price any number of times. A member who already claimed gets
AlreadyClaimed even when the payment would match the standard price.

Any failure leaves the claim ledger, the counter and the token ledger
exactly as they were. The read-check-write over all of them runs under
one lock, which is what rules out double claims and duplicate IDs when
callers run on several threads.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import structlog
from eth_utils import to_checksum_address

from allowmint.crypto.merkle import BytesLike, normalize_identity, verify_proof
from allowmint.engine.claims import ClaimLedger
from allowmint.engine.commitment import AllowlistCommitment, CommittedRoot
from allowmint.engine.pricing import PricingPolicy
from allowmint.engine.sequencer import IdentifierSequencer
from allowmint.errors import AlreadyClaimed, IncorrectPayment, SupplyExhausted
from allowmint.token.ledger import TokenLedger

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Admission:
    """The outcome of a successful mint."""
    token_id: int
    identity: str  # checksum address
    price: int
    privileged: bool
    root_version: int


class AdmissionEngine:
    """Composes verification, claims, pricing and sequencing.

    Usage:
        engine = AdmissionEngine(
            commitment=AllowlistCommitment(root),
            pricing=PricingPolicy(privileged_price=50, standard_price=100),
            token_ledger=InMemoryTokenLedger(),
        )
        admission = engine.mint(addr, proof, payment=50)
        admission.token_id  # 1
    """

    def __init__(
        self,
        commitment: AllowlistCommitment,
        pricing: PricingPolicy,
        token_ledger: TokenLedger,
        claims: Optional[ClaimLedger] = None,
        sequencer: Optional[IdentifierSequencer] = None,
        max_supply: Optional[int] = None,
    ) -> None:
        if max_supply is not None and max_supply < 0:
            raise ValueError("max_supply must be non-negative")
        self._commitment = commitment
        self._pricing = pricing
        self._ledger = token_ledger
        self._claims = claims if claims is not None else ClaimLedger()
        self._sequencer = sequencer if sequencer is not None else IdentifierSequencer()
        self._max_supply = max_supply
        self._lock = threading.Lock()
        self._log = logger.bind(component="admission")

    @property
    def pricing(self) -> PricingPolicy:
        return self._pricing

    @property
    def claims(self) -> ClaimLedger:
        return self._claims

    @property
    def supply(self) -> int:
        return self._sequencer.supply

    @property
    def max_supply(self) -> Optional[int]:
        return self._max_supply

    @property
    def root(self) -> CommittedRoot:
        with self._lock:
            return self._commitment.current

    def is_member(self, identity: BytesLike, proof: Sequence[BytesLike]) -> bool:
        """Read-only membership check against the active root."""
        with self._lock:
            root = self._commitment.current
        return verify_proof(identity, proof, root.digest)

    def mint(
        self,
        identity: BytesLike,
        proof: Sequence[BytesLike],
        payment: int,
        on_commit: Optional[Callable[[Admission], None]] = None,
    ) -> Admission:
        """Admit one mint request and return the issued admission.

        ``on_commit`` runs after the ledger assignment and before the
        claim and counter move. If it raises, the assignment is revoked
        and the exception propagates.

        Raises:
            ValueError: identity is not a valid address.
            AlreadyClaimed: member already used the discount.
            IncorrectPayment: payment is not an int equal to the selected price.
            SupplyExhausted: configured cap reached.
        """
        addr = normalize_identity(identity)
        checksum = to_checksum_address(addr)

        with self._lock:
            root = self._commitment.current
            is_member = verify_proof(addr, proof, root.digest)

            if is_member and self._claims.has_claimed(addr):
                self._log.info("mint_rejected", identity=checksum, reason=AlreadyClaimed.code)
                raise AlreadyClaimed(checksum)

            price = self._pricing.price_for(is_member)
            if isinstance(payment, bool) or not isinstance(payment, int) or payment != price:
                self._log.info(
                    "mint_rejected",
                    identity=checksum,
                    reason=IncorrectPayment.code,
                    expected=price,
                    offered=payment,
                )
                raise IncorrectPayment(expected=price, offered=payment)

            if self._max_supply is not None and self._sequencer.supply >= self._max_supply:
                self._log.info("mint_rejected", identity=checksum, reason=SupplyExhausted.code)
                raise SupplyExhausted(self._max_supply)

            admission = Admission(
                token_id=self._sequencer.peek(),
                identity=checksum,
                price=price,
                privileged=is_member,
                root_version=root.version,
            )

            self._ledger.mint_to(addr, admission.token_id)
            if on_commit is not None:
                try:
                    on_commit(admission)
                except Exception:
                    self._ledger.revoke(admission.token_id)
                    raise

            if is_member:
                self._claims.mark_claimed(addr)
            self._sequencer.advance()

        self._log.info(
            "mint_admitted",
            identity=checksum,
            token_id=admission.token_id,
            price=price,
            privileged=is_member,
            root_version=root.version,
        )
        return admission

    def restore(self, admission: Admission) -> None:
        """Re-apply an admission read back from the audit log.

        Nothing is re-verified: the admission was checked when it was
        first committed. The recorded token ID must be the next one.
        """
        addr = normalize_identity(admission.identity)
        with self._lock:
            expected = self._sequencer.peek()
            if admission.token_id != expected:
                raise ValueError(
                    f"Out-of-order admission: token {admission.token_id}, expected {expected}"
                )
            self._ledger.mint_to(addr, admission.token_id)
            if admission.privileged:
                self._claims.mark_claimed(addr)
            self._sequencer.advance()

    def restore_root(self, root: BytesLike, version: int) -> CommittedRoot:
        """Re-apply a root replacement read back from the audit log."""
        with self._lock:
            expected = self._commitment.current.version + 1
            if version != expected:
                raise ValueError(f"Out-of-order root version: {version}, expected {expected}")
            return self._commitment.replace(root)

    def replace_root(
        self,
        root: BytesLike,
        on_commit: Optional[Callable[[CommittedRoot], None]] = None,
    ) -> CommittedRoot:
        """Swap the committed root, excluded from concurrent admissions.

        Claims are untouched. If ``on_commit`` raises, the previous root
        is restored and the exception propagates.
        """
        with self._lock:
            previous = self._commitment.current
            current = self._commitment.replace(root)
            if on_commit is not None:
                try:
                    on_commit(current)
                except Exception:
                    self._commitment = AllowlistCommitment(previous.digest, previous.version)
                    raise
        self._log.info("root_replaced", root=current.hex, root_version=current.version)
        return current
