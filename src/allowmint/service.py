"""Mint service — unified facade for the allow-list sale.

This is the primary interface for programmatic access. It wires the
admission core to its collaborators:
- Admission (Merkle verification, one-shot claims, exact pricing, IDs)
- Token ledger, metadata and royalty queries
- Owner-gated administration (root, base URI, royalty, withdrawal)
- Persistence (event log, state snapshot)

All operations produce typed results. Every state change is appended to
the event log before it is acknowledged; if the audit write fails, the
change is undone and the operation fails closed.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Optional, Sequence

import structlog
from eth_utils import to_checksum_address

from allowmint.config import MintConfig
from allowmint.crypto.anchor import AnchorRecord
from allowmint.crypto.merkle import BytesLike, normalize_identity, to_digest
from allowmint.engine.admission import Admission, AdmissionEngine
from allowmint.engine.claims import ClaimLedger
from allowmint.engine.commitment import AllowlistCommitment, CommittedRoot
from allowmint.engine.pricing import PricingPolicy
from allowmint.engine.sequencer import IdentifierSequencer
from allowmint.errors import AuditTrailError, MintError
from allowmint.governance.access import AccessControl
from allowmint.persistence.event_log import EventKind, EventLog, EventRecord
from allowmint.persistence.lock import FileLock
from allowmint.persistence.state_store import MintState, StateStore
from allowmint.token.ledger import InMemoryTokenLedger
from allowmint.token.metadata import MetadataResolver
from allowmint.token.royalty import RoyaltyRegistry

logger = structlog.get_logger(__name__)

SERVICE_VERSION = "0.1.0"


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)


def _failure(error: Exception, code: Optional[str] = None) -> ServiceResult:
    return ServiceResult(
        success=False,
        errors=[str(error)],
        data={"error": code or getattr(error, "code", "invalid_request")},
    )


class MintService:
    """Allow-list mint facade.

    Usage:
        config = MintConfig.from_config_dir(config_dir)
        service = MintService(config)

        service.is_member(addr, proof)            # True / False
        result = service.mint(addr, proof, payment=config.privileged_price)
        result.data["token_id"]                   # 1

        service.set_merkle_root(owner, new_root)
        service.withdraw(owner)

    Persistence (optional):
        service = MintService(config, event_log=log, state_store=store)
        # State is persisted on each mutation and loaded on construction.
        # Once a snapshot exists it wins over the config file. Audit
        # records newer than the snapshot are replayed on top of it.

    Several processes on one data directory (optional):
        service = MintService(config, event_log=log, state_store=store,
                              lock=FileLock(data_dir / ".lock"))
        # Each mutation holds the lock and first replays records other
        # holders appended, so claims and token IDs stay unique.
    """

    def __init__(
        self,
        config: MintConfig,
        event_log: Optional[EventLog] = None,
        state_store: Optional[StateStore] = None,
        lock: Optional[FileLock] = None,
    ) -> None:
        self._event_log = event_log
        self._state_store = state_store
        self._file_lock = lock
        self._log = logger.bind(component="service")

        # Serialises mutation + audit + persistence as one unit
        self._lock = threading.RLock()
        self._depth = 0

        # Set when a snapshot write fails after the audit record is durable.
        # In-memory state is correct; the snapshot is stale until the next
        # successful write.
        self._persistence_degraded: bool = False

        with lock.hold() if lock is not None else nullcontext():
            self._open(config)

    def _open(self, config: MintConfig) -> None:
        """Load the snapshot, then replay audit records it does not reflect."""
        if self._event_log is not None:
            self._event_log.refresh()
        state = self._state_store.load() if self._state_store is not None else None
        if state is None:
            state = self._initial_state(config)
            fresh = True
        else:
            fresh = False

        self._ledger = InMemoryTokenLedger(
            (int(token_id), owner) for token_id, owner in state.token_owners.items()
        )
        self._engine = AdmissionEngine(
            commitment=AllowlistCommitment(state.merkle_root, state.root_version),
            pricing=PricingPolicy(
                privileged_price=state.privileged_price,
                standard_price=state.standard_price,
            ),
            token_ledger=self._ledger,
            claims=ClaimLedger(state.claimed),
            sequencer=IdentifierSequencer(state.supply),
            max_supply=state.max_supply,
        )
        self._access = AccessControl(state.owner)
        self._royalty = RoyaltyRegistry(
            state.royalty_receiver, state.royalty_fee_basis_points,
        )
        self._metadata = MetadataResolver(
            self._ledger, state.base_uri, state.uri_extension,
        )
        self._proceeds = state.proceeds

        # Initialize counter from persisted log to avoid ID collision on restart
        self._event_counter = self._event_log.count if self._event_log is not None else 0

        replayed = self._replay(self._events_after(state.last_event_id))
        if fresh:
            self._persist_state()
        elif replayed:
            self._safe_persist_post_audit()

    @staticmethod
    def _initial_state(config: MintConfig) -> MintState:
        return MintState(
            merkle_root=config.merkle_root,
            root_version=0,
            privileged_price=config.privileged_price,
            standard_price=config.standard_price,
            owner=config.owner,
            base_uri=config.base_uri,
            uri_extension=config.uri_extension,
            royalty_receiver=config.royalty.receiver if config.royalty else None,
            royalty_fee_basis_points=config.royalty.fee_basis_points if config.royalty else 0,
            max_supply=config.max_supply,
        )

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    def mint(
        self,
        identity: BytesLike,
        proof: Sequence[BytesLike],
        payment: int,
    ) -> ServiceResult:
        """Mint one token to ``identity`` for exactly the required price."""

        def _audit(admission: Admission) -> None:
            self._append_event(
                EventKind.TOKEN_MINTED,
                actor_id=admission.identity,
                payload={
                    "token_id": admission.token_id,
                    "price": admission.price,
                    "privileged": admission.privileged,
                    "root_version": admission.root_version,
                },
            )

        with self._exclusive():
            try:
                admission = self._engine.mint(identity, proof, payment, on_commit=_audit)
            except MintError as e:
                return _failure(e)
            except ValueError as e:
                return _failure(e, "invalid_request")

            self._proceeds += admission.price
            warning = self._safe_persist_post_audit()

        data: dict[str, Any] = {
            "token_id": admission.token_id,
            "identity": admission.identity,
            "price": admission.price,
            "privileged": admission.privileged,
        }
        if warning:
            data["warning"] = warning
        return ServiceResult(success=True, data=data)

    def is_member(self, identity: BytesLike, proof: Sequence[BytesLike]) -> bool:
        """Whether the proof places ``identity`` under the active root."""
        return self._engine.is_member(identity, proof)

    def has_claimed(self, identity: BytesLike) -> bool:
        try:
            return self._engine.claims.has_claimed(identity)
        except ValueError:
            return False

    def price_for(self, is_member: bool) -> int:
        return self._engine.pricing.price_for(is_member)

    # ------------------------------------------------------------------
    # Token queries
    # ------------------------------------------------------------------

    def total_supply(self) -> int:
        return self._ledger.total_supply()

    def owner_of(self, token_id: int) -> ServiceResult:
        try:
            owner = self._ledger.owner_of(token_id)
        except MintError as e:
            return _failure(e)
        return ServiceResult(
            success=True,
            data={"token_id": token_id, "owner": to_checksum_address(owner)},
        )

    def token_uri(self, token_id: int) -> ServiceResult:
        try:
            uri = self._metadata.token_uri(token_id)
        except MintError as e:
            return _failure(e)
        return ServiceResult(success=True, data={"token_id": token_id, "uri": uri})

    def royalty_info(self, sale_price: int) -> ServiceResult:
        try:
            quote = self._royalty.royalty_for(sale_price)
        except ValueError as e:
            return _failure(e, "invalid_request")
        return ServiceResult(
            success=True,
            data={"receiver": quote.receiver, "amount": quote.amount},
        )

    # ------------------------------------------------------------------
    # Administration (owner-gated)
    # ------------------------------------------------------------------

    def set_merkle_root(self, caller: BytesLike, root: BytesLike) -> ServiceResult:
        """Replace the allow-list root. Existing claims are kept."""

        def _audit(current: CommittedRoot) -> None:
            self._append_event(
                EventKind.ROOT_REPLACED,
                actor_id=self._access.owner,
                payload={"root": current.hex, "root_version": current.version},
            )

        with self._exclusive():
            try:
                self._access.require_owner(caller)
                to_digest(root)
                current = self._engine.replace_root(root, on_commit=_audit)
            except MintError as e:
                return _failure(e)
            except ValueError as e:
                return _failure(e, "invalid_request")
            warning = self._safe_persist_post_audit()

        data: dict[str, Any] = {"root": current.hex, "root_version": current.version}
        if warning:
            data["warning"] = warning
        return ServiceResult(success=True, data=data)

    def set_base_uri(self, caller: BytesLike, base_uri: str) -> ServiceResult:
        with self._exclusive():
            previous = self._metadata.base_uri
            return self._admin_change(
                caller,
                EventKind.BASE_URI_UPDATED,
                payload={"base_uri": base_uri},
                apply=lambda: self._metadata.set_base_uri(base_uri),
                rollback=lambda: self._metadata.set_base_uri(previous),
            )

    def set_default_royalty(
        self,
        caller: BytesLike,
        receiver: BytesLike,
        fee_basis_points: int,
    ) -> ServiceResult:
        with self._exclusive():
            previous = self._royalty

            def _apply() -> None:
                self._royalty = RoyaltyRegistry(receiver, fee_basis_points)

            def _rollback() -> None:
                self._royalty = previous

            return self._admin_change(
                caller,
                EventKind.ROYALTY_UPDATED,
                payload={
                    "receiver": self._display(receiver),
                    "fee_basis_points": fee_basis_points,
                },
                apply=_apply,
                rollback=_rollback,
            )

    def transfer_ownership(self, caller: BytesLike, new_owner: BytesLike) -> ServiceResult:
        with self._exclusive():
            previous = self._access.owner

            def _apply() -> None:
                self._access.transfer_ownership(caller, new_owner)

            def _rollback() -> None:
                self._access.transfer_ownership(new_owner, previous)

            return self._admin_change(
                caller,
                EventKind.OWNERSHIP_TRANSFERRED,
                payload={"previous_owner": previous, "new_owner": self._display(new_owner)},
                apply=_apply,
                rollback=_rollback,
            )

    def withdraw(self, caller: BytesLike) -> ServiceResult:
        """Release accumulated proceeds to the owner."""
        with self._exclusive():
            amount = self._proceeds

            def _apply() -> None:
                self._proceeds = 0

            def _rollback() -> None:
                self._proceeds = amount

            result = self._admin_change(
                caller,
                EventKind.FUNDS_WITHDRAWN,
                payload={"amount": amount},
                apply=_apply,
                rollback=_rollback,
            )
        if not result.success:
            return result
        return ServiceResult(
            success=True,
            errors=result.errors,
            data={**result.data, "amount": amount, "recipient": self._access.owner},
        )

    def record_anchor(self, caller: BytesLike, record: AnchorRecord) -> ServiceResult:
        """Log an on-chain anchor of the active root."""
        return self._admin_change(
            caller,
            EventKind.ROOT_ANCHORED,
            payload={
                "root": record.root,
                "root_version": record.root_version,
                "tx_hash": record.tx_hash,
                "block_number": record.block_number,
                "chain_id": record.chain_id,
            },
            apply=lambda: None,
            rollback=lambda: None,
        )

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def owner(self) -> str:
        return self._access.owner

    def is_owner(self, caller: BytesLike) -> bool:
        return self._access.is_owner(caller)

    @property
    def root(self) -> CommittedRoot:
        return self._engine.root

    @property
    def proceeds(self) -> int:
        return self._proceeds

    @property
    def persistence_degraded(self) -> bool:
        return self._persistence_degraded

    def status(self) -> dict[str, Any]:
        """Return a service-wide status summary."""
        root = self._engine.root
        pricing = self._engine.pricing
        return {
            "version": SERVICE_VERSION,
            "allowlist": {
                "root": root.hex,
                "root_version": root.version,
                "claims": self._engine.claims.count,
            },
            "pricing": {
                "privileged_price": pricing.privileged_price,
                "standard_price": pricing.standard_price,
            },
            "supply": {
                "total": self._engine.supply,
                "max": self._engine.max_supply,
            },
            "owner": self._access.owner,
            "proceeds": self._proceeds,
            "base_uri": self._metadata.base_uri,
            "royalty": {
                "receiver": self._royalty.receiver,
                "fee_basis_points": self._royalty.fee_basis_points,
            },
            "events": self._event_log.count if self._event_log is not None else 0,
            "persistence_degraded": self._persistence_degraded,
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _display(identity: BytesLike) -> str:
        try:
            return to_checksum_address(normalize_identity(identity))
        except ValueError:
            return repr(identity)

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        """Hold the mutation lock, and the data directory lock if wired.

        The outermost entry catches up on audit records appended by other
        holders before the caller reads any state.
        """
        with self._lock:
            outermost = self._depth == 0
            self._depth += 1
            try:
                if not outermost:
                    yield
                elif self._file_lock is not None:
                    with self._file_lock.hold():
                        self._catch_up()
                        yield
                else:
                    self._catch_up()
                    yield
            finally:
                self._depth -= 1

    def _catch_up(self) -> None:
        if self._event_log is None:
            return
        self._replay(self._event_log.refresh())

    def _events_after(self, event_id: Optional[str]) -> list[EventRecord]:
        """Audit records newer than ``event_id`` (all of them for None)."""
        if self._event_log is None:
            return []
        events = self._event_log.events()
        if event_id is None:
            return events
        for i, event in enumerate(events):
            if event.event_id == event_id:
                return events[i + 1:]
        raise ValueError(f"Snapshot refers to unknown event: {event_id}")

    def _replay(self, events: list[EventRecord]) -> int:
        """Re-apply audited state changes in log order. Returns the count."""
        for event in events:
            payload = event.payload
            kind = event.event_kind
            if kind == EventKind.TOKEN_MINTED:
                admission = Admission(
                    token_id=payload["token_id"],
                    identity=event.actor_id,
                    price=payload["price"],
                    privileged=payload["privileged"],
                    root_version=payload["root_version"],
                )
                self._engine.restore(admission)
                self._proceeds += admission.price
            elif kind == EventKind.ROOT_REPLACED:
                self._engine.restore_root(payload["root"], payload["root_version"])
            elif kind == EventKind.BASE_URI_UPDATED:
                self._metadata.set_base_uri(payload["base_uri"])
            elif kind == EventKind.ROYALTY_UPDATED:
                self._royalty = RoyaltyRegistry(
                    payload["receiver"], payload["fee_basis_points"],
                )
            elif kind == EventKind.OWNERSHIP_TRANSFERRED:
                self._access.transfer_ownership(
                    payload["previous_owner"], payload["new_owner"],
                )
            elif kind == EventKind.FUNDS_WITHDRAWN:
                self._proceeds -= payload["amount"]
            # root_anchored changes no state

        if self._event_log is not None:
            self._event_counter = max(self._event_counter, self._event_log.count)
        if events:
            self._log.info(
                "events_replayed",
                count=len(events),
                last_event_id=events[-1].event_id,
            )
        return len(events)

    def _admin_change(
        self,
        caller: BytesLike,
        kind: EventKind,
        payload: dict[str, Any],
        apply: Callable[[], None],
        rollback: Callable[[], None],
    ) -> ServiceResult:
        """Owner check → apply → audit (rollback on failure) → persist."""
        with self._exclusive():
            try:
                self._access.require_owner(caller)
            except MintError as e:
                self._log.warning("admin_rejected", action=kind.value, reason=e.code)
                return _failure(e)

            actor = self._access.owner
            try:
                apply()
            except ValueError as e:
                return _failure(e, "invalid_request")

            try:
                self._append_event(kind, actor_id=actor, payload=payload)
            except AuditTrailError as e:
                rollback()
                return _failure(e)

            warning = self._safe_persist_post_audit()

        self._log.info("admin_change", action=kind.value, owner=actor)
        data: dict[str, Any] = {}
        if warning:
            data["warning"] = warning
        return ServiceResult(success=True, data=data)

    def _next_event_id(self) -> str:
        """Generate a monotonically increasing unique event ID."""
        self._event_counter += 1
        return f"EVT-{self._event_counter:08d}"

    def _append_event(
        self,
        kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
    ) -> None:
        """Durably record an event. Raises AuditTrailError on failure."""
        if self._event_log is None:
            return
        try:
            event = EventRecord.create(
                event_id=self._next_event_id(),
                event_kind=kind,
                actor_id=actor_id,
                payload=payload,
            )
            self._event_log.append(event)
        except (ValueError, OSError) as e:
            raise AuditTrailError(f"Event log failure: {e}") from e

    def _snapshot(self) -> MintState:
        root = self._engine.root
        last = self._event_log.last_event if self._event_log is not None else None
        pricing = self._engine.pricing
        return MintState(
            merkle_root=root.hex,
            root_version=root.version,
            privileged_price=pricing.privileged_price,
            standard_price=pricing.standard_price,
            owner=self._access.owner,
            supply=self._engine.supply,
            claimed=[to_checksum_address(c) for c in self._engine.claims.claimed()],
            token_owners=self._ledger.snapshot(),
            base_uri=self._metadata.base_uri,
            uri_extension=self._metadata.extension,
            royalty_receiver=self._royalty.receiver if self._royalty.configured else None,
            royalty_fee_basis_points=self._royalty.fee_basis_points,
            proceeds=self._proceeds,
            max_supply=self._engine.max_supply,
            last_event_id=last.event_id if last is not None else None,
        )

    def _persist_state(self) -> None:
        """Persist current state to the state store (if wired).

        NOTE: This method can raise OSError. Mutators use
        _safe_persist_post_audit() instead.
        """
        if self._state_store is None:
            return
        self._state_store.save(self._snapshot())

    def _safe_persist_post_audit(self) -> Optional[str]:
        """Persist state after audit events have been committed.

        MUST NOT rollback in-memory state: the audit trail is already
        durable. If persist fails, in-memory state remains correct
        (aligned with audit events), but the snapshot is stale.

        Sets _persistence_degraded flag for operator awareness and
        returns a warning string (not a hard error).
        """
        try:
            self._persist_state()
            return None
        except OSError as e:
            self._persistence_degraded = True
            self._log.error("persistence_degraded", error=str(e))
            return f"Persistence degraded: {e}; state committed in audit trail but snapshot is stale"
