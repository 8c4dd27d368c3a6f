"""Tests for the admission engine — proves ordering, atomicity and ID issuance."""

import threading

import pytest

from allowmint.engine.admission import Admission, AdmissionEngine
from allowmint.engine.commitment import AllowlistCommitment
from allowmint.engine.pricing import PricingPolicy
from allowmint.errors import AlreadyClaimed, IncorrectPayment, SupplyExhausted, TokenNotFound
from allowmint.token.ledger import InMemoryTokenLedger
from conftest import ALICE, BOB, CAROL, DAVE, build_allowlist

PRIVILEGED = 50
STANDARD = 100


@pytest.fixture
def ledger() -> InMemoryTokenLedger:
    return InMemoryTokenLedger()


@pytest.fixture
def engine(allowlist, ledger) -> AdmissionEngine:
    return AdmissionEngine(
        commitment=AllowlistCommitment(allowlist.root),
        pricing=PricingPolicy(privileged_price=PRIVILEGED, standard_price=STANDARD),
        token_ledger=ledger,
    )


def _state(engine: AdmissionEngine, ledger: InMemoryTokenLedger) -> tuple:
    return (engine.supply, engine.claims.claimed(), ledger.snapshot())


class TestScenario:
    def test_reference_sale(self, engine, allowlist, ledger) -> None:
        """A/B/C allow-listed at 50, standard price 100."""
        first = engine.mint(ALICE, allowlist.proof(ALICE), PRIVILEGED)
        assert first.token_id == 1
        assert first.privileged

        with pytest.raises(AlreadyClaimed):
            engine.mint(ALICE, allowlist.proof(ALICE), PRIVILEGED)

        assert engine.mint(DAVE, [], STANDARD).token_id == 2
        assert engine.mint(DAVE, [], STANDARD).token_id == 3

        with pytest.raises(IncorrectPayment) as exc:
            engine.mint(BOB, allowlist.proof(BOB), STANDARD)
        assert exc.value.expected == PRIVILEGED
        assert exc.value.offered == STANDARD

        assert ledger.owner_of(1) == bytes.fromhex("a1" * 20)
        assert ledger.tokens_of(DAVE) == [2, 3]
        assert engine.supply == 3


class TestOrdering:
    def test_non_member_underpaying_gets_incorrect_payment(self, engine) -> None:
        with pytest.raises(IncorrectPayment):
            engine.mint(DAVE, [], PRIVILEGED)

    def test_claimed_member_gets_already_claimed_even_at_standard_price(
        self, engine, allowlist,
    ) -> None:
        engine.mint(CAROL, allowlist.proof(CAROL), PRIVILEGED)
        with pytest.raises(AlreadyClaimed):
            engine.mint(CAROL, allowlist.proof(CAROL), STANDARD)

    def test_claimed_member_without_proof_mints_at_standard(self, engine, allowlist) -> None:
        engine.mint(CAROL, allowlist.proof(CAROL), PRIVILEGED)
        admission = engine.mint(CAROL, [], STANDARD)
        assert not admission.privileged
        assert admission.price == STANDARD

    def test_member_with_wrong_proof_pays_standard(self, engine, allowlist) -> None:
        admission = engine.mint(ALICE, allowlist.proof(BOB), STANDARD)
        assert not admission.privileged
        assert not engine.claims.has_claimed(ALICE)

    def test_non_member_never_touches_claims(self, engine) -> None:
        engine.mint(DAVE, [], STANDARD)
        assert engine.claims.count == 0


class TestExactPayment:
    @pytest.mark.parametrize("offset", [-1, 1])
    def test_privileged_off_by_one(self, engine, allowlist, offset) -> None:
        with pytest.raises(IncorrectPayment):
            engine.mint(ALICE, allowlist.proof(ALICE), PRIVILEGED + offset)

    @pytest.mark.parametrize("offset", [-1, 1])
    def test_standard_off_by_one(self, engine, offset) -> None:
        with pytest.raises(IncorrectPayment):
            engine.mint(DAVE, [], STANDARD + offset)

    @pytest.mark.parametrize("payment", [float(STANDARD), str(STANDARD), None])
    def test_payment_must_be_an_int(self, engine, payment) -> None:
        with pytest.raises(IncorrectPayment):
            engine.mint(DAVE, [], payment)
        assert engine.supply == 0

    def test_bool_is_not_a_payment(self, allowlist, ledger) -> None:
        engine = AdmissionEngine(
            commitment=AllowlistCommitment(allowlist.root),
            pricing=PricingPolicy(privileged_price=1, standard_price=1),
            token_ledger=ledger,
        )
        with pytest.raises(IncorrectPayment):
            engine.mint(DAVE, [], True)
        assert engine.mint(DAVE, [], 1).token_id == 1

    def test_equal_prices_let_non_member_pay_privileged_amount(self, allowlist, ledger) -> None:
        engine = AdmissionEngine(
            commitment=AllowlistCommitment(allowlist.root),
            pricing=PricingPolicy(privileged_price=70, standard_price=70),
            token_ledger=ledger,
        )
        assert engine.mint(DAVE, [], 70).token_id == 1


class TestAtomicity:
    def test_rejections_leave_state_unchanged(self, engine, allowlist, ledger) -> None:
        engine.mint(ALICE, allowlist.proof(ALICE), PRIVILEGED)
        before = _state(engine, ledger)

        with pytest.raises(AlreadyClaimed):
            engine.mint(ALICE, allowlist.proof(ALICE), PRIVILEGED)
        with pytest.raises(IncorrectPayment):
            engine.mint(BOB, allowlist.proof(BOB), PRIVILEGED + 1)
        with pytest.raises(IncorrectPayment):
            engine.mint(DAVE, [], 0)

        assert _state(engine, ledger) == before
        assert not engine.claims.has_claimed(BOB)

    def test_failing_commit_hook_rolls_back(self, engine, allowlist, ledger) -> None:
        def _boom(admission) -> None:
            raise OSError("disk full")

        with pytest.raises(OSError):
            engine.mint(BOB, allowlist.proof(BOB), PRIVILEGED, on_commit=_boom)

        assert engine.supply == 0
        assert not engine.claims.has_claimed(BOB)
        with pytest.raises(TokenNotFound):
            ledger.owner_of(1)

        # The discount is still available and the ID is reused
        assert engine.mint(BOB, allowlist.proof(BOB), PRIVILEGED).token_id == 1

    def test_commit_hook_sees_pending_admission(self, engine, allowlist) -> None:
        seen = []
        engine.mint(ALICE, allowlist.proof(ALICE), PRIVILEGED, on_commit=seen.append)
        assert len(seen) == 1
        assert seen[0].token_id == 1
        assert seen[0].privileged
        assert seen[0].root_version == 0

    def test_invalid_identity_raises_value_error(self, engine, ledger) -> None:
        with pytest.raises(ValueError):
            engine.mint("0x1234", [], STANDARD)
        assert ledger.total_supply() == 0


class TestSupply:
    def test_ids_are_contiguous_under_threads(self, engine) -> None:
        minters = ["0x" + f"{i:040x}" for i in range(1, 21)]
        issued: list[int] = []
        lock = threading.Lock()

        def _worker(identity: str) -> None:
            for _ in range(5):
                admission = engine.mint(identity, [], STANDARD)
                with lock:
                    issued.append(admission.token_id)

        threads = [threading.Thread(target=_worker, args=(m,)) for m in minters]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(issued) == list(range(1, 101))
        assert engine.supply == 100

    def test_concurrent_claims_admit_exactly_once(self, engine, allowlist) -> None:
        outcomes: list[str] = []
        lock = threading.Lock()
        proof = allowlist.proof(BOB)

        def _worker() -> None:
            try:
                engine.mint(BOB, proof, PRIVILEGED)
                result = "ok"
            except AlreadyClaimed:
                result = "claimed"
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=_worker) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("ok") == 1
        assert outcomes.count("claimed") == 9

    def test_max_supply_enforced_after_payment(self, allowlist, ledger) -> None:
        engine = AdmissionEngine(
            commitment=AllowlistCommitment(allowlist.root),
            pricing=PricingPolicy(privileged_price=PRIVILEGED, standard_price=STANDARD),
            token_ledger=ledger,
            max_supply=1,
        )
        engine.mint(DAVE, [], STANDARD)
        with pytest.raises(IncorrectPayment):
            engine.mint(DAVE, [], STANDARD - 1)
        with pytest.raises(SupplyExhausted):
            engine.mint(ALICE, allowlist.proof(ALICE), PRIVILEGED)
        assert not engine.claims.has_claimed(ALICE)

    def test_unlimited_standard_mints(self, engine) -> None:
        ids = [engine.mint(DAVE, [], STANDARD).token_id for _ in range(25)]
        assert ids == list(range(1, 26))


class TestMembership:
    def test_is_member_is_idempotent(self, engine, allowlist) -> None:
        proof = allowlist.proof(ALICE)
        assert engine.is_member(ALICE, proof)
        engine.mint(ALICE, proof, PRIVILEGED)
        assert engine.is_member(ALICE, proof)
        assert engine.is_member(ALICE, proof)

    def test_is_member_has_no_side_effects(self, engine, allowlist, ledger) -> None:
        engine.is_member(BOB, allowlist.proof(BOB))
        assert engine.claims.count == 0
        assert ledger.total_supply() == 0

    def test_root_replacement(self, engine, allowlist) -> None:
        engine.mint(ALICE, allowlist.proof(ALICE), PRIVILEGED)
        new_list = build_allowlist([ALICE, DAVE])

        current = engine.replace_root(new_list.root)
        assert current.version == 1

        # Old proofs no longer verify
        assert not engine.is_member(BOB, allowlist.proof(BOB))
        with pytest.raises(IncorrectPayment):
            engine.mint(BOB, allowlist.proof(BOB), PRIVILEGED)

        # Prior claims survive the swap
        assert engine.claims.has_claimed(ALICE)
        with pytest.raises(AlreadyClaimed):
            engine.mint(ALICE, new_list.proof(ALICE), PRIVILEGED)

        # New members get the discount
        admission = engine.mint(DAVE, new_list.proof(DAVE), PRIVILEGED)
        assert admission.privileged
        assert admission.root_version == 1

    def test_failed_root_hook_restores_previous_root(self, engine, allowlist) -> None:
        def _boom(current) -> None:
            raise OSError("audit down")

        with pytest.raises(OSError):
            engine.replace_root(b"\x09" * 32, on_commit=_boom)
        assert engine.root.digest == allowlist.root
        assert engine.root.version == 0
        assert engine.is_member(ALICE, allowlist.proof(ALICE))


class TestRestore:
    def test_restore_reapplies_admission(self, engine, allowlist, ledger) -> None:
        admission = Admission(
            token_id=1, identity=ALICE, price=PRIVILEGED, privileged=True, root_version=0,
        )
        engine.restore(admission)
        assert engine.supply == 1
        assert engine.claims.has_claimed(ALICE)
        assert ledger.owner_of(1) == bytes.fromhex(ALICE[2:])
        with pytest.raises(AlreadyClaimed):
            engine.mint(ALICE, allowlist.proof(ALICE), PRIVILEGED)
        assert engine.mint(DAVE, [], STANDARD).token_id == 2

    def test_restore_rejects_out_of_order_token(self, engine, ledger) -> None:
        admission = Admission(
            token_id=2, identity=DAVE, price=STANDARD, privileged=False, root_version=0,
        )
        with pytest.raises(ValueError, match="Out-of-order"):
            engine.restore(admission)
        assert ledger.total_supply() == 0

    def test_restore_root_requires_next_version(self, engine) -> None:
        new_root = build_allowlist([DAVE]).root
        with pytest.raises(ValueError, match="Out-of-order"):
            engine.restore_root(new_root, 2)
        restored = engine.restore_root(new_root, 1)
        assert restored.version == 1
        assert engine.is_member(DAVE, [])
