"""Tests for the token ledger, royalty registry and metadata resolver."""

import pytest

from allowmint.errors import TokenNotFound
from allowmint.token.ledger import InMemoryTokenLedger, TokenLedger
from allowmint.token.metadata import MetadataResolver
from allowmint.token.royalty import RoyaltyRegistry
from conftest import ALICE, BOB


class TestInMemoryTokenLedger:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(InMemoryTokenLedger(), TokenLedger)

    def test_mint_and_owner(self) -> None:
        ledger = InMemoryTokenLedger()
        ledger.mint_to(ALICE, 1)
        assert ledger.owner_of(1) == bytes.fromhex("a1" * 20)
        assert ledger.total_supply() == 1
        assert ledger.balance_of(ALICE) == 1
        assert ledger.balance_of(BOB) == 0

    def test_unassigned_owner_raises_not_found(self) -> None:
        with pytest.raises(TokenNotFound) as exc:
            InMemoryTokenLedger().owner_of(42)
        assert exc.value.token_id == 42
        assert exc.value.code == "not_found"

    def test_double_assignment_rejected(self) -> None:
        ledger = InMemoryTokenLedger()
        ledger.mint_to(ALICE, 1)
        with pytest.raises(ValueError):
            ledger.mint_to(BOB, 1)
        assert ledger.owner_of(1) == bytes.fromhex("a1" * 20)

    def test_zero_id_rejected(self) -> None:
        with pytest.raises(ValueError):
            InMemoryTokenLedger().mint_to(ALICE, 0)

    def test_revoke_undoes_assignment(self) -> None:
        ledger = InMemoryTokenLedger()
        ledger.mint_to(ALICE, 1)
        ledger.revoke(1)
        assert not ledger.exists(1)
        with pytest.raises(TokenNotFound):
            ledger.revoke(1)

    def test_snapshot_restores(self) -> None:
        ledger = InMemoryTokenLedger()
        ledger.mint_to(ALICE, 1)
        ledger.mint_to(BOB, 2)
        restored = InMemoryTokenLedger(
            (int(k), v) for k, v in ledger.snapshot().items()
        )
        assert restored.snapshot() == ledger.snapshot()
        assert restored.tokens_of(BOB) == [2]


class TestRoyaltyRegistry:
    def test_unset_royalty_is_zero(self) -> None:
        registry = RoyaltyRegistry()
        quote = registry.royalty_for(10_000)
        assert quote.amount == 0
        assert quote.receiver == "0x0000000000000000000000000000000000000000"
        assert not registry.configured

    def test_basis_point_math(self) -> None:
        registry = RoyaltyRegistry(ALICE, 500)
        assert registry.royalty_for(10_000).amount == 500
        assert registry.royalty_for(1_000_000_000_000_000_000).amount == 50_000_000_000_000_000

    def test_amount_truncates(self) -> None:
        registry = RoyaltyRegistry(ALICE, 250)
        # 199 * 250 / 10000 = 4.975
        assert registry.royalty_for(199).amount == 4
        assert registry.royalty_for(39).amount == 0

    def test_receiver_is_checksummed(self) -> None:
        registry = RoyaltyRegistry(ALICE, 100)
        assert registry.royalty_for(1).receiver.lower() == ALICE

    @pytest.mark.parametrize("bps", [-1, 10_001])
    def test_fee_bounds(self, bps) -> None:
        with pytest.raises(ValueError):
            RoyaltyRegistry(ALICE, bps)

    def test_zero_receiver_rejected(self) -> None:
        with pytest.raises(ValueError):
            RoyaltyRegistry("0x" + "00" * 20, 100)

    def test_negative_sale_price_rejected(self) -> None:
        with pytest.raises(ValueError):
            RoyaltyRegistry(ALICE, 100).royalty_for(-1)


class TestMetadataResolver:
    def test_token_uri(self) -> None:
        ledger = InMemoryTokenLedger()
        ledger.mint_to(ALICE, 7)
        resolver = MetadataResolver(ledger, base_uri="ipfs://cid/")
        assert resolver.token_uri(7) == "ipfs://cid/7.json"

    def test_custom_extension(self) -> None:
        ledger = InMemoryTokenLedger()
        ledger.mint_to(ALICE, 12)
        resolver = MetadataResolver(ledger, base_uri="https://x/", extension="")
        assert resolver.token_uri(12) == "https://x/12"

    def test_empty_base_uri(self) -> None:
        ledger = InMemoryTokenLedger()
        ledger.mint_to(ALICE, 1)
        assert MetadataResolver(ledger).token_uri(1) == ""

    def test_unassigned_token_not_found(self) -> None:
        resolver = MetadataResolver(InMemoryTokenLedger(), base_uri="ipfs://cid/")
        with pytest.raises(TokenNotFound):
            resolver.token_uri(1)

    def test_unassigned_token_not_found_without_base(self) -> None:
        with pytest.raises(TokenNotFound):
            MetadataResolver(InMemoryTokenLedger()).token_uri(1)
