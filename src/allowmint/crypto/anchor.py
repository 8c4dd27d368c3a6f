"""Root anchoring — publishes the committed allow-list root on Ethereum.

Anchoring embeds the 32-byte root in the data field of a 0-ETH self-send
transaction. Anyone holding a proof can then check that the root the
service verifies against is the one published at that block, before the
sale opened.

This is NOT a smart contract. The chain only witnesses the root.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

import structlog

from allowmint.crypto.merkle import to_digest

logger = structlog.get_logger(__name__)

SEPOLIA_CHAIN_ID = 11155111


@dataclass(frozen=True)
class AnchorRecord:
    """A record of a successful root anchor."""
    root: str
    root_version: int
    tx_hash: str
    block_number: int
    chain_id: int
    timestamp_utc: str
    explorer_url: str


def anchor_root(
    root: str,
    rpc_url: str,
    private_key: str,
    root_version: int = 0,
    chain_id: int = SEPOLIA_CHAIN_ID,
    gas: int = 30_000,
    gas_price_gwei: str = "2",
    timeout: int = 300,
) -> AnchorRecord:
    """Anchor a Merkle root by embedding it in a transaction.

    Sends a 0-ETH self-send transaction with the root in the data field
    and waits for one confirmation.

    Args:
        root: The 0x-hex root to anchor.
        rpc_url: Ethereum RPC endpoint URL.
        private_key: Hex-encoded private key for signing.
        root_version: Commitment version the root belongs to.
        chain_id: Network chain ID (default: Sepolia).
        gas: Gas limit for the transaction.
        gas_price_gwei: Gas price in gwei.
        timeout: Seconds to wait for the receipt.

    Returns:
        AnchorRecord with transaction details.
    """
    from web3 import Web3, HTTPProvider
    from eth_account import Account

    log = logger.bind(component="anchor")
    data = to_digest(root)

    w3 = Web3(HTTPProvider(rpc_url))
    acct = Account.from_key(private_key)

    nonce = w3.eth.get_transaction_count(acct.address)
    tx = {
        "to": acct.address,  # self-send, 0 ETH
        "value": 0,
        "gas": gas,
        "gasPrice": w3.to_wei(gas_price_gwei, "gwei"),
        "nonce": nonce,
        "chainId": chain_id,
        "data": data,
    }

    signed = acct.sign_transaction(tx)
    tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
    log.info("anchor_sent", tx_hash=tx_hash.hex(), chain_id=chain_id)

    receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)

    explorer_url = (
        f"https://sepolia.etherscan.io/tx/{tx_hash.hex()}"
        if chain_id == SEPOLIA_CHAIN_ID else ""
    )
    now = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    log.info("anchor_confirmed", block_number=receipt.blockNumber)

    return AnchorRecord(
        root="0x" + data.hex(),
        root_version=root_version,
        tx_hash=tx_hash.hex(),
        block_number=receipt.blockNumber,
        chain_id=chain_id,
        timestamp_utc=now,
        explorer_url=explorer_url,
    )
