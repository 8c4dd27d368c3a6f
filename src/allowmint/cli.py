"""allowmint CLI — operator command line for the allow-list sale.

Usage:
    python -m allowmint.cli status
    python -m allowmint.cli is-member --identity 0xabc... --proof 0x11..,0x22..
    python -m allowmint.cli mint --identity 0xabc... --proof 0x11..,0x22.. --payment 50
    python -m allowmint.cli owner-of --token-id 1
    python -m allowmint.cli token-uri --token-id 1
    python -m allowmint.cli royalty-info --sale-price 1000
    python -m allowmint.cli set-root --caller 0xowner... --root 0x...
    python -m allowmint.cli anchor-root --caller 0xowner...

Environment (a .env file in the working directory is loaded first):
    ALLOWMINT_CONFIG, ALLOWMINT_DATA, LOG_LEVEL, LOG_FORMAT,
    SEPOLIA_RPC_URL, PRIVATE_KEY (anchor-root only)
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from allowmint.config import MintConfig
from allowmint.crypto.anchor import anchor_root
from allowmint.observability import configure_logging
from allowmint.persistence.event_log import EventLog
from allowmint.persistence.lock import FileLock
from allowmint.persistence.state_store import StateStore
from allowmint.service import MintService, ServiceResult


DEFAULT_CONFIG = Path(__file__).resolve().parents[2] / "config"
DEFAULT_DATA = Path(__file__).resolve().parents[2] / "data"


def _make_service(config_dir: Path, data_dir: Path) -> MintService:
    """Create a MintService with durable persistence.

    Concurrent invocations on one data directory serialise on
    ``data_dir/.lock``.
    """
    data_dir.mkdir(parents=True, exist_ok=True)
    config = MintConfig.from_config_dir(config_dir)
    lock = FileLock(data_dir / ".lock")
    with lock.hold():
        event_log = EventLog(storage_path=data_dir / "events.jsonl")
    state_store = StateStore(storage_path=data_dir / "state.json")
    return MintService(config, event_log=event_log, state_store=state_store, lock=lock)


def _parse_proof(raw: str) -> list[str]:
    """Accept a JSON array or a comma-separated list of 0x-hex digests."""
    raw = raw.strip()
    if not raw:
        return []
    if raw.startswith("["):
        return list(json.loads(raw))
    return [p.strip() for p in raw.split(",") if p.strip()]


def _report(result: ServiceResult) -> int:
    if result.success:
        print(json.dumps(result.data, indent=2, default=str))
        return 0
    print(f"Failed: {'; '.join(result.errors)}", file=sys.stderr)
    return 1


def cmd_status(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    print(json.dumps(service.status(), indent=2))
    return 0


def cmd_is_member(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    member = service.is_member(args.identity, _parse_proof(args.proof))
    print(json.dumps({
        "identity": args.identity,
        "member": member,
        "price": service.price_for(member),
        "claimed": service.has_claimed(args.identity),
    }, indent=2))
    return 0


def cmd_mint(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    return _report(service.mint(args.identity, _parse_proof(args.proof), args.payment))


def cmd_owner_of(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    return _report(service.owner_of(args.token_id))


def cmd_token_uri(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    return _report(service.token_uri(args.token_id))


def cmd_royalty_info(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    return _report(service.royalty_info(args.sale_price))


def cmd_set_root(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    return _report(service.set_merkle_root(args.caller, args.root))


def cmd_set_base_uri(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    return _report(service.set_base_uri(args.caller, args.uri))


def cmd_set_royalty(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    return _report(service.set_default_royalty(args.caller, args.receiver, args.bps))


def cmd_withdraw(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    return _report(service.withdraw(args.caller))


def cmd_anchor_root(args: argparse.Namespace) -> int:
    """Publish the active root on-chain and log the anchor."""
    service = _make_service(args.config, args.data)
    if not service.is_owner(args.caller):
        print(f"Failed: Caller is not the owner: {args.caller}", file=sys.stderr)
        return 1

    rpc_url = os.getenv("SEPOLIA_RPC_URL")
    private_key = os.getenv("PRIVATE_KEY") or os.getenv("SEPOLIA_PRIVATE_KEY")
    if not rpc_url or not private_key:
        print("Failed: Missing SEPOLIA_RPC_URL and/or PRIVATE_KEY", file=sys.stderr)
        return 1

    root = service.root
    record = anchor_root(
        root.hex,
        rpc_url=rpc_url,
        private_key=private_key,
        root_version=root.version,
        chain_id=args.chain_id,
    )
    result = service.record_anchor(args.caller, record)
    if not result.success:
        return _report(result)
    print(json.dumps({
        "root": record.root,
        "root_version": record.root_version,
        "tx_hash": record.tx_hash,
        "block_number": record.block_number,
        "explorer_url": record.explorer_url,
    }, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="allowmint",
        description="allowmint — allow-list gated token issuance",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path(os.getenv("ALLOWMINT_CONFIG", str(DEFAULT_CONFIG))),
        help="Path to config directory (default: config/)",
    )
    parser.add_argument(
        "--data",
        type=Path,
        default=Path(os.getenv("ALLOWMINT_DATA", str(DEFAULT_DATA))),
        help="Path to data directory (default: data/)",
    )
    sub = parser.add_subparsers(dest="command")

    # status
    sub.add_parser("status", help="Show sale status")

    # is-member
    p_member = sub.add_parser("is-member", help="Check allow-list membership")
    p_member.add_argument("--identity", required=True, help="Account address")
    p_member.add_argument("--proof", default="", help="Proof digests (comma list or JSON array)")

    # mint
    p_mint = sub.add_parser("mint", help="Mint one token")
    p_mint.add_argument("--identity", required=True, help="Account address")
    p_mint.add_argument("--proof", default="", help="Proof digests (comma list or JSON array)")
    p_mint.add_argument("--payment", type=int, required=True, help="Payment in wei")

    # owner-of / token-uri
    p_owner = sub.add_parser("owner-of", help="Show the owner of a token")
    p_owner.add_argument("--token-id", type=int, required=True)
    p_uri = sub.add_parser("token-uri", help="Show the metadata URI of a token")
    p_uri.add_argument("--token-id", type=int, required=True)

    # royalty-info
    p_roy = sub.add_parser("royalty-info", help="Quote the royalty for a sale price")
    p_roy.add_argument("--sale-price", type=int, required=True)

    # admin
    p_root = sub.add_parser("set-root", help="Replace the allow-list root (owner)")
    p_root.add_argument("--caller", required=True, help="Owner address")
    p_root.add_argument("--root", required=True, help="New 0x-hex root")

    p_base = sub.add_parser("set-base-uri", help="Set the metadata base URI (owner)")
    p_base.add_argument("--caller", required=True, help="Owner address")
    p_base.add_argument("--uri", required=True, help="Base URI")

    p_setroy = sub.add_parser("set-royalty", help="Set the default royalty (owner)")
    p_setroy.add_argument("--caller", required=True, help="Owner address")
    p_setroy.add_argument("--receiver", required=True, help="Royalty receiver")
    p_setroy.add_argument("--bps", type=int, required=True, help="Fee in basis points")

    p_wd = sub.add_parser("withdraw", help="Withdraw proceeds (owner)")
    p_wd.add_argument("--caller", required=True, help="Owner address")

    p_anchor = sub.add_parser("anchor-root", help="Anchor the active root on Ethereum (owner)")
    p_anchor.add_argument("--caller", required=True, help="Owner address")
    p_anchor.add_argument("--chain-id", type=int, default=11155111, help="Chain ID (default: Sepolia)")

    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    configure_logging(environment=os.getenv("LOG_FORMAT", "production"))

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "status": cmd_status,
        "is-member": cmd_is_member,
        "mint": cmd_mint,
        "owner-of": cmd_owner_of,
        "token-uri": cmd_token_uri,
        "royalty-info": cmd_royalty_info,
        "set-root": cmd_set_root,
        "set-base-uri": cmd_set_base_uri,
        "set-royalty": cmd_set_royalty,
        "withdraw": cmd_withdraw,
        "anchor-root": cmd_anchor_root,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
