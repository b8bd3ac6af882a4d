"""GraveShift CLI entrypoint."""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import List, Optional

import aiohttp
from solana.rpc.async_api import AsyncClient
from solders.pubkey import Pubkey

from graveshift.assets import normalize_asset_input, normalize_evm_address
from graveshift.classifier import DEFAULT_LIMIT, clamp_limit
from graveshift.config import GraveshiftConfig, load_config
from graveshift.errors import GraveshiftError
from graveshift.logging_config import setup_logging
from graveshift.migration import MigrationTransactionBuilder
from graveshift.proof import build_resurrection_proof_message
from graveshift.scanner import DeadAssetScanner


def _tag(level: str) -> str:
    return f"[{level}]"


def _print_status(level: str, message: str) -> None:
    print(f"{_tag(level)} {message}")


async def _scan(config: GraveshiftConfig, owner: str, limit: int) -> dict:
    timeout = aiohttp.ClientTimeout(total=config.request_timeout_seconds)
    async with aiohttp.ClientSession(timeout=timeout) as session:
        scanner = DeadAssetScanner.from_session(session, config)
        result = await scanner.scan(owner, limit)
    return result.to_dict()


async def _migration_status(config: GraveshiftConfig, account: Pubkey, asset_id: str) -> str:
    client = AsyncClient(config.solana_rpc_url, timeout=config.request_timeout_seconds)
    try:
        builder = MigrationTransactionBuilder(client, Pubkey.from_string(config.program_id))
        state = await builder.fetch_migration_state(account, asset_id)
        return f"{builder.record_address(account, asset_id)} {state.value}"
    finally:
        await client.close()


def cmd_scan(args: argparse.Namespace) -> int:
    config = args.config
    owner = normalize_evm_address(args.address, "ethAddress")
    result = asyncio.run(_scan(config, owner, clamp_limit(args.limit)))
    print(json.dumps(result, indent=2))
    if result["degraded"]:
        _print_status("WARN", "Liquidity data incomplete; some tokens were scored as pairless.")
    return 0


def cmd_proof_message(args: argparse.Namespace) -> int:
    asset = normalize_asset_input(
        chain=args.chain,
        eth_address=args.eth_address,
        asset_type=args.asset_type,
        contract_address=args.contract,
        token_id=args.token_id,
    )
    try:
        account = Pubkey.from_string(args.account)
    except ValueError:
        _print_status("ERROR", 'Invalid "account" provided')
        return 1

    print(build_resurrection_proof_message(asset, str(account)))
    _print_status("OK", f"assetId={asset.asset_id}")
    return 0


def cmd_migration_status(args: argparse.Namespace) -> int:
    config = args.config
    try:
        account = Pubkey.from_string(args.account)
    except ValueError:
        _print_status("ERROR", 'Invalid "account" provided')
        return 1

    try:
        status = asyncio.run(_migration_status(config, account, args.asset_id))
    except ValueError as e:
        _print_status("ERROR", f"Migration record could not be decoded: {e}")
        return 1

    print(status)
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from api.fastapi_app import create_app

    config = args.config
    _print_status("OK", f"Serving on {args.host}:{args.port} (cluster={config.solana_cluster})")
    uvicorn.run(create_app(config), host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="graveshift", description="GraveShift dead-asset tools.")
    parser.add_argument("--log-level", default=None, help="Override GRAVESHIFT_LOG_LEVEL.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_parser = subparsers.add_parser("scan", help="Find dead assets held by an EVM address.")
    scan_parser.add_argument("address", help="EVM owner address (0x...).")
    scan_parser.add_argument("--limit", default=DEFAULT_LIMIT, help="Max results (1-100).")
    scan_parser.set_defaults(func=cmd_scan)

    proof_parser = subparsers.add_parser("proof-message", help="Print the message the EVM owner must sign.")
    proof_parser.add_argument("--eth-address", required=True)
    proof_parser.add_argument("--chain", default="ethereum", choices=["ethereum", "polygon"])
    proof_parser.add_argument("--asset-type", required=True, choices=["erc20", "erc721", "erc1155"])
    proof_parser.add_argument("--contract", required=True)
    proof_parser.add_argument("--token-id", default=None)
    proof_parser.add_argument("--account", required=True, help="Solana recipient public key.")
    proof_parser.set_defaults(func=cmd_proof_message)

    status_parser = subparsers.add_parser("migration-status", help="Show the on-chain migration record state.")
    status_parser.add_argument("account", help="Solana wallet public key.")
    status_parser.add_argument("asset_id", help="32-char asset id.")
    status_parser.set_defaults(func=cmd_migration_status)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API.")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=8766)
    serve_parser.set_defaults(func=cmd_serve)

    return parser


def run(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config()
    except GraveshiftError as e:
        _print_status("ERROR", e.message)
        raise SystemExit(1)
    setup_logging(
        level=args.log_level or config.log_level,
        json_format=config.log_json,
        log_dir=config.log_dir,
    )
    args.config = config

    try:
        exit_code = args.func(args)
    except GraveshiftError as e:
        _print_status("ERROR", e.message)
        exit_code = 1
    raise SystemExit(exit_code)
