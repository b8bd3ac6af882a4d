"""
Per-request service wiring.

HTTP sessions and RPC clients live for exactly one request and are closed
when it finishes. Tests replace these with app.dependency_overrides.
"""

from typing import AsyncIterator

import aiohttp
from fastapi import Depends, Request
from solana.rpc.async_api import AsyncClient
from solders.pubkey import Pubkey

from graveshift.config import GraveshiftConfig
from graveshift.evm import EvmReader
from graveshift.holdings import HoldingsCollector
from graveshift.migration import MigrationTransactionBuilder
from graveshift.ownership import OwnershipVerifier
from graveshift.resurrection import ResurrectionService
from graveshift.scanner import DeadAssetScanner


def get_config(request: Request) -> GraveshiftConfig:
    return request.app.state.config


async def get_http_session(config: GraveshiftConfig = Depends(get_config)) -> AsyncIterator[aiohttp.ClientSession]:
    timeout = aiohttp.ClientTimeout(total=config.request_timeout_seconds)
    async with aiohttp.ClientSession(timeout=timeout) as session:
        yield session


async def get_solana_client(config: GraveshiftConfig = Depends(get_config)) -> AsyncIterator[AsyncClient]:
    client = AsyncClient(config.solana_rpc_url, timeout=config.request_timeout_seconds)
    try:
        yield client
    finally:
        await client.close()


def get_scanner(
    session: aiohttp.ClientSession = Depends(get_http_session),
    config: GraveshiftConfig = Depends(get_config),
) -> DeadAssetScanner:
    return DeadAssetScanner.from_session(session, config)


def get_verifier(
    session: aiohttp.ClientSession = Depends(get_http_session),
    config: GraveshiftConfig = Depends(get_config),
) -> OwnershipVerifier:
    return OwnershipVerifier(EvmReader(config), config, collector=HoldingsCollector(session, config))


def get_resurrection_service(
    verifier: OwnershipVerifier = Depends(get_verifier),
    rpc_client: AsyncClient = Depends(get_solana_client),
    config: GraveshiftConfig = Depends(get_config),
) -> ResurrectionService:
    builder = MigrationTransactionBuilder(rpc_client, Pubkey.from_string(config.program_id))
    return ResurrectionService(verifier, builder)
