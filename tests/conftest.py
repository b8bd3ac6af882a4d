"""
GraveShift Test Configuration

Shared fixtures: a fixed config, fake aiohttp sessions for the indexers,
a fake Solana RPC client and an EVM signing key for proof signatures.
"""

import os
import sys
from unittest.mock import AsyncMock, MagicMock

# Add project root to path FIRST
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from solders.hash import Hash

from graveshift.config import GraveshiftConfig
from graveshift.proof import build_resurrection_proof_message


# Known devnet address, no funds
TEST_SOLANA_ACCOUNT = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
TEST_OWNER_KEY = "0x" + "11" * 32
OTHER_KEY = "0x" + "22" * 32
TEST_CONTRACT = "0x1f9840a85d5af5bf1d1762f925bdaddc4201f984"


# ==============================================================================
# Fake HTTP
# ==============================================================================

class FakeResponse:
    """Minimal aiohttp response: async context manager with status and json()."""

    def __init__(self, payload=None, status=200):
        self.status = status
        self._payload = payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def json(self, content_type=None):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """Routes GET calls by URL fragment.

    A route value may be a FakeResponse, a list of FakeResponses consumed in
    order, or a callable(url, params) returning one (or raising).
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, dict(params or {})))
        for fragment, handler in self.routes.items():
            if fragment not in url:
                continue
            if isinstance(handler, FakeResponse):
                return handler
            if isinstance(handler, list):
                return handler.pop(0)
            return handler(url, params or {})
        raise AssertionError(f"Unexpected GET {url}")

    def calls_to(self, fragment):
        return [call for call in self.calls if fragment in call[0]]


@pytest.fixture
def config():
    return GraveshiftConfig(
        ethplorer_base_url="https://ethplorer.test",
        ethplorer_api_key="test-key",
        dexscreener_base_url="https://dex.test",
        polygon_alchemy_base_url="https://alchemy.test",
        polygon_alchemy_api_key="alchemy-key",
        eth_rpc_url="https://eth-rpc.test",
        polygon_rpc_url="https://polygon-rpc.test",
        solana_rpc_url="https://solana-rpc.test",
        request_timeout_seconds=5.0,
        liquidity_concurrency=2,
    )


@pytest.fixture
def make_session():
    return FakeSession


@pytest.fixture
def make_response():
    return FakeResponse


# ==============================================================================
# Fake Solana RPC
# ==============================================================================

@pytest.fixture
def rpc_client():
    """AsyncClient stand-in: no migration record, default blockhash."""
    client = MagicMock()
    client.get_account_info = AsyncMock(return_value=MagicMock(value=None))
    client.get_latest_blockhash = AsyncMock(
        return_value=MagicMock(value=MagicMock(blockhash=Hash.default()))
    )
    client.close = AsyncMock()
    return client


@pytest.fixture
def existing_record_rpc(rpc_client):
    """RPC client where the migration record account already exists."""
    rpc_client.get_account_info.return_value = MagicMock(value=MagicMock(data=b"\x00" * 8))
    return rpc_client


# ==============================================================================
# EVM signing
# ==============================================================================

@pytest.fixture
def owner_account():
    return Account.from_key(TEST_OWNER_KEY)


@pytest.fixture
def other_account():
    return Account.from_key(OTHER_KEY)


@pytest.fixture
def sign_proof():
    """sign_proof(asset, solana_account, key) -> 0x-prefixed 65-byte signature."""

    def _sign(asset, solana_account, key=TEST_OWNER_KEY):
        message = build_resurrection_proof_message(asset, solana_account)
        signed = Account.sign_message(encode_defunct(text=message), private_key=key)
        return "0x" + bytes(signed.signature).hex()

    return _sign


@pytest.fixture
def solana_account():
    return TEST_SOLANA_ACCOUNT


@pytest.fixture
def contract_address():
    return TEST_CONTRACT
