"""
Read-only EVM contract calls for ownership checks.

Minimal ABIs for ERC-20, ERC-721 and ERC-1155. Authoritative reads raise on
failure so the caller can decide between "not verified" and a fallback;
metadata reads are best-effort and return None per field.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

import aiohttp
from web3 import AsyncWeb3

from graveshift.config import GraveshiftConfig

logger = logging.getLogger(__name__)

ERC20_ABI = [
    {
        "inputs": [{"name": "owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {"inputs": [], "name": "name", "outputs": [{"name": "", "type": "string"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "symbol", "outputs": [{"name": "", "type": "string"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "decimals", "outputs": [{"name": "", "type": "uint8"}], "stateMutability": "view", "type": "function"},
]

ERC721_ABI = [
    {
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "name": "ownerOf",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
    {"inputs": [], "name": "name", "outputs": [{"name": "", "type": "string"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "symbol", "outputs": [{"name": "", "type": "string"}], "stateMutability": "view", "type": "function"},
]

ERC1155_ABI = [
    {
        "inputs": [
            {"name": "account", "type": "address"},
            {"name": "id", "type": "uint256"},
        ],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]


@dataclass
class TokenMetadata:
    name: Optional[str] = None
    symbol: Optional[str] = None
    decimals: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class EvmReader:
    """Per-request contract reader over AsyncWeb3 HTTP providers."""

    def __init__(self, config: GraveshiftConfig):
        self._config = config
        self._clients: Dict[str, AsyncWeb3] = {}

    def _client(self, chain: str) -> AsyncWeb3:
        if chain not in self._clients:
            provider = AsyncWeb3.AsyncHTTPProvider(
                self._config.rpc_url_for(chain),
                request_kwargs={"timeout": aiohttp.ClientTimeout(total=self._config.request_timeout_seconds)},
            )
            self._clients[chain] = AsyncWeb3(provider)
        return self._clients[chain]

    def _contract(self, chain: str, address: str, abi: list):
        return self._client(chain).eth.contract(address=address, abi=abi)

    async def owner_of(self, chain: str, contract: str, token_id: str) -> str:
        erc721 = self._contract(chain, contract, ERC721_ABI)
        return await erc721.functions.ownerOf(int(token_id)).call()

    async def erc1155_balance_of(self, chain: str, contract: str, owner: str, token_id: str) -> int:
        erc1155 = self._contract(chain, contract, ERC1155_ABI)
        return int(await erc1155.functions.balanceOf(owner, int(token_id)).call())

    async def erc20_balance_of(self, chain: str, contract: str, owner: str) -> int:
        erc20 = self._contract(chain, contract, ERC20_ABI)
        return int(await erc20.functions.balanceOf(owner).call())

    async def _optional_call(self, fn) -> Any:
        try:
            return await fn.call()
        except Exception as e:
            logger.debug(f"Optional metadata read failed: {e}")
            return None

    async def read_erc20_metadata(self, chain: str, contract: str) -> TokenMetadata:
        erc20 = self._contract(chain, contract, ERC20_ABI)
        name, symbol, decimals = await asyncio.gather(
            self._optional_call(erc20.functions.name()),
            self._optional_call(erc20.functions.symbol()),
            self._optional_call(erc20.functions.decimals()),
        )
        return TokenMetadata(
            name=name,
            symbol=symbol,
            decimals=int(decimals) if decimals is not None else None,
        )

    async def read_nft_metadata(self, chain: str, contract: str) -> TokenMetadata:
        erc721 = self._contract(chain, contract, ERC721_ABI)
        name, symbol = await asyncio.gather(
            self._optional_call(erc721.functions.name()),
            self._optional_call(erc721.functions.symbol()),
        )
        return TokenMetadata(name=name, symbol=symbol)
