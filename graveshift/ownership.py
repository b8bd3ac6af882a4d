"""
Ownership verification for EVM assets.

Dispatches on asset type:
- erc721: ownerOf(tokenId) must equal the claimed owner
- erc1155: balanceOf(owner, tokenId) > 0, with an indexer fallback when the
  on-chain read itself faults on chains that have a cheap NFT indexer
- erc20: balanceOf(owner) > 0, metadata read alongside

Every branch returns an OwnershipCheckResult carrying assetKey/assetId, so a
rejected check still has a stable identity for logs.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from graveshift.assets import NormalizedAssetInput
from graveshift.config import GraveshiftConfig
from graveshift.errors import SourceUnavailable
from graveshift.evm import EvmReader, TokenMetadata
from graveshift.holdings import (
    HoldingsCollector,
    as_dict,
    format_units,
    nft_token_type,
    parse_raw_balance,
    parse_token_id,
)

logger = logging.getLogger(__name__)

DEFAULT_DECIMALS = 18

ERC721_NOT_OWNER = "Connected wallet is not the owner of this ERC-721 token"
ERC721_READ_FAILED = "Failed to verify ERC-721 ownership. Check chain, contract, and tokenId."
ERC1155_ZERO_BALANCE = "Connected wallet has zero balance for this ERC-1155 token"
ERC1155_READ_FAILED = "Failed to verify ERC-1155 balance. Check chain, contract, and tokenId."
ERC20_ZERO_BALANCE = "Connected wallet has zero balance for this ERC-20 token"
ERC20_READ_FAILED = "Failed to verify ERC-20 balance. Check chain and contract address."


@dataclass
class OwnershipCheckResult:
    verified: bool
    asset_key: str
    asset_id: str
    reason: Optional[str] = None
    metadata: TokenMetadata = field(default_factory=TokenMetadata)
    token_balance: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "verified": self.verified,
            "assetId": self.asset_id,
            "assetKey": self.asset_key,
            "metadata": self.metadata.to_dict(),
            "tokenBalance": self.token_balance,
        }


class OwnershipVerifier:
    """Authoritative ownership reads for one normalised asset."""

    def __init__(
        self,
        reader: EvmReader,
        config: GraveshiftConfig,
        collector: Optional[HoldingsCollector] = None,
    ):
        self._reader = reader
        self._config = config
        self._collector = collector

    async def verify(self, asset: NormalizedAssetInput) -> OwnershipCheckResult:
        if asset.asset_type == "erc721":
            result = await self._verify_erc721(asset)
        elif asset.asset_type == "erc1155":
            result = await self._verify_erc1155(asset)
        else:
            result = await self._verify_erc20(asset)

        if result.verified:
            logger.info(f"Ownership verified for {result.asset_key}")
        else:
            logger.info(f"Ownership rejected for {result.asset_key}: {result.reason}")
        return result

    def _result(self, asset: NormalizedAssetInput, verified: bool, reason: Optional[str], **kwargs) -> OwnershipCheckResult:
        return OwnershipCheckResult(
            verified=verified,
            reason=None if verified else reason,
            asset_key=asset.asset_key,
            asset_id=asset.asset_id,
            **kwargs,
        )

    async def _verify_erc721(self, asset: NormalizedAssetInput) -> OwnershipCheckResult:
        try:
            owner = await self._reader.owner_of(asset.chain, asset.contract_address, asset.token_id)
        except Exception as e:
            logger.warning(f"ownerOf failed for {asset.asset_key}: {e}")
            return self._result(asset, False, ERC721_READ_FAILED)

        metadata = await self._reader.read_nft_metadata(asset.chain, asset.contract_address)
        verified = str(owner).lower() == asset.eth_address.lower()
        return self._result(asset, verified, ERC721_NOT_OWNER, metadata=metadata)

    async def _verify_erc1155(self, asset: NormalizedAssetInput) -> OwnershipCheckResult:
        try:
            balance = await self._reader.erc1155_balance_of(
                asset.chain, asset.contract_address, asset.eth_address, asset.token_id
            )
        except Exception as e:
            logger.warning(f"ERC-1155 balanceOf failed for {asset.asset_key}: {e}")
            balance = await self._indexer_erc1155_balance(asset)
            if balance is None:
                return self._result(asset, False, ERC1155_READ_FAILED)

        return self._result(asset, balance > 0, ERC1155_ZERO_BALANCE, token_balance=str(balance))

    async def _indexer_erc1155_balance(self, asset: NormalizedAssetInput) -> Optional[int]:
        """Balance from the NFT indexer, or None when unavailable or not listed."""
        if self._collector is None or asset.chain not in self._config.indexer_fallback_chains:
            return None

        contract = asset.contract_address.lower()
        try:
            async with aclosing(self._collector.iter_nft_pages(asset.eth_address, with_metadata=False)) as pages:
                async for page in pages:
                    for nft in page:
                        token_type = nft_token_type(nft)
                        if token_type and token_type != "ERC1155":
                            continue
                        nft_contract = str(nft.get("contractAddress") or as_dict(nft.get("contract")).get("address") or "")
                        if nft_contract.lower() != contract:
                            continue
                        if parse_token_id(nft.get("tokenId")) != asset.token_id:
                            continue
                        return parse_raw_balance(nft.get("balance"))
        except SourceUnavailable as e:
            logger.warning(f"Indexer fallback unavailable for {asset.asset_key}: {e}")
            return None

        return None

    async def _verify_erc20(self, asset: NormalizedAssetInput) -> OwnershipCheckResult:
        try:
            balance, metadata = await asyncio.gather(
                self._reader.erc20_balance_of(asset.chain, asset.contract_address, asset.eth_address),
                self._reader.read_erc20_metadata(asset.chain, asset.contract_address),
            )
        except Exception as e:
            logger.warning(f"ERC-20 balanceOf failed for {asset.asset_key}: {e}")
            return self._result(asset, False, ERC20_READ_FAILED)

        decimals = metadata.decimals if metadata.decimals is not None else DEFAULT_DECIMALS
        return self._result(
            asset,
            balance > 0,
            ERC20_ZERO_BALANCE,
            metadata=metadata,
            token_balance=format_units(balance, decimals),
        )
