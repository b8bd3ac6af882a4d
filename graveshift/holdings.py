"""
Holdings collection from EVM indexers.

Two independent sources:
- Ethplorer address info for ERC-20 balances on Ethereum
- Alchemy NFT v3 getNFTsForOwner for ERC-1155 balances on Polygon

Indexer responses are wallet-influenced and unbounded, so the NFT walk is
capped by a fixed page budget and item cap. Any non-success status aborts
the source with SourceUnavailable; nothing is retried.

Usage:
    async with aiohttp.ClientSession() as session:
        collector = HoldingsCollector(session, config)
        tokens = await collector.fetch_erc20_holdings(owner)
"""

from __future__ import annotations

import asyncio
import logging
import math
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional

import aiohttp

from graveshift.assets import is_evm_address, normalize_evm_address
from graveshift.config import GraveshiftConfig
from graveshift.errors import SourceUnavailable

logger = logging.getLogger(__name__)

ERC1155_SCAN_MAX_PAGES = 4
ERC1155_SCAN_PAGE_SIZE = 100
ERC1155_SCAN_MAX_ITEMS = 350

DEFAULT_DECIMALS = 18
MAX_DECIMALS = 30


# =============================================================================
# Holding shapes
# =============================================================================

@dataclass
class Erc20Holding:
    """Fungible balance as reported by the address indexer."""
    contract_address: str
    name: Optional[str]
    symbol: Optional[str]
    balance: str
    holders_count: Optional[int] = None
    market_cap_usd: Optional[float] = None
    price_volume_24h: Optional[float] = None
    price_updated_at: Optional[int] = None


@dataclass
class Erc1155Holding:
    """Multi-unit NFT balance with the indexer's spam/metadata signals."""
    contract_address: str
    token_id: str
    name: Optional[str]
    symbol: Optional[str]
    balance: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    is_spam: bool = False
    spam_classifications: List[str] = field(default_factory=list)
    metadata_error: Optional[str] = None


# =============================================================================
# Parsing helpers
# =============================================================================

def parse_number(value: Any) -> Optional[float]:
    """Finite number from a number or numeric string, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str) and value.strip():
        try:
            parsed = float(value.strip())
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def parse_raw_balance(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str) and value.strip():
        try:
            return int(value.strip())
        except ValueError:
            return None
    if isinstance(value, (int, float)) and math.isfinite(value) and value > 0:
        return int(value)
    return None


def parse_token_id(value: Any) -> Optional[str]:
    """Decimal token id from an indexer value (decimal or 0x-hex string)."""
    if not isinstance(value, str) or not value.strip():
        return None
    raw = value.strip()
    try:
        parsed = int(raw, 16) if raw.lower().startswith("0x") else int(raw)
    except ValueError:
        return None
    return str(parsed) if parsed >= 0 else None


def as_dict(value: Any) -> Dict[str, Any]:
    """Nested indexer object, or an empty dict when the field holds anything else."""
    return value if isinstance(value, dict) else {}


def parse_count(value: Any) -> Optional[int]:
    parsed = parse_number(value)
    if parsed is None or not parsed.is_integer():
        return None
    return int(parsed)


def normalize_nullable_string(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def clamp_decimals(value: Optional[float]) -> int:
    if value is None or not math.isfinite(value):
        return DEFAULT_DECIMALS
    return max(0, min(int(value), MAX_DECIMALS))


def format_units(value: int, decimals: int) -> str:
    """Scale an integer amount by 10**decimals without losing precision."""
    sign = "-" if value < 0 else ""
    digits = str(abs(value))
    if decimals <= 0:
        return f"{sign}{digits}"
    digits = digits.rjust(decimals + 1, "0")
    integer, fraction = digits[:-decimals], digits[-decimals:].rstrip("0")
    return f"{sign}{integer}.{fraction}" if fraction else f"{sign}{integer}"


def _safe_address(value: Any) -> Optional[str]:
    if not is_evm_address(value):
        return None
    return normalize_evm_address(value, "contractAddress")


def parse_erc20_holding(token: Dict[str, Any]) -> Optional[Erc20Holding]:
    """Parse one Ethplorer token entry; None when unusable."""
    token_info = token.get("tokenInfo")
    if not isinstance(token_info, dict):
        return None

    contract_address = _safe_address(token_info.get("address"))
    if contract_address is None:
        return None

    decimals = clamp_decimals(parse_number(token_info.get("decimals")))
    raw_balance = parse_raw_balance(
        token.get("rawBalance") if token.get("rawBalance") is not None else token.get("balance")
    )
    if raw_balance is None or raw_balance <= 0:
        return None

    price_data = as_dict(token_info.get("price"))

    updated_at = parse_number(price_data.get("ts"))
    if updated_at is None:
        updated_at = parse_number(token_info.get("lastUpdated"))

    return Erc20Holding(
        contract_address=contract_address,
        name=normalize_nullable_string(token_info.get("name")),
        symbol=normalize_nullable_string(token_info.get("symbol")),
        balance=format_units(raw_balance, decimals),
        holders_count=parse_count(token_info.get("holdersCount")),
        market_cap_usd=parse_number(price_data.get("marketCapUsd")),
        price_volume_24h=parse_number(price_data.get("volume24h")),
        price_updated_at=int(updated_at) if updated_at is not None else None,
    )


def nft_token_type(nft: Dict[str, Any]) -> str:
    contract = as_dict(nft.get("contract"))
    return str(nft.get("tokenType") or contract.get("tokenType") or "").upper()


def parse_erc1155_holding(nft: Dict[str, Any]) -> Optional[Erc1155Holding]:
    """Parse one Alchemy ownedNfts entry; None unless a positive ERC-1155 balance."""
    if nft_token_type(nft) != "ERC1155":
        return None

    contract = as_dict(nft.get("contract"))
    contract_address = _safe_address(contract.get("address"))
    if contract_address is None:
        return None

    token_id = parse_token_id(nft.get("tokenId"))
    if token_id is None:
        return None

    raw_balance = parse_raw_balance(nft.get("balance"))
    if raw_balance is None or raw_balance <= 0:
        return None

    image = as_dict(nft.get("image"))
    raw = as_dict(nft.get("raw"))
    classifications = contract.get("spamClassifications")

    return Erc1155Holding(
        contract_address=contract_address,
        token_id=token_id,
        name=normalize_nullable_string(nft.get("name")) or normalize_nullable_string(contract.get("name")),
        symbol=normalize_nullable_string(contract.get("symbol")),
        balance=str(raw_balance),
        description=normalize_nullable_string(nft.get("description")),
        image_url=normalize_nullable_string(image.get("originalUrl")) or normalize_nullable_string(image.get("cachedUrl")),
        is_spam=bool(contract.get("isSpam")),
        spam_classifications=[str(c) for c in classifications] if isinstance(classifications, list) else [],
        metadata_error=normalize_nullable_string(raw.get("error")),
    )


# =============================================================================
# Collector
# =============================================================================

class HoldingsCollector:
    """Fetches raw holdings for one owner from the configured indexers."""

    def __init__(self, session: aiohttp.ClientSession, config: GraveshiftConfig):
        self._session = session
        self._config = config
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout_seconds)

    async def _get_json(self, url: str, params: Dict[str, str], source: str) -> Any:
        try:
            async with self._session.get(url, params=params, timeout=self._timeout) as resp:
                status = resp.status
                if not 200 <= status < 300:
                    payload = None
                else:
                    payload = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning(f"{source} request failed: {e}")
            raise SourceUnavailable(f"{source} request failed", source=source) from e

        if not 200 <= status < 300:
            logger.warning(f"{source} returned HTTP {status}")
            raise SourceUnavailable(f"{source} request failed ({status})", source=source, status=status)
        return payload

    async def fetch_erc20_holdings(self, owner: str) -> List[Erc20Holding]:
        """ERC-20 holdings on Ethereum with a positive balance."""
        url = f"{self._config.ethplorer_base_url.rstrip('/')}/getAddressInfo/{owner}"
        payload = await self._get_json(url, {"apiKey": self._config.ethplorer_api_key}, source="ethplorer")
        if not isinstance(payload, dict):
            raise SourceUnavailable("ethplorer returned an unexpected payload", source="ethplorer")

        holdings = []
        for token in payload.get("tokens") or []:
            if not isinstance(token, dict):
                continue
            holding = parse_erc20_holding(token)
            if holding is not None:
                holdings.append(holding)

        logger.debug(f"ethplorer: {len(holdings)} ERC-20 holdings for {owner}")
        return holdings

    async def iter_nft_pages(
        self,
        owner: str,
        *,
        with_metadata: bool = True,
        max_pages: int = ERC1155_SCAN_MAX_PAGES,
    ) -> AsyncIterator[List[Dict[str, Any]]]:
        """Yield ownedNfts pages until the cursor runs out or the page budget is spent."""
        url = (
            f"{self._config.polygon_alchemy_base_url.rstrip('/')}"
            f"/nft/v3/{self._config.polygon_alchemy_api_key}/getNFTsForOwner"
        )
        page_key: Optional[str] = None

        for _ in range(max_pages):
            params = {
                "owner": owner,
                "withMetadata": "true" if with_metadata else "false",
                "pageSize": str(ERC1155_SCAN_PAGE_SIZE),
            }
            if page_key:
                params["pageKey"] = page_key

            payload = await self._get_json(url, params, source="alchemy")
            if not isinstance(payload, dict):
                raise SourceUnavailable("alchemy returned an unexpected payload", source="alchemy")

            owned = payload.get("ownedNfts")
            if not isinstance(owned, list):
                owned = []
            yield [nft for nft in owned if isinstance(nft, dict)]

            page_key = payload.get("pageKey")
            if not isinstance(page_key, str) or not page_key:
                return

    async def fetch_erc1155_holdings(self, owner: str) -> List[Erc1155Holding]:
        """ERC-1155 holdings on Polygon, capped at ERC1155_SCAN_MAX_ITEMS."""
        holdings: List[Erc1155Holding] = []

        async with aclosing(self.iter_nft_pages(owner, with_metadata=True)) as pages:
            async for page in pages:
                for nft in page:
                    holding = parse_erc1155_holding(nft)
                    if holding is None:
                        continue
                    holdings.append(holding)
                    if len(holdings) >= ERC1155_SCAN_MAX_ITEMS:
                        logger.info(f"alchemy: item cap reached for {owner}")
                        return holdings

        logger.debug(f"alchemy: {len(holdings)} ERC-1155 holdings for {owner}")
        return holdings
