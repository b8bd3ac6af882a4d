"""DexScreener pair lookups used to enrich ERC-20 holdings with liquidity signals."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

import aiohttp

from graveshift.config import GraveshiftConfig
from graveshift.holdings import as_dict, parse_number

logger = logging.getLogger(__name__)

DEX_BATCH_SIZE = 30
DEX_CHAIN_ID = "ethereum"
PAIR_OBJECT_FIELDS = ("baseToken", "quoteToken", "liquidity", "volume")


@dataclass
class DexPair:
    """Normalized token pair data."""
    chain_id: str
    dex_id: str
    pair_address: str
    base_token_address: str
    quote_token_address: str
    liquidity_usd: Optional[float] = None
    volume_24h: Optional[float] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "DexPair":
        """Create DexPair from a DexScreener pair object."""
        base = as_dict(data.get("baseToken"))
        quote = as_dict(data.get("quoteToken"))
        liquidity = as_dict(data.get("liquidity"))
        volume = as_dict(data.get("volume"))

        return cls(
            chain_id=str(data.get("chainId") or "").lower(),
            dex_id=str(data.get("dexId") or ""),
            pair_address=str(data.get("pairAddress") or ""),
            base_token_address=str(base.get("address") or "").lower(),
            quote_token_address=str(quote.get("address") or "").lower(),
            liquidity_usd=parse_number(liquidity.get("usd")),
            volume_24h=parse_number(volume.get("h24")),
        )


@dataclass
class LiquidityLookup:
    """Pairs keyed by lowercase token address.

    failed_batches counts batches that returned no usable data; those
    tokens look pairless to the classifier.
    """
    pairs_by_token: Dict[str, List[DexPair]] = field(default_factory=dict)
    failed_batches: int = 0

    def pairs_for(self, address: str) -> List[DexPair]:
        return self.pairs_by_token.get(address.lower(), [])

    @property
    def degraded(self) -> bool:
        return self.failed_batches > 0


def chunk(items: Sequence[str], size: int) -> List[List[str]]:
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def match_pairs(
    payload: Any,
    batch: Sequence[str],
    chain_id: str = DEX_CHAIN_ID,
) -> Dict[str, List[DexPair]]:
    """Attach each pair to the batch addresses sitting in its base or quote slot.

    Raises ValueError when a pair carries a non-object token, liquidity or volume field.
    """
    matched: Dict[str, List[DexPair]] = {}
    wanted = set(batch)

    for raw in payload:
        if not isinstance(raw, dict):
            continue
        malformed = [key for key in PAIR_OBJECT_FIELDS if raw.get(key) is not None and not isinstance(raw[key], dict)]
        if malformed:
            raise ValueError(f"malformed pair fields: {', '.join(malformed)}")
        pair = DexPair.from_api(raw)
        if pair.chain_id != chain_id:
            continue
        for address in (pair.base_token_address, pair.quote_token_address):
            if address and address in wanted:
                matched.setdefault(address, []).append(pair)

    return matched


class LiquidityEnricher:
    """Batched, concurrency-bounded DexScreener lookups."""

    def __init__(self, session: aiohttp.ClientSession, config: GraveshiftConfig):
        self._session = session
        self._base_url = config.dexscreener_base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout_seconds)
        self._semaphore = asyncio.Semaphore(config.liquidity_concurrency)

    async def _fetch_batch(self, batch: List[str]) -> Optional[Dict[str, List[DexPair]]]:
        url = f"{self._base_url}/tokens/v1/{DEX_CHAIN_ID}/{','.join(batch)}"
        async with self._semaphore:
            try:
                async with self._session.get(url, timeout=self._timeout) as resp:
                    if not 200 <= resp.status < 300:
                        logger.warning(f"DexScreener batch returned HTTP {resp.status}; treating as no liquidity data")
                        return None
                    payload = await resp.json(content_type=None)
            except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
                logger.warning(f"DexScreener batch failed: {e}; treating as no liquidity data")
                return None

        if not isinstance(payload, list):
            logger.warning("DexScreener batch returned a non-list payload; treating as no liquidity data")
            return None
        try:
            return match_pairs(payload, batch)
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(f"DexScreener batch could not be parsed: {e}; treating as no liquidity data")
            return None

    async def fetch_pairs_for_tokens(self, token_addresses: Iterable[str]) -> LiquidityLookup:
        unique = list(dict.fromkeys(address.lower() for address in token_addresses))
        lookup = LiquidityLookup()
        if not unique:
            return lookup

        batches = chunk(unique, DEX_BATCH_SIZE)
        results = await asyncio.gather(*(self._fetch_batch(batch) for batch in batches))

        for matched in results:
            if matched is None:
                lookup.failed_batches += 1
                continue
            for address, pairs in matched.items():
                lookup.pairs_by_token.setdefault(address, []).extend(pairs)

        logger.debug(
            f"DexScreener: {len(lookup.pairs_by_token)}/{len(unique)} tokens with pairs, "
            f"{lookup.failed_batches} failed batches"
        )
        return lookup
