"""
Discovery pipeline: holdings -> liquidity -> score -> select.

Both holdings sources are fetched concurrently; enrichment starts once the
ERC-20 holdings are known. A source failure aborts the scan with no partial
result.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import aiohttp

from graveshift.classifier import (
    DEFAULT_LIMIT,
    DeadAssetRecord,
    evaluate_erc1155_holding,
    evaluate_erc20_holding,
    select_dead_assets,
)
from graveshift.config import GraveshiftConfig
from graveshift.holdings import HoldingsCollector
from graveshift.liquidity import LiquidityEnricher

logger = logging.getLogger(__name__)


@dataclass
class DeadAssetScanResult:
    owner_address: str
    total_holdings: int
    dead_assets: List[DeadAssetRecord] = field(default_factory=list)
    degraded: bool = False
    scanned_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ownerAddress": self.owner_address,
            "scannedAt": self.scanned_at.isoformat().replace("+00:00", "Z"),
            "totalHoldings": self.total_holdings,
            "degraded": self.degraded,
            "deadAssets": [asset.to_dict() for asset in self.dead_assets],
        }


class DeadAssetScanner:
    """Runs one discovery request for an already-normalised owner address."""

    def __init__(self, collector: HoldingsCollector, enricher: LiquidityEnricher):
        self._collector = collector
        self._enricher = enricher

    @classmethod
    def from_session(cls, session: aiohttp.ClientSession, config: GraveshiftConfig) -> "DeadAssetScanner":
        return cls(HoldingsCollector(session, config), LiquidityEnricher(session, config))

    async def _collect_holdings(self, owner: str):
        """Both holdings sources concurrently; the first failure cancels the other."""
        erc20_task = asyncio.ensure_future(self._collector.fetch_erc20_holdings(owner))
        erc1155_task = asyncio.ensure_future(self._collector.fetch_erc1155_holdings(owner))
        tasks = (erc20_task, erc1155_task)

        try:
            _, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        for task in tasks:
            if task.done() and not task.cancelled() and task.exception() is not None:
                raise task.exception()

        return erc20_task.result(), erc1155_task.result()

    async def scan(self, owner: str, limit: int = DEFAULT_LIMIT, now: Optional[float] = None) -> DeadAssetScanResult:
        start = time.time()
        erc20_holdings, erc1155_holdings = await self._collect_holdings(owner)

        lookup = await self._enricher.fetch_pairs_for_tokens(h.contract_address for h in erc20_holdings)
        if lookup.degraded:
            logger.warning(f"Liquidity enrichment degraded for {owner}: {lookup.failed_batches} failed batches")

        records = [
            evaluate_erc20_holding(h, lookup.pairs_for(h.contract_address), now=now)
            for h in erc20_holdings
        ]
        records.extend(evaluate_erc1155_holding(h) for h in erc1155_holdings)

        dead_assets = select_dead_assets(records, limit)
        total = len(erc20_holdings) + len(erc1155_holdings)

        logger.info(
            f"Scanned {owner}: {total} holdings, {len(dead_assets)} dead "
            f"in {time.time() - start:.2f}s"
        )
        return DeadAssetScanResult(
            owner_address=owner,
            total_holdings=total,
            dead_assets=dead_assets,
            degraded=lookup.degraded,
        )
