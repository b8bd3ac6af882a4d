"""
Dead-asset scoring.

Additive heuristic over enriched holdings; no network access. A holding is
"dead" once its score reaches DEAD_SCORE_THRESHOLD.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from graveshift.holdings import Erc1155Holding, Erc20Holding, parse_number
from graveshift.liquidity import DexPair

DEAD_SCORE_THRESHOLD = 40
DEFAULT_LIMIT = 20
MIN_LIMIT = 1
MAX_LIMIT = 100

MIN_LIQUIDITY_USD = 15_000
MIN_VOLUME_24H_USD = 5_000
MIN_MARKET_CAP_USD = 1_000_000
MIN_HOLDER_COUNT = 300
STALE_PRICE_SECONDS = 90 * 24 * 60 * 60

SPAM_PHRASES = (
    "airdrop",
    "claim",
    "reward",
    "visit",
    "bonus",
    "voucher",
    "t.me",
    "telegram",
    "http://",
    "https://",
)


@dataclass
class DeadAssetRecord:
    chain: str
    asset_type: str
    contract_address: str
    token_id: Optional[str]
    name: Optional[str]
    symbol: Optional[str]
    balance: str
    dead_score: int
    reasons: List[str] = field(default_factory=list)
    metrics: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chain": self.chain,
            "assetType": self.asset_type,
            "contractAddress": self.contract_address,
            "tokenId": self.token_id,
            "name": self.name,
            "symbol": self.symbol,
            "balance": self.balance,
            "deadScore": self.dead_score,
            "reasons": list(self.reasons),
            "metrics": dict(self.metrics),
        }


def _max_or_none(values: Iterable[Optional[float]]) -> Optional[float]:
    present = [v for v in values if v is not None]
    return max(present) if present else None


def contains_spam_phrase(text: Optional[str]) -> bool:
    lowered = (text or "").lower()
    if not lowered:
        return False
    return any(phrase in lowered for phrase in SPAM_PHRASES)


def evaluate_erc20_holding(
    holding: Erc20Holding,
    pairs: Sequence[DexPair],
    now: Optional[float] = None,
) -> DeadAssetRecord:
    """Score an Ethereum ERC-20 holding against its matching DEX pairs."""
    now = time.time() if now is None else now
    score = 0
    reasons: List[str] = []

    pair_count = len(pairs)
    liquidity = _max_or_none(p.liquidity_usd for p in pairs)
    volume = _max_or_none(p.volume_24h for p in pairs)

    if pair_count == 0:
        score += 40
        reasons.append("no active exchange pair")

    if liquidity is not None and liquidity < MIN_LIQUIDITY_USD:
        score += 25
        reasons.append("low liquidity")

    if pair_count > 0 and (volume or 0) < MIN_VOLUME_24H_USD:
        score += 20
        reasons.append("low 24h volume")

    if holding.market_cap_usd is None:
        score += 15
        reasons.append("no market-cap data")
    elif holding.market_cap_usd < MIN_MARKET_CAP_USD:
        score += 10
        reasons.append("low market cap")

    if holding.holders_count is not None and holding.holders_count < MIN_HOLDER_COUNT:
        score += 10
        reasons.append("low holder count")

    if holding.price_updated_at is not None:
        age = max(0, int(now) - holding.price_updated_at)
        if age > STALE_PRICE_SECONDS:
            score += 10
            reasons.append("stale price feed")

    return DeadAssetRecord(
        chain="ethereum",
        asset_type="erc20",
        contract_address=holding.contract_address,
        token_id=None,
        name=holding.name,
        symbol=holding.symbol,
        balance=holding.balance,
        dead_score=score,
        reasons=reasons,
        metrics={
            "holdersCount": holding.holders_count,
            "marketCapUsd": holding.market_cap_usd,
            "priceVolume24h": holding.price_volume_24h,
            "dexLiquidityUsd": liquidity,
            "dexVolume24h": volume,
            "dexPairCount": pair_count,
            "priceUpdatedAt": holding.price_updated_at,
        },
    )


def evaluate_erc1155_holding(holding: Erc1155Holding) -> DeadAssetRecord:
    """Score a Polygon ERC-1155 holding from its indexer metadata."""
    score = 0
    reasons: List[str] = []

    if holding.is_spam:
        score += 45
        reasons.append("flagged as spam by indexer")

    if holding.spam_classifications:
        score += 15
        reasons.append(f"spam signals: {', '.join(holding.spam_classifications)}")

    if not holding.name:
        score += 10
        reasons.append("missing display name")

    if not holding.image_url:
        score += 10
        reasons.append("missing image metadata")

    if holding.metadata_error:
        score += 20
        reasons.append("broken metadata uri")

    if contains_spam_phrase(holding.description):
        score += 25
        reasons.append("spam phrase in description")

    return DeadAssetRecord(
        chain="polygon",
        asset_type="erc1155",
        contract_address=holding.contract_address,
        token_id=holding.token_id,
        name=holding.name,
        symbol=holding.symbol,
        balance=holding.balance,
        dead_score=score,
        reasons=reasons,
        metrics={
            "isSpam": holding.is_spam,
            "spamSignalCount": len(holding.spam_classifications),
            "hasMetadataError": holding.metadata_error is not None,
        },
    )


def clamp_limit(value: Any) -> int:
    """Caller limit truncated and clamped to [1, 100]; unparseable means default."""
    parsed = parse_number(value)
    if parsed is None:
        return DEFAULT_LIMIT
    return max(MIN_LIMIT, min(int(parsed), MAX_LIMIT))


def select_dead_assets(records: Iterable[DeadAssetRecord], limit: int = DEFAULT_LIMIT) -> List[DeadAssetRecord]:
    """Keep records at or above the threshold, highest score first."""
    dead = [r for r in records if r.dead_score >= DEAD_SCORE_THRESHOLD]
    dead.sort(key=lambda r: r.dead_score, reverse=True)
    return dead[:clamp_limit(limit)]
