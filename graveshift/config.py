"""
Configuration for the GraveShift services.

Built once at process start by load_config() and passed to every component.
Nothing below the API factory reads environment variables directly.
"""

import os
from dataclasses import dataclass, field
from typing import FrozenSet, List, Mapping, Optional

from dotenv import load_dotenv
from solders.pubkey import Pubkey

from graveshift.errors import ConfigurationError


DEFAULT_PROGRAM_ID = "6hJAy23ndpQii5QzVmXTjGjgmDPhhPEQNvrd5o9S8JWF"
DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://localhost:5173"


@dataclass(frozen=True)
class GraveshiftConfig:
    """Endpoints, keys and limits for one running service."""

    # Indexers
    ethplorer_base_url: str = "https://api.ethplorer.io"
    ethplorer_api_key: str = "freekey"
    dexscreener_base_url: str = "https://api.dexscreener.com"
    polygon_alchemy_base_url: str = "https://polygon-mainnet.g.alchemy.com"
    polygon_alchemy_api_key: str = "demo"

    # RPC endpoints
    eth_rpc_url: str = "https://eth.llamarpc.com"
    polygon_rpc_url: str = "https://polygon-bor-rpc.publicnode.com"
    solana_rpc_url: str = "https://api.devnet.solana.com"
    solana_cluster: str = "devnet"

    # Destination program
    program_id: str = DEFAULT_PROGRAM_ID

    # Request shaping
    request_timeout_seconds: float = 15.0
    liquidity_concurrency: int = 4
    indexer_fallback_chains: FrozenSet[str] = frozenset({"polygon"})

    # Logging / HTTP
    log_level: str = "INFO"
    log_json: bool = False
    log_dir: Optional[str] = None
    cors_origins: List[str] = field(default_factory=lambda: DEFAULT_CORS_ORIGINS.split(","))

    def __post_init__(self):
        try:
            Pubkey.from_string(self.program_id)
        except ValueError as e:
            raise ConfigurationError(f"Invalid GRAVESHIFT_PROGRAM_ID: {self.program_id}") from e
        if self.request_timeout_seconds <= 0:
            raise ConfigurationError("Request timeout must be positive")
        if self.liquidity_concurrency < 1:
            raise ConfigurationError("Liquidity concurrency must be at least 1")

    def rpc_url_for(self, chain: str) -> str:
        return self.polygon_rpc_url if chain == "polygon" else self.eth_rpc_url


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


def _env_str(env: Mapping[str, str], name: str, default: str) -> str:
    value = (env.get(name) or "").strip()
    return value or default


def load_config(env: Optional[Mapping[str, str]] = None, dotenv_path: Optional[str] = None) -> GraveshiftConfig:
    """Load configuration from environment variables (and a .env file if present)."""
    if env is None:
        load_dotenv(dotenv_path)
        env = os.environ

    defaults = GraveshiftConfig()
    origins = _env_str(env, "CORS_ORIGINS", DEFAULT_CORS_ORIGINS)

    return GraveshiftConfig(
        ethplorer_base_url=_env_str(env, "ETHPLORER_BASE_URL", defaults.ethplorer_base_url),
        ethplorer_api_key=_env_str(env, "ETHPLORER_API_KEY", defaults.ethplorer_api_key),
        dexscreener_base_url=_env_str(env, "DEXSCREENER_BASE_URL", defaults.dexscreener_base_url),
        polygon_alchemy_base_url=_env_str(env, "POLYGON_ALCHEMY_BASE_URL", defaults.polygon_alchemy_base_url),
        polygon_alchemy_api_key=_env_str(env, "POLYGON_ALCHEMY_API_KEY", defaults.polygon_alchemy_api_key),
        eth_rpc_url=_env_str(env, "ETH_RPC_URL", defaults.eth_rpc_url),
        polygon_rpc_url=_env_str(env, "POLYGON_RPC_URL", defaults.polygon_rpc_url),
        solana_rpc_url=_env_str(env, "SOLANA_RPC_URL", defaults.solana_rpc_url),
        solana_cluster=_env_str(env, "SOLANA_CLUSTER", defaults.solana_cluster),
        program_id=_env_str(env, "GRAVESHIFT_PROGRAM_ID", DEFAULT_PROGRAM_ID),
        request_timeout_seconds=_env_float(env, "GRAVESHIFT_REQUEST_TIMEOUT", defaults.request_timeout_seconds),
        liquidity_concurrency=_env_int(env, "GRAVESHIFT_LIQUIDITY_CONCURRENCY", defaults.liquidity_concurrency),
        log_level=_env_str(env, "GRAVESHIFT_LOG_LEVEL", defaults.log_level).upper(),
        log_json=_env_str(env, "GRAVESHIFT_LOG_JSON", "false").lower() == "true",
        log_dir=(env.get("GRAVESHIFT_LOG_DIR") or "").strip() or None,
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
    )
