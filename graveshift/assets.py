"""
Asset descriptor normalisation and identity derivation.

Every downstream component works on NormalizedAssetInput; the raw request
shapes never leave this module. assetKey/assetId are pure functions of the
normalised input, so equal logical assets always map to the same id no
matter how the request was cased or padded.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from typing import Dict, Optional

from web3 import Web3

from graveshift.errors import ValidationError


ETH_ADDRESS_PATTERN = "^0x[a-fA-F0-9]{40}$"
ETH_SIGNATURE_PATTERN = "^0x[a-fA-F0-9]{130}$"
TOKEN_ID_PATTERN = "^[0-9]+$"

_ADDRESS_RE = re.compile(ETH_ADDRESS_PATTERN)
_TOKEN_ID_RE = re.compile(TOKEN_ID_PATTERN)

DEFAULT_CHAIN = "ethereum"
ASSET_TYPES = ("erc20", "erc721", "erc1155")
NON_FUNGIBLE_TYPES = frozenset({"erc721", "erc1155"})
WILDCARD_TOKEN = "*"
ASSET_ID_LENGTH = 32


@dataclass(frozen=True)
class ChainInfo:
    caip2: str
    display_name: str
    dex_chain_id: str


CHAIN_CONFIG: Dict[str, ChainInfo] = {
    "ethereum": ChainInfo(caip2="eip155:1", display_name="Ethereum Mainnet", dex_chain_id="ethereum"),
    "polygon": ChainInfo(caip2="eip155:137", display_name="Polygon PoS", dex_chain_id="polygon"),
}


@dataclass(frozen=True)
class NormalizedAssetInput:
    """Canonical asset descriptor: checksum addresses, decimal token id."""
    chain: str
    eth_address: str
    asset_type: str
    contract_address: str
    token_id: Optional[str] = None

    @property
    def chain_info(self) -> ChainInfo:
        return CHAIN_CONFIG[self.chain]

    @property
    def asset_key(self) -> str:
        return build_asset_key(self)

    @property
    def asset_id(self) -> str:
        return asset_id_for_key(self.asset_key)


def normalize_asset_chain(value: Optional[str]) -> str:
    normalized = (value or "").strip().lower()
    if not normalized:
        return DEFAULT_CHAIN
    if normalized in CHAIN_CONFIG:
        return normalized
    raise ValidationError("chain must be either 'ethereum' or 'polygon'", field="chain")


def normalize_asset_type(value: Optional[str]) -> str:
    normalized = (value or "").strip().lower()
    if normalized in ASSET_TYPES:
        return normalized
    raise ValidationError("assetType must be either 'erc20', 'erc721', or 'erc1155'", field="assetType")


def is_evm_address(value: Optional[str]) -> bool:
    return isinstance(value, str) and bool(_ADDRESS_RE.match(value.strip()))


def normalize_evm_address(value: Optional[str], field_name: str) -> str:
    """Return the EIP-55 checksum form of a 20-byte hex address."""
    if not is_evm_address(value):
        raise ValidationError(f"Invalid {field_name} address", field=field_name)
    return Web3.to_checksum_address(value.strip().lower())


def normalize_token_id(value: Optional[str]) -> Optional[str]:
    """Canonical base-10 form of a token id; blank means absent."""
    if value is None:
        return None
    trimmed = str(value).strip()
    if not trimmed:
        return None
    if not _TOKEN_ID_RE.match(trimmed):
        raise ValidationError("tokenId must be a non-negative integer", field="tokenId")
    return str(int(trimmed))


def normalize_asset_input(
    *,
    eth_address: Optional[str],
    asset_type: Optional[str],
    contract_address: Optional[str],
    chain: Optional[str] = None,
    token_id: Optional[str] = None,
) -> NormalizedAssetInput:
    """Validate raw request strings and produce the canonical descriptor.

    Raises:
        ValidationError: naming the first offending field.
    """
    normalized_chain = normalize_asset_chain(chain)
    normalized_type = normalize_asset_type(asset_type)
    normalized_token = normalize_token_id(token_id)

    if normalized_type in NON_FUNGIBLE_TYPES and normalized_token is None:
        raise ValidationError("tokenId is required for ERC-721 and ERC-1155 assets", field="tokenId")

    return NormalizedAssetInput(
        chain=normalized_chain,
        eth_address=normalize_evm_address(eth_address, "ethAddress"),
        asset_type=normalized_type,
        contract_address=normalize_evm_address(contract_address, "contractAddress"),
        token_id=normalized_token,
    )


def build_asset_key(asset: NormalizedAssetInput) -> str:
    token_segment = asset.token_id if asset.token_id is not None else WILDCARD_TOKEN
    return ":".join([
        CHAIN_CONFIG[asset.chain].caip2,
        asset.asset_type,
        asset.contract_address.lower(),
        token_segment,
        asset.eth_address.lower(),
    ])


def asset_id_for_key(asset_key: str) -> str:
    """First 32 hex chars of sha256(assetKey); short enough for a PDA seed."""
    return hashlib.sha256(asset_key.encode("utf-8")).hexdigest()[:ASSET_ID_LENGTH]
