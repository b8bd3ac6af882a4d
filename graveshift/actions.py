"""Solana Action manifest for the resurrect endpoint, plus action payload field extraction."""

from typing import Any, Dict, List, Mapping, Optional, Union

from graveshift.assets import ETH_ADDRESS_PATTERN, ETH_SIGNATURE_PATTERN, TOKEN_ID_PATTERN
from graveshift.errors import ValidationError

ACTION_VERSION = "2.4"
RESURRECT_PATH = "/api/actions/resurrect"

FieldValue = Union[str, List[str], None]

# CAIP-2 ids for the Solana clusters an action can target
SOLANA_BLOCKCHAIN_IDS = {
    "mainnet-beta": "solana:5eykt4UsFv8P8NJdTREpY1vzqKqZKvdp",
    "devnet": "solana:EtWTRABZaYq6iMfeYKouRu166VU2xqa1",
    "testnet": "solana:4uhcVJyU9pJkvQyS88uRDiswHXSCkY3z",
}


def action_headers(cluster: str = "devnet") -> Dict[str, str]:
    """CORS and metadata headers every action response carries."""
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "GET,POST,PUT,OPTIONS",
        "Access-Control-Allow-Headers": (
            "Content-Type, Authorization, Content-Encoding, Accept-Encoding, "
            "X-Accept-Action-Version, X-Accept-Blockchain-Ids"
        ),
        "Access-Control-Expose-Headers": "X-Action-Version, X-Blockchain-Ids",
        "X-Action-Version": ACTION_VERSION,
        "X-Blockchain-Ids": SOLANA_BLOCKCHAIN_IDS.get(cluster, SOLANA_BLOCKCHAIN_IDS["devnet"]),
    }


def build_action_manifest(action_href: str, icon_url: str, cluster: str = "devnet") -> Dict[str, Any]:
    """GET payload describing the single parametrised resurrect action."""
    return {
        "type": "action",
        "title": "GraveShift: Resurrect Your Dead Ethereum Assets",
        "icon": icon_url,
        "description": (
            "Verify EVM ownership (Ethereum or Polygon) and write a real on-chain migration "
            f"record on Solana {cluster}. tokenId is required for ERC-721/ERC-1155."
        ),
        "label": "Verify + Resurrect",
        "links": {
            "actions": [
                {
                    "type": "transaction",
                    "label": "Resurrect Asset",
                    "href": action_href,
                    "parameters": [
                        {
                            "name": "ethAddress",
                            "label": "EVM owner (0x...)",
                            "required": True,
                            "pattern": ETH_ADDRESS_PATTERN,
                        },
                        {
                            "type": "select",
                            "name": "chain",
                            "label": "Source chain",
                            "required": True,
                            "options": [
                                {"label": "Ethereum", "value": "ethereum", "selected": True},
                                {"label": "Polygon", "value": "polygon"},
                            ],
                        },
                        {
                            "type": "select",
                            "name": "assetType",
                            "label": "Asset type",
                            "required": True,
                            "options": [
                                {"label": "ERC-721 NFT", "value": "erc721", "selected": True},
                                {"label": "ERC-20 token", "value": "erc20"},
                                {"label": "ERC-1155", "value": "erc1155"},
                            ],
                        },
                        {
                            "name": "contractAddress",
                            "label": "Asset contract (0x...)",
                            "required": True,
                            "pattern": ETH_ADDRESS_PATTERN,
                        },
                        {
                            "name": "tokenId",
                            "label": "Token ID (required for ERC-721/ERC-1155)",
                            "required": False,
                            "pattern": TOKEN_ID_PATTERN,
                        },
                        {
                            "type": "textarea",
                            "name": "ethSignature",
                            "label": "EVM proof signature",
                            "required": True,
                            "pattern": ETH_SIGNATURE_PATTERN,
                        },
                    ],
                }
            ]
        },
    }


def build_actions_rules() -> Dict[str, Any]:
    """actions.json routing table: everything goes through the action API."""
    return {
        "rules": [
            {"pathPattern": "/*", "apiPath": "/api/actions/*"},
            {"pathPattern": "/api/actions/**", "apiPath": "/api/actions/**"},
        ]
    }


def extract_optional_field(data: Mapping[str, FieldValue], name: str) -> Optional[str]:
    """First non-blank value for a field that may arrive as a string or a list."""
    raw = data.get(name)
    if raw is None:
        return None
    if isinstance(raw, list):
        for item in raw:
            if isinstance(item, str) and item.strip():
                return item.strip()
        return None
    if not isinstance(raw, str):
        raise ValidationError(f"Invalid field: {name}", field=name)
    return raw.strip() or None


def extract_required_field(data: Mapping[str, FieldValue], name: str) -> str:
    value = extract_optional_field(data, name)
    if not value:
        raise ValidationError(f"Missing required field: {name}", field=name)
    return value
