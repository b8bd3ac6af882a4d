"""Request bodies for the discovery, verification and action endpoints.

Fields are deliberately loose strings; the domain normaliser owns the
format checks so every endpoint reports the same field-specific messages.
"""
from typing import Any, Dict, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class DeadAssetsRequest(BaseModel):
    """POST /api/eth/dead-assets."""
    model_config = ConfigDict(populate_by_name=True)

    eth_address: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("ethAddress", "ownerAddress"),
        description="EVM owner address (0x + 40 hex)",
    )
    limit: Optional[Union[float, str]] = Field(
        None,
        description="Max dead assets to return; truncated and clamped to [1, 100]",
    )


class VerifyAssetRequest(BaseModel):
    """POST /api/eth/verify."""
    model_config = ConfigDict(populate_by_name=True)

    chain: Optional[str] = Field(None, examples=["ethereum", "polygon"])
    eth_address: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("ethAddress", "ownerAddress"),
    )
    asset_type: Optional[str] = Field(None, alias="assetType", examples=["erc20", "erc721", "erc1155"])
    contract_address: Optional[str] = Field(None, alias="contractAddress")
    token_id: Optional[Union[str, int]] = Field(None, alias="tokenId")


class ActionPostRequest(BaseModel):
    """Solana Action POST: the signer's account plus the filled-in parameters."""
    account: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
