"""Dead-asset discovery endpoint."""

import logging

from fastapi import APIRouter, Depends

from graveshift.assets import normalize_evm_address
from graveshift.classifier import clamp_limit
from graveshift.errors import ValidationError
from graveshift.scanner import DeadAssetScanner

from api.dependencies import get_scanner
from api.schemas.requests import DeadAssetsRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/eth", tags=["discovery"])


@router.post("/dead-assets")
async def scan_dead_assets(
    body: DeadAssetsRequest,
    scanner: DeadAssetScanner = Depends(get_scanner),
):
    """Scan an owner's Ethereum ERC-20 and Polygon ERC-1155 holdings for dead assets."""
    if not (body.eth_address or "").strip():
        raise ValidationError("Missing required field: ethAddress", field="ethAddress")

    owner = normalize_evm_address(body.eth_address, "ethAddress")
    result = await scanner.scan(owner, clamp_limit(body.limit))
    return result.to_dict()
