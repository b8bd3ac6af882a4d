"""Ownership verification endpoint."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from graveshift.assets import normalize_asset_input
from graveshift.errors import GraveshiftError, ValidationError, VerificationFailed
from graveshift.ownership import OwnershipVerifier

from api.dependencies import get_verifier
from api.errors import error_response
from api.schemas.requests import VerifyAssetRequest

router = APIRouter(prefix="/api/eth", tags=["verification"])


def _required(value, name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"Missing required field: {name}", field=name)
    return str(value)


@router.post("/verify")
async def verify_asset(
    body: VerifyAssetRequest,
    verifier: OwnershipVerifier = Depends(get_verifier),
):
    try:
        asset = normalize_asset_input(
            chain=body.chain,
            eth_address=_required(body.eth_address, "ethAddress"),
            asset_type=_required(body.asset_type, "assetType"),
            contract_address=_required(body.contract_address, "contractAddress"),
            token_id=None if body.token_id is None else str(body.token_id),
        )
    except GraveshiftError as e:
        return error_response(e, verified=False)

    result = await verifier.verify(asset)
    if not result.verified:
        return error_response(
            VerificationFailed(result.reason or "Ownership verification failed"),
            verified=False,
        )
    return JSONResponse(content=result.to_dict())
