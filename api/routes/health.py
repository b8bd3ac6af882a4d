"""Liveness endpoint."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from graveshift import __version__
from graveshift.config import GraveshiftConfig

from api.dependencies import get_config

router = APIRouter(prefix="/api/health", tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    cluster: str


@router.get("", response_model=HealthResponse)
async def health_check(config: GraveshiftConfig = Depends(get_config)) -> HealthResponse:
    return HealthResponse(status="ok", version=__version__, cluster=config.solana_cluster)
