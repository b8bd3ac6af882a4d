"""
Solana Action endpoints for asset resurrection.

GET returns the action manifest, OPTIONS the CORS preflight, POST the
unsigned migration transaction. Every response carries the action headers.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from graveshift.actions import RESURRECT_PATH, action_headers, build_action_manifest, build_actions_rules
from graveshift.config import GraveshiftConfig
from graveshift.resurrection import ResurrectionService

from api.dependencies import get_config, get_resurrection_service
from api.errors import error_response
from api.schemas.requests import ActionPostRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["actions"])


@router.get("/actions.json")
async def actions_rules(config: GraveshiftConfig = Depends(get_config)):
    return JSONResponse(content=build_actions_rules(), headers=action_headers(config.solana_cluster))


@router.get(RESURRECT_PATH)
async def resurrect_manifest(request: Request, config: GraveshiftConfig = Depends(get_config)):
    payload = build_action_manifest(
        action_href=str(request.url_for("resurrect_asset")),
        icon_url=f"{str(request.base_url).rstrip('/')}/favicon.ico",
        cluster=config.solana_cluster,
    )
    return JSONResponse(content=payload, headers=action_headers(config.solana_cluster))


@router.options(RESURRECT_PATH)
async def resurrect_preflight(config: GraveshiftConfig = Depends(get_config)):
    return JSONResponse(content=None, headers=action_headers(config.solana_cluster))


@router.post(RESURRECT_PATH, name="resurrect_asset")
async def resurrect_asset(
    body: ActionPostRequest,
    service: ResurrectionService = Depends(get_resurrection_service),
    config: GraveshiftConfig = Depends(get_config),
):
    headers = action_headers(config.solana_cluster)
    outcome = await service.prepare(body.account, body.data)

    if not outcome.ok:
        logger.info(f"Resurrection refused ({outcome.error.code}): {outcome.error.message}")
        return error_response(outcome.error, headers=headers)

    return JSONResponse(content=outcome.to_action_response(), headers=headers)
