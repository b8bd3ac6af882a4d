"""
FastAPI Application for GraveShift.

Main application entry point:
- Dead-asset discovery
- Ownership verification
- Solana Action for asset resurrection
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from graveshift import __version__
from graveshift.config import GraveshiftConfig, load_config
from graveshift.errors import GraveshiftError
from graveshift.logging_config import setup_logging

from api.errors import error_response, make_error_response
from api.middleware import BodySizeLimitMiddleware, RequestTracingMiddleware

logger = logging.getLogger("graveshift.api")


# =============================================================================
# Application Lifecycle
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management."""
    config: GraveshiftConfig = app.state.config
    logger.info(
        f"Starting GraveShift API {__version__} "
        f"(cluster={config.solana_cluster}, program={config.program_id})"
    )

    yield

    logger.info("Shutting down GraveShift API...")


# =============================================================================
# Application Factory
# =============================================================================


def create_app(config: Optional[GraveshiftConfig] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = config or load_config()

    app = FastAPI(
        title="GraveShift API",
        description="Dead EVM asset discovery and Solana resurrection",
        version=__version__,
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )
    app.state.config = config

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request body size limit
    app.add_middleware(BodySizeLimitMiddleware)

    # Request tracing (adds X-Request-ID)
    app.add_middleware(RequestTracingMiddleware)

    # Global exception handlers for standardized error responses
    @app.exception_handler(GraveshiftError)
    async def graveshift_exception_handler(request: Request, exc: GraveshiftError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = "Invalid request body"
        if errors:
            location = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
            message = f"Invalid field: {location}" if location else message
        return JSONResponse(status_code=400, content=make_error_response("VAL_001", message))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content=make_error_response("SYS_001", "Internal server error"),
        )

    _include_routers(app)

    return app


def _include_routers(app: FastAPI):
    """Include all API routers."""
    from api.routes.actions import router as actions_router
    from api.routes.dead_assets import router as dead_assets_router
    from api.routes.health import router as health_router
    from api.routes.verify import router as verify_router

    app.include_router(health_router)
    app.include_router(dead_assets_router)
    app.include_router(verify_router)
    app.include_router(actions_router)
    logger.debug("Included health, discovery, verification and action routes")


def main():
    import uvicorn

    config = load_config()
    setup_logging(level=config.log_level, json_format=config.log_json, log_dir=config.log_dir)
    uvicorn.run(
        create_app(config),
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", "8766")),
    )


if __name__ == "__main__":
    main()
