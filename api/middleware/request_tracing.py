"""Request tracing middleware."""
import time
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from fastapi import Request

from graveshift.logging_config import set_correlation_id

logger = logging.getLogger(__name__)


class RequestTracingMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id, echo it back and log one line per request."""

    def __init__(self, app, header_name: str = "X-Request-ID"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next) -> Response:
        incoming = request.headers.get(self.header_name)
        request_id = set_correlation_id(incoming[:64] if incoming else None)
        start = time.time()

        request.state.request_id = request_id

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.time() - start
            logger.error(f"{request.method} {request.url.path} failed after {duration:.3f}s: {e}")
            raise

        duration = time.time() - start
        response.headers[self.header_name] = request_id
        response.headers["X-Response-Time"] = f"{duration:.3f}s"

        logger.info(f"{request.method} {request.url.path} {response.status_code} {duration:.3f}s")

        return response
