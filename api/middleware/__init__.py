"""API Middleware modules."""
from api.middleware.body_limit import BodySizeLimitMiddleware
from api.middleware.request_tracing import RequestTracingMiddleware

__all__ = [
    "BodySizeLimitMiddleware",
    "RequestTracingMiddleware",
]
