"""API middleware for rate limiting, CORS and request metrics"""
import logging
import time
from typing import Callable
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from daybook.config import CORS_ORIGINS
from daybook.monitoring import metrics, record_request

logger = logging.getLogger(__name__)

# Initialize rate limiter
limiter = Limiter(key_func=get_remote_address)


def setup_cors(app):
    """Configure CORS middleware"""
    cors_origins = [origin.strip() for origin in CORS_ORIGINS.split(",") if origin.strip()]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    logger.info(f"CORS configured for origins: {cors_origins}")


def setup_rate_limiting(app):
    """Configure rate limiting"""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    logger.info("Rate limiting configured (per-route limits, keyed by client IP)")


def normalize_path(path: str) -> str:
    """
    Collapse numeric ids and date keys so metric labels stay bounded.

    /api/v1/tasks/12/toggle -> /api/v1/tasks/{id}/toggle
    /api/v1/snapshots/2024-01-05 -> /api/v1/snapshots/{date}
    """
    parts = []
    for part in path.strip("/").split("/"):
        if part.isdigit():
            parts.append("{id}")
        elif len(part) == 10 and part[4] == "-" and part[7] == "-" and part.replace("-", "").isdigit():
            parts.append("{date}")
        else:
            parts.append(part)
    return "/" + "/".join(parts)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Records count, latency and errors of every HTTP request"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        method = request.method
        path = normalize_path(request.url.path)
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception as e:
            record_request(method, path, 500, time.time() - start_time, error_type=type(e).__name__)
            raise

        error_type = f"http_{response.status_code}" if response.status_code >= 400 else None
        record_request(method, path, response.status_code, time.time() - start_time, error_type=error_type)
        return response


def setup_metrics_middleware(app):
    """Add request metrics middleware when Prometheus is enabled"""
    if not metrics.enabled:
        logger.info("Metrics collection is disabled (ENABLE_PROMETHEUS=false)")
        return

    app.add_middleware(MetricsMiddleware)
    logger.info("Prometheus metrics middleware added to FastAPI")
