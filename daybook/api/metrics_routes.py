"""Prometheus metrics and health endpoints"""
import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Request
from fastapi.responses import Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from daybook.api.models import HealthCheckResponse
from daybook.monitoring import update_pool_metrics

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/metrics")
async def metrics_endpoint(request: Request):
    """Expose Prometheus metrics"""
    database = getattr(request.app.state.container.store, "database", None)
    if database is not None:
        stats = database.pool_stats()
        if stats:
            update_pool_metrics(stats.get("pool_size", 0), stats.get("pool_available", 0))

    try:
        return Response(
            content=generate_latest(),
            media_type=CONTENT_TYPE_LATEST
        )
    except Exception as e:
        logger.error(f"Error generating metrics: {e}", exc_info=True)
        return Response(
            content="Error generating metrics",
            status_code=500
        )


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(request: Request):
    """Health check endpoint"""
    database = getattr(request.app.state.container.store, "database", None)

    if database is None:
        db_status = "in-memory"
    else:
        try:
            async with database.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute("SELECT 1")
                    await cur.fetchone()
            db_status = "connected"
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            db_status = "disconnected"

    return HealthCheckResponse(
        status="degraded" if db_status == "disconnected" else "healthy",
        database=db_status,
        timestamp=datetime.now(timezone.utc)
    )
