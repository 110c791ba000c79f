"""
Health and metrics endpoints.

/health reports process liveness plus the current cache liveness snapshot.
It never touches Redis or the databases and never fails.
"""

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ...infrastructure.redis.liveness import CacheLiveness
from ..dependencies import get_cache_liveness

router = APIRouter()


@router.get("/health")
async def health(liveness: CacheLiveness = Depends(get_cache_liveness)):
    return {"ok": True, "cacheLive": liveness.is_live}


@router.get("/metrics")
async def metrics():
    """Prometheus exposition of the default registry."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
