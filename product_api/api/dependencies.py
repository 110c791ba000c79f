"""
FastAPI dependencies.

Components are built once in the application lifespan and kept on
app.state; routes receive them through these providers so tests can swap
them with app.dependency_overrides.
"""

from fastapi import Request

from ..infrastructure.redis.liveness import CacheLiveness
from ..services.products import ProductService


def get_product_service(request: Request) -> ProductService:
    return request.app.state.product_service


def get_cache_liveness(request: Request) -> CacheLiveness:
    return request.app.state.cache_liveness
