"""
Products API endpoints

- GET /products: replica, no cache
- GET /products/{id}: cache-aside read, X-Cache header
- POST /products: primary insert
- PUT /products/{id}: primary update then cache invalidation

Failures are raised as ProductServiceError subclasses and rendered by the
application's exception handler (400/404/503/500).
"""

from typing import Any, List

from fastapi import APIRouter, Body, Depends, Response

from ...schemas.product import ProductRead
from ...services.products import ProductService
from ..dependencies import get_product_service

router = APIRouter()

CACHE_STATUS_HEADER = "X-Cache"


@router.get("/products", response_model=List[ProductRead])
async def list_products(service: ProductService = Depends(get_product_service)):
    """List all products from the replica, ordered by id."""
    return await service.list_products()


@router.get("/products/{product_id}", response_model=ProductRead)
async def get_product(
    product_id: str,
    response: Response,
    service: ProductService = Depends(get_product_service),
):
    """
    Get one product through the cache.

    Args:
        product_id: Positive integer id, as sent in the path
        response: Used to set the X-Cache header

    Returns:
        The product, tagged HIT or MISS in X-Cache
    """
    product, cache_status = await service.get_product(product_id)
    response.headers[CACHE_STATUS_HEADER] = cache_status.value
    return product


@router.post("/products", response_model=ProductRead, status_code=201)
async def create_product(
    payload: Any = Body(None),
    service: ProductService = Depends(get_product_service),
):
    """Create a product on the primary. Expects { name, price_cents:int }."""
    return await service.create_product(payload)


@router.put("/products/{product_id}", response_model=ProductRead)
async def update_product(
    product_id: str,
    payload: Any = Body(None),
    service: ProductService = Depends(get_product_service),
):
    """
    Update a product on the primary and invalidate its cache entry.

    A 503 returned after the write means the update is committed but the
    cache may keep serving the previous value until its TTL expires.
    """
    return await service.update_product(product_id, payload)
