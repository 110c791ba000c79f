"""
Product Service

Read path and write path for products over a primary/replica store with a
cache-aside Redis layer.

Consistency contract (weak, by construction):
- single-product reads are served from the cache when present, otherwise
  from the replica, and the replica row is then cached with a TTL;
- updates go to the primary and then invalidate the cache key; they never
  repopulate it;
- a read that started before an update's invalidation may still cache the
  pre-update row from a lagging replica. That entry lives until its TTL
  expires or the next update invalidates it. No lock prevents this.
"""

from enum import Enum
from typing import Any, List, Mapping, Tuple, Union

import structlog
from pydantic import ValidationError

from ..core.config import CacheFailurePolicy
from ..core.exceptions import CacheUnavailable, NotFound
from ..monitoring.metrics import CACHE_INVALIDATIONS, CACHE_LOOKUPS
from ..repositories.product import ProductReadRepository, ProductWriteRepository
from ..schemas.product import (
    ProductRead,
    ProductWrite,
    parse_product_id,
    parse_product_write,
)
from .cache.cache_aside import CacheAsideEngine

logger = structlog.get_logger()


class CacheStatus(str, Enum):
    """Value of the X-Cache response header."""

    HIT = "HIT"
    MISS = "MISS"
    # Served without the cache under the fail_open policy
    BYPASS = "BYPASS"


class ProductService:
    """Orchestrates cache, replica reads and primary writes for products."""

    def __init__(
        self,
        read_repository: ProductReadRepository,
        write_repository: ProductWriteRepository,
        cache: CacheAsideEngine,
        ttl_seconds: int,
        failure_policy: CacheFailurePolicy = CacheFailurePolicy.FAIL_CLOSED,
        entity_type: str = "product",
    ):
        self.read_repository = read_repository
        self.write_repository = write_repository
        self.cache = cache
        self.ttl_seconds = ttl_seconds
        self.failure_policy = failure_policy
        self.entity_type = entity_type

    @property
    def fail_open(self) -> bool:
        return self.failure_policy is CacheFailurePolicy.FAIL_OPEN

    def cache_key(self, product_id: int) -> str:
        return self.cache.key_for(self.entity_type, product_id)

    async def list_products(self) -> List[ProductRead]:
        """All products from the replica. Never cached."""
        return await self.read_repository.list()

    async def get_product(
        self, raw_id: Union[str, int]
    ) -> Tuple[ProductRead, CacheStatus]:
        """
        Read one product through the cache. An unreadable cached value is
        treated as a miss and overwritten.

        Raises:
            InvalidArgument: Malformed id, nothing was touched
            CacheUnavailable: Cache down or a cache call failed (fail_closed)
            NotFound: Replica has no such row; nothing is cached
            StoreFailure: Replica query failed
        """
        product_id = parse_product_id(raw_id)
        key = self.cache_key(product_id)

        try:
            cached, found = await self.cache.fetch(key)
        except CacheUnavailable:
            if not self.fail_open:
                CACHE_LOOKUPS.labels(outcome="unavailable").inc()
                raise
            return await self._read_bypassing_cache(product_id)

        if found:
            try:
                product = ProductRead.model_validate_json(cached)
            except ValidationError as e:
                # Unreadable entry: served as a miss and overwritten below
                CACHE_LOOKUPS.labels(outcome="corrupt").inc()
                logger.warning(
                    "Discarding unreadable cache entry",
                    product_id=product_id,
                    key=key,
                    error_count=e.error_count(),
                )
            else:
                CACHE_LOOKUPS.labels(outcome="hit").inc()
                logger.debug("Product served from cache", product_id=product_id)
                return product, CacheStatus.HIT

        product = await self.read_repository.get(product_id)
        if product is None:
            CACHE_LOOKUPS.labels(outcome="miss").inc()
            raise NotFound(self.entity_type, product_id)

        try:
            await self.cache.store(key, product.model_dump_json(), self.ttl_seconds)
        except CacheUnavailable:
            if not self.fail_open:
                CACHE_LOOKUPS.labels(outcome="unavailable").inc()
                raise
            CACHE_LOOKUPS.labels(outcome="bypass").inc()
            return product, CacheStatus.BYPASS

        CACHE_LOOKUPS.labels(outcome="miss").inc()
        logger.debug(
            "Product cached from replica",
            product_id=product_id,
            ttl_seconds=self.ttl_seconds,
        )
        return product, CacheStatus.MISS

    async def _read_bypassing_cache(
        self, product_id: int
    ) -> Tuple[ProductRead, CacheStatus]:
        logger.warning("Serving product without cache", product_id=product_id)
        product = await self.read_repository.get(product_id)
        if product is None:
            raise NotFound(self.entity_type, product_id)
        CACHE_LOOKUPS.labels(outcome="bypass").inc()
        return product, CacheStatus.BYPASS

    async def create_product(
        self, attrs: Union[ProductWrite, Mapping[str, Any], None]
    ) -> ProductRead:
        """Insert on the primary. Nothing is cached under a new id yet."""
        data = parse_product_write(attrs)
        return await self.write_repository.create(data)

    async def update_product(
        self,
        raw_id: Union[str, int],
        attrs: Union[ProductWrite, Mapping[str, Any], None],
    ) -> ProductRead:
        """
        Update on the primary, then invalidate the cache key.

        Raises:
            InvalidArgument: Malformed id or body, nothing was touched
            CacheUnavailable: Cache known down before the write (no write
                issued), or invalidation failed after the write committed
                (the write stands; the old entry may survive until its TTL)
            NotFound: No row with this id; no invalidation issued
            StoreFailure: Primary query failed
        """
        product_id = parse_product_id(raw_id)
        data = parse_product_write(attrs)
        key = self.cache_key(product_id)

        if not self.fail_open:
            self.cache.require_live("update")

        product = await self.write_repository.update(product_id, data)
        if product is None:
            raise NotFound(self.entity_type, product_id)

        try:
            await self.cache.invalidate(key)
        except CacheUnavailable:
            CACHE_INVALIDATIONS.labels(outcome="failed").inc()
            logger.warning(
                "Product updated but cache invalidation failed",
                product_id=product_id,
                key=key,
                policy=self.failure_policy.value,
            )
            if not self.fail_open:
                raise
        else:
            CACHE_INVALIDATIONS.labels(outcome="ok").inc()

        return product
