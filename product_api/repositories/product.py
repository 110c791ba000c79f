"""
Product Repositories

Read statements run on the replica executor, write statements on the
primary executor. The two never mix: a read repository has no way to reach
the primary.
"""

from typing import List, Optional

import structlog
from sqlalchemy import insert, select, update
from sqlalchemy.sql import func

from ..core.database import QueryExecutor
from ..core.exceptions import StoreFailure
from ..models import products_table
from ..schemas.product import ProductRead, ProductWrite

logger = structlog.get_logger()


class ProductReadRepository:
    """Replica-backed product queries. Results may lag the primary."""

    def __init__(self, executor: QueryExecutor):
        self.executor = executor

    async def get(self, product_id: int) -> Optional[ProductRead]:
        """
        Get a product by primary key.

        Returns:
            The product, or None when the replica has no such row

        Raises:
            StoreFailure: On executor errors, or if the key matches several rows
        """
        stmt = select(products_table).where(products_table.c.id == product_id)
        rows = await self.executor.execute(stmt)

        if len(rows) > 1:
            logger.error(
                "Repository: Primary key lookup returned several rows",
                product_id=product_id,
                row_count=len(rows),
            )
            raise StoreFailure(
                message=f"Expected one row for product {product_id}, got {len(rows)}",
                executor=self.executor.name,
            )
        if not rows:
            return None

        return ProductRead.model_validate(rows[0])

    async def list(self) -> List[ProductRead]:
        """List all products ordered by id."""
        stmt = select(products_table).order_by(products_table.c.id.asc())
        rows = await self.executor.execute(stmt)

        logger.debug("Repository: Products listed", count=len(rows))
        return [ProductRead.model_validate(row) for row in rows]


class ProductWriteRepository:
    """Primary-backed product mutations. Each call is one committed statement."""

    def __init__(self, executor: QueryExecutor):
        self.executor = executor

    async def create(self, data: ProductWrite) -> ProductRead:
        """Insert a product and return the stored row with its assigned id."""
        stmt = (
            insert(products_table)
            .values(
                name=data.name,
                price_cents=data.price_cents,
                updated_at=func.now(),
            )
            .returning(*products_table.c)
        )
        rows = await self.executor.execute(stmt)
        if len(rows) != 1:
            raise StoreFailure(
                message="Insert did not return the created row",
                executor=self.executor.name,
            )

        product = ProductRead.model_validate(rows[0])
        logger.info("Repository: Product created", product_id=product.id)
        return product

    async def update(self, product_id: int, data: ProductWrite) -> Optional[ProductRead]:
        """
        Set name and price, refresh updated_at.

        Returns:
            The updated row, or None if no row has this id
        """
        stmt = (
            update(products_table)
            .where(products_table.c.id == product_id)
            .values(
                name=data.name,
                price_cents=data.price_cents,
                updated_at=func.now(),
            )
            .returning(*products_table.c)
        )
        rows = await self.executor.execute(stmt)
        if not rows:
            return None

        product = ProductRead.model_validate(rows[0])
        logger.info("Repository: Product updated", product_id=product.id)
        return product
