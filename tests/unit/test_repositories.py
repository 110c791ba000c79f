"""
Unit tests for product repositories against a mocked executor.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from product_api.core.exceptions import StoreFailure
from product_api.repositories.product import (
    ProductReadRepository,
    ProductWriteRepository,
)
from product_api.schemas.product import ProductWrite

from tests.conftest import EPOCH


def row(product_id=7, name="Widget", price_cents=999):
    return {
        "id": product_id,
        "name": name,
        "price_cents": price_cents,
        "updated_at": EPOCH,
    }


@pytest.fixture
def executor():
    mock = MagicMock()
    mock.name = "replica"
    mock.execute = AsyncMock(return_value=[])
    return mock


def executed_sql(executor) -> str:
    statement = executor.execute.call_args[0][0]
    return str(statement).upper()


class TestProductReadRepository:
    @pytest.mark.asyncio
    async def test_get_found(self, executor):
        executor.execute.return_value = [row()]

        product = await ProductReadRepository(executor).get(7)

        assert product.id == 7
        assert product.name == "Widget"
        sql = executed_sql(executor)
        assert sql.startswith("SELECT")
        assert "WHERE PRODUCTS.ID" in sql

    @pytest.mark.asyncio
    async def test_get_missing(self, executor):
        assert await ProductReadRepository(executor).get(7) is None

    @pytest.mark.asyncio
    async def test_get_several_rows_is_integrity_fault(self, executor):
        executor.execute.return_value = [row(), row()]

        with pytest.raises(StoreFailure) as exc_info:
            await ProductReadRepository(executor).get(7)

        assert exc_info.value.details["executor"] == "replica"

    @pytest.mark.asyncio
    async def test_list_orders_by_id(self, executor):
        executor.execute.return_value = [row(1), row(2)]

        products = await ProductReadRepository(executor).list()

        assert [p.id for p in products] == [1, 2]
        assert "ORDER BY PRODUCTS.ID ASC" in executed_sql(executor)

    @pytest.mark.asyncio
    async def test_executor_failure_propagates(self, executor):
        executor.execute.side_effect = StoreFailure(executor="replica")

        with pytest.raises(StoreFailure):
            await ProductReadRepository(executor).list()


class TestProductWriteRepository:
    @pytest.mark.asyncio
    async def test_create_returns_row(self, executor):
        executor.execute.return_value = [row(7)]

        product = await ProductWriteRepository(executor).create(
            ProductWrite(name="Widget", price_cents=999)
        )

        assert product.id == 7
        sql = executed_sql(executor)
        assert sql.startswith("INSERT INTO PRODUCTS")
        assert "RETURNING" in sql

    @pytest.mark.asyncio
    async def test_create_without_returned_row(self, executor):
        with pytest.raises(StoreFailure):
            await ProductWriteRepository(executor).create(
                ProductWrite(name="Widget", price_cents=999)
            )

    @pytest.mark.asyncio
    async def test_update_returns_row(self, executor):
        executor.execute.return_value = [row(7, "Widget2", 1099)]

        product = await ProductWriteRepository(executor).update(
            7, ProductWrite(name="Widget2", price_cents=1099)
        )

        assert (product.name, product.price_cents) == ("Widget2", 1099)
        sql = executed_sql(executor)
        assert sql.startswith("UPDATE PRODUCTS SET")
        assert "UPDATED_AT=NOW()" in sql.replace(" ", "")
        assert "RETURNING" in sql

    @pytest.mark.asyncio
    async def test_update_no_rows(self, executor):
        product = await ProductWriteRepository(executor).update(
            7, ProductWrite(name="Widget2", price_cents=1099)
        )

        assert product is None
