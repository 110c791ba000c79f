"""
Product schemas and input validation.

ProductWrite validates create/update bodies; ProductRead is both the API
response shape and the serialized form stored in the cache.
"""

from datetime import datetime
from typing import Any, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, ValidationError

from ..core.exceptions import InvalidArgument

# Primary keys are PostgreSQL `integer` values.
MAX_PRODUCT_ID = 2**31 - 1
MIN_PRICE_CENTS = -(2**63)
MAX_PRICE_CENTS = 2**63 - 1


class ProductWrite(BaseModel):
    """Body of POST /products and PUT /products/{id}."""

    model_config = ConfigDict(extra="ignore")

    name: StrictStr = Field(..., min_length=1, description="Product name")
    price_cents: StrictInt = Field(
        ...,
        ge=MIN_PRICE_CENTS,
        le=MAX_PRICE_CENTS,
        description="Price in minor currency units",
    )


class ProductRead(BaseModel):
    """Authoritative product row as returned by the store."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price_cents: int
    updated_at: datetime


def parse_product_id(raw: Union[str, int, None]) -> int:
    """Validate a product key: a positive integer that fits the id column.

    Accepts an int or a string of ASCII digits. Raises InvalidArgument otherwise.
    """
    if isinstance(raw, bool):
        raise InvalidArgument("Invalid id", field="id", value=raw)

    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str) and raw.isascii() and raw.isdigit():
        value = int(raw)
    else:
        raise InvalidArgument("Invalid id", field="id", value=raw)

    if value < 1 or value > MAX_PRODUCT_ID:
        raise InvalidArgument("Invalid id", field="id", value=raw)
    return value


def parse_product_write(attrs: Union[ProductWrite, Mapping[str, Any], None]) -> ProductWrite:
    """Validate create/update attributes. Raises InvalidArgument on bad input."""
    if isinstance(attrs, ProductWrite):
        return attrs
    if not isinstance(attrs, Mapping):
        raise InvalidArgument("Expected { name, price_cents:int }")

    try:
        return ProductWrite.model_validate(dict(attrs))
    except ValidationError as e:
        raise InvalidArgument(
            "Expected { name, price_cents:int }",
            errors=[
                {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                for err in e.errors()
            ],
        ) from e


__all__ = [
    "ProductWrite",
    "ProductRead",
    "parse_product_id",
    "parse_product_write",
    "MAX_PRODUCT_ID",
]
