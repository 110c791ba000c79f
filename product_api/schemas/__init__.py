from .product import (
    ProductRead,
    ProductWrite,
    parse_product_id,
    parse_product_write,
)

__all__ = ["ProductRead", "ProductWrite", "parse_product_id", "parse_product_write"]
