"""
Repository Pattern Implementation

Read repositories are bound to the replica executor and write repositories
to the primary executor.
"""

from .product import ProductReadRepository, ProductWriteRepository

__all__ = [
    "ProductReadRepository",
    "ProductWriteRepository",
]
