"""
Product API Exceptions

Typed failures surfaced by the read and write paths.
Every failure reaches the caller as one of these kinds; nothing is
silently defaulted, and the original error is preserved as __cause__.
"""

from typing import Any, Dict, Optional


class ProductServiceError(Exception):
    """Base exception for all product service failures."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class InvalidArgument(ProductServiceError):
    """Raised for malformed input. No I/O has been attempted."""

    status_code = 400

    def __init__(
        self,
        message: str = "Invalid argument",
        field: Optional[str] = None,
        value: Optional[Any] = None,
        errors: Optional[list] = None,
    ):
        details: Dict[str, Any] = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        if errors:
            details["errors"] = errors

        super().__init__(
            message=message, error_code="INVALID_ARGUMENT", details=details
        )


class NotFound(ProductServiceError):
    """Raised when the authoritative store has no matching row."""

    status_code = 404

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            message=f"{entity} {entity_id} not found",
            error_code="NOT_FOUND",
            details={"entity": entity, "id": entity_id},
        )


class CacheUnavailable(ProductServiceError):
    """Raised when the cache is known to be down or a cache call failed.

    Both cases share this one kind so callers keep a single failure branch.
    """

    status_code = 503

    def __init__(
        self,
        operation: str,
        key: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        details: Dict[str, Any] = {"operation": operation}
        if key:
            details["key"] = key
        if original_error:
            details["original_error_type"] = type(original_error).__name__

        super().__init__(
            message="Cache unavailable",
            error_code="CACHE_UNAVAILABLE",
            details=details,
        )
        # Preserve exception context for debugging (exception chaining)
        if original_error:
            self.__cause__ = original_error


class StoreFailure(ProductServiceError):
    """Raised for executor-level faults: connectivity, constraints, integrity."""

    status_code = 500

    def __init__(
        self,
        message: str = "Store operation failed",
        executor: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        details: Dict[str, Any] = {}
        if executor:
            details["executor"] = executor
        if original_error:
            details["original_error_type"] = type(original_error).__name__

        super().__init__(message=message, error_code="STORE_FAILURE", details=details)
        if original_error:
            self.__cause__ = original_error


__all__ = [
    "ProductServiceError",
    "InvalidArgument",
    "NotFound",
    "CacheUnavailable",
    "StoreFailure",
]
