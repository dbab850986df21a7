"""
Custom exception hierarchy for the storefront catalog backend.

All application errors inherit from StorefrontError so routes and the global
handler can catch and render them uniformly.

Exception Hierarchy:
    StorefrontError (base)
    ├── ValidationError
    ├── ResourceNotFoundError
    └── ExternalServiceError
        ├── CatalogUnavailableError
        └── StorageServiceError

Lookups that legitimately find nothing return None or an empty list; they do
not raise ResourceNotFoundError. That error is for the HTTP layer, where a
missing category or subcategory becomes a 404.

Usage:
    from exceptions import CatalogUnavailableError

    try:
        categories = await store.list_categories()
    except CatalogUnavailableError as e:
        logger.error(f"Catalog backend down: {e}")
"""

from typing import Optional, Dict, Any


class StorefrontError(Exception):
    """
    Base exception for all storefront application errors.

    Attributes:
        message: Human-readable error message
        detail: Optional dict with additional error context
        status_code: Suggested HTTP status code (for API errors)
    """

    def __init__(
        self,
        message: str,
        *,
        detail: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.detail = detail
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for JSON serialization."""
        result = {
            "error": self.__class__.__name__,
            "message": self.message,
        }
        if self.detail:
            result["detail"] = self.detail
        return result


class ValidationError(StorefrontError):
    """
    Raised when request input cannot be used at all.

    Examples:
        raise ValidationError("No CSV file uploaded")
        raise ValidationError("Empty or unparseable CSV file", detail={"rows": 0})
    """

    def __init__(self, message: str, *, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message, detail=detail, status_code=400)


class ResourceNotFoundError(StorefrontError):
    """
    Raised by the HTTP layer when a routed resource doesn't exist.

    Examples:
        raise ResourceNotFoundError("Category not found", detail={"slug": "office"})
    """

    def __init__(self, message: str, *, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message, detail=detail, status_code=404)


class ExternalServiceError(StorefrontError):
    """
    Base exception for external service failures.

    This is a parent class for the catalog database and file storage errors.
    """

    def __init__(
        self,
        message: str,
        *,
        detail: Optional[Dict[str, Any]] = None,
        service_name: Optional[str] = None,
    ):
        if service_name and detail is None:
            detail = {"service": service_name}
        elif service_name and detail:
            detail["service"] = service_name

        super().__init__(message, detail=detail, status_code=502)


class CatalogUnavailableError(ExternalServiceError):
    """
    Raised when the catalog backend (categories, subcategories, products) fails.

    Examples:
        raise CatalogUnavailableError("Failed to list categories")
        raise CatalogUnavailableError("Insert failed", detail={"table": "products"})
    """

    def __init__(self, message: str, *, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message, detail=detail, service_name="catalog")


class StorageServiceError(ExternalServiceError):
    """
    Raised when storage service (disk, S3 bucket) fails.

    Examples:
        raise StorageServiceError("Failed to list product images")
        raise StorageServiceError("Bucket not found", detail={"bucket": "product-images"})
    """

    def __init__(self, message: str, *, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message, detail=detail, service_name="storage")
