"""
Custom exception classes for the application.

Feed-level errors abort an import before any product is touched.
Per-product errors are caught by the pipeline, logged and counted.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "IMPORT_SESSION_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP-style status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class DuplicateError(ConflictError):
    """Duplicate resource (409)."""

    def __init__(
        self,
        resource: str,
        field: str,
        value: str
    ):
        super().__init__(
            code=f"{resource.upper()}_{field.upper()}_EXISTS",
            message=f"{resource} with this {field} already exists",
            details={field: value}
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None,
        code: Optional[str] = None,
        status_code: int = 503
    ):
        super().__init__(
            code=code or f"{service.upper()}_ERROR",
            message=message,
            status_code=status_code,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# FEED ERRORS
# ===================

class FetchTimeout(ExternalServiceError):
    """Feed download exceeded its timeout."""

    def __init__(self, url: str, timeout_seconds: int):
        super().__init__(
            service="feed",
            code="FEED_FETCH_TIMEOUT",
            status_code=504,
            message=f"Feed download timed out after {timeout_seconds}s",
            details={"url": url, "timeout_seconds": timeout_seconds}
        )


class FetchFailed(ExternalServiceError):
    """Feed host returned an error status or an empty body."""

    def __init__(self, url: str, reason: str, status: Optional[int] = None):
        super().__init__(
            service="feed",
            code="FEED_FETCH_FAILED",
            status_code=502,
            message=f"Failed to download feed: {reason}",
            details={"url": url, "http_status": status}
        )


class NetworkError(ExternalServiceError):
    """Transport-level failure reaching a remote host."""

    def __init__(self, url: str, message: str):
        super().__init__(
            service="network",
            code="NETWORK_ERROR",
            message=message,
            details={"url": url}
        )


class MalformedFeed(ValidationError):
    """Feed body is not well-formed XML."""

    def __init__(self, message: str):
        super().__init__(
            code="FEED_MALFORMED",
            message=f"Feed is not valid XML: {message}"
        )


class UnexpectedShape(ValidationError):
    """Feed parsed but the product list is not where it should be."""

    def __init__(self, message: str = "Expected structure: offer > products > product"):
        super().__init__(
            code="FEED_UNEXPECTED_SHAPE",
            message=message
        )


class FeedFileMissingError(NotFoundError):
    """On-disk copy of the feed is gone."""

    def __init__(self, path: str):
        super().__init__(
            resource="Feed file",
            identifier=path,
            code="FEED_FILE_MISSING"
        )


# ===================
# MAPPING ERRORS
# ===================

class MappingError(ValidationError):
    """Feed record cannot be mapped to a catalog product."""

    def __init__(self, message: str, product_id: Optional[str] = None):
        super().__init__(
            code="PRODUCT_MAPPING_FAILED",
            message=message,
            details={"product_id": product_id}
        )


# ===================
# TEXT GENERATION ERRORS
# ===================

class ProviderNotConfiguredError(ValidationError):
    """Text generation provider is missing credentials or settings."""

    def __init__(self, provider: str, missing: str):
        super().__init__(
            code="PROVIDER_NOT_CONFIGURED",
            message=f"{provider} provider requires {missing}",
            details={"provider": provider}
        )


class ProviderCallFailed(ExternalServiceError):
    """Text generation call failed or timed out."""

    def __init__(self, provider: str, message: str):
        super().__init__(
            service=provider,
            code="PROVIDER_CALL_FAILED",
            message=message
        )


class ProviderResponseUnparseable(ExternalServiceError):
    """Provider replied but no structured content could be recovered."""

    def __init__(self, provider: str, preview: str = ""):
        super().__init__(
            service=provider,
            code="PROVIDER_RESPONSE_UNPARSEABLE",
            status_code=502,
            message="Provider response could not be parsed",
            details={"preview": preview[:200]}
        )


# ===================
# CATALOG ERRORS
# ===================

class CategoryCreateConflict(ConflictError):
    """Catalog refused a category because an equal one already exists."""

    def __init__(self, name: str, parent_id: Optional[str] = None):
        super().__init__(
            code="CATEGORY_ALREADY_EXISTS",
            message=f"Category '{name}' already exists",
            details={"name": name, "parent_id": parent_id}
        )


class BrandCreateConflict(ConflictError):
    """Catalog refused a brand because one with the same handle exists."""

    def __init__(self, name: str):
        super().__init__(
            code="BRAND_ALREADY_EXISTS",
            message=f"Brand '{name}' already exists",
            details={"name": name}
        )


class ProductHandleExistsError(DuplicateError):
    """Product handle already taken in the catalog."""

    def __init__(self, handle: str):
        super().__init__(
            resource="Product",
            field="handle",
            value=handle
        )
        self.handle = handle


class UpsertFailed(AppError):
    """Creating or updating a single product failed."""

    def __init__(self, handle: str, message: str):
        super().__init__(
            code="PRODUCT_UPSERT_FAILED",
            message=f"{handle}: {message}",
            status_code=500,
            details={"handle": handle}
        )


# ===================
# IMPORT SESSION ERRORS
# ===================

class ImportSessionNotFoundError(NotFoundError):
    """Import session not found."""

    def __init__(self, session_id: str):
        super().__init__(
            resource="Import session",
            identifier=session_id,
            code="IMPORT_SESSION_NOT_FOUND"
        )


class InvalidSessionStateError(ValidationError):
    """Operation not allowed in the session's current status."""

    def __init__(self, session_id: str, current: str, expected: list[str]):
        super().__init__(
            code="IMPORT_SESSION_INVALID_STATE",
            message=f"Session is '{current}', expected one of {', '.join(expected)}",
            details={"session_id": session_id, "current": current, "expected": expected}
        )


class ImportConfigNotFoundError(NotFoundError):
    """Import config not found."""

    def __init__(self, config_id: str):
        super().__init__(
            resource="Import config",
            identifier=config_id,
            code="IMPORT_CONFIG_NOT_FOUND"
        )
