"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    DuplicateError,
    ExternalServiceError,
    DatabaseError,

    # Feed
    FetchTimeout,
    FetchFailed,
    NetworkError,
    MalformedFeed,
    UnexpectedShape,
    FeedFileMissingError,

    # Mapping
    MappingError,

    # Text generation
    ProviderNotConfiguredError,
    ProviderCallFailed,
    ProviderResponseUnparseable,

    # Catalog
    CategoryCreateConflict,
    BrandCreateConflict,
    ProductHandleExistsError,
    UpsertFailed,

    # Import sessions
    ImportSessionNotFoundError,
    InvalidSessionStateError,
    ImportConfigNotFoundError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "DuplicateError",
    "ExternalServiceError",
    "DatabaseError",

    # Feed
    "FetchTimeout",
    "FetchFailed",
    "NetworkError",
    "MalformedFeed",
    "UnexpectedShape",
    "FeedFileMissingError",

    # Mapping
    "MappingError",

    # Text generation
    "ProviderNotConfiguredError",
    "ProviderCallFailed",
    "ProviderResponseUnparseable",

    # Catalog
    "CategoryCreateConflict",
    "BrandCreateConflict",
    "ProductHandleExistsError",
    "UpsertFailed",

    # Import sessions
    "ImportSessionNotFoundError",
    "InvalidSessionStateError",
    "ImportConfigNotFoundError",
]
