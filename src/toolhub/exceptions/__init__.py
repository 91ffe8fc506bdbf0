from toolhub.exceptions.handlers import (
    CatalogException,
    ConfigurationError,
    DuplicateIdError,
    InvalidRatingError,
    MissingFieldError,
    NotFoundError,
    StoreFailure,
)

__all__ = [
    "CatalogException",
    "NotFoundError",
    "DuplicateIdError",
    "MissingFieldError",
    "InvalidRatingError",
    "StoreFailure",
    "ConfigurationError",
]
