from __future__ import annotations

from typing import Any, Dict, Optional


class CatalogException(Exception):
    """
    Base exception for catalog errors.

    Carries everything the HTTP layer needs to answer the caller:
    - attributes: message/code/status_code/details/user_message
    - method: to_dict()
    """

    def __init__(
        self,
        message: str,
        *,
        code: str = "CATALOG_ERROR",
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
    ) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details: Dict[str, Any] = details or {}
        self.user_message = user_message or message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "user_message": self.user_message,
            "details": self.details,
        }

    def __str__(self) -> str:  # pragma: no cover
        return self.message


class NotFoundError(CatalogException):
    def __init__(self, app_id: str, **kwargs: Any):
        details: Dict[str, Any] = {"id": app_id}
        details.update(kwargs)
        super().__init__(
            message="App not found",
            code="NOT_FOUND",
            status_code=404,
            details=details,
        )


class DuplicateIdError(CatalogException):
    def __init__(self, app_id: str, **kwargs: Any):
        details: Dict[str, Any] = {"id": app_id}
        details.update(kwargs)
        super().__init__(
            message="App id already exists",
            code="DUPLICATE_ID",
            status_code=409,
            details=details,
        )


class MissingFieldError(CatalogException):
    def __init__(self, fields: list[str], **kwargs: Any):
        details: Dict[str, Any] = {"fields": list(fields)}
        details.update(kwargs)
        super().__init__(
            message=f"{', '.join(fields)} required",
            code="MISSING_FIELD",
            status_code=400,
            details=details,
            user_message="id, name, and downloadUrl are required",
        )


class InvalidRatingError(CatalogException):
    def __init__(self, value: Any = None, **kwargs: Any):
        details: Dict[str, Any] = {"value": value if _is_plain(value) else repr(value)}
        details.update(kwargs)
        super().__init__(
            message="rating must be between 1 and 5",
            code="INVALID_RATING",
            status_code=400,
            details=details,
        )


class StoreFailure(CatalogException):
    def __init__(self, message: str, backend: Optional[str] = None, **kwargs: Any):
        details: Dict[str, Any] = {"backend": backend} if backend else {}
        details.update(kwargs)
        super().__init__(
            message=message,
            code="STORE_FAILURE",
            status_code=500,
            details=details,
            user_message="Catalog store is unavailable",
        )


class ConfigurationError(CatalogException):
    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs: Any):
        details: Dict[str, Any] = {"config_key": config_key} if config_key else {}
        details.update(kwargs)
        super().__init__(
            message=message,
            code="CONFIGURATION_ERROR",
            status_code=500,
            details=details,
            user_message="System configuration error",
        )


def _is_plain(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))
