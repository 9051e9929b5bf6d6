"""
Custom Exception Classes for the Meta API

This module defines the error taxonomy of the meta resource service. Every
failure of a meta operation is raised as one of these typed exceptions at
the operation boundary; the handlers in meta_api.exception_handlers are the
only place that turns them into HTTP responses.

Taxonomy -> status:
    NotFoundError         404
    ForbiddenError        403
    InvalidInputError     400
    PolicyViolationError  403
    UnsupportedError      501
    StoreFailureError     500 (400 when an add is refused)
"""

from enum import Enum
from typing import Any

from fastapi import status


class ErrorCode(str, Enum):
    """Machine-readable error codes returned in the error envelope."""

    # Meta lookup
    META_UNKNOWN_KEY = "META_UNKNOWN_KEY"
    META_NOT_VISIBLE = "META_NOT_VISIBLE"
    META_INVALID_ID = "META_INVALID_ID"
    META_PARENT_NOT_FOUND = "META_PARENT_NOT_FOUND"

    # Authorization
    META_FORBIDDEN = "META_FORBIDDEN"
    META_FORBIDDEN_CONTEXT = "META_FORBIDDEN_CONTEXT"
    META_PROTECTED = "META_PROTECTED"

    # Input
    META_INVALID_KEY = "META_INVALID_KEY"
    META_INVALID_VALUE = "META_INVALID_VALUE"
    META_INVALID_PARAMETERS = "META_INVALID_PARAMETERS"
    META_PARENT_MISMATCH = "META_PARENT_MISMATCH"

    # Unsupported / store
    META_TRASH_NOT_SUPPORTED = "META_TRASH_NOT_SUPPORTED"
    META_COULD_NOT_ADD = "META_COULD_NOT_ADD"
    META_COULD_NOT_UPDATE = "META_COULD_NOT_UPDATE"
    META_COULD_NOT_DELETE = "META_COULD_NOT_DELETE"

    # Registry
    META_DUPLICATE_KEY = "META_DUPLICATE_KEY"

    # Generic
    AUTH_FAILED = "AUTH_FAILED"
    AUTH_PERMISSION_DENIED = "AUTH_PERMISSION_DENIED"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class MetaAPIError(Exception):
    """Base exception class for all meta API errors"""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


# ============================================================================
# Lookup
# ============================================================================


class NotFoundError(MetaAPIError):
    """Raised for an unknown parent entity, meta key or entry id"""

    def __init__(
        self,
        message: str = "Resource not found",
        error_code: ErrorCode = ErrorCode.RESOURCE_NOT_FOUND,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, status.HTTP_404_NOT_FOUND, error_code, details)


# ============================================================================
# Authorization
# ============================================================================


class AuthenticationError(MetaAPIError):
    """Raised when a bearer token cannot be validated"""

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED, ErrorCode.AUTH_FAILED)


class ForbiddenError(MetaAPIError):
    """Raised when the caller is not allowed to perform the action"""

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        error_code: ErrorCode = ErrorCode.META_FORBIDDEN,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, status.HTTP_403_FORBIDDEN, error_code, details)


class PolicyViolationError(MetaAPIError):
    """Raised on an attempt to write a protected meta key"""

    def __init__(self, key: str):
        super().__init__(
            f"{key} is marked as a protected field.",
            status.HTTP_403_FORBIDDEN,
            ErrorCode.META_PROTECTED,
            {"key": key},
        )


# ============================================================================
# Input
# ============================================================================


class InvalidInputError(MetaAPIError):
    """Raised for a missing or malformed key or value, or a parent mismatch"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.META_INVALID_PARAMETERS,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, status.HTTP_400_BAD_REQUEST, error_code, details)


class UnsupportedError(MetaAPIError):
    """Raised when a delete is attempted without force"""

    def __init__(self, message: str = "Meta does not support trashing."):
        super().__init__(message, status.HTTP_501_NOT_IMPLEMENTED, ErrorCode.META_TRASH_NOT_SUPPORTED)


# ============================================================================
# Persistence
# ============================================================================


class StoreFailureError(MetaAPIError):
    """Raised when the underlying store reports a failed write"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, status_code, error_code, details)


# ============================================================================
# Registry
# ============================================================================


class DuplicateKeyError(MetaAPIError):
    """Raised when a meta key is registered twice for the same entity type"""

    def __init__(self, entity_type: str, key: str):
        super().__init__(
            f"Meta key '{key}' is already registered for {entity_type}",
            status.HTTP_409_CONFLICT,
            ErrorCode.META_DUPLICATE_KEY,
            {"entity_type": entity_type, "key": key},
        )
