"""
Error taxonomy for the places service.

Caller-facing errors derive from PlacesServiceError and carry the HTTP
status they render with. Upstream provider errors derive from UpstreamError
and never leave the service layer as-is: the resolver either recovers from
them with a cached copy or converts them into a caller-facing error.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes returned to callers."""

    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    UNAVAILABLE = "UNAVAILABLE"
    INTERNAL = "INTERNAL"


class PlacesServiceError(Exception):
    """Base exception for errors surfaced to the caller."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code


class InvalidArgumentError(PlacesServiceError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.INVALID_ARGUMENT,
            details=details,
            status_code=400
        )


class UnauthenticatedError(PlacesServiceError):
    def __init__(self, message: str = "Caller must be authenticated"):
        super().__init__(
            message=message,
            error_code=ErrorCode.UNAUTHENTICATED,
            status_code=401
        )


class PermissionDeniedError(PlacesServiceError):
    def __init__(self, message: str = "Caller not found or inactive", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.PERMISSION_DENIED,
            details=details,
            status_code=403
        )


class PlaceNotFoundError(PlacesServiceError):
    """Raised when the provider reports the id does not exist and nothing is cached."""

    def __init__(self, place_id: str):
        super().__init__(
            message=f"Place '{place_id}' was not found",
            error_code=ErrorCode.NOT_FOUND,
            details={"place_id": place_id},
            status_code=404
        )


class ServiceUnavailableError(PlacesServiceError):
    """Raised when the provider failed transiently and there is no cached fallback."""

    def __init__(self, message: str = "Service temporarily unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.UNAVAILABLE,
            details=details,
            status_code=503
        )


class InternalError(PlacesServiceError):
    def __init__(self, message: str = "Internal server error", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.INTERNAL,
            details=details,
            status_code=500
        )


class RecordNotFoundError(KeyError):
    """Raised by a record store when an update targets a missing place id."""

    def __init__(self, place_id: str):
        super().__init__(place_id)
        self.place_id = place_id


# --- Upstream provider errors ---

class UpstreamErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    ACCESS_DENIED = "access_denied"
    TRANSIENT = "transient"


class UpstreamError(Exception):
    """Base exception for a failed place details lookup."""

    kind: UpstreamErrorKind = UpstreamErrorKind.TRANSIENT

    def __init__(self, message: str, status: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status

    @property
    def is_transient(self) -> bool:
        return self.kind != UpstreamErrorKind.NOT_FOUND


class UpstreamNotFoundError(UpstreamError):
    kind = UpstreamErrorKind.NOT_FOUND


class UpstreamRateLimitedError(UpstreamError):
    kind = UpstreamErrorKind.RATE_LIMITED


class UpstreamAccessDeniedError(UpstreamError):
    kind = UpstreamErrorKind.ACCESS_DENIED


class UpstreamTransientError(UpstreamError):
    kind = UpstreamErrorKind.TRANSIENT
