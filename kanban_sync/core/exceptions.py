"""
Custom exceptions for the Kanban sync client
"""
from typing import Optional, Dict, Any


class APIException(Exception):
    """Base API exception class"""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "SYS_001",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class AuthenticationError(APIException):
    """Session missing or expired"""

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTH_001",
            details=details
        )


class InsufficientPermissionsError(APIException):
    """Insufficient permissions error"""

    def __init__(self, message: str = "Insufficient permissions", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=403,
            error_code="AUTH_003",
            details=details
        )


class ValidationError(APIException):
    """Validation error"""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=400,
            error_code="VAL_001",
            details=details
        )


class RequiredFieldError(APIException):
    """Required field missing error"""

    def __init__(self, field: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=f"Required field '{field}' is missing",
            status_code=400,
            error_code="VAL_002",
            details=details
        )


class InvalidFormatError(APIException):
    """Backend returned a body we cannot parse"""

    def __init__(self, message: str = "Invalid format", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=502,
            error_code="VAL_003",
            details=details
        )


class ResourceNotFoundError(APIException):
    """Resource not found error"""

    def __init__(self, resource: str = "Resource", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=f"{resource} not found",
            status_code=404,
            error_code="BIZ_001",
            details=details
        )


class DuplicateResourceError(APIException):
    """Duplicate resource error"""

    def __init__(self, resource: str = "Resource", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=f"{resource} already exists",
            status_code=409,
            error_code="BIZ_002",
            details=details
        )


class RateLimitExceededError(APIException):
    """Rate limit exceeded error"""

    def __init__(self, message: str = "Rate limit exceeded", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=429,
            error_code="SYS_003",
            details=details
        )


class NetworkError(APIException):
    """Connection refused, reset or timed out before a response arrived"""

    def __init__(self, message: str = "Network request failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=503,
            error_code="NET_001",
            details=details
        )


def error_for_status(status_code: int, message: Optional[str] = None,
                     details: Optional[Dict[str, Any]] = None) -> APIException:
    """Build the exception matching a non-success HTTP status.

    ``message`` is the backend's ``error`` text when it sent one; otherwise a
    generic message tagged with the status is used.
    """
    text = message or f"Request failed with status {status_code}"

    if status_code in (400, 422):
        return ValidationError(text, details)
    if status_code == 401:
        return AuthenticationError(text, details)
    if status_code == 403:
        return InsufficientPermissionsError(text, details)

    if status_code == 404:
        exc = ResourceNotFoundError(details=details)
    elif status_code == 409:
        exc = DuplicateResourceError(details=details)
    elif status_code == 429:
        return RateLimitExceededError(text, details)
    else:
        return APIException(text, status_code=status_code, details=details)

    exc.message = text
    exc.args = (text,)
    return exc
