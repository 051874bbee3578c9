"""
Exception hierarchy for Break It Down

Exceptions are reserved for programming and configuration errors, and for
wrapping transport failures before they are turned into result messages.
Store and session failures reach the controller as result objects, never as
exceptions.

Exception Categories:
- Configuration Errors: Issues with settings or initialization
- Validation Errors: Invalid arguments passed to library code
- Resource Errors: Network or backend failures
- Session Errors: Authentication provider failures

Usage:
    from break_it_down.utils.exceptions import InvalidParameterError

    if table not in KNOWN_TABLES:
        raise InvalidParameterError("table", f"Unknown table '{table}'")
"""

from typing import Optional, Any, Dict


# ============================================================================
# Base Exception
# ============================================================================

class BreakItDownError(Exception):
    """
    Base exception for all Break It Down errors.

    All custom exceptions inherit from this class so callers can catch the
    whole family in one place.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize base exception.

        Args:
            message: Human-readable error message
            error_code: Optional error code for categorization
            details: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }

    def __str__(self) -> str:
        return self.message


# ============================================================================
# Configuration Errors
# ============================================================================

class ConfigurationError(BreakItDownError):
    """Raised when there's an issue with configuration or settings."""

    def __init__(
        self,
        setting_name: str,
        message: str,
        expected_value: Optional[Any] = None,
        actual_value: Optional[Any] = None
    ):
        details = {"setting_name": setting_name}
        if expected_value is not None:
            details["expected_value"] = str(expected_value)
        if actual_value is not None:
            details["actual_value"] = str(actual_value)

        super().__init__(
            message=f"Configuration error for '{setting_name}': {message}",
            error_code="CONFIG_ERROR",
            details=details
        )
        self.setting_name = setting_name


# ============================================================================
# Validation Errors
# ============================================================================

class ValidationError(BreakItDownError):
    """Base class for validation errors."""
    pass


class InvalidParameterError(ValidationError):
    """Raised when a parameter value is invalid."""

    def __init__(
        self,
        parameter_name: str,
        message: str,
        actual_value: Optional[Any] = None
    ):
        details = {"parameter_name": parameter_name}
        if actual_value is not None:
            details["actual_value"] = str(actual_value)

        super().__init__(
            message=f"Invalid parameter '{parameter_name}': {message}",
            error_code="INVALID_PARAM",
            details=details
        )
        self.parameter_name = parameter_name


# ============================================================================
# Resource Errors
# ============================================================================

class ResourceError(BreakItDownError):
    """Base class for backend resource errors."""
    pass


class NetworkError(ResourceError):
    """Raised when a network request to a backend fails."""

    def __init__(
        self,
        url: str,
        message: str,
        status_code: Optional[int] = None,
        original_error: Optional[Exception] = None
    ):
        details = {"url": url}
        if status_code is not None:
            details["status_code"] = status_code
        if original_error is not None:
            details["original_error"] = str(original_error)

        super().__init__(
            message=message,
            error_code="NETWORK_ERROR",
            details=details
        )
        self.url = url
        self.status_code = status_code
        self.original_error = original_error


def describe_transport_error(url: str, error: Exception) -> NetworkError:
    """
    Wrap an httpx transport error into a NetworkError with a readable message.

    Timeouts from httpx often carry an empty message, so the exception class
    name is used instead.
    """
    detail = str(error) or error.__class__.__name__
    return NetworkError(url=url, message=detail, original_error=error)


__all__ = [
    "BreakItDownError",
    "ConfigurationError",
    "ValidationError",
    "InvalidParameterError",
    "ResourceError",
    "NetworkError",
    "describe_transport_error",
]
