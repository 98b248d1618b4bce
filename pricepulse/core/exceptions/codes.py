"""Standardized error codes."""

from enum import Enum


class ErrorCode(str, Enum):
    """Standardized error codes for pricepulse exceptions."""

    # General errors
    GENERAL_ERROR = "GENERAL_ERROR"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_SUBSCRIPTION = "INVALID_SUBSCRIPTION"

    # Provider errors
    PROVIDER_ERROR = "PROVIDER_ERROR"
    PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"
    RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
    REQUEST_REJECTED = "REQUEST_REJECTED"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    UNSUPPORTED_OPERATION = "UNSUPPORTED_OPERATION"

    # Configuration errors
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


__all__ = ["ErrorCode"]
