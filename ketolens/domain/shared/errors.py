"""
Domain exceptions.

Typed exceptions for explicit error handling across the resolution
pipeline. Infrastructure adapters translate library errors into these
types; the orchestrator translates them into user-facing results.
"""

from __future__ import annotations


# ═══════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════


class DomainError(Exception):
    """
    Base exception for all domain errors.

    All domain-specific exceptions inherit from this.
    Allows catching all domain errors with single except clause.
    """

    pass


# ═══════════════════════════════════════════════════════════
# VALIDATION EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class InvalidInputError(DomainError):
    """
    Input validation failed before any network call.

    Raised when:
    - Barcode is not 8-14 digits
    - Image payload is empty
    - Unknown content type

    Example:
        >>> raise InvalidInputError("Barcode must be 8-14 digits: 'abc'")
    """

    pass


# ═══════════════════════════════════════════════════════════
# RESOLUTION EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class BarcodeNotFoundError(DomainError):
    """
    Barcode not found in the product directory.

    Example:
        >>> raise BarcodeNotFoundError("Barcode 3017620422003 not found")
    """

    pass


class AnalysisFormatError(DomainError):
    """
    Vision back end returned content that cannot be parsed.

    Raised when:
    - Response is not valid JSON
    - No JSON object can be located in free text
    - JSON object does not match the analysis contract

    Not retried.

    Example:
        >>> raise AnalysisFormatError("No JSON object in model response")
    """

    pass


# ═══════════════════════════════════════════════════════════
# EXTERNAL SERVICE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ExternalServiceError(DomainError):
    """
    External service call failed.

    Base class for all external service errors.

    Example:
        >>> raise ExternalServiceError("OpenAI API failed: 401")
    """

    pass


class TransientNetworkError(ExternalServiceError):
    """
    Network failure that may succeed on retry.

    Raised when:
    - Connection refused or reset
    - Request timed out
    - Server answered with 5xx

    Example:
        >>> raise TransientNetworkError("OpenFoodFacts API timeout")
    """

    pass


class ServiceNotConfiguredError(ExternalServiceError):
    """
    No back end is configured for the requested operation.

    Example:
        >>> raise ServiceNotConfiguredError("No vision back end configured")
    """

    pass


# ═══════════════════════════════════════════════════════════
# INFRASTRUCTURE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class PersistenceError(DomainError):
    """
    Cache or audit-log write failed.

    Always logged and swallowed by callers.

    Example:
        >>> raise PersistenceError("keto_analysis insert failed")
    """

    pass
