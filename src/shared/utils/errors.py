"""
Error handling for the application.
"""

from typing import Optional

from shared.utils.types import ErrorType


class EnrichmentError(Exception):
    """Base exception for every failure that aborts an enrichment run.

    Common status codes:
    - 502: Bad Gateway (default) - An upstream service misbehaved
    - 503: Service Unavailable - An upstream service could not be reached
    - 400: Bad Request - The incoming event or settings are malformed
    """

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.GENERAL_ERROR,
        status_code: int = 502,
    ):
        """
        Initialize an EnrichmentError.

        Args:
            message (str): A human-readable error message.
            error_type (ErrorType): The category of the error (default: GENERAL_ERROR).
            status_code (int): HTTP-style status code associated with the error (default: 502).
        """
        self.message = message
        self.error_type = error_type
        self.status_code = status_code
        super().__init__(self.message)


class AuthError(EnrichmentError):
    """Custom exception for assertion signing and token exchange failures.

    Common status codes:
    - 502: Bad Gateway (default) - Token endpoint rejected the assertion
    - 500: Internal Server Error - Private key could not be loaded
    """

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.AUTH_ERROR,
        status_code: int = 502,
    ):
        super().__init__(message, error_type, status_code)


class ProfileLookupError(EnrichmentError):
    """Custom exception for profile store lookups that fail for a reason other than 404."""

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.PROFILE_LOOKUP_ERROR,
        status_code: int = 502,
    ):
        super().__init__(message, error_type, status_code)


class RateLookupError(EnrichmentError):
    """Custom exception for exchange rate lookups."""

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.RATE_LOOKUP_ERROR,
        status_code: int = 502,
    ):
        super().__init__(message, error_type, status_code)


class CatalogError(EnrichmentError):
    """Custom exception for catalog lookups.

    Carries the product id that could not be fetched so the failing line
    item can be traced from the logs.
    """

    def __init__(
        self,
        message: str,
        product_id: Optional[str] = None,
        error_type: ErrorType = ErrorType.CATALOG_ERROR,
        status_code: int = 502,
    ):
        """
        Initialize a CatalogError.

        Args:
            message (str): A human-readable error message.
            product_id (str): The product id whose lookup failed.
            error_type (ErrorType): The category of the error (default: CATALOG_ERROR).
            status_code (int): HTTP-style status code associated with the error (default: 502).
        """
        self.product_id = product_id
        super().__init__(message, error_type, status_code)


class ForwardError(EnrichmentError):
    """Custom exception for when the tracking API does not accept the event."""

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.FORWARD_ERROR,
        status_code: int = 502,
    ):
        super().__init__(message, error_type, status_code)


class ValidationError(EnrichmentError):
    """Custom exception for malformed events or settings."""

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.VALIDATION_ERROR,
        status_code: int = 400,
    ):
        super().__init__(message, error_type, status_code)
