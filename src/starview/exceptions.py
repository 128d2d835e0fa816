"""
Custom exceptions for Starview.

This module defines domain-specific exceptions that separate upstream API
failures, download failures, cache problems and configuration mistakes so the
orchestrator and the CLI can decide which ones are recoverable.
"""

from typing import Optional


class StarviewError(Exception):
    """
    Base exception for all Starview errors.

    All custom exceptions in Starview inherit from this class so callers can
    catch every application-specific error at once.
    """

    def __init__(self, message: str, details: Optional[str] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: The primary error message.
            details: Optional additional context about the error.
        """
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


# =============================================================================
# API Errors
# =============================================================================


class APIError(StarviewError):
    """
    Exception raised for failures talking to the game API.

    Attributes:
        endpoint: The API endpoint that was called.
        status_code: The HTTP status code returned, if any.
    """

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message, details)
        self.endpoint = endpoint
        self.status_code = status_code


class InvalidRequestError(APIError):
    """
    Exception raised when the game server rejects a request or omits data.

    Carries the upstream status text in `message`.
    """

    pass


class TransportError(APIError):
    """Exception raised when a request fails before a response is received."""

    pass


class DecodeError(APIError):
    """Exception raised when a signed envelope cannot be encoded or decoded."""

    pass


# =============================================================================
# Download Errors
# =============================================================================


class DownloadError(StarviewError):
    """
    Exception raised when a single file download fails.

    Attributes:
        url: The URL that was being downloaded.
        status_code: The HTTP status code, when the server answered.
        retry_count: Number of retries made before giving up.
        is_retryable: Whether another attempt could succeed.
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        retry_count: int = 0,
        is_retryable: bool = True,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message, details)
        self.url = url
        self.status_code = status_code
        self.retry_count = retry_count
        self.is_retryable = is_retryable


# =============================================================================
# Cache Errors
# =============================================================================


class CacheError(StarviewError):
    """
    Exception raised when the fetch cache cannot be read or written.

    Attributes:
        path: Path of the cache file involved.
    """

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message, details)
        self.path = path


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(StarviewError):
    """Exception raised when configuration is invalid."""

    pass


class ConfigFileError(ConfigurationError):
    """Exception raised when the configuration file cannot be read or parsed."""

    pass


class OutputPathError(ConfigurationError):
    """
    Exception raised when an output path exists but is not a directory.

    Attributes:
        path: The offending path.
    """

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path
