"""
Typed Exception Hierarchy for mangatrack

This module defines the exceptions raised by tracker services and their API
clients. Failures propagate unchanged to the caller; there is no automatic
retry, the caller decides whether to present or repeat the action.

Exception Hierarchy:
    RemoteServiceError (base)
    ├── RemoteNetworkError (transport failure, throttling, gateway errors)
    ├── AuthenticationError (credentials rejected by the tracker)
    └── NotAuthenticatedError (no stored credential to sign a request)
"""

# ============================================================================
# Exception Hierarchy
# ============================================================================

class RemoteServiceError(Exception):
    """
    Base exception for tracker API errors.

    Raised when a network call fails or the tracker rejects a request
    payload. Subclasses narrow down the cause.
    """

    def __init__(self, message: str, status_code: int = None, response_data: dict = None):
        """
        Initialize RemoteServiceError.

        Args:
            message: Human-readable error description
            status_code: HTTP status code if applicable
            response_data: Raw response data for debugging
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_data = response_data

    def __str__(self) -> str:
        if self.status_code:
            return f"{self.__class__.__name__} (HTTP {self.status_code}): {self.message}"
        return f"{self.__class__.__name__}: {self.message}"


class RemoteNetworkError(RemoteServiceError):
    """
    Exception for network-level failures.

    Use this for transient conditions:
    - Connection timeouts and refused connections
    - DNS resolution failures
    - Temporary service unavailability (HTTP 503)
    - Rate limiting (HTTP 429)
    - Gateway errors (HTTP 502, 504)
    """

    def __init__(
        self,
        message: str,
        original_exception: Exception = None,
        retry_after: int = None,
        status_code: int = None
    ):
        """
        Initialize RemoteNetworkError.

        Args:
            message: Human-readable error description
            original_exception: Original exception that triggered this error
            retry_after: Suggested delay in seconds (e.g., from Retry-After header)
            status_code: HTTP status code if the server answered
        """
        super().__init__(message, status_code=status_code)
        self.original_exception = original_exception
        self.retry_after = retry_after


class AuthenticationError(RemoteServiceError):
    """
    Exception for credentials rejected by the tracker (HTTP 401/403).

    The stored token is invalid or revoked; the user has to log in again.
    """


class NotAuthenticatedError(RemoteServiceError):
    """
    Exception raised when an authenticated call is attempted without any
    stored credential for the tracker.
    """

    def __init__(self, service_name: str):
        super().__init__(f"Not authenticated with {service_name}")
        self.service_name = service_name


# ============================================================================
# Convenience Functions
# ============================================================================

def is_transient_error(exception: Exception) -> bool:
    """
    Check if an exception is caused by a transient network condition.

    Args:
        exception: Exception to check

    Returns:
        True if the failure is network-level, False otherwise
    """
    return isinstance(exception, RemoteNetworkError)


def classify_http_error(status_code: int, message: str, response_data: dict = None) -> RemoteServiceError:
    """
    Classify HTTP errors into appropriate exception types.

    Args:
        status_code: HTTP status code
        message: Error message
        response_data: Optional response data for debugging

    Returns:
        Appropriate exception instance based on status code
    """
    # 429 Rate Limiting
    if status_code == 429:
        retry_after = None
        if response_data and 'retry_after' in response_data:
            retry_after = int(response_data['retry_after'])
        return RemoteNetworkError(
            message=f"Rate limited: {message}",
            retry_after=retry_after,
            status_code=status_code
        )

    # 503 Service Unavailable
    if status_code == 503:
        return RemoteNetworkError(
            message=f"Service temporarily unavailable: {message}",
            status_code=status_code
        )

    # 502, 504 Gateway errors
    if status_code in (502, 504):
        return RemoteNetworkError(
            message=f"Gateway error (HTTP {status_code}): {message}",
            status_code=status_code
        )

    # 401, 403 Credentials rejected
    if status_code in (401, 403):
        return AuthenticationError(
            message=message,
            status_code=status_code,
            response_data=response_data
        )

    return RemoteServiceError(
        message=message,
        status_code=status_code,
        response_data=response_data
    )
