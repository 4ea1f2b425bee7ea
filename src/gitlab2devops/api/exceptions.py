"""REST API exceptions shared by the GitLab and Azure DevOps clients."""

from typing import Optional


class APIError(Exception):
    """Base exception for REST API errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[dict] = None,
    ):
        """Initialize API error.

        Args:
            message: Error message
            status_code: HTTP status code
            response_data: Response data from API
        """
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data


class AuthenticationError(APIError):
    """Credential missing, invalid or lacking access (401/403)."""

    pass


class PermissionDeniedError(AuthenticationError):
    """Credential is valid but not allowed to read the resource (403)."""

    pass


class NotFoundError(APIError):
    """Resource not found error (404)."""

    pass


class TransientError(APIError):
    """Network failure or server-side error (5xx). The caller decides on retry."""

    pass


class RateLimitError(TransientError):
    """Rate limit exceeded error (429)."""

    def __init__(self, message: str, retry_after: int = 60, **kwargs):
        """Initialize rate limit error.

        Args:
            message: Error message
            retry_after: Seconds to wait before retry
            **kwargs: Additional arguments for base class
        """
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class InvalidResponseError(APIError):
    """Response body could not be read as the expected resource."""

    pass
