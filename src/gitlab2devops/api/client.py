"""GitLab API client implementation."""

from typing import Any, Dict, Optional
from urllib.parse import quote, urljoin

import requests
from loguru import logger
from pydantic import BaseModel

from ..config.config import GitLabInstanceConfig
from .exceptions import (
    APIError,
    AuthenticationError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    TransientError,
)


class APIResponse(BaseModel):
    """Standard API response wrapper."""

    status_code: int
    data: Any
    headers: Dict[str, str]
    success: bool


def handle_response(response: requests.Response) -> APIResponse:
    """Handle API response and convert to standard format.

    Args:
        response: Raw HTTP response

    Returns:
        Standardized API response

    Raises:
        APIError: For various API errors
    """
    headers = dict(response.headers)

    # Handle rate limiting
    if response.status_code == 429:
        retry_after = int(headers.get('Retry-After', 60))
        raise RateLimitError(
            f'Rate limit exceeded. Retry after {retry_after} seconds',
            status_code=429,
            retry_after=retry_after,
        )

    if response.status_code == 401:
        raise AuthenticationError('Authentication failed', status_code=401)

    if response.status_code == 403:
        raise PermissionDeniedError('Access denied', status_code=403)

    if response.status_code == 404:
        raise NotFoundError('Resource not found', status_code=404)

    if response.status_code >= 400:
        error_data = None
        try:
            error_data = response.json()
            message = error_data.get('message', f'HTTP {response.status_code}')
        except (ValueError, AttributeError):
            message = f'HTTP {response.status_code}: {response.text}'

        error_class = TransientError if response.status_code >= 500 else APIError
        raise error_class(
            f'API request failed: {message}',
            status_code=response.status_code,
            response_data=error_data if isinstance(error_data, dict) else None,
        )

    # Parse response data
    try:
        data = response.json() if response.content else None
    except ValueError:
        data = response.text

    return APIResponse(
        status_code=response.status_code,
        data=data,
        headers=headers,
        success=200 <= response.status_code < 300,
    )


class GitLabClient:
    """GitLab API client with authentication."""

    def __init__(self, config: GitLabInstanceConfig):
        """Initialize GitLab client.

        Args:
            config: GitLab instance configuration
        """
        self.config = config
        self.base_url = f'{config.url.rstrip("/")}/api/{config.api_version}'
        self.session = requests.Session()

        # Set authentication headers
        if config.token:
            self.session.headers.update({'Private-Token': config.token})
        elif config.oauth_token:
            self.session.headers.update(
                {'Authorization': f'Bearer {config.oauth_token}'}
            )
        else:
            raise AuthenticationError('No authentication token provided')

        self.session.headers.update(
            {'Content-Type': 'application/json', 'User-Agent': 'gitlab2devops/0.1.0'}
        )

        logger.info(f'Initialized GitLab client for {config.url}')

    @property
    def clone_token(self) -> Optional[str]:
        """Token used for HTTPS git operations against this instance."""
        return self.config.token or self.config.oauth_token

    def _build_url(self, endpoint: str) -> str:
        """Build full API URL from endpoint.

        Args:
            endpoint: API endpoint path

        Returns:
            Full API URL
        """
        return urljoin(self.base_url + '/', endpoint.lstrip('/'))

    def get(
        self, endpoint: str, params: Optional[Dict[str, Any]] = None, **kwargs
    ) -> APIResponse:
        """Make GET request.

        Args:
            endpoint: API endpoint
            params: Query parameters
            **kwargs: Additional request arguments

        Returns:
            API response
        """
        url = self._build_url(endpoint)
        kwargs.setdefault('timeout', self.config.timeout)

        try:
            response = self.session.get(url, params=params, **kwargs)
        except requests.RequestException as e:
            logger.error(f'Network error during GET request: {e}')
            raise TransientError(f'Network error: {e}')

        return handle_response(response)

    def get_project(self, path: str, statistics: bool = True) -> Dict[str, Any]:
        """Fetch a project by its namespaced path.

        Args:
            path: Project path with namespace (``group/subgroup/project``)
            statistics: Include repository/LFS size statistics

        Returns:
            Raw project payload
        """
        encoded = quote(path.strip('/'), safe='')
        params = {'statistics': 'true'} if statistics else None
        try:
            response = self.get(f'/projects/{encoded}', params=params)
        except NotFoundError:
            raise NotFoundError(f'Project not found: {path}', status_code=404)
        return response.data

    def test_connection(self) -> bool:
        """Test connection to GitLab instance.

        Returns:
            True if connection successful, False otherwise
        """
        try:
            response = self.get('/user')
            return response.success
        except APIError as e:
            logger.error(f'Connection test failed: {e}')
            return False

    def close(self):
        """Close the client session."""
        self.session.close()
        logger.debug('GitLab client session closed')

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()


class GitLabClientFactory:
    """Factory for creating GitLab API clients."""

    @staticmethod
    def create_client(config: GitLabInstanceConfig) -> GitLabClient:
        """Create GitLab client from configuration.

        Args:
            config: GitLab instance configuration

        Returns:
            Configured GitLab client

        Raises:
            AuthenticationError: If authentication configuration is invalid
        """
        if not config.token and not config.oauth_token:
            raise AuthenticationError('Either token or oauth_token must be provided')

        return GitLabClient(config)
