"""Azure DevOps REST API client."""

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from loguru import logger

from ..config.config import AzureDevOpsConfig
from .client import APIResponse, handle_response
from .exceptions import APIError, NotFoundError, TransientError


class AzureDevOpsClient:
    """Client for the Azure DevOps projects and Git repositories APIs."""

    def __init__(self, config: AzureDevOpsConfig):
        """Initialize Azure DevOps client.

        Args:
            config: Azure DevOps organization configuration
        """
        self.config = config
        self.base_url = config.organization_url.rstrip('/')
        self.session = requests.Session()
        # PATs are sent as basic auth with an empty user name
        self.session.auth = ('', config.token)
        self.session.headers.update(
            {'Content-Type': 'application/json', 'User-Agent': 'gitlab2devops/0.1.0'}
        )

        logger.info(f'Initialized Azure DevOps client for {self.base_url}')

    @property
    def push_token(self) -> str:
        """Token used for HTTPS git pushes into the organization."""
        return self.config.token

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> APIResponse:
        url = f'{self.base_url}/{path.lstrip("/")}'
        query = {'api-version': self.config.api_version}
        if params:
            query.update(params)

        try:
            response = self.session.request(
                method, url, params=query, json=data, timeout=self.config.timeout
            )
        except requests.RequestException as e:
            logger.error(f'Network error during {method} request: {e}')
            raise TransientError(f'Network error: {e}')

        return handle_response(response)

    def get_project(self, project: str) -> Dict[str, Any]:
        """Get a team project by name or id."""
        response = self._request('GET', f'_apis/projects/{quote(project, safe="")}')
        return response.data

    def project_exists(self, project: str) -> bool:
        """Check whether a team project exists."""
        try:
            self.get_project(project)
        except NotFoundError:
            return False
        return True

    def create_project(
        self,
        project: str,
        description: str = '',
        process_template_id: str = 'adcc42ab-9882-485e-a3ed-7678f01f66bc',
    ) -> Dict[str, Any]:
        """Queue creation of a Git-backed team project.

        The default process template id is the built-in Agile process.

        Returns:
            The queued operation reference
        """
        payload = {
            'name': project,
            'description': description,
            'capabilities': {
                'versioncontrol': {'sourceControlType': 'Git'},
                'processTemplate': {'templateTypeId': process_template_id},
            },
        }
        logger.info(f'Creating Azure DevOps project {project}')
        response = self._request('POST', '_apis/projects', data=payload)
        return response.data

    def list_repositories(self, project: str) -> List[Dict[str, Any]]:
        """List Git repositories of a team project."""
        response = self._request(
            'GET', f'{quote(project, safe="")}/_apis/git/repositories'
        )
        if not response.data:
            return []
        return response.data.get('value', [])

    def get_repository(self, project: str, name: str) -> Optional[Dict[str, Any]]:
        """Find a repository by name (case-insensitive) inside a project."""
        for repo in self.list_repositories(project):
            if repo.get('name', '').lower() == name.lower():
                return repo
        return None

    def create_repository(self, project: str, name: str) -> Dict[str, Any]:
        """Create an empty Git repository inside a team project."""
        project_data = self.get_project(project)
        payload = {'name': name, 'project': {'id': project_data['id']}}
        logger.info(f'Creating repository {name} in project {project}')
        response = self._request(
            'POST', f'{quote(project, safe="")}/_apis/git/repositories', data=payload
        )
        return response.data

    def test_connection(self) -> bool:
        """Test connection to the organization.

        Returns:
            True if connection successful, False otherwise
        """
        try:
            response = self._request('GET', '_apis/projects', params={'$top': 1})
            return response.success
        except APIError as e:
            logger.error(f'Connection test failed: {e}')
            return False

    def close(self):
        """Close the client session."""
        self.session.close()
        logger.debug('Azure DevOps client session closed')

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
