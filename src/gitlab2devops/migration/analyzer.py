"""Source project analysis and migration cost estimation."""

import math
from typing import List, Optional

from loguru import logger
from pydantic import ValidationError

from ..api.client import GitLabClient
from ..api.devops_client import AzureDevOpsClient
from ..api.exceptions import APIError, InvalidResponseError
from ..git.lfs import LFSHandler
from ..models.project import CostEstimate, ProjectDescriptor, ProjectStatistics

# (upper bound in MB, minutes); first bound the size is below wins
DURATION_STEPS = (
    (10, 2),
    (50, 5),
    (100, 10),
    (500, 30),
    (1000, 60),
)
MAX_DURATION_MINUTES = 120
LARGE_REPOSITORY_MB = 500
LFS_MB_PER_MINUTE = 10


def estimate_duration(
    size_mb: float, lfs_size_mb: float = 0.0, lfs_enabled: bool = False
) -> int:
    """Estimate migration minutes from repository size.

    Non-decreasing in ``size_mb``.
    """
    minutes = MAX_DURATION_MINUTES
    for bound, step_minutes in DURATION_STEPS:
        if size_mb < bound:
            minutes = step_minutes
            break

    if lfs_enabled and lfs_size_mb > 0:
        minutes += math.ceil(lfs_size_mb / LFS_MB_PER_MINUTE)

    return minutes


class ProjectAnalyzer:
    """Fetches source project statistics and derives a cost estimate."""

    def __init__(
        self,
        source_client: GitLabClient,
        lfs: LFSHandler,
        destination_client: Optional[AzureDevOpsClient] = None,
    ):
        self.source_client = source_client
        self.lfs = lfs
        self.destination_client = destination_client
        self.logger = logger.bind(component='ProjectAnalyzer')

    def analyze(self, source_path: str) -> ProjectStatistics:
        """Fetch a fresh statistics snapshot.

        Raises:
            NotFoundError: Project does not exist
            AuthenticationError: Credential lacks access
            TransientError: Network or server failure
            InvalidResponseError: Response is not a usable project payload
        """
        self.logger.info(f'Analyzing project {source_path}')
        data = self.source_client.get_project(source_path, statistics=True)
        if not isinstance(data, dict):
            raise InvalidResponseError(
                f'Unexpected response for project {source_path}: expected a JSON object'
            )
        try:
            return ProjectStatistics.from_api(data)
        except (KeyError, TypeError, AttributeError, ValidationError) as e:
            raise InvalidResponseError(
                f'Malformed project data for {source_path}: {e}', response_data=data
            )

    def estimate(self, stats: ProjectStatistics) -> CostEstimate:
        """Derive size, duration, warnings and prerequisites. Never raises."""
        size_mb = stats.size_mb
        lfs_size_mb = stats.lfs_size_mb
        warnings: List[str] = []
        prerequisites: List[str] = []

        if size_mb > LARGE_REPOSITORY_MB:
            warnings.append(
                f'Large repository ({size_mb} MB): migration may take a long time'
            )

        if stats.lfs_enabled and lfs_size_mb > 0 and not self.lfs.is_available():
            warnings.append(
                f'Repository contains {lfs_size_mb} MB of Git LFS data but Git LFS '
                'is not installed: LFS objects will not be migrated'
            )
            prerequisites.append(
                'Install Git LFS (https://git-lfs.com) and run "git lfs install"'
            )

        return CostEstimate(
            size_mb=size_mb,
            lfs_size_mb=lfs_size_mb,
            estimated_duration_minutes=estimate_duration(
                size_mb, lfs_size_mb, stats.lfs_enabled
            ),
            warnings=warnings,
            prerequisites=prerequisites,
        )

    def check_destination_conflict(self, descriptor: ProjectDescriptor) -> List[str]:
        """Warn when the destination already holds a repository with the target name.

        Best-effort: lookup failures are returned as a warning.
        """
        if self.destination_client is None or not descriptor.destination_project:
            return []
        try:
            existing = self.destination_client.get_repository(
                descriptor.destination_project, descriptor.repo_name
            )
        except APIError as e:
            return [
                f'Could not check repositories in {descriptor.destination_project}: {e}'
            ]
        if existing:
            return [
                f'Repository {descriptor.repo_name} already exists in '
                f'{descriptor.destination_project}'
            ]
        return []
