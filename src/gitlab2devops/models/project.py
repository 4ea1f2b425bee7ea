"""Source project entity models."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

BYTES_PER_MB = 1024 * 1024


def bytes_to_mb(size: Optional[int]) -> float:
    """Convert a byte count to megabytes rounded to two decimals."""
    return round((size or 0) / BYTES_PER_MB, 2)


class ProjectDescriptor(BaseModel):
    """Identifies one source project and where it should land."""

    model_config = ConfigDict(frozen=True)

    source_path: str = Field(..., description='GitLab path with namespace')
    destination_project: str = Field(
        default='', description='Azure DevOps team project'
    )
    destination_repo_name: Optional[str] = Field(
        default=None, description='Repository name override in Azure DevOps'
    )

    @field_validator('source_path')
    @classmethod
    def validate_source_path(cls, v):
        """Normalize and validate the namespaced path."""
        v = v.strip().strip('/')
        if not v:
            raise ValueError('source_path must not be empty')
        return v

    @property
    def project_name(self) -> str:
        """Last path segment, used as the workspace directory name."""
        return self.source_path.rsplit('/', 1)[-1]

    @property
    def repo_name(self) -> str:
        """Repository name to use on the destination."""
        return self.destination_repo_name or self.project_name


class ProjectStatistics(BaseModel):
    """Snapshot of a GitLab project's metadata and storage statistics."""

    path_with_namespace: str = Field(..., description='Project path with namespace')
    http_url_to_repo: str = Field(..., description='HTTP clone URL')
    default_branch: Optional[str] = Field(
        default=None, description='Default branch name'
    )
    visibility: str = Field(default='private', description='Project visibility')
    lfs_enabled: bool = Field(default=False, description='LFS enabled')
    repository_size: int = Field(default=0, description='Repository size in bytes')
    lfs_objects_size: int = Field(default=0, description='LFS objects size in bytes')
    open_issues_count: int = Field(default=0, description='Open issues count')
    last_activity_at: Optional[datetime] = Field(
        default=None, description='Last activity timestamp'
    )

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'ProjectStatistics':
        """Build statistics from a ``GET /projects/:id?statistics=true`` payload."""
        statistics = data.get('statistics') or {}
        return cls(
            path_with_namespace=data['path_with_namespace'],
            http_url_to_repo=data.get('http_url_to_repo') or '',
            default_branch=data.get('default_branch'),
            visibility=data.get('visibility') or 'private',
            lfs_enabled=bool(data.get('lfs_enabled')),
            repository_size=statistics.get('repository_size') or 0,
            lfs_objects_size=statistics.get('lfs_objects_size') or 0,
            open_issues_count=data.get('open_issues_count') or 0,
            last_activity_at=data.get('last_activity_at'),
        )

    @property
    def size_mb(self) -> float:
        return bytes_to_mb(self.repository_size)

    @property
    def lfs_size_mb(self) -> float:
        return bytes_to_mb(self.lfs_objects_size)


class CostEstimate(BaseModel):
    """Migration cost derived from project statistics. Never persisted as authoritative."""

    size_mb: float = Field(..., description='Repository size in MB')
    lfs_size_mb: float = Field(default=0.0, description='LFS objects size in MB')
    estimated_duration_minutes: int = Field(
        ..., description='Estimated migration duration'
    )
    warnings: List[str] = Field(default_factory=list, description='Advisory warnings')
    prerequisites: List[str] = Field(
        default_factory=list, description='Steps required before migrating'
    )
