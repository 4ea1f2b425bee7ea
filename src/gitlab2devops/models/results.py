"""Result models for preparation, migration and bulk runs."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .manifest import RunStatus


class ResultStatus(str, Enum):
    """Outcome of one project step."""

    SUCCESS = 'SUCCESS'
    FAILED = 'FAILED'


class ProjectState(str, Enum):
    """Lifecycle of a project as seen from its workspace."""

    PREPARED = 'PREPARED'
    MIGRATED = 'MIGRATED'
    COMPLETED = 'COMPLETED'
    FAILED = 'FAILED'


class PreparationResult(BaseModel):
    """Outcome of one preparation attempt."""

    source_path: str = Field(..., description='GitLab path with namespace')
    status: ResultStatus = Field(..., description='Preparation status')
    repo_size_mb: float = Field(default=0.0, description='Repository size in MB')
    lfs_size_mb: float = Field(default=0.0, description='LFS objects size in MB')
    lfs_enabled: Optional[bool] = Field(default=None, description='LFS enabled')
    default_branch: Optional[str] = Field(default=None)
    visibility: Optional[str] = Field(default=None)
    local_repo_path: Optional[str] = Field(
        default=None, description='Mirror location, set only when materialized'
    )
    error_message: Optional[str] = Field(
        default=None, description='Error message, set only on failure'
    )
    warnings: List[str] = Field(default_factory=list, description='Warning messages')
    prepared_at: datetime = Field(default_factory=datetime.now)

    @property
    def success(self) -> bool:
        return self.status == ResultStatus.SUCCESS

    @classmethod
    def failed(cls, source_path: str, error: str) -> 'PreparationResult':
        return cls(source_path=source_path, status=ResultStatus.FAILED, error_message=error)


class ProjectMigrationResult(BaseModel):
    """Outcome of pushing one prepared mirror into Azure DevOps."""

    source_path: str = Field(..., description='GitLab path with namespace')
    destination_project: str = Field(..., description='Azure DevOps project')
    repo_name: str = Field(..., description='Destination repository name')
    status: ResultStatus = Field(..., description='Migration status')
    remote_url: Optional[str] = Field(
        default=None, description='Destination clone URL without credentials'
    )
    repo_size_mb: float = Field(default=0.0, description='Repository size in MB')
    verified: bool = Field(default=False, description='Refs matched after push')
    warnings: List[str] = Field(default_factory=list, description='Warning messages')
    error_message: Optional[str] = Field(default=None)
    migrated_at: datetime = Field(default_factory=datetime.now)

    @property
    def success(self) -> bool:
        return self.status == ResultStatus.SUCCESS


class BulkProjectEntry(BaseModel):
    """One project's line in a bulk template or summary.

    Failed entries carry only the error text; size and branch fields are left
    unset because they are unknown.
    """

    source_path: str
    repo_name: str
    status: ResultStatus
    repo_size_mb: Optional[float] = None
    lfs_enabled: Optional[bool] = None
    lfs_size_mb: Optional[float] = None
    default_branch: Optional[str] = None
    visibility: Optional[str] = None
    error_message: Optional[str] = None


def success_rate(success_count: int, total: int) -> float:
    """Percentage of successful items rounded to one decimal."""
    if total <= 0:
        return 0.0
    return round(success_count / total * 100, 1)


class BulkSummary(BaseModel):
    """Aggregate outcome of a bulk run, built incrementally then finalized."""

    destination_project: str
    total_projects: int = 0
    success_count: int = 0
    failure_count: int = 0
    success_rate_percent: float = 0.0
    total_size_mb: float = 0.0
    results: List[BulkProjectEntry] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    def record(self, entry: BulkProjectEntry) -> None:
        """Append one project's entry and update the counters."""
        self.results.append(entry)
        if entry.status == ResultStatus.SUCCESS:
            self.success_count += 1
        else:
            self.failure_count += 1

    def finalize(self) -> 'BulkSummary':
        """Compute totals once the loop is over."""
        self.success_rate_percent = success_rate(self.success_count, self.total_projects)
        self.total_size_mb = round(
            sum(
                e.repo_size_mb or 0.0
                for e in self.results
                if e.status == ResultStatus.SUCCESS
            ),
            2,
        )
        self.completed_at = datetime.now()
        return self

    @property
    def run_status(self) -> RunStatus:
        """Terminal manifest status implied by the counts."""
        if self.total_projects and self.failure_count == self.total_projects:
            return RunStatus.FAILED
        if self.failure_count > 0:
            return RunStatus.PARTIAL
        return RunStatus.SUCCESS

    @property
    def failed_entries(self) -> List[BulkProjectEntry]:
        return [e for e in self.results if e.status == ResultStatus.FAILED]
