"""Data models for migration entities."""

from .manifest import RunManifest, RunMode, RunStatus
from .project import CostEstimate, ProjectDescriptor, ProjectStatistics
from .results import (
    BulkProjectEntry,
    BulkSummary,
    PreparationResult,
    ProjectMigrationResult,
    ProjectState,
    ResultStatus,
)

__all__ = [
    'BulkProjectEntry',
    'BulkSummary',
    'CostEstimate',
    'PreparationResult',
    'ProjectDescriptor',
    'ProjectMigrationResult',
    'ProjectState',
    'ProjectStatistics',
    'ResultStatus',
    'RunManifest',
    'RunMode',
    'RunStatus',
]
