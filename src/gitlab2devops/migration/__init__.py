"""Migration orchestration: analysis, preparation, bulk runs and manifests."""

from .analyzer import ProjectAnalyzer, estimate_duration
from .bulk import BulkOrchestrator
from .engine import MigrationEngine
from .exceptions import BatchExistsError, LocalStateError, MigrationValidationError
from .executor import MigrationExecutor
from .manifest import ManifestStore, RunTracker
from .preparation import PreparationPipeline
from .state import get_project_state, list_project_states
from .workspace import WorkspaceLayout

__all__ = [
    'BatchExistsError',
    'BulkOrchestrator',
    'LocalStateError',
    'ManifestStore',
    'MigrationEngine',
    'MigrationExecutor',
    'MigrationValidationError',
    'PreparationPipeline',
    'ProjectAnalyzer',
    'RunTracker',
    'WorkspaceLayout',
    'estimate_duration',
    'get_project_state',
    'list_project_states',
]
