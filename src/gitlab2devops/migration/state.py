"""Project lifecycle state derived from workspace artifacts."""

from typing import List, Optional, Tuple

from ..models.results import ProjectState, ResultStatus
from .workspace import ProjectWorkspace, WorkspaceLayout, read_json


def get_project_state(workspace: ProjectWorkspace) -> Optional[ProjectState]:
    """Inspect ``workspace`` and report where the project stands.

    Recomputed from the filesystem on every call. Returns None for projects
    the tool has never seen.
    """
    if workspace.migration_complete.is_file():
        return ProjectState.COMPLETED
    if workspace.migration_report.is_file():
        return ProjectState.MIGRATED

    result = read_json(workspace.preparation_result)
    if isinstance(result, dict) and result.get('status') == ResultStatus.FAILED.value:
        return ProjectState.FAILED

    if workspace.preflight_report.is_file():
        return ProjectState.PREPARED
    return None


def list_project_states(
    layout: WorkspaceLayout,
) -> List[Tuple[str, Optional[ProjectState]]]:
    """State of every project directory under the migrations root."""
    return [(ws.name, get_project_state(ws)) for ws in layout.project_workspaces()]
