"""On-disk layout of migration workspaces.

::

    migrations/
      <projectName>/
        reports/preflight-report.json
        reports/preparation-result.json
        reports/migration-report.json
        reports/migration-complete.json
        logs/preparation-<timestamp>.log
        logs/migration-<timestamp>.log
        repository/
      bulk-prep-<destinationProject>/
        bulk-preparation.log
        bulk-migration.log
        bulk-migration-template.json
        preparation-summary.json
        migration-summary.json
      run-manifest-<runId>.json
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, Optional, Union

from pydantic import BaseModel

TIMESTAMP_FORMAT = '%Y%m%d-%H%M%S'
BATCH_PREFIX = 'bulk-prep-'
MANIFEST_PREFIX = 'run-manifest-'


def timestamp(moment: Optional[datetime] = None) -> str:
    return (moment or datetime.now()).strftime(TIMESTAMP_FORMAT)


def write_json(path: Path, payload: Union[BaseModel, Any]) -> None:
    """Write ``payload`` to ``path``, replacing any previous content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(payload, BaseModel):
        text = payload.model_dump_json(indent=2, exclude_none=True)
    else:
        text = json.dumps(payload, indent=2, default=str)
    path.write_text(text + '\n', encoding='utf-8')


def read_json(path: Path) -> Optional[Any]:
    """Read a JSON file, returning None when it is missing or unreadable."""
    try:
        return json.loads(path.read_text(encoding='utf-8'))
    except (OSError, ValueError):
        return None


def append_line(path: Path, line: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'a', encoding='utf-8') as f:
        f.write(line.rstrip('\n') + '\n')


class ProjectWorkspace:
    """Paths belonging to one project."""

    def __init__(self, root: Path, name: str):
        self.name = name
        self.path = root / name

    @property
    def reports_dir(self) -> Path:
        return self.path / 'reports'

    @property
    def logs_dir(self) -> Path:
        return self.path / 'logs'

    @property
    def repository_dir(self) -> Path:
        return self.path / 'repository'

    @property
    def preflight_report(self) -> Path:
        return self.reports_dir / 'preflight-report.json'

    @property
    def preparation_result(self) -> Path:
        return self.reports_dir / 'preparation-result.json'

    @property
    def migration_report(self) -> Path:
        return self.reports_dir / 'migration-report.json'

    @property
    def migration_complete(self) -> Path:
        return self.reports_dir / 'migration-complete.json'

    def preparation_log(self, moment: Optional[datetime] = None) -> Path:
        return self.logs_dir / f'preparation-{timestamp(moment)}.log'

    def migration_log(self, moment: Optional[datetime] = None) -> Path:
        return self.logs_dir / f'migration-{timestamp(moment)}.log'

    def exists(self) -> bool:
        return self.path.is_dir()

    def ensure(self) -> None:
        """Create ``reports/`` and ``logs/``; the repository dir is created lazily."""
        self.reports_dir.mkdir(parents=True, exist_ok=True)
        self.logs_dir.mkdir(parents=True, exist_ok=True)


class BatchWorkspace:
    """Aggregate artifacts of bulk runs for one destination project."""

    def __init__(self, root: Path, destination_project: str):
        self.destination_project = destination_project
        self.path = root / f'{BATCH_PREFIX}{destination_project}'

    @property
    def preparation_log(self) -> Path:
        return self.path / 'bulk-preparation.log'

    @property
    def migration_log(self) -> Path:
        return self.path / 'bulk-migration.log'

    @property
    def template(self) -> Path:
        return self.path / 'bulk-migration-template.json'

    @property
    def preparation_summary(self) -> Path:
        return self.path / 'preparation-summary.json'

    @property
    def migration_summary(self) -> Path:
        return self.path / 'migration-summary.json'

    def exists(self) -> bool:
        return self.path.is_dir()


class WorkspaceLayout:
    """Root of all migration workspaces."""

    def __init__(self, root: Union[str, Path] = 'migrations'):
        self.root = Path(root)

    def project(self, name: str) -> ProjectWorkspace:
        return ProjectWorkspace(self.root, name)

    def batch(self, destination_project: str) -> BatchWorkspace:
        return BatchWorkspace(self.root, destination_project)

    def manifest_path(self, run_id: str) -> Path:
        return self.root / f'{MANIFEST_PREFIX}{run_id}.json'

    def manifest_paths(self) -> Iterator[Path]:
        if not self.root.is_dir():
            return iter(())
        return iter(sorted(self.root.glob(f'{MANIFEST_PREFIX}*.json')))

    def project_workspaces(self) -> Iterator[ProjectWorkspace]:
        """Yield every project directory, skipping batch workspaces."""
        if not self.root.is_dir():
            return
        for entry in sorted(self.root.iterdir()):
            if entry.is_dir() and not entry.name.startswith(BATCH_PREFIX):
                yield self.project(entry.name)
