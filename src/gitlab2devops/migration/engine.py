"""Migration engine - main entry point for migration operations."""

from typing import Dict, Optional, Sequence, Tuple

from loguru import logger

from ..api.client import GitLabClient, GitLabClientFactory
from ..api.devops_client import AzureDevOpsClient
from ..config.config import Config
from ..git.lfs import LFSHandler
from ..git.operations import GitOperations
from ..models.manifest import RunMode
from ..models.project import CostEstimate, ProjectDescriptor, ProjectStatistics
from ..models.results import BulkSummary, PreparationResult, ProjectMigrationResult
from ..utils.progress import ProgressReporter
from .analyzer import ProjectAnalyzer
from .bulk import BulkOrchestrator, ConfirmCallback
from .exceptions import MigrationValidationError
from .executor import MigrationExecutor
from .manifest import ManifestStore
from .preparation import PreparationPipeline
from .workspace import WorkspaceLayout


class MigrationEngine:
    """Wires configuration, clients and components together.

    Every top-level operation is recorded in its own run manifest.
    """

    def __init__(
        self,
        config: Config,
        source_client: Optional[GitLabClient] = None,
        destination_client: Optional[AzureDevOpsClient] = None,
        git: Optional[GitOperations] = None,
        progress: Optional[ProgressReporter] = None,
        confirm: Optional[ConfirmCallback] = None,
    ):
        """Initialize migration engine.

        Args:
            config: Migration configuration
            source_client: GitLab client (built from config when omitted)
            destination_client: Azure DevOps client (built from config when omitted)
            git: Git command runner (built from config when omitted)
            progress: Progress reporter for bulk runs
            confirm: Callback deciding whether an existing batch may be reused
        """
        self.config = config
        self.logger = logger.bind(component='MigrationEngine')

        self.source_client = source_client or GitLabClientFactory.create_client(
            config.source
        )
        self.destination_client = destination_client or AzureDevOpsClient(
            config.destination
        )
        self.git = git or GitOperations(
            timeout=config.git.timeout,
            secrets=[self.source_client.clone_token, self.destination_client.push_token],
        )
        self.lfs = LFSHandler(self.git, enabled=config.git.lfs_enabled)

        self.layout = WorkspaceLayout(config.migration.migrations_dir)
        self.manifests = ManifestStore(self.layout)
        self.analyzer = ProjectAnalyzer(
            self.source_client, self.lfs, self.destination_client
        )
        self.pipeline = PreparationPipeline(
            self.analyzer,
            self.git,
            self.lfs,
            self.layout,
            source_token=self.source_client.clone_token,
        )
        self.executor = MigrationExecutor(
            self.destination_client,
            self.git,
            self.lfs,
            self.layout,
            verify=config.migration.verify_after_push,
            push_lfs=config.migration.push_lfs,
        )
        self.bulk = BulkOrchestrator(
            self.pipeline,
            self.layout,
            executor=self.executor,
            progress=progress,
            confirm=confirm,
            allow_existing_batch=config.migration.allow_existing_batch,
        )

    def analyze(
        self, source_path: str, destination_project: str = ''
    ) -> Tuple[ProjectStatistics, CostEstimate]:
        """Read-only analysis; writes nothing and records no manifest."""
        stats = self.analyzer.analyze(source_path)
        estimate = self.analyzer.estimate(stats)
        if destination_project:
            descriptor = ProjectDescriptor(
                source_path=source_path, destination_project=destination_project
            )
            estimate.warnings.extend(self.analyzer.check_destination_conflict(descriptor))
        return stats, estimate

    def prepare(self, source_path: str) -> PreparationResult:
        """Prepare one project (Preflight run)."""
        with self.manifests.track(RunMode.PREFLIGHT, {'source_path': source_path}) as run:
            result = self.pipeline.prepare(source_path)
            run.add_warnings(result.warnings)
            if not result.success:
                run.add_error(result.error_message or 'preparation failed')
            return result

    def initialize(self, destination_project: str, description: str = '') -> bool:
        """Ensure the destination project exists (Initialize run).

        Returns:
            True when the project was created, False when it already existed
        """
        if not destination_project or not destination_project.strip():
            raise MigrationValidationError('Destination project must not be blank')

        with self.manifests.track(
            RunMode.INITIALIZE, {'destination_project': destination_project}
        ) as run:
            if self.destination_client.project_exists(destination_project):
                run.add_warning(f'Project {destination_project} already exists')
                return False
            self.destination_client.create_project(destination_project, description)
            return True

    def migrate(
        self,
        source_path: str,
        destination_project: str,
        repo_name: Optional[str] = None,
    ) -> ProjectMigrationResult:
        """Push one prepared project into Azure DevOps (Migrate run)."""
        if not destination_project or not destination_project.strip():
            raise MigrationValidationError('Destination project must not be blank')
        descriptor = ProjectDescriptor(
            source_path=source_path,
            destination_project=destination_project.strip(),
            destination_repo_name=repo_name,
        )
        with self.manifests.track(
            RunMode.MIGRATE,
            {
                'source_path': descriptor.source_path,
                'destination_project': descriptor.destination_project,
                'repo_name': descriptor.repo_name,
            },
        ) as run:
            result = self.executor.migrate(descriptor)
            run.add_warnings(result.warnings)
            if not result.success:
                run.add_error(result.error_message or 'migration failed')
            return result

    def bulk_prepare(
        self, project_paths: Sequence[str], destination_project: str
    ) -> BulkSummary:
        """Prepare many projects (BulkPrepare run)."""
        with self.manifests.track(
            RunMode.BULK_PREPARE,
            {
                'destination_project': destination_project,
                'project_paths': list(project_paths),
            },
        ) as run:
            summary = self.bulk.run_bulk(project_paths, destination_project)
            self._record_bulk(run, summary)
            return summary

    def bulk_migrate(
        self,
        project_paths: Sequence[str],
        destination_project: str,
        repo_names: Optional[Dict[str, str]] = None,
    ) -> BulkSummary:
        """Migrate many prepared projects (BulkMigrate run)."""
        with self.manifests.track(
            RunMode.BULK_MIGRATE,
            {
                'destination_project': destination_project,
                'project_paths': list(project_paths),
            },
        ) as run:
            summary = self.bulk.run_bulk_migration(
                project_paths, destination_project, repo_names
            )
            self._record_bulk(run, summary)
            return summary

    @staticmethod
    def _record_bulk(run, summary: BulkSummary) -> None:
        for entry in summary.failed_entries:
            run.add_error(f'{entry.source_path}: {entry.error_message}')
        run.set_status(summary.run_status)

    def test_connectivity(self) -> None:
        """Test connectivity to both platforms.

        Raises:
            ConnectionError: If connectivity test fails
        """
        self.logger.info('Testing connectivity to GitLab and Azure DevOps')

        if not self.source_client.test_connection():
            raise ConnectionError('Cannot connect to source GitLab instance')

        if not self.destination_client.test_connection():
            raise ConnectionError('Cannot connect to Azure DevOps organization')

        self.logger.info('Connectivity tests passed')

    def close(self) -> None:
        self.source_client.close()
        self.destination_client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

