"""Push a prepared mirror into an Azure DevOps repository."""

from datetime import datetime
from typing import List

from loguru import logger

from ..api.devops_client import AzureDevOpsClient
from ..api.exceptions import APIError
from ..git.lfs import LFSHandler
from ..git.operations import GitCommandError, GitOperations, inject_token, mask_secrets
from ..models.project import ProjectDescriptor
from ..models.results import ProjectMigrationResult, ResultStatus
from .workspace import ProjectWorkspace, WorkspaceLayout, append_line, read_json, write_json


class MigrationExecutor:
    """Migrates one prepared project.

    A migration report is written only after a successful push; the
    completion marker only after the destination refs match the mirror.
    """

    def __init__(
        self,
        destination_client: AzureDevOpsClient,
        git: GitOperations,
        lfs: LFSHandler,
        layout: WorkspaceLayout,
        verify: bool = True,
        push_lfs: bool = True,
    ):
        self.destination_client = destination_client
        self.git = git
        self.lfs = lfs
        self.layout = layout
        self.verify = verify
        self.push_lfs = push_lfs
        self.logger = logger.bind(component='MigrationExecutor')

    def _mask(self, text: str) -> str:
        return mask_secrets(text, [self.destination_client.push_token])

    def migrate(self, descriptor: ProjectDescriptor) -> ProjectMigrationResult:
        workspace = self.layout.project(descriptor.project_name)
        result = ProjectMigrationResult(
            source_path=descriptor.source_path,
            destination_project=descriptor.destination_project,
            repo_name=descriptor.repo_name,
            status=ResultStatus.FAILED,
        )
        preflight = read_json(workspace.preflight_report) or {}
        result.repo_size_mb = preflight.get('repo_size_MB') or 0.0
        repo_dir = workspace.repository_dir

        if not self.git.is_valid_repository(repo_dir):
            result.error_message = (
                f'No prepared mirror for {descriptor.source_path}; run preparation first'
            )
            return self._finish(workspace, result)

        try:
            if not self.destination_client.project_exists(descriptor.destination_project):
                result.error_message = (
                    f'Destination project {descriptor.destination_project} does not exist'
                )
                return self._finish(workspace, result)

            repo = self.destination_client.get_repository(
                descriptor.destination_project, descriptor.repo_name
            )
            if repo:
                result.warnings.append(
                    f'Repository {descriptor.repo_name} already exists in '
                    f'{descriptor.destination_project}; pushing into it'
                )
            else:
                repo = self.destination_client.create_repository(
                    descriptor.destination_project, descriptor.repo_name
                )

            result.remote_url = repo['remoteUrl']
            push_url = inject_token(
                result.remote_url, self.destination_client.push_token, username='pat'
            )
            self.logger.info(f'Pushing {descriptor.source_path} to {result.remote_url}')
            self.git.push_refs(repo_dir, push_url)
        except (APIError, GitCommandError) as e:
            result.error_message = f'{type(e).__name__}: {self._mask(str(e))}'
            return self._finish(workspace, result)

        result.status = ResultStatus.SUCCESS

        if preflight.get('lfs_enabled') and (preflight.get('lfs_size_MB') or 0) > 0:
            if self.push_lfs:
                lfs_result = self.lfs.push_all(repo_dir, push_url)
                if not lfs_result.success:
                    result.warnings.append(
                        f'LFS push failed: {self._mask(lfs_result.error or "")}'
                    )
            else:
                result.warnings.append('LFS objects were not pushed (disabled)')

        if self.verify:
            result.verified = self._verify(repo_dir, push_url, result.warnings)

        try:
            write_json(workspace.migration_report, result)
            if result.verified:
                write_json(
                    workspace.migration_complete,
                    {
                        'source_path': descriptor.source_path,
                        'destination_project': descriptor.destination_project,
                        'repo_name': descriptor.repo_name,
                        'completed_at': datetime.now().isoformat(),
                    },
                )
        except OSError as e:
            result.warnings.append(f'Could not write migration report: {e}')

        return self._finish(workspace, result)

    def _verify(self, repo_dir, push_url: str, warnings: List[str]) -> bool:
        """Compare local branch/tag refs with those advertised by the destination."""
        try:
            local = self.git.local_refs(repo_dir)
            remote = self.git.remote_refs(push_url)
        except GitCommandError as e:
            warnings.append(f'Verification skipped: {self._mask(str(e))}')
            return False

        missing = sorted(name for name, sha in local.items() if remote.get(name) != sha)
        if missing:
            preview = ', '.join(missing[:5])
            warnings.append(
                f'{len(missing)} refs differ on destination after push: {preview}'
            )
            return False
        return True

    def _finish(
        self, workspace: ProjectWorkspace, result: ProjectMigrationResult
    ) -> ProjectMigrationResult:
        if result.success:
            self.logger.info(
                f'Migrated {result.source_path} -> '
                f'{result.destination_project}/{result.repo_name} '
                f'(verified={result.verified})'
            )
        else:
            self.logger.error(f'Migration failed for {result.source_path}: {result.error_message}')

        if not result.verified:
            # An earlier completion no longer describes the destination
            try:
                workspace.migration_complete.unlink(missing_ok=True)
            except OSError as e:
                self.logger.warning(f'Could not remove completion marker: {e}')

        if workspace.exists():
            lines = [
                f'[{result.migrated_at:%Y-%m-%d %H:%M:%S}] Migration of {result.source_path} '
                f'to {result.destination_project}/{result.repo_name}: {result.status.value}',
            ]
            if result.error_message:
                lines.append(f'  error: {result.error_message}')
            lines.extend(f'  warning: {w}' for w in result.warnings)
            try:
                append_line(workspace.migration_log(result.migrated_at), '\n'.join(lines))
            except OSError as e:
                self.logger.warning(f'Could not write migration log: {e}')
        return result

