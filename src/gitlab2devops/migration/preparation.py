"""Idempotent per-project preparation: workspace, preflight report, mirror."""

import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger
from pydantic import ValidationError

from ..api.exceptions import APIError
from ..git.lfs import LFSHandler
from ..git.operations import GitCommandError, GitOperations, inject_token, mask_secrets
from ..models.project import CostEstimate, ProjectDescriptor, ProjectStatistics
from ..models.results import PreparationResult, ResultStatus
from .analyzer import ProjectAnalyzer
from .exceptions import LocalStateError, MigrationValidationError
from .workspace import ProjectWorkspace, WorkspaceLayout, append_line, write_json


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def build_preflight_report(
    stats: ProjectStatistics, estimate: CostEstimate, lfs_available: bool
) -> Dict[str, Any]:
    """Preflight report payload. Contains no timestamps of its own."""
    return {
        'project': stats.path_with_namespace,
        'http_url_to_repo': stats.http_url_to_repo,
        'default_branch': stats.default_branch,
        'visibility': stats.visibility,
        'lfs_enabled': stats.lfs_enabled,
        'git_lfs_available': lfs_available,
        'repo_size_MB': estimate.size_mb,
        'lfs_size_MB': estimate.lfs_size_mb,
        'open_issues': stats.open_issues_count,
        'last_activity': stats.last_activity_at.isoformat()
        if stats.last_activity_at
        else None,
        'estimated_duration_minutes': estimate.estimated_duration_minutes,
        'warnings': estimate.warnings,
        'prerequisites': estimate.prerequisites,
    }


class PreparationPipeline:
    """Prepares one project for migration.

    Only analysis and report writing can fail a preparation. Mirror, LFS and
    reachability problems are recorded as warnings on a SUCCESS result.
    """

    def __init__(
        self,
        analyzer: ProjectAnalyzer,
        git: GitOperations,
        lfs: LFSHandler,
        layout: WorkspaceLayout,
        source_token: Optional[str] = None,
    ):
        self.analyzer = analyzer
        self.git = git
        self.lfs = lfs
        self.layout = layout
        self.source_token = source_token
        self.logger = logger.bind(component='PreparationPipeline')

    def _mask(self, text: str) -> str:
        return mask_secrets(text, [self.source_token])

    def prepare(self, source_path: str) -> PreparationResult:
        """Prepare ``source_path``; repeated calls converge to the same layout."""
        try:
            descriptor = ProjectDescriptor(source_path=source_path)
        except ValidationError as e:
            raise MigrationValidationError(f'Invalid project path {source_path!r}: {e}')

        workspace = self.layout.project(descriptor.project_name)
        started_at = datetime.now()
        self.logger.info(f'Preparing {descriptor.source_path}')

        try:
            stats = self.analyzer.analyze(descriptor.source_path)
        except APIError as e:
            return self._fail(
                workspace,
                descriptor.source_path,
                f'{type(e).__name__}: {self._mask(str(e))}',
            )

        estimate = self.analyzer.estimate(stats)
        lfs_available = self.lfs.is_available()

        try:
            workspace.ensure()
            write_json(
                workspace.preflight_report,
                build_preflight_report(stats, estimate, lfs_available),
            )
        except OSError as e:
            return self._fail(
                workspace, descriptor.source_path, f'Cannot write workspace: {e}'
            )

        warnings: List[str] = list(estimate.warnings)
        clone_url = inject_token(stats.http_url_to_repo, self.source_token)
        try:
            repo_path = self._materialize(workspace.repository_dir, clone_url, warnings)
        except OSError as e:
            self.logger.warning(f'Could not reset local mirror: {e}')
            warnings.append(f'Could not reset local mirror: {e}')
            repo_path = None

        if (
            repo_path is not None
            and stats.lfs_enabled
            and stats.lfs_objects_size > 0
            and lfs_available
        ):
            lfs_result = self.lfs.fetch_all(repo_path)
            if not lfs_result.success:
                warnings.append(f'LFS fetch failed: {self._mask(lfs_result.error or "")}')

        result = PreparationResult(
            source_path=descriptor.source_path,
            status=ResultStatus.SUCCESS,
            repo_size_mb=estimate.size_mb,
            lfs_size_mb=estimate.lfs_size_mb,
            lfs_enabled=stats.lfs_enabled,
            default_branch=stats.default_branch,
            visibility=stats.visibility,
            local_repo_path=str(repo_path) if repo_path is not None else None,
            warnings=warnings,
        )

        self._write_log(workspace, stats, estimate, result, started_at)

        if not self.git.is_reachable(clone_url):
            message = f'Source repository not reachable: {stats.http_url_to_repo}'
            self.logger.warning(message)
            result.warnings.append(message)

        self._write_result(workspace, result)
        self.logger.info(
            f'Prepared {descriptor.source_path} ({estimate.size_mb} MB, '
            f'{len(result.warnings)} warnings)'
        )
        return result

    def _fail(
        self, workspace: ProjectWorkspace, source_path: str, error: str
    ) -> PreparationResult:
        self.logger.error(f'Preparation failed for {source_path}: {error}')
        result = PreparationResult.failed(source_path, error)
        # A brand-new project gets no directories
        if workspace.exists():
            self._write_result(workspace, result)
        return result

    def _write_result(self, workspace: ProjectWorkspace, result: PreparationResult) -> None:
        try:
            write_json(workspace.preparation_result, result)
        except OSError as e:
            self.logger.warning(f'Could not write preparation result: {e}')

    def _check_local_repository(self, repo_dir: Path) -> None:
        if not self.git.is_valid_repository(repo_dir):
            raise LocalStateError(f'{repo_dir} is not a valid git repository')

    def _materialize(
        self, repo_dir: Path, clone_url: str, warnings: List[str]
    ) -> Optional[Path]:
        """Mirror-or-update. Returns the mirror path, or None when no mirror exists."""
        if repo_dir.exists():
            try:
                self._check_local_repository(repo_dir)
            except LocalStateError as e:
                self.logger.warning(f'{e}; removing and cloning again')
                _remove(repo_dir)
            else:
                try:
                    self.git.set_remote_url(repo_dir, clone_url)
                    self.git.fetch_all(repo_dir)
                    self.logger.info(f'Updated existing mirror at {repo_dir}')
                    return repo_dir
                except GitCommandError as e:
                    if not self.git.is_reachable(clone_url):
                        message = f'Mirror update failed, source unreachable; kept existing mirror: {e}'
                        self.logger.warning(message)
                        warnings.append(message)
                        return repo_dir
                    self.logger.warning(f'Mirror update failed, cloning again: {e}')
                    _remove(repo_dir)

        try:
            self.git.clone_mirror(clone_url, repo_dir)
        except GitCommandError as e:
            message = f'Mirror clone failed: {e}'
            self.logger.warning(message)
            warnings.append(message)
            if repo_dir.exists():
                _remove(repo_dir)
            return None

        self.logger.info(f'Created mirror at {repo_dir}')
        return repo_dir

    def _write_log(
        self,
        workspace: ProjectWorkspace,
        stats: ProjectStatistics,
        estimate: CostEstimate,
        result: PreparationResult,
        started_at: datetime,
    ) -> None:
        finished_at = datetime.now()
        lines = [
            f'[{finished_at:%Y-%m-%d %H:%M:%S}] Preparation of {stats.path_with_namespace}',
            f'  started: {started_at.isoformat(timespec="seconds")}',
            f'  default branch: {stats.default_branch}',
            f'  visibility: {stats.visibility}',
            f'  size: {estimate.size_mb} MB (LFS {estimate.lfs_size_mb} MB)',
            f'  estimated duration: {estimate.estimated_duration_minutes} min',
            f'  mirror: {result.local_repo_path or "not materialized"}',
        ]
        lines.extend(f'  warning: {w}' for w in result.warnings)
        try:
            append_line(workspace.preparation_log(finished_at), '\n'.join(lines))
        except OSError as e:
            self.logger.warning(f'Could not write preparation log: {e}')
