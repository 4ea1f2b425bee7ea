"""Sequential bulk preparation and migration with per-project failure isolation."""

from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from loguru import logger

from ..models.project import ProjectDescriptor
from ..models.results import BulkProjectEntry, BulkSummary, ResultStatus
from ..utils.progress import ProgressReporter
from .exceptions import BatchExistsError, MigrationValidationError
from .executor import MigrationExecutor
from .preparation import PreparationPipeline
from .workspace import BatchWorkspace, WorkspaceLayout, append_line, read_json, write_json

ConfirmCallback = Callable[[Path], bool]
ItemStep = Callable[[str], BulkProjectEntry]


def _repo_name(source_path: str) -> str:
    return source_path.strip().strip('/').rsplit('/', 1)[-1]


def _failed_entry(source_path: str, repo_name: str, error: str) -> BulkProjectEntry:
    return BulkProjectEntry(
        source_path=source_path,
        repo_name=repo_name,
        status=ResultStatus.FAILED,
        error_message=error,
    )


class BulkOrchestrator:
    """Runs preparation or migration over an ordered list of projects.

    Projects are processed one at a time. A failing project is recorded and
    the loop moves on; only precondition checks abort a run.
    """

    def __init__(
        self,
        pipeline: PreparationPipeline,
        layout: WorkspaceLayout,
        executor: Optional[MigrationExecutor] = None,
        progress: Optional[ProgressReporter] = None,
        confirm: Optional[ConfirmCallback] = None,
        allow_existing_batch: bool = False,
    ):
        self.pipeline = pipeline
        self.layout = layout
        self.executor = executor
        self.progress = progress or ProgressReporter()
        self.confirm = confirm
        self.allow_existing_batch = allow_existing_batch
        self.logger = logger.bind(component='BulkOrchestrator')

    def _validate(self, project_paths: Sequence[str], destination_project: str) -> List[str]:
        if not destination_project or not destination_project.strip():
            raise MigrationValidationError('Destination project must not be blank')
        paths: List[str] = []
        for raw in project_paths:
            path = (raw or '').strip().strip('/')
            if not path:
                continue
            if path in paths:
                self.logger.warning(f'Ignoring duplicate project path {path}')
                continue
            paths.append(path)
        if not paths:
            raise MigrationValidationError('At least one project path is required')
        return paths

    def _open_batch(self, destination_project: str) -> BatchWorkspace:
        batch = self.layout.batch(destination_project)
        if batch.exists():
            if self.confirm is not None:
                proceed = self.confirm(batch.path)
            else:
                proceed = self.allow_existing_batch
            if not proceed:
                raise BatchExistsError(batch.path)
            self.logger.info(f'Updating existing batch workspace {batch.path}')
        else:
            batch.path.mkdir(parents=True, exist_ok=True)
            self.logger.info(f'Created batch workspace {batch.path}')
        return batch

    def run_bulk(self, project_paths: Sequence[str], destination_project: str) -> BulkSummary:
        """Prepare every project and write the batch template and summary."""
        paths = self._validate(project_paths, destination_project)
        destination_project = destination_project.strip()
        batch = self._open_batch(destination_project)

        summary = self._run_loop(
            paths,
            destination_project,
            self._prepare_one,
            batch.preparation_log,
            'Preparing',
        )

        self._write_template(batch, summary)
        write_json(batch.preparation_summary, summary)
        self._log_totals(batch.preparation_log, summary)
        return summary

    def run_bulk_migration(
        self,
        project_paths: Sequence[str],
        destination_project: str,
        repo_names: Optional[Dict[str, str]] = None,
    ) -> BulkSummary:
        """Migrate every prepared project into ``destination_project``."""
        if self.executor is None:
            raise MigrationValidationError('Bulk migration requires a migration executor')
        paths = self._validate(project_paths, destination_project)
        destination_project = destination_project.strip()
        batch = self.layout.batch(destination_project)
        batch.path.mkdir(parents=True, exist_ok=True)
        names = repo_names or {}

        def migrate_one(source_path: str) -> BulkProjectEntry:
            descriptor = ProjectDescriptor(
                source_path=source_path,
                destination_project=destination_project,
                destination_repo_name=names.get(source_path),
            )
            result = self.executor.migrate(descriptor)
            if not result.success:
                return _failed_entry(
                    source_path, descriptor.repo_name, result.error_message or 'unknown error'
                )
            return BulkProjectEntry(
                source_path=source_path,
                repo_name=descriptor.repo_name,
                status=ResultStatus.SUCCESS,
                repo_size_mb=result.repo_size_mb,
            )

        summary = self._run_loop(
            paths, destination_project, migrate_one, batch.migration_log, 'Migrating'
        )
        write_json(batch.migration_summary, summary)
        self._log_totals(batch.migration_log, summary)
        return summary

    def prepared_paths(self, destination_project: str) -> List[str]:
        """Source paths marked SUCCESS in the batch template, in template order."""
        data = read_json(self.layout.batch(destination_project).template) or {}
        return [
            p['source_path']
            for p in data.get('projects', [])
            if p.get('status') == ResultStatus.SUCCESS.value
        ]

    def _prepare_one(self, source_path: str) -> BulkProjectEntry:
        result = self.pipeline.prepare(source_path)
        repo_name = _repo_name(source_path)
        if not result.success:
            return _failed_entry(source_path, repo_name, result.error_message or 'unknown error')
        return BulkProjectEntry(
            source_path=source_path,
            repo_name=repo_name,
            status=ResultStatus.SUCCESS,
            repo_size_mb=result.repo_size_mb,
            lfs_enabled=bool(result.lfs_enabled),
            lfs_size_mb=result.lfs_size_mb,
            default_branch=result.default_branch,
            visibility=result.visibility,
        )

    def _run_loop(
        self,
        paths: List[str],
        destination_project: str,
        step: ItemStep,
        log_path: Path,
        description: str,
    ) -> BulkSummary:
        total = len(paths)
        summary = BulkSummary(destination_project=destination_project, total_projects=total)
        append_line(
            log_path,
            f'[{summary.started_at:%Y-%m-%d %H:%M:%S}] {description} {total} projects '
            f'for {destination_project}',
        )

        self.progress.start(total, f'{description} projects')
        try:
            for index, source_path in enumerate(paths, start=1):
                self.progress.update(index, total, source_path)
                started_at = datetime.now()
                try:
                    entry = step(source_path)
                except Exception as e:
                    self.logger.exception(f'Unexpected error processing {source_path}')
                    entry = _failed_entry(
                        source_path, _repo_name(source_path), f'{type(e).__name__}: {e}'
                    )
                finished_at = datetime.now()
                summary.record(entry)

                line = (
                    f'[{index}/{total}] {source_path} | status={entry.status.value} '
                    f'| start={started_at.isoformat(timespec="seconds")} '
                    f'| end={finished_at.isoformat(timespec="seconds")}'
                )
                if entry.error_message:
                    line += f' | error={entry.error_message}'
                append_line(log_path, line)

                if entry.status == ResultStatus.SUCCESS:
                    self.logger.info(f'[{index}/{total}] {source_path}: SUCCESS')
                else:
                    self.logger.error(
                        f'[{index}/{total}] {source_path}: FAILED ({entry.error_message})'
                    )
        finally:
            self.progress.finish()

        return summary.finalize()

    def _write_template(self, batch: BatchWorkspace, summary: BulkSummary) -> None:
        """Merge this run's entries into the batch template.

        Entries from earlier runs are kept unless the project was processed
        again, in which case the new entry replaces them.
        """
        current = {e.source_path for e in summary.results}
        previous = read_json(batch.template) or {}
        kept = [
            p for p in previous.get('projects', []) if p.get('source_path') not in current
        ]
        write_json(
            batch.template,
            {
                'destination_project': summary.destination_project,
                'updated_at': datetime.now().isoformat(timespec='seconds'),
                'projects': kept
                + [e.model_dump(mode='json', exclude_none=True) for e in summary.results],
            },
        )

    def _log_totals(self, log_path: Path, summary: BulkSummary) -> None:
        append_line(
            log_path,
            f'Totals: {summary.total_projects} projects, {summary.success_count} succeeded, '
            f'{summary.failure_count} failed, success rate {summary.success_rate_percent}%, '
            f'total size {summary.total_size_mb} MB',
        )
