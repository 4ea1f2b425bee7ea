"""Run manifests: persisted audit records of top-level operations.

A manifest is written as soon as a run starts, so an interrupted process
leaves a RUNNING manifest without an end time behind. It is completed exactly
once; completing it again leaves it unchanged. Manifest I/O problems are
logged and never interrupt the operation being described.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from loguru import logger
from pydantic import ValidationError

from ..models.manifest import RunManifest, RunMode, RunStatus
from .workspace import WorkspaceLayout, read_json, write_json


class RunTracker:
    """Collects errors, warnings and the outcome while a run is in progress."""

    def __init__(self, manifest: RunManifest):
        self.manifest = manifest
        self.status: Optional[RunStatus] = None
        self.errors: List[str] = []
        self.warnings: List[str] = []

    @property
    def run_id(self) -> str:
        return self.manifest.run_id

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)

    def add_warnings(self, messages: List[str]) -> None:
        self.warnings.extend(messages)

    def set_status(self, status: RunStatus) -> None:
        self.status = status

    def final_status(self) -> RunStatus:
        if self.status is not None:
            return self.status
        return RunStatus.FAILED if self.errors else RunStatus.SUCCESS


class ManifestStore:
    """Creates, completes and lists run manifests under the migrations root."""

    def __init__(self, layout: WorkspaceLayout):
        self.layout = layout
        self.logger = logger.bind(component='ManifestStore')

    def _save(self, manifest: RunManifest) -> None:
        try:
            write_json(self.layout.manifest_path(manifest.run_id), manifest)
        except OSError as e:
            self.logger.error(f'Could not write run manifest {manifest.run_id}: {e}')

    def create(
        self, mode: RunMode, parameters: Optional[Dict[str, Any]] = None
    ) -> RunManifest:
        """Start a run and persist its RUNNING manifest immediately."""
        manifest = RunManifest(mode=mode, parameters=parameters or {})
        self._save(manifest)
        self.logger.info(f'Started run {manifest.run_id} ({mode.value})')
        return manifest

    def load(self, run_id: str) -> Optional[RunManifest]:
        data = read_json(self.layout.manifest_path(run_id))
        if data is None:
            return None
        try:
            return RunManifest.model_validate(data)
        except ValidationError as e:
            self.logger.warning(f'Invalid run manifest {run_id}: {e}')
            return None

    def complete(
        self,
        run_id: str,
        status: RunStatus,
        errors: Optional[List[str]] = None,
        warnings: Optional[List[str]] = None,
    ) -> Optional[RunManifest]:
        """Record the terminal status of a run.

        Returns:
            The completed manifest, or None when it cannot be found

        Raises:
            ValueError: If ``status`` is RUNNING
        """
        if not status.is_terminal:
            raise ValueError('A run can only be completed with a terminal status')

        manifest = self.load(run_id)
        if manifest is None:
            self.logger.warning(f'Run manifest {run_id} not found; skipping update')
            return None

        if manifest.status.is_terminal:
            self.logger.warning(
                f'Run {run_id} already completed with {manifest.status.value}; '
                'ignoring second update'
            )
            return manifest

        end_time = max(datetime.now(), manifest.start_time)
        manifest.status = status
        manifest.end_time = end_time
        manifest.duration_seconds = round(
            (end_time - manifest.start_time).total_seconds(), 3
        )
        manifest.errors = list(errors or [])
        manifest.warnings = list(warnings or [])
        self._save(manifest)
        self.logger.info(
            f'Run {run_id} finished with {status.value} in {manifest.duration_seconds}s'
        )
        return manifest

    def list_runs(self) -> List[RunManifest]:
        """All readable manifests, oldest first."""
        runs = []
        for path in self.layout.manifest_paths():
            data = read_json(path)
            if data is None:
                continue
            try:
                runs.append(RunManifest.model_validate(data))
            except ValidationError:
                self.logger.warning(f'Skipping invalid manifest {path}')
        return sorted(runs, key=lambda m: m.start_time)

    @contextmanager
    def track(
        self, mode: RunMode, parameters: Optional[Dict[str, Any]] = None
    ) -> Iterator[RunTracker]:
        """Wrap a top-level operation in a manifest.

        Exceptions mark the run FAILED and propagate. KeyboardInterrupt is not
        caught, leaving the manifest RUNNING.
        """
        tracker = RunTracker(self.create(mode, parameters))
        try:
            yield tracker
        except Exception as e:
            tracker.add_error(f'{type(e).__name__}: {e}')
            self.complete(
                tracker.run_id, RunStatus.FAILED, tracker.errors, tracker.warnings
            )
            raise
        self.complete(
            tracker.run_id, tracker.final_status(), tracker.errors, tracker.warnings
        )
