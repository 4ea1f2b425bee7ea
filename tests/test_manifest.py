"""Tests for run manifests and project state."""

import json
from datetime import datetime, timedelta

import pytest

from gitlab2devops.migration.manifest import ManifestStore, RunTracker
from gitlab2devops.migration.state import get_project_state, list_project_states
from gitlab2devops.migration.workspace import WorkspaceLayout, write_json
from gitlab2devops.models.manifest import RunManifest, RunMode, RunStatus
from gitlab2devops.models.results import PreparationResult, ProjectState


class TestManifestStore:
    """Test the manifest state machine."""

    @pytest.fixture(autouse=True)
    def setup(self, tmp_path):
        self.layout = WorkspaceLayout(tmp_path / 'migrations')
        self.store = ManifestStore(self.layout)

    def test_created_manifest_is_persisted_running(self):
        manifest = self.store.create(RunMode.PREFLIGHT, {'source_path': 'group/app'})

        path = self.layout.manifest_path(manifest.run_id)
        data = json.loads(path.read_text())
        assert data['status'] == 'RUNNING'
        assert data['mode'] == 'Preflight'
        assert data['parameters'] == {'source_path': 'group/app'}
        assert 'end_time' not in data
        assert 'duration_seconds' not in data
        assert data['errors'] == []

        loaded = self.store.load(manifest.run_id)
        assert loaded.is_interrupted is True

    def test_run_ids_are_unique(self):
        ids = {self.store.create(RunMode.MIGRATE).run_id for _ in range(20)}

        assert len(ids) == 20

    def test_complete(self):
        manifest = self.store.create(RunMode.BULK_PREPARE)

        completed = self.store.complete(
            manifest.run_id, RunStatus.PARTIAL, ['a/p2: not found'], ['slow']
        )

        assert completed.status == RunStatus.PARTIAL
        assert completed.end_time >= completed.start_time
        assert completed.duration_seconds >= 0
        assert completed.errors == ['a/p2: not found']
        assert completed.warnings == ['slow']
        assert completed.is_interrupted is False
        assert self.store.load(manifest.run_id) == completed

    def test_second_completion_is_ignored(self):
        manifest = self.store.create(RunMode.MIGRATE)
        first = self.store.complete(manifest.run_id, RunStatus.SUCCESS)

        second = self.store.complete(manifest.run_id, RunStatus.FAILED, ['late error'])

        assert second == first
        assert self.store.load(manifest.run_id).status == RunStatus.SUCCESS
        assert self.store.load(manifest.run_id).errors == []

    def test_running_is_not_a_completion_status(self):
        manifest = self.store.create(RunMode.MIGRATE)

        with pytest.raises(ValueError):
            self.store.complete(manifest.run_id, RunStatus.RUNNING)

    def test_missing_manifest_is_not_fatal(self):
        assert self.store.complete('does-not-exist', RunStatus.SUCCESS) is None

    def test_end_time_never_before_start(self):
        manifest = RunManifest(
            mode=RunMode.MIGRATE, start_time=datetime.now() + timedelta(hours=1)
        )
        write_json(self.layout.manifest_path(manifest.run_id), manifest)

        completed = self.store.complete(manifest.run_id, RunStatus.SUCCESS)

        assert completed.end_time == completed.start_time
        assert completed.duration_seconds == 0

    def test_list_runs_oldest_first(self):
        older = RunManifest(mode=RunMode.PREFLIGHT, start_time=datetime(2024, 1, 1))
        newer = RunManifest(mode=RunMode.MIGRATE, start_time=datetime(2024, 6, 1))
        write_json(self.layout.manifest_path(newer.run_id), newer)
        write_json(self.layout.manifest_path(older.run_id), older)
        self.layout.manifest_path('broken').write_text('{not json')

        runs = self.store.list_runs()

        assert [r.run_id for r in runs] == [older.run_id, newer.run_id]

    def test_track_success(self):
        with self.store.track(RunMode.INITIALIZE, {'destination_project': 'P'}) as run:
            run.add_warning('Project P already exists')

        manifest = self.store.load(run.run_id)
        assert manifest.status == RunStatus.SUCCESS
        assert manifest.warnings == ['Project P already exists']

    def test_track_errors_mean_failed(self):
        with self.store.track(RunMode.PREFLIGHT) as run:
            run.add_error('NotFoundError: Project not found')

        assert self.store.load(run.run_id).status == RunStatus.FAILED

    def test_track_explicit_status(self):
        with self.store.track(RunMode.BULK_PREPARE) as run:
            run.add_error('a/p2: failed')
            run.set_status(RunStatus.PARTIAL)

        assert self.store.load(run.run_id).status == RunStatus.PARTIAL

    def test_track_exception_marks_failed_and_propagates(self):
        with pytest.raises(RuntimeError):
            with self.store.track(RunMode.MIGRATE) as run:
                raise RuntimeError('push exploded')

        manifest = self.store.load(run.run_id)
        assert manifest.status == RunStatus.FAILED
        assert manifest.errors == ['RuntimeError: push exploded']

    def test_track_interrupt_leaves_running(self):
        with pytest.raises(KeyboardInterrupt):
            with self.store.track(RunMode.BULK_MIGRATE) as run:
                raise KeyboardInterrupt

        manifest = self.store.load(run.run_id)
        assert manifest.status == RunStatus.RUNNING
        assert manifest.is_interrupted is True


class TestRunTracker:
    """Test RunTracker status resolution."""

    def test_final_status(self):
        tracker = RunTracker(RunManifest(mode=RunMode.MIGRATE))
        assert tracker.final_status() == RunStatus.SUCCESS

        tracker.add_error('boom')
        assert tracker.final_status() == RunStatus.FAILED

        tracker.set_status(RunStatus.PARTIAL)
        assert tracker.final_status() == RunStatus.PARTIAL


class TestProjectState:
    """Test state derived from workspace artifacts."""

    @pytest.fixture(autouse=True)
    def setup(self, tmp_path):
        self.layout = WorkspaceLayout(tmp_path / 'migrations')
        self.workspace = self.layout.project('app')

    def test_unknown_project(self):
        assert get_project_state(self.workspace) is None

    def test_prepared(self):
        write_json(self.workspace.preflight_report, {'project': 'group/app'})

        assert get_project_state(self.workspace) == ProjectState.PREPARED

    def test_failed_preparation(self):
        write_json(self.workspace.preflight_report, {'project': 'group/app'})
        write_json(
            self.workspace.preparation_result,
            PreparationResult.failed('group/app', 'NotFoundError: gone'),
        )

        assert get_project_state(self.workspace) == ProjectState.FAILED

    def test_migrated_and_completed(self):
        write_json(self.workspace.preflight_report, {'project': 'group/app'})
        write_json(self.workspace.migration_report, {'status': 'SUCCESS'})
        assert get_project_state(self.workspace) == ProjectState.MIGRATED

        write_json(self.workspace.migration_complete, {'source_path': 'group/app'})
        assert get_project_state(self.workspace) == ProjectState.COMPLETED

    def test_state_recomputed_from_filesystem(self):
        write_json(self.workspace.migration_report, {'status': 'SUCCESS'})
        assert get_project_state(self.workspace) == ProjectState.MIGRATED

        self.workspace.migration_report.unlink()
        assert get_project_state(self.workspace) is None

    def test_list_project_states_skips_batches(self):
        write_json(self.workspace.preflight_report, {'project': 'group/app'})
        self.layout.batch('Platform').path.mkdir(parents=True)
        self.layout.project('other').path.mkdir(parents=True)

        assert list_project_states(self.layout) == [
            ('app', ProjectState.PREPARED),
            ('other', None),
        ]
