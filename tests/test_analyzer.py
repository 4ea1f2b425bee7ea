"""Tests for project analysis and cost estimation."""

from unittest.mock import Mock

import pytest

from gitlab2devops.api.client import GitLabClient
from gitlab2devops.api.devops_client import AzureDevOpsClient
from gitlab2devops.api.exceptions import InvalidResponseError, NotFoundError, TransientError
from gitlab2devops.git.lfs import LFSHandler
from gitlab2devops.migration.analyzer import ProjectAnalyzer, estimate_duration
from gitlab2devops.models.project import BYTES_PER_MB, ProjectDescriptor, ProjectStatistics


def project_payload(path='group/app', size_mb=8, lfs_mb=0, lfs_enabled=False):
    return {
        'id': 42,
        'path_with_namespace': path,
        'http_url_to_repo': f'https://gitlab.example.com/{path}.git',
        'default_branch': 'main',
        'visibility': 'internal',
        'lfs_enabled': lfs_enabled,
        'open_issues_count': 3,
        'last_activity_at': '2024-05-01T10:00:00Z',
        'statistics': {
            'repository_size': int(size_mb * BYTES_PER_MB),
            'lfs_objects_size': int(lfs_mb * BYTES_PER_MB),
        },
    }


class TestEstimateDuration:
    """Test the duration step function."""

    @pytest.mark.parametrize(
        'size_mb, minutes',
        [
            (0, 2),
            (9.99, 2),
            (10, 5),
            (49, 5),
            (50, 10),
            (99.5, 10),
            (100, 30),
            (499, 30),
            (500, 60),
            (999, 60),
            (1000, 120),
            (25000, 120),
        ],
    )
    def test_steps(self, size_mb, minutes):
        assert estimate_duration(size_mb) == minutes

    def test_monotonic_in_size(self):
        sizes = [x / 4 for x in range(0, 6000)]
        durations = [estimate_duration(s) for s in sizes]

        assert all(a <= b for a, b in zip(durations, durations[1:]))

    def test_monotonic_with_lfs(self):
        sizes = [x * 7.5 for x in range(0, 200)]
        durations = [estimate_duration(s, 50, True) for s in sizes]

        assert all(a <= b for a, b in zip(durations, durations[1:]))

    def test_lfs_minutes_added_when_enabled(self):
        assert estimate_duration(5, 50, True) == 2 + 5
        assert estimate_duration(5, 51, True) == 2 + 6
        assert estimate_duration(5, 50, False) == 2
        assert estimate_duration(5, 0, True) == 2


class TestProjectAnalyzer:
    """Test ProjectAnalyzer."""

    def setup_method(self):
        """Set up test fixtures."""
        self.client = Mock(spec=GitLabClient)
        self.lfs = Mock(spec=LFSHandler)
        self.lfs.is_available.return_value = True
        self.destination = Mock(spec=AzureDevOpsClient)
        self.analyzer = ProjectAnalyzer(self.client, self.lfs, self.destination)

    def test_analyze(self):
        self.client.get_project.return_value = project_payload(size_mb=8)

        stats = self.analyzer.analyze('group/app')

        self.client.get_project.assert_called_once_with('group/app', statistics=True)
        assert stats.path_with_namespace == 'group/app'
        assert stats.default_branch == 'main'
        assert stats.visibility == 'internal'
        assert stats.open_issues_count == 3
        assert stats.size_mb == 8.0

    def test_analyze_refetches_every_call(self):
        self.client.get_project.side_effect = [
            project_payload(size_mb=8),
            project_payload(size_mb=12),
        ]

        assert self.analyzer.analyze('group/app').size_mb == 8.0
        assert self.analyzer.analyze('group/app').size_mb == 12.0

    def test_analyze_errors_propagate(self):
        self.client.get_project.side_effect = NotFoundError('Project not found: x')
        with pytest.raises(NotFoundError):
            self.analyzer.analyze('x')

        self.client.get_project.side_effect = TransientError('HTTP 502')
        with pytest.raises(TransientError):
            self.analyzer.analyze('x')

    def test_non_json_response_is_invalid(self):
        self.client.get_project.return_value = '<html>Sign in</html>'

        with pytest.raises(InvalidResponseError):
            self.analyzer.analyze('group/app')

    def test_incomplete_payload_is_invalid(self):
        self.client.get_project.return_value = {'id': 42, 'statistics': 'n/a'}

        with pytest.raises(InvalidResponseError):
            self.analyzer.analyze('group/app')

    def test_small_project_estimate(self):
        stats = ProjectStatistics.from_api(project_payload(size_mb=8))

        estimate = self.analyzer.estimate(stats)

        assert estimate.estimated_duration_minutes == 2
        assert estimate.warnings == []
        assert estimate.prerequisites == []

    def test_large_project_with_lfs_and_no_lfs_tool(self):
        self.lfs.is_available.return_value = False
        stats = ProjectStatistics.from_api(
            project_payload(size_mb=600, lfs_mb=50, lfs_enabled=True)
        )

        estimate = self.analyzer.estimate(stats)

        assert estimate.size_mb == 600.0
        assert estimate.lfs_size_mb == 50.0
        assert estimate.estimated_duration_minutes == 60 + 5
        assert len(estimate.warnings) == 2
        assert estimate.warnings[0].startswith('Large repository')
        assert 'Git LFS' in estimate.warnings[1]
        assert any('Install Git LFS' in p for p in estimate.prerequisites)

    def test_lfs_tool_present_means_no_prerequisite(self):
        stats = ProjectStatistics.from_api(
            project_payload(size_mb=20, lfs_mb=30, lfs_enabled=True)
        )

        estimate = self.analyzer.estimate(stats)

        assert estimate.estimated_duration_minutes == 5 + 3
        assert estimate.warnings == []
        assert estimate.prerequisites == []

    def test_estimate_is_pure(self):
        stats = ProjectStatistics.from_api(project_payload(size_mb=700))

        assert self.analyzer.estimate(stats) == self.analyzer.estimate(stats)

    def test_destination_conflict(self):
        self.destination.get_repository.return_value = {'name': 'app'}
        descriptor = ProjectDescriptor(source_path='group/app', destination_project='Platform')

        warnings = self.analyzer.check_destination_conflict(descriptor)

        assert warnings == ['Repository app already exists in Platform']
        self.destination.get_repository.assert_called_once_with('Platform', 'app')

    def test_destination_conflict_lookup_failure_is_warning(self):
        self.destination.get_repository.side_effect = NotFoundError('Resource not found')
        descriptor = ProjectDescriptor(source_path='group/app', destination_project='Missing')

        warnings = self.analyzer.check_destination_conflict(descriptor)

        assert len(warnings) == 1
        assert 'Could not check repositories' in warnings[0]

    def test_no_destination_no_conflict_check(self):
        analyzer = ProjectAnalyzer(self.client, self.lfs)

        assert analyzer.check_destination_conflict(
            ProjectDescriptor(source_path='group/app', destination_project='Platform')
        ) == []
