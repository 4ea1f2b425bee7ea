"""Tests for progress reporting."""

import io
from unittest.mock import patch

from rich.console import Console

from gitlab2devops.utils.progress import (
    ProgressReporter,
    RichProgressReporter,
    estimate_eta,
    format_eta,
)


class TestEstimateEta:
    """Test ETA arithmetic."""

    def test_nothing_completed(self):
        assert estimate_eta(12.0, 0, 10) is None

    def test_average_cost(self):
        assert estimate_eta(30.0, 3, 10) == 70.0

    def test_all_completed(self):
        assert estimate_eta(30.0, 10, 10) == 0.0

    def test_format(self):
        assert format_eta(None) == 'ETA --:--'
        assert format_eta(75) == 'ETA 01:15'
        assert format_eta(3725) == 'ETA 1:02:05'


class TestProgressReporter:
    """Test reporters."""

    @patch('gitlab2devops.utils.progress.time.monotonic')
    def test_eta_uses_completed_items(self, mock_monotonic):
        reporter = ProgressReporter()
        mock_monotonic.return_value = 100.0
        reporter.start(4)

        mock_monotonic.return_value = 120.0
        assert reporter.eta(1) is None
        assert reporter.eta(3) == 20.0

    def test_eta_before_start(self):
        assert ProgressReporter().eta(1) is None

    def test_rich_reporter_lifecycle(self):
        console = Console(file=io.StringIO(), force_terminal=False)
        reporter = RichProgressReporter(console)

        reporter.start(2, 'Preparing projects')
        reporter.update(1, 2, 'group/a')
        reporter.update(2, 2, 'group/b')
        reporter.finish()

        assert reporter._progress is None

    def test_rich_reporter_update_without_start(self):
        reporter = RichProgressReporter(Console(file=io.StringIO()))

        reporter.update(1, 1, 'group/a')
        reporter.finish()
