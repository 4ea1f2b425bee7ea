"""Git LFS (Large File Storage) operations."""

from dataclasses import dataclass
from typing import Optional

from loguru import logger

from .operations import GitCommandError, GitOperations, PathLike


@dataclass
class LFSResult:
    """Result of an LFS operation."""

    success: bool
    error: Optional[str] = None


class LFSHandler:
    """Handles Git LFS operations for repository migration."""

    def __init__(self, git: GitOperations, enabled: bool = True):
        """Initialize LFS handler.

        Args:
            git: Git command runner
            enabled: Whether LFS operations are allowed by configuration
        """
        self.git = git
        self.enabled = enabled
        self.logger = logger.bind(component='LFSHandler')
        self._available: Optional[bool] = None

    def is_available(self) -> bool:
        """Check whether the ``git lfs`` extension is installed.

        The result is cached for the lifetime of the handler.
        """
        if self._available is None:
            try:
                version = self.git.run(['lfs', 'version'], timeout=30)
                self.logger.debug(f'Git LFS available: {version.strip()}')
                self._available = True
            except GitCommandError:
                self.logger.warning('Git LFS is not installed')
                self._available = False
        return self._available

    def fetch_all(self, repo_path: PathLike) -> LFSResult:
        """Fetch every LFS object referenced by the mirror."""
        if not self.enabled or not self.is_available():
            return LFSResult(success=False, error='Git LFS unavailable')
        try:
            self.git.run(['lfs', 'fetch', '--all'], cwd=repo_path)
        except GitCommandError as e:
            self.logger.warning(f'LFS fetch failed: {e}')
            return LFSResult(success=False, error=str(e))
        return LFSResult(success=True)

    def push_all(self, repo_path: PathLike, url: str) -> LFSResult:
        """Upload every local LFS object to ``url``."""
        if not self.enabled or not self.is_available():
            return LFSResult(success=False, error='Git LFS unavailable')
        try:
            self.git.run(['lfs', 'push', '--all', url], cwd=repo_path)
        except GitCommandError as e:
            self.logger.warning(f'LFS push failed: {e}')
            return LFSResult(success=False, error=str(e))
        return LFSResult(success=True)
