"""Blocking wrappers around the git command line."""

import subprocess
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from loguru import logger

PathLike = Union[str, Path]


class GitCommandError(Exception):
    """Raised when a git command exits with a non-zero status."""

    def __init__(self, command: List[str], returncode: int, stderr: str = ''):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f'git {command[1] if len(command) > 1 else ""} failed '
            f'(exit {returncode}): {stderr.strip()}'
        )


def inject_token(url: str, token: Optional[str], username: str = 'oauth2') -> str:
    """Insert credentials into an HTTPS clone URL.

    ``https://host/group/repo.git`` becomes
    ``https://oauth2:<token>@host/group/repo.git``. Non-HTTP(S) URLs and empty
    tokens are returned unchanged.
    """
    if not token:
        return url
    for scheme in ('https://', 'http://'):
        if url.startswith(scheme):
            rest = url[len(scheme):]
            if '@' in rest.split('/', 1)[0]:
                rest = rest.split('@', 1)[1]
            return f'{scheme}{username}:{token}@{rest}'
    return url


def mask_secrets(text: str, secrets: Iterable[Optional[str]]) -> str:
    """Replace every secret occurring in ``text`` with ``***TOKEN***``."""
    result = text
    for secret in secrets:
        if secret:
            result = result.replace(secret, '***TOKEN***')
    return result


class GitOperations:
    """Runs git subcommands as blocking processes.

    Every command that fails raises :class:`GitCommandError` with the tokens
    registered in ``secrets`` masked out of the message.
    """

    def __init__(
        self,
        timeout: int = 3600,
        secrets: Optional[Iterable[Optional[str]]] = None,
        git_executable: str = 'git',
    ):
        self.timeout = timeout
        self.secrets = [s for s in (secrets or []) if s]
        self.git_executable = git_executable
        self.logger = logger.bind(component='GitOperations')

    def _mask(self, text: str) -> str:
        return mask_secrets(text, self.secrets)

    def run(
        self,
        args: List[str],
        cwd: Optional[PathLike] = None,
        timeout: Optional[int] = None,
    ) -> str:
        """Run ``git <args>`` and return its stdout.

        Raises:
            GitCommandError: On non-zero exit, timeout or missing executable
        """
        cmd = [self.git_executable] + list(args)
        masked_cmd = [self._mask(part) for part in cmd]
        self.logger.debug(f'Executing git command: {" ".join(masked_cmd)}')

        try:
            result = subprocess.run(  # noqa: S603
                cmd,
                cwd=str(cwd) if cwd else None,
                capture_output=True,
                text=True,
                timeout=timeout or self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            raise GitCommandError(masked_cmd, -1, 'timed out')
        except OSError as e:
            raise GitCommandError(masked_cmd, -1, self._mask(str(e)))

        if result.returncode != 0:
            raise GitCommandError(masked_cmd, result.returncode, self._mask(result.stderr))

        return result.stdout

    def clone_mirror(self, url: str, destination: PathLike) -> None:
        """Create a bare mirror clone with all refs."""
        self.run(['clone', '--mirror', url, str(destination)])

    def fetch_all(self, repo_path: PathLike) -> None:
        """Fetch all remotes, pruning refs deleted upstream."""
        self.run(['fetch', '--all', '--prune'], cwd=repo_path)

    def set_remote_url(self, repo_path: PathLike, url: str, remote: str = 'origin') -> None:
        """Point ``remote`` at ``url``."""
        self.run(['remote', 'set-url', remote, url], cwd=repo_path)

    def is_valid_repository(self, repo_path: PathLike) -> bool:
        """Cheap local check that ``repo_path`` is itself a git repository.

        A directory that only sits inside some enclosing working tree is not
        accepted: the resolved git dir must be ``repo_path`` (bare) or its
        ``.git`` child.
        """
        path = Path(repo_path)
        if not path.is_dir():
            return False
        try:
            output = self.run(['rev-parse', '--absolute-git-dir'], cwd=path, timeout=60)
        except GitCommandError:
            return False
        if not output.strip():
            return False
        git_dir = Path(output.strip()).resolve()
        root = path.resolve()
        return git_dir in (root, root / '.git')

    def ls_remote_head(self, url: str) -> str:
        """Query the remote HEAD without downloading anything."""
        return self.run(['ls-remote', url, 'HEAD'], timeout=120)

    def is_reachable(self, url: str) -> bool:
        """Return True when ``ls-remote`` against ``url`` succeeds."""
        try:
            self.ls_remote_head(url)
        except GitCommandError as e:
            self.logger.debug(f'Remote not reachable: {e}')
            return False
        return True

    def push_refs(self, repo_path: PathLike, url: str) -> None:
        """Push branches and tags, pruning destination refs deleted locally."""
        self.run(
            [
                'push',
                '--prune',
                url,
                '+refs/heads/*:refs/heads/*',
                '+refs/tags/*:refs/tags/*',
            ],
            cwd=repo_path,
        )

    def local_refs(self, repo_path: PathLike) -> Dict[str, str]:
        """Map branch and tag refs of a local repository to their object ids."""
        output = self.run(
            ['for-each-ref', '--format=%(refname) %(objectname)', 'refs/heads', 'refs/tags'],
            cwd=repo_path,
        )
        refs = {}
        for line in output.splitlines():
            if line.strip():
                name, sha = line.split(' ', 1)
                refs[name] = sha.strip()
        return refs

    def remote_refs(self, url: str) -> Dict[str, str]:
        """Map branch and tag refs advertised by a remote to their object ids.

        Peeled tag entries (``^{}``) are skipped.
        """
        output = self.run(['ls-remote', '--heads', '--tags', url], timeout=300)
        refs = {}
        for line in output.splitlines():
            if not line.strip():
                continue
            sha, name = line.split('\t', 1)
            if name.endswith('^{}'):
                continue
            refs[name.strip()] = sha.strip()
        return refs
