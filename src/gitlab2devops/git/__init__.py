"""Git operations module for repository migration."""

from .operations import GitCommandError, GitOperations, inject_token, mask_secrets
from .lfs import LFSHandler, LFSResult

__all__ = [
    'GitCommandError',
    'GitOperations',
    'LFSHandler',
    'LFSResult',
    'inject_token',
    'mask_secrets',
]
