"""Errors raised by the orchestration layer."""

from pathlib import Path


class MigrationValidationError(ValueError):
    """Bad or missing input to a top-level operation. Never retried."""

    pass


class BatchExistsError(MigrationValidationError):
    """A batch workspace already exists and overwriting it was not confirmed."""

    def __init__(self, batch_dir: Path):
        super().__init__(
            f'Batch workspace already exists: {batch_dir}. '
            'Confirm to continue and update the existing preparation.'
        )
        self.batch_dir = batch_dir


class LocalStateError(Exception):
    """A local repository directory is corrupt or not a repository.

    Handled inside preparation by deleting and re-cloning.
    """

    pass
