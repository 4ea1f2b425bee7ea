"""Run manifest model."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class RunMode(str, Enum):
    """Top-level operation a run manifest describes."""

    PREFLIGHT = 'Preflight'
    INITIALIZE = 'Initialize'
    MIGRATE = 'Migrate'
    BULK_PREPARE = 'BulkPrepare'
    BULK_MIGRATE = 'BulkMigrate'
    INTERACTIVE = 'Interactive'


class RunStatus(str, Enum):
    """Manifest lifecycle. RUNNING is the only non-terminal state."""

    RUNNING = 'RUNNING'
    SUCCESS = 'SUCCESS'
    FAILED = 'FAILED'
    PARTIAL = 'PARTIAL'

    @property
    def is_terminal(self) -> bool:
        return self != RunStatus.RUNNING


def new_run_id() -> str:
    return uuid.uuid4().hex


class RunManifest(BaseModel):
    """Audit record of one top-level invocation."""

    run_id: str = Field(default_factory=new_run_id, description='Unique run id')
    mode: RunMode = Field(..., description='Operation mode')
    status: RunStatus = Field(default=RunStatus.RUNNING, description='Run status')
    start_time: datetime = Field(default_factory=datetime.now)
    end_time: Optional[datetime] = Field(default=None)
    duration_seconds: Optional[float] = Field(default=None)
    parameters: Dict[str, Any] = Field(
        default_factory=dict, description='Invocation arguments'
    )
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def is_interrupted(self) -> bool:
        """A manifest still RUNNING without an end time was never completed."""
        return self.status == RunStatus.RUNNING and self.end_time is None
