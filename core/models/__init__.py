"""Core data models for the patching system."""

from .config import (
    WorkflowConfig,
    PatchConfig,
    HostConfig,
    HealthCheckConfig,
    HealthCheckType,
    AWSConfig,
    RunMode,
    LogLevel,
)
from .session import (
    HostPatchSession,
    SessionState,
    PostAction,
    UpdateResult,
    RebootOutcome,
)
from .command import CommandResult
from .workflow import WorkflowResult, WorkflowStatus, PhaseGroup

__all__ = [
    'WorkflowConfig',
    'PatchConfig',
    'HostConfig',
    'HealthCheckConfig',
    'HealthCheckType',
    'AWSConfig',
    'RunMode',
    'LogLevel',
    'HostPatchSession',
    'SessionState',
    'PostAction',
    'UpdateResult',
    'RebootOutcome',
    'WorkflowResult',
    'WorkflowStatus',
    'PhaseGroup',
    'CommandResult'
]
