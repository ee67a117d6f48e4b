"""Core interfaces for the patching system."""

from .config_interface import IConfigService
from .remote_host_interface import IRemoteHost
from .workflow_interface import IWorkflowOrchestrator

__all__ = [
    'IConfigService',
    'IRemoteHost',
    'IWorkflowOrchestrator'
]
