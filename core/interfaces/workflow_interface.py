"""Workflow orchestrator interface."""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, List, Sequence

from core.models.config import HostConfig
from core.models.session import HostPatchSession
from core.models.workflow import WorkflowResult, PhaseGroup


class IWorkflowOrchestrator(ABC):
    """Interface for patch workflow orchestration."""

    @abstractmethod
    async def run_patch_workflow(
        self,
        tags: Optional[Sequence[str]] = None,
        limit: Optional[Sequence[str]] = None,
    ) -> WorkflowResult:
        """Run the patching workflow across the configured hosts.

        Args:
            tags: Phase groups to run (pre_patch, patch, post_patch); all when empty
            limit: Host names or instance IDs to restrict the run to

        Returns:
            WorkflowResult with one session per host
        """
        pass

    @abstractmethod
    async def run_host(
        self, host_config: HostConfig, groups: Sequence[PhaseGroup]
    ) -> HostPatchSession:
        """Run the selected phase groups against a single host.

        Args:
            host_config: Target host
            groups: Phase groups to run, in execution order

        Returns:
            The host's finished session
        """
        pass

    @abstractmethod
    def get_summary(self, result: WorkflowResult) -> Dict[str, Any]:
        """Summarize a finished run.

        Args:
            result: Finished workflow result

        Returns:
            Dictionary with run and per-host details
        """
        pass

    @abstractmethod
    def select_hosts(self, limit: Optional[Sequence[str]] = None) -> List[HostConfig]:
        """Resolve the hosts a run applies to.

        Args:
            limit: Host names or instance IDs; all configured hosts when empty

        Returns:
            List of HostConfig objects

        Raises:
            ConfigurationError: If a limit entry matches no configured host
        """
        pass
