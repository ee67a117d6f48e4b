import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from core.exceptions import ConfigurationError
from core.interfaces.config_interface import IConfigService
from core.interfaces.remote_host_interface import IRemoteHost
from core.interfaces.workflow_interface import IWorkflowOrchestrator
from core.models.config import HostConfig, WorkflowConfig
from core.models.session import HostPatchSession, SessionState
from core.models.workflow import PhaseGroup, WorkflowResult
from core.services.health_check_service import HealthCheck, build_health_checks
from core.services.patch_service import PatchService
from core.services.report_service import ReportService


HostFactory = Callable[[HostConfig], IRemoteHost]


class WorkflowOrchestrator(IWorkflowOrchestrator):
    """Fans the per-host patch sequence out across the configured hosts."""

    def __init__(
        self,
        config_service: IConfigService,
        host_factory: HostFactory,
        patch_service: Optional[PatchService] = None,
        report_service: Optional[ReportService] = None,
        health_checks: Optional[List[HealthCheck]] = None,
    ):
        self.config_service = config_service
        self.host_factory = host_factory
        self.report_service = report_service
        self.logger = logging.getLogger(__name__)

        if patch_service is None:
            checks = list(health_checks or [])
            checks.extend(build_health_checks(self._config.health_checks))
            patch_service = PatchService(health_checks=checks)
        self.patch_service = patch_service

    @property
    def _config(self) -> WorkflowConfig:
        config = self.config_service.get_workflow_config()
        if config is None:
            raise ConfigurationError("Workflow configuration not loaded")
        return config

    def _handle_error(self, message: str, error: Exception) -> str:
        """Centralized error handling."""
        error_msg = f"{message}: {str(error)}"
        self.logger.error(error_msg)
        return error_msg

    def select_hosts(self, limit: Optional[Sequence[str]] = None) -> List[HostConfig]:
        """Resolve the hosts a run applies to."""
        config = self._config
        if not limit:
            return list(config.hosts)

        selected = []
        for name in limit:
            host = config.get_host(name)
            if host is None:
                raise ConfigurationError(f"Host not found in configuration: {name}")
            if host not in selected:
                selected.append(host)
        return selected

    async def run_patch_workflow(
        self,
        tags: Optional[Sequence[str]] = None,
        limit: Optional[Sequence[str]] = None,
    ) -> WorkflowResult:
        """Run the patching workflow across the configured hosts."""
        config = self._config
        groups = PhaseGroup.parse_tags(tags)
        hosts = self.select_hosts(limit)

        workflow_result = WorkflowResult(workflow_name=config.name, phase_groups=groups)
        workflow_result.mark_started()
        self.logger.info(
            f"Starting workflow {workflow_result.workflow_id}: {len(hosts)} hosts, "
            f"tags {[g.value for g in groups]}"
        )

        semaphore = asyncio.Semaphore(config.max_concurrent)

        async def patch_host(host_config: HostConfig) -> HostPatchSession:
            async with semaphore:
                return await self.run_host(host_config, groups)

        sessions = await asyncio.gather(
            *[patch_host(host) for host in hosts], return_exceptions=True
        )

        for host_config, session in zip(hosts, sessions):
            if isinstance(session, BaseException):
                error = self._handle_error(f"Patching aborted for {host_config.name}", session)
                workflow_result.add_error(error)
                session = self._failed_session(host_config, session)
            elif session.is_failed:
                workflow_result.add_error(
                    f"{session.hostname}: {session.state.value} ({session.error})"
                )
            workflow_result.add_session(session)

        workflow_result.mark_finished()

        if self.report_service:
            try:
                path = self.report_service.save_workflow_report(workflow_result, config.output_dir)
                workflow_result.output_files.append(path)
            except Exception as e:
                workflow_result.add_error(self._handle_error("Report generation failed", e))

        self.logger.info(
            f"Workflow {workflow_result.workflow_id} {workflow_result.status.value}: "
            f"{workflow_result.successful_hosts}/{workflow_result.total_hosts} hosts succeeded"
        )
        return workflow_result

    async def run_host(
        self, host_config: HostConfig, groups: Sequence[PhaseGroup]
    ) -> HostPatchSession:
        """Run the selected phase groups against a single host."""
        session = HostPatchSession(
            hostname=host_config.name,
            instance_id=host_config.instance_id,
            config=host_config.effective_patch_config(self._config.patch),
        )
        host = self.host_factory(host_config)
        return await self.patch_service.run_session(host, session, groups)

    def _failed_session(self, host_config: HostConfig, error: BaseException) -> HostPatchSession:
        # The host never got as far as the pre-check
        session = HostPatchSession(
            hostname=host_config.name,
            instance_id=host_config.instance_id,
            config=host_config.effective_patch_config(self._config.patch),
        )
        session.fail(SessionState.PRECHECK_FAILED, "start", str(error) or error.__class__.__name__)
        return session

    def get_summary(self, result: WorkflowResult) -> Dict[str, Any]:
        """Summarize a finished run."""
        summary = result.get_summary()
        summary["hosts"] = {}
        for name, session in result.sessions.items():
            summary["hosts"][name] = {
                "state": session.state.value,
                "failed_phase": session.failed_phase,
                "error": session.error,
                "update_changed": session.update_result.changed if session.update_result else None,
                "rebooted": session.has_rebooted,
                "pre_kernel": session.pre_kernel,
                "post_kernel": session.post_kernel,
            }
        return summary
