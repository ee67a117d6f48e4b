"""Unit tests for the multi-host workflow orchestrator."""

import asyncio
import json

import pytest

from core.exceptions import ConfigurationError
from core.models.session import SessionState
from core.models.workflow import PhaseGroup, WorkflowStatus
from core.orchestration.workflow_orchestrator import WorkflowOrchestrator
from core.services.config_service import ConfigService
from core.services.report_service import ReportService

from fake_remote_host import FakeRemoteHost


def make_config_service(**overrides):
    raw = {
        "name": "test run",
        "hosts": [
            {"instance_id": "i-0000000000000001", "name": "web01"},
            {"instance_id": "i-0000000000000002", "name": "web02"},
            {"instance_id": "i-0000000000000003", "name": "db01", "default_reboot_required": True},
        ],
        "patch": {"default_reboot_required": False},
        "max_concurrent": 2,
    }
    raw.update(overrides)
    config_service = ConfigService()
    config_service.load_from_dict(raw)
    return config_service


class TestWorkflowOrchestrator:

    def setup_method(self):
        self.hosts = {
            "web01": FakeRemoteHost(name="web01"),
            "web02": FakeRemoteHost(name="web02", reachable=False),
            "db01": FakeRemoteHost(name="db01"),
        }
        self.config_service = make_config_service()
        self.orchestrator = WorkflowOrchestrator(
            config_service=self.config_service,
            host_factory=lambda host_config: self.hosts[host_config.name],
        )

    def test_failure_is_isolated_per_host(self):
        result = asyncio.run(self.orchestrator.run_patch_workflow())

        assert result.total_hosts == 3
        assert result.sessions["web01"].state == SessionState.DONE
        assert result.sessions["web02"].state == SessionState.PRECHECK_FAILED
        assert result.sessions["db01"].state == SessionState.DONE
        assert result.status == WorkflowStatus.PARTIAL_SUCCESS
        assert len(result.errors) == 1
        assert "web02" in result.errors[0]

    def test_host_override_applies(self):
        result = asyncio.run(self.orchestrator.run_patch_workflow())

        assert self.hosts["db01"].reboot_count == 1
        assert self.hosts["web01"].reboot_count == 0
        assert result.rebooted_hosts == 1
        assert result.sessions["db01"].reboot_outcome.reason == "reboot required by configuration"

    def test_limit(self):
        result = asyncio.run(self.orchestrator.run_patch_workflow(limit=["web01", "i-0000000000000003"]))

        assert sorted(result.sessions) == ["db01", "web01"]
        assert result.status == WorkflowStatus.COMPLETED
        assert self.hosts["web02"].calls == []

    def test_unknown_limit(self):
        with pytest.raises(ConfigurationError, match="web99"):
            asyncio.run(self.orchestrator.run_patch_workflow(limit=["web99"]))

    def test_tags(self):
        result = asyncio.run(
            self.orchestrator.run_patch_workflow(tags=["post_patch", "pre_patch"], limit=["web01"])
        )

        assert result.phase_groups == [PhaseGroup.PRE_PATCH, PhaseGroup.POST_PATCH]
        assert "upgrade" not in self.hosts["web01"].calls
        assert "uptime" in self.hosts["web01"].calls

    def test_unknown_tag(self):
        with pytest.raises(ValueError, match="Unknown tag"):
            asyncio.run(self.orchestrator.run_patch_workflow(tags=["cleanup"]))

    def test_factory_error_fails_only_that_host(self):
        def factory(host_config):
            if host_config.name == "web01":
                raise RuntimeError("no credentials for account")
            return self.hosts[host_config.name]

        orchestrator = WorkflowOrchestrator(config_service=self.config_service, host_factory=factory)

        result = asyncio.run(orchestrator.run_patch_workflow(limit=["web01", "db01"]))

        web01 = result.sessions["web01"]
        assert web01.state == SessionState.PRECHECK_FAILED
        assert web01.failed_phase == "start"
        assert "no credentials" in web01.error
        assert result.sessions["db01"].state == SessionState.DONE

    def test_concurrency_is_bounded(self):
        running = {"now": 0, "peak": 0}

        class SlowHost(FakeRemoteHost):
            async def ping(self):
                running["now"] += 1
                running["peak"] = max(running["peak"], running["now"])
                await asyncio.sleep(0.01)
                running["now"] -= 1
                return True

        orchestrator = WorkflowOrchestrator(
            config_service=self.config_service,
            host_factory=lambda host_config: SlowHost(name=host_config.name),
        )

        asyncio.run(orchestrator.run_patch_workflow(tags=["pre_patch"]))

        assert running["peak"] <= 2

    def test_report_written(self, tmp_path):
        config_service = make_config_service(output_dir=str(tmp_path))
        orchestrator = WorkflowOrchestrator(
            config_service=config_service,
            host_factory=lambda host_config: self.hosts[host_config.name],
            report_service=ReportService(),
        )

        result = asyncio.run(orchestrator.run_patch_workflow(limit=["web01"]))

        assert len(result.output_files) == 1
        with open(result.output_files[0]) as f:
            report = json.load(f)
        assert report["summary"]["status"] == "completed"
        assert report["hosts"][0]["hostname"] == "web01"
        assert report["hosts"][0]["state"] == "done"

    def test_summary(self):
        result = asyncio.run(self.orchestrator.run_patch_workflow())

        summary = self.orchestrator.get_summary(result)

        assert summary["total_hosts"] == 3
        assert summary["failed_hosts"] == 1
        assert summary["hosts"]["web02"]["failed_phase"] == "pre_patch"
        assert summary["hosts"]["db01"]["rebooted"] is True
