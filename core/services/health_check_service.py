"""Post-patch application health checks.

No checks run by default. Callers either list checks in the workflow
configuration or pass their own ``HealthCheck`` implementations to the
orchestrator.
"""

import logging
import shlex
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

from core.interfaces.remote_host_interface import IRemoteHost
from core.models.config import HealthCheckConfig, HealthCheckType


@dataclass
class HealthCheckResult:
    """Result of a single health check."""
    name: str
    passed: bool
    detail: str = ""


class HealthCheck(ABC):
    """A validator run against a host after patching."""

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    async def run(self, host: IRemoteHost) -> HealthCheckResult:
        pass


class CommandHealthCheck(HealthCheck):
    """Passes when a command exits with the expected code."""

    def __init__(self, name: str, command: str, expected_rc: int = 0):
        super().__init__(name)
        self.command = command
        self.expected_rc = expected_rc

    async def run(self, host: IRemoteHost) -> HealthCheckResult:
        result = await host.run_command(self.command)
        passed = result.rc == self.expected_rc
        detail = (result.stdout or result.stderr).strip()
        if not passed:
            detail = f"exit code {result.rc} (expected {self.expected_rc}) {detail}".strip()
        return HealthCheckResult(name=self.name, passed=passed, detail=detail)


class ServiceHealthCheck(CommandHealthCheck):
    """Passes when a systemd unit is active."""

    def __init__(self, name: str, service: str):
        super().__init__(name, f"systemctl is-active {shlex.quote(service)}")
        self.service = service


def build_health_checks(configs: List[HealthCheckConfig]) -> List[HealthCheck]:
    """Create health checks from configuration entries."""
    logger = logging.getLogger(__name__)
    checks: List[HealthCheck] = []

    for config in configs:
        if config.type == HealthCheckType.SERVICE:
            checks.append(ServiceHealthCheck(config.name, config.service))
        else:
            checks.append(
                CommandHealthCheck(config.name, config.command, config.expected_rc)
            )
        logger.debug(f"Registered health check {config.name} ({config.type.value})")

    return checks
