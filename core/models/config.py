from dataclasses import dataclass, field, replace
from typing import List, Optional, Tuple
from enum import Enum


class LogLevel(Enum):
    """Logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class RunMode(Enum):
    """How AWS credentials are obtained."""
    LOCAL = "local"
    PIPELINE = "pipeline"


class HealthCheckType(Enum):
    """Supported post-patch health check kinds."""
    COMMAND = "command"
    SERVICE = "service"


@dataclass
class AWSConfig:
    """AWS configuration."""
    region: str = "ap-southeast-2"
    role_name: Optional[str] = None
    run_mode: RunMode = RunMode.LOCAL
    command_timeout_seconds: int = 3600
    poll_interval_seconds: int = 5


@dataclass(frozen=True)
class PatchConfig:
    """Run-scoped patch settings. Read-only for the whole session."""
    perform_update: bool = True
    default_reboot_required: bool = True
    reboot_timeout_minutes: int = 5
    clean_cache: bool = True
    disable_repos: Tuple[str, ...] = ()
    enable_repos: Tuple[str, ...] = ()

    @property
    def reboot_timeout_seconds(self) -> int:
        return self.reboot_timeout_minutes * 60

    def validate(self) -> List[str]:
        """Validate patch settings and return list of errors."""
        errors = []

        if self.reboot_timeout_minutes <= 0:
            errors.append("Reboot timeout must be positive")

        overlap = set(self.disable_repos) & set(self.enable_repos)
        if overlap:
            errors.append(
                f"Repositories both disabled and enabled: {', '.join(sorted(overlap))}"
            )

        return errors


@dataclass
class HostConfig:
    """A patch target."""
    instance_id: str
    name: str = ""
    account_id: Optional[str] = None
    region: Optional[str] = None

    # Host-level override of PatchConfig.default_reboot_required
    default_reboot_required: Optional[bool] = None

    def __post_init__(self):
        if not self.name:
            self.name = self.instance_id

    def effective_patch_config(self, base: PatchConfig) -> PatchConfig:
        """Apply host overrides on top of the run defaults."""
        if self.default_reboot_required is None:
            return base
        return replace(base, default_reboot_required=self.default_reboot_required)


@dataclass
class HealthCheckConfig:
    """Declarative post-patch health check."""
    name: str
    type: HealthCheckType = HealthCheckType.COMMAND
    command: Optional[str] = None
    service: Optional[str] = None
    expected_rc: int = 0

    def validate(self) -> List[str]:
        errors = []
        if self.type == HealthCheckType.COMMAND and not self.command:
            errors.append(f"Health check '{self.name}' requires a command")
        if self.type == HealthCheckType.SERVICE and not self.service:
            errors.append(f"Health check '{self.name}' requires a service name")
        return errors


@dataclass
class WorkflowConfig:
    """Patching workflow configuration."""

    # Basic settings
    name: str = "RHEL Patching"

    # Targets
    hosts: List[HostConfig] = field(default_factory=list)

    # Patch behaviour
    patch: PatchConfig = field(default_factory=PatchConfig)

    # AWS settings
    aws: AWSConfig = field(default_factory=AWSConfig)

    # Post-patch validation
    health_checks: List[HealthCheckConfig] = field(default_factory=list)

    # Execution options
    max_concurrent: int = 10

    # Output settings
    output_dir: str = "reports"
    log_level: LogLevel = LogLevel.INFO

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if not self.hosts:
            errors.append("At least one host must be configured")

        seen = set()
        for host in self.hosts:
            if not host.instance_id:
                errors.append("Host entry is missing instance_id")
            elif host.instance_id in seen:
                errors.append(f"Duplicate host: {host.instance_id}")
            seen.add(host.instance_id)

        if self.max_concurrent <= 0:
            errors.append("max_concurrent must be positive")

        errors.extend(self.patch.validate())

        for check in self.health_checks:
            errors.extend(check.validate())

        return errors

    def get_host(self, name_or_id: str) -> Optional[HostConfig]:
        for host in self.hosts:
            if name_or_id in (host.instance_id, host.name):
                return host
        return None
