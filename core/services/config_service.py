"""Configuration service implementation."""

import os
import yaml
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional
from dataclasses import asdict

from core.exceptions import ConfigurationError
from core.interfaces.config_interface import IConfigService
from core.models.config import (
    WorkflowConfig,
    AWSConfig,
    PatchConfig,
    HostConfig,
    HealthCheckConfig,
    HealthCheckType,
    LogLevel,
    RunMode,
)


DEFAULT_CONFIG_PATH = "config.yml"


class ConfigService(IConfigService):
    """YAML-backed configuration service."""

    env_mappings = {
        "PATCHING_AWS_REGION": "aws.region",
        "PATCHING_AWS_ROLE": "aws.role_name",
        "PATCHING_RUN_MODE": "aws.run_mode",
        "PATCHING_LOG_LEVEL": "log_level",
        "PATCHING_PERFORM_UPDATE": "patch.perform_update",
        "PATCHING_DEFAULT_REBOOT_REQUIRED": "patch.default_reboot_required",
        "PATCHING_REBOOT_TIMEOUT_MINUTES": "patch.reboot_timeout_minutes",
        "PATCHING_MAX_CONCURRENT": "max_concurrent",
    }

    def __init__(self, config_file_path: Optional[str] = None):
        self.logger = logging.getLogger(__name__)
        self._config_file_path = config_file_path
        self._workflow_config: Optional[WorkflowConfig] = None
        self._config_cache: Dict[str, Any] = {}
        self._overrides: Dict[str, Any] = {}

        if config_file_path:
            self._load_workflow_config_sync(config_file_path)

    async def load_config(self, config_path: Optional[str] = None) -> WorkflowConfig:
        """Load configuration from default or specified path."""
        return await self.load_workflow_config(config_path or DEFAULT_CONFIG_PATH)

    async def load_workflow_config(self, config_path: str) -> WorkflowConfig:
        """Load workflow configuration from file."""
        return self._load_workflow_config_sync(config_path)

    def _handle_error(self, operation: str, error: Exception) -> None:
        """Centralized error handling and logging."""
        self.logger.error(f"Error {operation}: {str(error)}")
        if isinstance(error, ConfigurationError):
            raise error
        raise ConfigurationError(f"Error {operation}: {str(error)}") from error

    def _load_workflow_config_sync(self, config_file_path: str) -> WorkflowConfig:
        """Synchronous implementation of workflow config loading."""
        try:
            config_path = Path(config_file_path)

            if not config_path.exists():
                raise ConfigurationError(
                    f"Configuration file not found: {config_file_path}"
                )

            with open(config_path, "r", encoding="utf-8") as file:
                raw_config = yaml.safe_load(file)

            if not raw_config or not isinstance(raw_config, dict):
                raise ConfigurationError("Configuration file is empty or invalid")

            return self.load_from_dict(raw_config, source=config_file_path)

        except Exception as e:
            self._handle_error("loading workflow configuration", e)

    def load_from_dict(self, raw_config: Dict[str, Any], source: Optional[str] = None) -> WorkflowConfig:
        """Parse and validate an already loaded configuration mapping."""
        self._apply_environment_overrides(raw_config)
        workflow_config = self._parse_workflow_config(raw_config)

        errors = workflow_config.validate()
        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}"
            )

        self._workflow_config = workflow_config
        self._config_file_path = source or self._config_file_path
        self._config_cache["raw"] = raw_config
        self.logger.info(
            f"Loaded configuration '{workflow_config.name}' with {len(workflow_config.hosts)} hosts"
        )
        return workflow_config

    def validate_config(self) -> List[str]:
        """Validate the loaded configuration."""
        if not self._workflow_config:
            return ["No workflow configuration loaded"]
        return self._workflow_config.validate()

    def get_setting(self, key: str, default: Any = None) -> Any:
        """Get a configuration setting by key path (e.g., 'patch.perform_update')."""
        if not self._workflow_config:
            return default

        value: Any = asdict(self._workflow_config)
        for k in key.split("."):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def get_aws_config(self) -> Optional[AWSConfig]:
        """Get AWS configuration."""
        return self._workflow_config.aws if self._workflow_config else None

    def get_patch_config(self) -> Optional[PatchConfig]:
        """Get patch configuration."""
        return self._workflow_config.patch if self._workflow_config else None

    def get_workflow_config(self) -> Optional[WorkflowConfig]:
        """Get the complete workflow configuration."""
        return self._workflow_config

    def set_override(self, key: str, value: Any) -> None:
        """Set an override applied on the next load (dot notation)."""
        self._overrides[key] = value

    async def reload_config(self) -> None:
        """Reload configuration from source."""
        if not self._config_file_path:
            raise ConfigurationError("No configuration file path available for reload")

        self._config_cache.clear()
        await self.load_workflow_config(self._config_file_path)

    def _parse_workflow_config(self, raw_config: Dict[str, Any]) -> WorkflowConfig:
        """Parse raw configuration into WorkflowConfig object."""
        try:
            return WorkflowConfig(
                name=raw_config.get("name", "RHEL Patching"),
                hosts=[self._parse_host_config(h) for h in raw_config.get("hosts") or []],
                patch=self._parse_patch_config(raw_config.get("patch") or {}),
                aws=self._parse_aws_config(raw_config.get("aws") or {}),
                health_checks=[
                    self._parse_health_check(c) for c in raw_config.get("health_checks") or []
                ],
                max_concurrent=int(raw_config.get("max_concurrent", 10)),
                output_dir=raw_config.get("output_dir", "reports"),
                log_level=self._parse_log_level(raw_config.get("log_level", "INFO")),
            )
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Error parsing workflow configuration: {str(e)}") from e

    def _parse_patch_config(self, patch_data: Dict[str, Any]) -> PatchConfig:
        """Parse patch settings into an immutable PatchConfig."""
        return PatchConfig(
            perform_update=self._parse_bool(patch_data.get("perform_update", True)),
            default_reboot_required=self._parse_bool(
                patch_data.get("default_reboot_required", True)
            ),
            reboot_timeout_minutes=int(patch_data.get("reboot_timeout_minutes", 5)),
            clean_cache=self._parse_bool(patch_data.get("clean_cache", True)),
            disable_repos=self._parse_repo_list(patch_data.get("disable_repos")),
            enable_repos=self._parse_repo_list(patch_data.get("enable_repos")),
        )

    def _parse_aws_config(self, aws_data: Dict[str, Any]) -> AWSConfig:
        try:
            run_mode = RunMode(str(aws_data.get("run_mode", "local")).lower())
        except ValueError:
            raise ConfigurationError(
                f"Unsupported run_mode: {aws_data.get('run_mode')}. Use 'local' or 'pipeline'"
            )
        return AWSConfig(
            region=aws_data.get("region", "ap-southeast-2"),
            role_name=aws_data.get("role_name"),
            run_mode=run_mode,
            command_timeout_seconds=int(aws_data.get("command_timeout_seconds", 3600)),
            poll_interval_seconds=int(aws_data.get("poll_interval_seconds", 5)),
        )

    def _parse_host_config(self, host_data: Any) -> HostConfig:
        """Hosts are either an instance ID string or a mapping."""
        if isinstance(host_data, str):
            return HostConfig(instance_id=host_data)

        if not isinstance(host_data, dict):
            raise ConfigurationError(f"Invalid host entry: {host_data!r}")

        override = host_data.get("default_reboot_required")
        return HostConfig(
            instance_id=host_data.get("instance_id", ""),
            name=host_data.get("name", ""),
            account_id=host_data.get("account_id"),
            region=host_data.get("region"),
            default_reboot_required=None if override is None else self._parse_bool(override),
        )

    def _parse_health_check(self, check_data: Dict[str, Any]) -> HealthCheckConfig:
        try:
            check_type = HealthCheckType(check_data.get("type", "command"))
        except ValueError:
            raise ConfigurationError(f"Unknown health check type: {check_data.get('type')}")
        return HealthCheckConfig(
            name=check_data.get("name") or check_data.get("service") or check_data.get("command", ""),
            type=check_type,
            command=check_data.get("command"),
            service=check_data.get("service"),
            expected_rc=int(check_data.get("expected_rc", 0)),
        )

    def _parse_log_level(self, log_level_str: str) -> LogLevel:
        """Parse log level string into LogLevel enum."""
        try:
            return LogLevel[log_level_str.upper()]
        except (KeyError, AttributeError):
            return LogLevel.INFO

    @staticmethod
    def _parse_bool(value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() in ("true", "yes", "1", "on")
        return bool(value)

    @staticmethod
    def _parse_repo_list(value: Any) -> tuple:
        if not value:
            return ()
        if isinstance(value, str):
            return tuple(r.strip() for r in value.split(",") if r.strip())
        return tuple(str(r) for r in value)

    def _apply_environment_overrides(self, config: Dict[str, Any]) -> None:
        """Apply explicit and environment variable overrides to configuration."""
        for key, value in self._overrides.items():
            self._set_nested_value(config, key, value)

        for env_var, config_key in self.env_mappings.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                if env_value.lower() in ["true", "false"]:
                    env_value = env_value.lower() == "true"
                elif env_value.isdigit():
                    env_value = int(env_value)

                self._set_nested_value(config, config_key, env_value)

    def _set_nested_value(
        self, config: Dict[str, Any], key_path: str, value: Any
    ) -> None:
        """Set a nested value in configuration dictionary."""
        keys = key_path.split(".")
        current = config

        for key in keys[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value
