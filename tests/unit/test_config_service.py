"""Unit tests for ConfigService."""

import asyncio

import pytest

from core.exceptions import ConfigurationError
from core.models.config import HealthCheckType, RunMode
from core.services.config_service import ConfigService


CONFIG_YAML = """
name: Monthly RHEL patching
aws:
  region: ap-southeast-2
  role_name: PatchingRole
  run_mode: local
patch:
  perform_update: true
  default_reboot_required: false
  reboot_timeout_minutes: 10
  disable_repos: epel, extras
hosts:
  - i-0aaa1111bbbb2222c
  - instance_id: i-0ddd3333eeee4444f
    name: db01
    account_id: "123456789012"
    default_reboot_required: true
health_checks:
  - name: httpd
    type: service
    service: httpd
max_concurrent: 4
"""


class TestConfigService:

    def setup_method(self):
        self.config_service = ConfigService()

    def _write(self, tmp_path, content=CONFIG_YAML):
        path = tmp_path / "config.yml"
        path.write_text(content)
        return str(path)

    def test_load_config(self, tmp_path):
        config = asyncio.run(self.config_service.load_config(self._write(tmp_path)))

        assert config.name == "Monthly RHEL patching"
        assert config.aws.role_name == "PatchingRole"
        assert config.aws.run_mode == RunMode.LOCAL
        assert config.patch.default_reboot_required is False
        assert config.patch.reboot_timeout_seconds == 600
        assert config.patch.disable_repos == ("epel", "extras")
        assert config.max_concurrent == 4

        assert [h.name for h in config.hosts] == ["i-0aaa1111bbbb2222c", "db01"]
        assert config.hosts[1].account_id == "123456789012"
        assert config.health_checks[0].type == HealthCheckType.SERVICE

    def test_host_override(self, tmp_path):
        config = asyncio.run(self.config_service.load_config(self._write(tmp_path)))

        db01 = config.get_host("db01")
        effective = db01.effective_patch_config(config.patch)

        assert effective.default_reboot_required is True
        assert config.patch.default_reboot_required is False
        assert config.hosts[0].effective_patch_config(config.patch) is config.patch

    def test_get_setting(self, tmp_path):
        asyncio.run(self.config_service.load_config(self._write(tmp_path)))

        assert self.config_service.get_setting("patch.reboot_timeout_minutes") == 10
        assert self.config_service.get_setting("aws.region") == "ap-southeast-2"
        assert self.config_service.get_setting("patch.missing", "fallback") == "fallback"

    def test_environment_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PATCHING_PERFORM_UPDATE", "false")
        monkeypatch.setenv("PATCHING_REBOOT_TIMEOUT_MINUTES", "15")
        monkeypatch.setenv("PATCHING_AWS_REGION", "us-east-1")

        config = asyncio.run(self.config_service.load_config(self._write(tmp_path)))

        assert config.patch.perform_update is False
        assert config.patch.reboot_timeout_minutes == 15
        assert config.aws.region == "us-east-1"

    def test_explicit_override(self, tmp_path):
        self.config_service.set_override("patch.default_reboot_required", True)

        config = asyncio.run(self.config_service.load_config(self._write(tmp_path)))

        assert config.patch.default_reboot_required is True

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            asyncio.run(self.config_service.load_config(str(tmp_path / "absent.yml")))

    def test_empty_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="empty or invalid"):
            asyncio.run(self.config_service.load_config(self._write(tmp_path, "")))

    def test_no_hosts(self):
        with pytest.raises(ConfigurationError, match="At least one host"):
            self.config_service.load_from_dict({"patch": {}})

    def test_invalid_run_mode(self):
        with pytest.raises(ConfigurationError, match="run_mode"):
            self.config_service.load_from_dict({"hosts": ["i-1"], "aws": {"run_mode": "cloud"}})

    def test_repo_both_enabled_and_disabled(self):
        raw = {
            "hosts": ["i-1"],
            "patch": {"disable_repos": ["epel"], "enable_repos": ["epel"]},
        }

        with pytest.raises(ConfigurationError, match="epel"):
            self.config_service.load_from_dict(raw)

    def test_validate_without_config(self):
        assert self.config_service.validate_config() == ["No workflow configuration loaded"]

    def test_reload_without_path(self):
        with pytest.raises(ConfigurationError):
            asyncio.run(self.config_service.reload_config())
