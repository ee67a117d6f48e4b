"""Unit tests for the command line entry point."""

import asyncio
import logging

import pytest

import main
from core.models.config import LogLevel
from core.utils.logger import get_infrastructure_logger


class TestParseArguments:

    def test_defaults(self):
        args = main.parse_arguments([])

        assert args.config == "config.yml"
        assert args.tags is None
        assert args.limit is None
        assert args.no_report is False

    def test_tags_and_limit(self):
        args = main.parse_arguments(["--tags", "patch", "post_patch", "--limit", "web01", "db01"])

        assert args.tags == ["patch", "post_patch"]
        assert args.limit == ["web01", "db01"]

    def test_unknown_tag_rejected(self):
        with pytest.raises(SystemExit):
            main.parse_arguments(["--tags", "cleanup"])


class TestMain:

    def test_missing_config_exits_non_zero(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        exit_code = asyncio.run(main.main(["--config", str(tmp_path / "absent.yml")]))

        assert exit_code == 1


class TestLogLevels:

    def setup_method(self):
        self.root = logging.getLogger()
        self.previous_level = self.root.level

    def teardown_method(self):
        self.root.setLevel(self.previous_level)

    def test_configured_level_applied(self):
        main.apply_log_level(LogLevel.WARNING)

        assert self.root.level == logging.WARNING

    def test_verbose_overrides_configured_level(self):
        main.apply_log_level(LogLevel.ERROR, verbose=True)

        assert self.root.level == logging.DEBUG

    def test_verbose_reaches_infrastructure_loggers(self, caplog):
        main.apply_log_level(LogLevel.INFO, verbose=True)
        logger = get_infrastructure_logger("aws.ssm_client")

        logger.debug("i-0abc: running 'uname -r'")

        assert logger.propagate is True
        assert "i-0abc: running 'uname -r'" in caplog.text
