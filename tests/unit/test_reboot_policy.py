"""Unit tests for reboot decision rules."""

import pytest

from core.exceptions import AdvisoryCheckError
from core.services.reboot_policy import (
    decide_reboot,
    interpret_advisory_exit_code,
    kernel_changed,
    normalize_kernel_version,
)


class TestNormalizeKernelVersion:

    def test_uname_output(self):
        assert normalize_kernel_version("4.18.0-513.el8.x86_64\n") == "4.18.0-513.el8.x86_64"

    def test_package_name_prefix(self):
        assert normalize_kernel_version("kernel-4.18.0-513.el8.x86_64") == "4.18.0-513.el8.x86_64"
        assert normalize_kernel_version("kernel-core-5.14.0-70.el9.x86_64") == "5.14.0-70.el9.x86_64"

    def test_last_line_wins(self):
        output = "kernel-4.18.0-477.el8.x86_64\nkernel-4.18.0-513.el8.x86_64\n"
        assert normalize_kernel_version(output) == "4.18.0-513.el8.x86_64"

    @pytest.mark.parametrize("value", [None, "", "  \n "])
    def test_empty(self, value):
        assert normalize_kernel_version(value) == ""


class TestDecideReboot:

    def test_kernel_change_without_flag(self):
        assert decide_reboot("4.18.0-1", "4.18.0-2", False) is True

    def test_same_kernel_without_flag(self):
        assert decide_reboot("4.18.0-1", "4.18.0-1", False) is False

    def test_flag_without_kernel_change(self):
        assert decide_reboot("4.18.0-1", "4.18.0-1", True) is True

    def test_prefixed_post_kernel_is_not_a_change(self):
        assert kernel_changed("4.18.0-1.el8.x86_64", "kernel-4.18.0-1.el8.x86_64") is False

    def test_substring_is_still_a_change(self):
        # "4.18.0-1" is contained in "4.18.0-10" but they are different kernels
        assert kernel_changed("4.18.0-1", "4.18.0-10") is True

    def test_missing_reading_is_not_a_change(self):
        assert kernel_changed(None, "4.18.0-2") is False
        assert kernel_changed("4.18.0-1", "") is False
        assert decide_reboot(None, None, False) is False


class TestAdvisoryExitCode:

    def test_zero_means_no_reboot(self):
        assert interpret_advisory_exit_code(0) is False

    def test_one_means_reboot(self):
        assert interpret_advisory_exit_code(1) is True

    @pytest.mark.parametrize("rc", [2, 127, 255, -1])
    def test_other_codes_raise(self, rc):
        with pytest.raises(AdvisoryCheckError) as exc_info:
            interpret_advisory_exit_code(rc, host="web01")

        assert exc_info.value.rc == rc
        assert exc_info.value.host == "web01"
