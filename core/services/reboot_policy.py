"""Reboot decision rules."""

from typing import Optional

from core.exceptions import AdvisoryCheckError

KERNEL_PACKAGE_PREFIXES = ("kernel-core-", "kernel-")

ADVISORY_NO_REBOOT = 0
ADVISORY_REBOOT_NEEDED = 1


def normalize_kernel_version(version: Optional[str]) -> str:
    """Reduce a kernel string to `uname -r` form.

    Accepts raw `uname -r` output or an rpm package name such as
    ``kernel-4.18.0-513.el8.x86_64``. When several lines are given the
    last one wins, matching `rpm -q kernel | tail -n 1`.
    """
    if not version:
        return ""
    lines = [line.strip() for line in version.strip().splitlines() if line.strip()]
    if not lines:
        return ""
    value = lines[-1]
    for prefix in KERNEL_PACKAGE_PREFIXES:
        if value.startswith(prefix):
            return value[len(prefix):]
    return value


def kernel_changed(pre_kernel: Optional[str], post_kernel: Optional[str]) -> bool:
    """Exact comparison of normalized kernel strings.

    A missing reading on either side is not a change.
    """
    pre = normalize_kernel_version(pre_kernel)
    post = normalize_kernel_version(post_kernel)
    if not pre or not post:
        return False
    return pre != post


def decide_reboot(
    pre_kernel: Optional[str], post_kernel: Optional[str], explicit_reboot_required: bool
) -> bool:
    """Reboot when explicitly required or when the kernel changed."""
    return bool(explicit_reboot_required) or kernel_changed(pre_kernel, post_kernel)


def interpret_advisory_exit_code(rc: int, host: Optional[str] = None) -> bool:
    """Map `needs-restarting -r` exit codes to a reboot verdict.

    Raises:
        AdvisoryCheckError: For any exit code other than 0 or 1
    """
    if rc == ADVISORY_NO_REBOOT:
        return False
    if rc == ADVISORY_REBOOT_NEEDED:
        return True
    raise AdvisoryCheckError(
        f"Advisory reboot check returned unexpected exit code {rc}", host=host, rc=rc
    )
