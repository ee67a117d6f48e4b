"""RHEL command lines and output parsers used by the patch phases."""

import shlex
from typing import Dict, List, Sequence


RUNNING_KERNEL_COMMAND = "uname -r"
INSTALLED_KERNEL_COMMAND = (
    "rpm -q kernel --qf '%{VERSION}-%{RELEASE}.%{ARCH}\\n' | sort -V | tail -n 1"
)
DISK_SPACE_COMMAND = "df -h /"
FREE_MEMORY_COMMAND = "free -h"
UPTIME_COMMAND = "uptime"
PACKAGE_FACTS_COMMAND = "rpm -qa --qf '%{NAME} %{VERSION}-%{RELEASE}.%{ARCH}\\n'"
CHECK_UPDATE_COMMAND = "yum -q check-update"
CLEAN_CACHE_COMMAND = "yum clean all"
REBOOT_REQUIRED_COMMAND = "needs-restarting -r"
BOOT_ID_COMMAND = "cat /proc/sys/kernel/random/boot_id"

# yum check-update exits 100 when updates are available
CHECK_UPDATE_AVAILABLE_RC = 100

NO_CHANGE_MARKERS = (
    "Nothing to do",
    "No packages marked for update",
    "No Packages marked for Update",
)


def build_update_command(
    disable_repos: Sequence[str] = (), enable_repos: Sequence[str] = ()
) -> str:
    """Build the yum command that upgrades every package."""
    parts = ["yum", "-y"]
    if disable_repos:
        parts.append(f"--disablerepo={shlex.quote(','.join(disable_repos))}")
    if enable_repos:
        parts.append(f"--enablerepo={shlex.quote(','.join(enable_repos))}")
    parts.extend(["update", "'*'"])
    return " ".join(parts)


def update_output_changed(stdout: str) -> bool:
    """Whether a successful yum update actually changed anything."""
    return not any(marker in stdout for marker in NO_CHANGE_MARKERS)


def summarize_update_output(stdout: str) -> str:
    """Pick the line that best describes a yum transaction."""
    lines = [line.strip() for line in stdout.splitlines() if line.strip()]
    for marker in NO_CHANGE_MARKERS:
        for line in lines:
            if marker in line:
                return line
    for line in reversed(lines):
        if line.startswith(("Upgraded", "Installed", "Updated")):
            return line
    return lines[-1] if lines else ""


def parse_available_updates(stdout: str) -> List[Dict[str, str]]:
    """Parse `yum check-update` output into update entries."""
    updates = []
    for line in stdout.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.startswith(("Obsoleting Packages", "Security:")):
            break
        fields = stripped.split()
        if len(fields) != 3 or "." not in fields[0]:
            continue
        name, _, arch = fields[0].rpartition(".")
        updates.append({
            "name": name,
            "arch": arch,
            "version": fields[1],
            "repo": fields[2],
        })
    return updates


def parse_package_facts(stdout: str) -> Dict[str, List[str]]:
    """Parse `rpm -qa` output into name -> versions."""
    packages: Dict[str, List[str]] = {}
    for line in stdout.splitlines():
        fields = line.split()
        if len(fields) != 2:
            continue
        packages.setdefault(fields[0], []).append(fields[1])
    return packages
