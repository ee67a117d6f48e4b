"""Remote host interface."""

from abc import ABC, abstractmethod
from typing import Dict, List, Sequence

from core.models.command import CommandResult


class IRemoteHost(ABC):
    """Operations the patch orchestrator needs from a managed RHEL host."""

    @property
    @abstractmethod
    def hostname(self) -> str:
        """Display name of the host."""
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """Check whether the host is reachable and accepts commands.

        Returns:
            True if a command round-trip succeeded
        """
        pass

    @abstractmethod
    async def run_command(self, command: str, timeout_seconds: int = 600) -> CommandResult:
        """Run an arbitrary shell command as root.

        Args:
            command: Shell command line
            timeout_seconds: Maximum time the command may run

        Returns:
            CommandResult with exit code and output

        Raises:
            ConnectivityError: If the command could not be delivered
        """
        pass

    @abstractmethod
    async def gather_package_facts(self) -> Dict[str, List[str]]:
        """Snapshot installed packages.

        Returns:
            Mapping of package name to installed version-release.arch strings
        """
        pass

    @abstractmethod
    async def list_available_updates(self) -> List[Dict[str, str]]:
        """List pending package updates without applying them.

        Returns:
            List of dicts with name, version and repo keys
        """
        pass

    @abstractmethod
    async def get_disk_space(self) -> str:
        """Disk usage of the root filesystem, human readable."""
        pass

    @abstractmethod
    async def get_free_memory(self) -> str:
        """Memory usage, human readable."""
        pass

    @abstractmethod
    async def get_kernel_version(self) -> str:
        """Version of the running kernel (uname -r)."""
        pass

    @abstractmethod
    async def get_installed_kernel_version(self) -> str:
        """Newest installed kernel package, in uname -r form."""
        pass

    @abstractmethod
    async def clean_package_cache(self) -> CommandResult:
        """Clear the package manager cache."""
        pass

    @abstractmethod
    async def upgrade_all_packages(
        self,
        disable_repos: Sequence[str] = (),
        enable_repos: Sequence[str] = (),
    ) -> CommandResult:
        """Upgrade every package to the latest version.

        Args:
            disable_repos: Repositories to disable for this transaction
            enable_repos: Repositories to enable for this transaction

        Returns:
            CommandResult of the package manager run
        """
        pass

    @abstractmethod
    async def reboot_and_wait(self, timeout_seconds: int) -> float:
        """Restart the host and block until it is reachable again.

        Args:
            timeout_seconds: Maximum time to wait for the host to return

        Returns:
            Elapsed seconds until the host answered again

        Raises:
            RebootTimeoutError: If the host did not return in time
        """
        pass

    @abstractmethod
    async def get_uptime(self) -> str:
        """Output of uptime."""
        pass

    @abstractmethod
    async def check_reboot_required(self) -> int:
        """Run the advisory reboot check.

        Returns:
            Exit code: 0 no reboot needed, 1 reboot needed, other undefined
        """
        pass
