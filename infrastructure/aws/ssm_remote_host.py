"""Managed RHEL host reached through AWS Systems Manager."""

import asyncio
import time
from typing import Dict, List, Optional, Sequence, Tuple

from core.exceptions import RebootTimeoutError, RemoteCommandError
from core.interfaces.remote_host_interface import IRemoteHost
from core.models.command import CommandResult
from core.models.config import AWSConfig, HostConfig
from core.services import package_commands as commands
from core.utils.logger import get_infrastructure_logger
from .ec2_client import EC2Client
from .ssm_client import SSMClient

CHECK_TIMEOUT_SECONDS = 60


class SSMRemoteHost(IRemoteHost):
    """IRemoteHost implementation backed by SSM Run Command and EC2."""

    def __init__(
        self,
        host_config: HostConfig,
        ssm_client: SSMClient,
        ec2_client: EC2Client,
        command_timeout_seconds: int = 3600,
        poll_interval_seconds: int = 5,
    ):
        self.host_config = host_config
        self.instance_id = host_config.instance_id
        self.ssm_client = ssm_client
        self.ec2_client = ec2_client
        self.command_timeout_seconds = command_timeout_seconds
        self.poll_interval_seconds = poll_interval_seconds
        self.logger = get_infrastructure_logger(__name__)

    @property
    def hostname(self) -> str:
        return self.host_config.name

    async def _run_checked(self, command: str, timeout_seconds: int = CHECK_TIMEOUT_SECONDS) -> str:
        result = await self.run_command(command, timeout_seconds)
        if not result.ok:
            raise RemoteCommandError(
                f"'{command}' failed on {self.hostname} (rc={result.rc}): {result.stderr.strip()}",
                host=self.hostname,
                rc=result.rc,
                stderr=result.stderr,
            )
        return result.stdout.strip()

    async def ping(self) -> bool:
        try:
            status = await self.ssm_client.get_ping_status(self.instance_id)
            if status != "Online":
                self.logger.warning(f"{self.hostname}: SSM ping status is {status}")
                return False
            result = await self.run_command('echo "ping"', CHECK_TIMEOUT_SECONDS)
            return result.ok
        except Exception as e:
            self.logger.warning(f"{self.hostname}: reachability check failed: {str(e)}")
            return False

    async def run_command(self, command: str, timeout_seconds: int = 600) -> CommandResult:
        return await self.ssm_client.run_shell_command(
            self.instance_id, command, timeout_seconds=timeout_seconds
        )

    async def gather_package_facts(self) -> Dict[str, List[str]]:
        return commands.parse_package_facts(
            await self._run_checked(commands.PACKAGE_FACTS_COMMAND, 300)
        )

    async def list_available_updates(self) -> List[Dict[str, str]]:
        result = await self.run_command(commands.CHECK_UPDATE_COMMAND, 900)
        if result.rc == 0:
            return []
        if result.rc == commands.CHECK_UPDATE_AVAILABLE_RC:
            return commands.parse_available_updates(result.stdout)
        raise RemoteCommandError(
            f"Listing updates failed on {self.hostname} (rc={result.rc}): {result.stderr.strip()}",
            host=self.hostname,
            rc=result.rc,
            stderr=result.stderr,
        )

    async def get_disk_space(self) -> str:
        return await self._run_checked(commands.DISK_SPACE_COMMAND)

    async def get_free_memory(self) -> str:
        return await self._run_checked(commands.FREE_MEMORY_COMMAND)

    async def get_kernel_version(self) -> str:
        return await self._run_checked(commands.RUNNING_KERNEL_COMMAND)

    async def get_installed_kernel_version(self) -> str:
        return await self._run_checked(commands.INSTALLED_KERNEL_COMMAND)

    async def get_uptime(self) -> str:
        return await self._run_checked(commands.UPTIME_COMMAND)

    async def clean_package_cache(self) -> CommandResult:
        return await self.run_command(commands.CLEAN_CACHE_COMMAND, 600)

    async def upgrade_all_packages(
        self,
        disable_repos: Sequence[str] = (),
        enable_repos: Sequence[str] = (),
    ) -> CommandResult:
        command = commands.build_update_command(disable_repos, enable_repos)
        self.logger.info(f"{self.hostname}: {command}")
        return await self.run_command(command, self.command_timeout_seconds)

    async def check_reboot_required(self) -> int:
        result = await self.run_command(commands.REBOOT_REQUIRED_COMMAND, CHECK_TIMEOUT_SECONDS)
        return result.rc

    async def _boot_id(self) -> Optional[str]:
        try:
            result = await self.run_command(commands.BOOT_ID_COMMAND, CHECK_TIMEOUT_SECONDS)
        except Exception as e:
            self.logger.debug(f"{self.hostname}: boot id check failed: {str(e)}")
            return None
        return result.stdout.strip() if result.ok else None

    async def reboot_and_wait(self, timeout_seconds: int) -> float:
        """Reboot through EC2 and wait until the host reports a new boot id."""
        start = time.monotonic()
        deadline = start + timeout_seconds

        previous_boot_id = await self._run_checked(commands.BOOT_ID_COMMAND)
        await self.ec2_client.reboot_instances([self.instance_id])

        while time.monotonic() < deadline:
            await asyncio.sleep(self.poll_interval_seconds)

            boot_id = await self._boot_id()
            if boot_id and boot_id != previous_boot_id:
                elapsed = time.monotonic() - start
                self.logger.info(f"{self.hostname}: back online after {elapsed:.0f}s")
                return elapsed

        raise RebootTimeoutError(
            f"Host {self.hostname} did not return within {timeout_seconds} seconds",
            host=self.hostname,
            elapsed_seconds=time.monotonic() - start,
        )


class SSMHostFactory:
    """Builds SSMRemoteHost objects, sharing clients per account and region."""

    def __init__(self, aws_config: AWSConfig):
        self.aws_config = aws_config
        self._clients: Dict[Tuple[Optional[str], str], Tuple[SSMClient, EC2Client]] = {}

    def _get_clients(self, account_id: Optional[str], region: str) -> Tuple[SSMClient, EC2Client]:
        key = (account_id, region)
        if key not in self._clients:
            run_mode = self.aws_config.run_mode.value
            self._clients[key] = (
                SSMClient(
                    region=region,
                    account_id=account_id,
                    role_name=self.aws_config.role_name,
                    run_mode=run_mode,
                    poll_interval=self.aws_config.poll_interval_seconds,
                ),
                EC2Client(
                    region=region,
                    account_id=account_id,
                    role_name=self.aws_config.role_name,
                    run_mode=run_mode,
                ),
            )
        return self._clients[key]

    def __call__(self, host_config: HostConfig) -> SSMRemoteHost:
        region = host_config.region or self.aws_config.region
        ssm_client, ec2_client = self._get_clients(host_config.account_id, region)
        return SSMRemoteHost(
            host_config,
            ssm_client,
            ec2_client,
            command_timeout_seconds=self.aws_config.command_timeout_seconds,
            poll_interval_seconds=self.aws_config.poll_interval_seconds,
        )
