"""AWS SSM client for running shell commands on managed instances."""

import asyncio
from typing import List, Dict, Any, Optional
from datetime import datetime

from botocore.exceptions import ClientError
from .session_manager import AWSSessionManager
from core.exceptions import ConnectivityError, RemoteCommandError
from core.models.command import CommandResult
from core.utils.logger import get_infrastructure_logger


SHELL_DOCUMENT = "AWS-RunShellScript"

TERMINAL_STATUSES = ("Success", "Failed", "Cancelled", "TimedOut", "Undeliverable", "Terminated")
UNREACHABLE_STATUSES = ("Undeliverable", "Terminated")


class SSMClient:
    """AWS SSM client wrapper for Systems Manager operations."""

    def __init__(
        self,
        region: str,
        account_id: Optional[str] = None,
        role_name: Optional[str] = None,
        run_mode: str = "local",
        poll_interval: int = 5,
    ):
        self.region = region
        self.account_id = account_id
        self.role_name = role_name
        self.run_mode = run_mode
        self.poll_interval = poll_interval
        self.logger = get_infrastructure_logger(__name__)
        self._client = None
        self._credentials_expiration = None
        self._session_manager = AWSSessionManager(region=region)

    def _ensure_client(self) -> None:
        """Create the SSM client on first use and again when role credentials expire."""
        if self._client is None or self._session_manager.needs_new_client(
            self.account_id, self.role_name, self._credentials_expiration
        ):
            session = self._session_manager.get_session(
                self.account_id, self.role_name, self.run_mode
            )
            self._client = session.client("ssm", region_name=self.region)
            self._credentials_expiration = self._session_manager.get_expiration(
                self.account_id, self.role_name
            )

    def _handle_error(self, operation: str, error: Exception) -> None:
        """Centralized error handling and logging."""
        if isinstance(error, ClientError):
            error_code = error.response["Error"]["Code"]
            self.logger.error(f"{operation} failed: {error_code}")
        else:
            self.logger.error(f"{operation} failed: {str(error)}")
        raise error

    async def get_ping_status(self, instance_id: str) -> Optional[str]:
        """Return the SSM agent PingStatus for an instance, or None if unmanaged."""
        try:
            self._ensure_client()
            response = self._client.describe_instance_information(
                Filters=[{"Key": "InstanceIds", "Values": [instance_id]}]
            )
            for info in response.get("InstanceInformationList", []):
                return info.get("PingStatus")
            return None
        except Exception as e:
            self._handle_error("describe_instance_information", e)

    async def send_command(
        self,
        instance_ids: List[str],
        commands: List[str],
        timeout_seconds: int = 3600,
        comment: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Send shell commands to instances via SSM."""
        try:
            self._ensure_client()
            params = {
                "InstanceIds": instance_ids,
                "DocumentName": SHELL_DOCUMENT,
                "Parameters": {
                    "commands": commands,
                    "executionTimeout": [str(timeout_seconds)],
                },
                "TimeoutSeconds": max(30, min(timeout_seconds, 2592000)),
            }

            if comment:
                params["Comment"] = comment[:100]

            response = self._client.send_command(**params)
            command = response["Command"]

            return {
                "command_id": command["CommandId"],
                "command": command,
                "timestamp": datetime.utcnow().isoformat(),
            }

        except Exception as e:
            self._handle_error("send_command", e)

    async def get_command_invocation(
        self, command_id: str, instance_id: str
    ) -> Dict[str, Any]:
        """Get command invocation details for a specific instance."""
        try:
            self._ensure_client()
            response = self._client.get_command_invocation(
                CommandId=command_id, InstanceId=instance_id
            )

            return {
                "command_id": command_id,
                "instance_id": instance_id,
                "status": response["Status"],
                "status_details": response.get("StatusDetails", ""),
                "standard_output": response.get("StandardOutputContent", ""),
                "standard_error": response.get("StandardErrorContent", ""),
                "response_code": response.get("ResponseCode", -1),
            }

        except ClientError as e:
            # Invocations are not visible immediately after send_command
            if e.response["Error"]["Code"] == "InvocationDoesNotExist":
                return {}
            self._handle_error("get_command_invocation", e)
        except Exception as e:
            self._handle_error("get_command_invocation", e)

    async def wait_for_command_completion(
        self,
        command_id: str,
        instance_id: str,
        max_wait_time: int = 3600,
    ) -> Dict[str, Any]:
        """Poll a command invocation until it reaches a terminal status."""
        start_time = datetime.utcnow()

        while (datetime.utcnow() - start_time).total_seconds() < max_wait_time:
            invocation = await self.get_command_invocation(command_id, instance_id)

            if invocation and invocation["status"] in TERMINAL_STATUSES:
                return invocation

            await asyncio.sleep(self.poll_interval)

        return {
            "command_id": command_id,
            "instance_id": instance_id,
            "status": "TimedOut",
            "status_details": f"No result within {max_wait_time} seconds",
            "standard_output": "",
            "standard_error": "",
            "response_code": -1,
        }

    async def run_shell_command(
        self,
        instance_id: str,
        command: str,
        timeout_seconds: int = 600,
        comment: Optional[str] = None,
    ) -> CommandResult:
        """Run one shell command on an instance and wait for its exit code.

        Raises:
            ConnectivityError: If SSM could not deliver the command
            RemoteCommandError: If the command did not finish in time
        """
        self.logger.debug(f"{instance_id}: running '{command}'")
        sent = await self.send_command(
            [instance_id], [command], timeout_seconds=timeout_seconds, comment=comment or command
        )

        invocation = await self.wait_for_command_completion(
            sent["command_id"], instance_id, max_wait_time=timeout_seconds + 60
        )
        status = invocation["status"]

        if status in UNREACHABLE_STATUSES:
            raise ConnectivityError(
                f"Command could not be delivered to {instance_id} ({status})", host=instance_id
            )
        if status in ("TimedOut", "Cancelled"):
            raise RemoteCommandError(
                f"Command '{command}' on {instance_id} ended with status {status}",
                host=instance_id,
                stderr=invocation.get("standard_error", ""),
            )

        return CommandResult(
            rc=int(invocation.get("response_code", -1)),
            stdout=invocation.get("standard_output", ""),
            stderr=invocation.get("standard_error", ""),
        )
